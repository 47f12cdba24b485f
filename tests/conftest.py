from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from enrollment_service.events import DomainEvent, EventType
from enrollment_service.main import create_app
from enrollment_service.models.access_request import AccessRequest
from enrollment_service.models.enrollment import Enrollment
from enrollment_service.models.progress import StudentProgress
from enrollment_service.repos.in_memory_store import InMemoryStore
from enrollment_service.services.data_manager import DataManager

# Ensure repo root is on sys.path so `import enrollment_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

NOW = 1_760_000_000


@dataclass(frozen=True)
class Seed:
    """Ids of the catalog rows every test starts with."""

    student_id: int = 1
    other_student_id: int = 2
    inactive_student_id: int = 3
    admin_id: int = 9
    course_id: int = 10  # 4 chapters
    big_course_id: int = 20  # 10 chapters over two modules
    draft_course_id: int = 30
    chapters: tuple[int, ...] = (101, 102, 103, 104)
    big_chapters: tuple[int, ...] = tuple(range(201, 211))


SEED = Seed()


class RecordingSink:
    """EventSink that keeps every emitted event for assertions."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def emit(self, event: DomainEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[EventType]:
        return [e.type for e in self.events]

    def of_type(self, event_type: EventType) -> list[DomainEvent]:
        return [e for e in self.events if e.type == event_type]


class FakeClock:
    def __init__(self, start: int = NOW) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += seconds


def seed_catalog(store: InMemoryStore) -> Seed:
    catalog = store.catalog
    catalog.add_user("student@example.com", user_id=SEED.student_id)
    catalog.add_user("other@example.com", user_id=SEED.other_student_id)
    catalog.add_user(
        "gone@example.com", is_active=False, user_id=SEED.inactive_student_id
    )
    catalog.add_user("admin@example.com", role="admin", user_id=SEED.admin_id)

    catalog.add_course("Pharmacology", course_id=SEED.course_id)
    module = catalog.add_module(SEED.course_id, "Basics")
    for order, chapter_id in enumerate(SEED.chapters):
        catalog.add_chapter(
            module.id, f"Chapter {order + 1}", order=order, chapter_id=chapter_id
        )

    catalog.add_course("Anatomy", course_id=SEED.big_course_id)
    first = catalog.add_module(SEED.big_course_id, "Part 1", order=0)
    second = catalog.add_module(SEED.big_course_id, "Part 2", order=1)
    for order, chapter_id in enumerate(SEED.big_chapters):
        module_id = first.id if order < 5 else second.id
        catalog.add_chapter(
            module_id, f"Chapter {order + 1}", order=order, chapter_id=chapter_id
        )

    catalog.add_course("Unreleased", status="draft", course_id=SEED.draft_course_id)
    return SEED


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore()
    seed_catalog(store)
    return store


@pytest.fixture
def seed() -> Seed:
    return SEED


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(store: InMemoryStore, sink: RecordingSink, clock: FakeClock) -> DataManager:
    return DataManager(store, sink, clock=clock)


@pytest.fixture
def client(manager: DataManager) -> TestClient:
    return TestClient(create_app(manager))


# ---------------------------------------------------------------------------
# Table readers (each runs its own transaction)
# ---------------------------------------------------------------------------


def read_progress(
    store: InMemoryStore, student_id: int, course_id: int
) -> StudentProgress | None:
    async def _read() -> StudentProgress | None:
        async with store.transaction() as tx:
            return await tx.progress.get(student_id, course_id)

    return asyncio.run(_read())


def read_enrollment(
    store: InMemoryStore, user_id: int, course_id: int
) -> Enrollment | None:
    async def _read() -> Enrollment | None:
        async with store.transaction() as tx:
            return await tx.enrollments.get(user_id, course_id)

    return asyncio.run(_read())


def read_request(store: InMemoryStore, request_id: int) -> AccessRequest | None:
    async def _read() -> AccessRequest | None:
        async with store.transaction() as tx:
            return await tx.requests.get(request_id)

    return asyncio.run(_read())


def enroll(manager: DataManager, user_id: int, course_id: int) -> None:
    """Enroll through the DataManager and fail the test if it did not succeed."""
    result = asyncio.run(manager.enroll_student(user_id, course_id))
    assert result.success, result.error
