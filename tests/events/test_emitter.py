from __future__ import annotations

import logging

import pytest

from enrollment_service.events import (
    DomainEvent,
    EnrollmentEvent,
    EventEmitter,
    EventType,
    ProgressEvent,
    RequestEvent,
)
from tests.conftest import NOW


def _enrolled(student_id: int = 1) -> EnrollmentEvent:
    return EnrollmentEvent(
        type=EventType.ENROLLMENT_CREATED,
        timestamp=NOW,
        student_id=student_id,
        course_id=10,
        source="admin",
    )


def test_handlers_receive_only_subscribed_types() -> None:
    emitter = EventEmitter()
    created: list[DomainEvent] = []
    everything: list[DomainEvent] = []
    emitter.subscribe(created.append, EventType.ENROLLMENT_CREATED)
    emitter.subscribe(everything.append)

    emitter.emit(_enrolled())
    emitter.emit(
        ProgressEvent(
            type=EventType.PROGRESS_UPDATED,
            timestamp=NOW,
            student_id=1,
            course_id=10,
            progress=50,
        )
    )

    assert [e.type for e in created] == [EventType.ENROLLMENT_CREATED]
    assert [e.type for e in everything] == [
        EventType.ENROLLMENT_CREATED,
        EventType.PROGRESS_UPDATED,
    ]


def test_unsubscribe_stops_delivery() -> None:
    emitter = EventEmitter()
    seen: list[DomainEvent] = []
    unsubscribe = emitter.subscribe(
        seen.append, EventType.ENROLLMENT_CREATED, EventType.ENROLLMENT_REMOVED
    )
    assert emitter.handler_count(EventType.ENROLLMENT_REMOVED) == 1

    unsubscribe()
    emitter.emit(_enrolled())

    assert seen == []
    assert emitter.handler_count() == 0


def test_failing_handler_is_isolated(caplog: pytest.LogCaptureFixture) -> None:
    emitter = EventEmitter()
    seen: list[DomainEvent] = []

    def broken(event: DomainEvent) -> None:
        raise RuntimeError("handler down")

    emitter.subscribe(broken)
    emitter.subscribe(seen.append)

    with caplog.at_level(logging.ERROR, logger="enrollment_service.events.emitter"):
        emitter.emit(_enrolled())

    assert len(seen) == 1
    assert any("broken" in r.getMessage() for r in caplog.records)


def test_event_class_must_match_type() -> None:
    with pytest.raises(TypeError, match="REQUEST_CREATED"):
        EnrollmentEvent(
            type=EventType.REQUEST_CREATED, timestamp=NOW, student_id=1, course_id=10
        )


def test_to_dict_includes_subclass_fields() -> None:
    event = RequestEvent(
        type=EventType.REQUEST_REJECTED,
        timestamp=NOW,
        student_id=1,
        course_id=10,
        actor_id=9,
        request_id=7,
        reason="full",
    )
    assert event.to_dict() == {
        "type": "request.rejected",
        "timestamp": NOW,
        "student_id": 1,
        "course_id": 10,
        "actor_id": 9,
        "metadata": {},
        "request_id": 7,
        "reason": "full",
    }
    assert _enrolled().to_dict()["source"] == "admin"
