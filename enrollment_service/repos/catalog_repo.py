from __future__ import annotations

from typing import Protocol

from enrollment_service.models.course import Chapter, Course, CourseModule
from enrollment_service.models.user import User
from enrollment_service.repos.mappers import (
    chapter_from_columns,
    course_from_columns,
    module_from_columns,
    user_from_columns,
)
from enrollment_service.repos.memory_tables import InMemoryTables


class CatalogRepo(Protocol):
    """Read access to users and the course -> module -> chapter graph."""

    async def get_user(self, user_id: int) -> User | None: ...
    async def get_course(self, course_id: int) -> Course | None: ...
    async def get_chapter_course_id(self, chapter_id: int) -> int | None: ...
    async def count_chapters(self, course_id: int) -> int: ...


class InMemoryCatalogRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._tables = tables

    async def get_user(self, user_id: int) -> User | None:
        row = self._tables.users.get(user_id)
        return user_from_columns(row) if row is not None else None

    async def get_course(self, course_id: int) -> Course | None:
        row = self._tables.courses.get(course_id)
        return course_from_columns(row) if row is not None else None

    async def get_chapter_course_id(self, chapter_id: int) -> int | None:
        chapter = self._tables.chapters.get(chapter_id)
        if chapter is None:
            return None
        module = self._tables.modules.get(chapter["module_id"])
        return module["course_id"] if module is not None else None

    async def count_chapters(self, course_id: int) -> int:
        modules = self._tables.modules.values()
        module_ids = {m["id"] for m in modules if m["course_id"] == course_id}
        chapters = self._tables.chapters.values()
        return sum(1 for c in chapters if c["module_id"] in module_ids)

    # --- seeding (dev fixtures and tests) ---

    def add_user(
        self,
        email: str,
        *,
        role: str = "student",
        name: str = "",
        is_active: bool = True,
        user_id: int | None = None,
    ) -> User:
        uid = self._tables.claim_id("users", user_id)
        row = {
            "id": uid,
            "email": email,
            "name": name,
            "role": role,
            "is_active": is_active,
        }
        self._tables.users[uid] = row
        return user_from_columns(row)

    def add_course(
        self, title: str, *, status: str = "published", course_id: int | None = None
    ) -> Course:
        cid = self._tables.claim_id("courses", course_id)
        row = {"id": cid, "title": title, "status": status, "is_requestable": True}
        self._tables.courses[cid] = row
        return course_from_columns(row)

    def add_module(self, course_id: int, title: str, *, order: int = 0) -> CourseModule:
        mid = self._tables.next_id("modules")
        row = {"id": mid, "course_id": course_id, "title": title, "order": order}
        self._tables.modules[mid] = row
        return module_from_columns(row)

    def add_chapter(
        self,
        module_id: int,
        title: str,
        *,
        type: str = "video",
        order: int = 0,
        chapter_id: int | None = None,
    ) -> Chapter:
        chid = self._tables.claim_id("chapters", chapter_id)
        row = {
            "id": chid,
            "module_id": module_id,
            "title": title,
            "type": type,
            "order": order,
        }
        self._tables.chapters[chid] = row
        return chapter_from_columns(row)

    def remove_chapter(self, chapter_id: int) -> None:
        self._tables.chapters.pop(chapter_id, None)
