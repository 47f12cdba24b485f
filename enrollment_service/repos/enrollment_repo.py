from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from enrollment_service.models.enrollment import Enrollment
from enrollment_service.repos.mappers import (
    enrollment_from_columns,
    enrollment_to_columns,
)
from enrollment_service.repos.memory_tables import InMemoryTables


class EnrollmentRepo(Protocol):
    async def get(
        self, user_id: int, course_id: int, *, for_update: bool = False
    ) -> Enrollment | None: ...
    async def list_for_user(self, user_id: int) -> list[Enrollment]: ...
    async def list_user_ids(self) -> list[int]: ...
    async def add(self, enrollment: Enrollment) -> Enrollment: ...
    async def save(self, enrollment: Enrollment) -> None: ...
    async def delete(self, user_id: int, course_id: int) -> bool: ...


class InMemoryEnrollmentRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._rows = tables.enrollments
        self._tables = tables

    async def get(
        self, user_id: int, course_id: int, *, for_update: bool = False
    ) -> Enrollment | None:
        row = self._rows.get((user_id, course_id))
        return enrollment_from_columns(row) if row is not None else None

    async def list_for_user(self, user_id: int) -> list[Enrollment]:
        return [
            enrollment_from_columns(row)
            for (uid, _), row in sorted(self._rows.items())
            if uid == user_id
        ]

    async def list_user_ids(self) -> list[int]:
        return sorted({uid for uid, _ in self._rows})

    async def add(self, enrollment: Enrollment) -> Enrollment:
        key = (enrollment.user_id, enrollment.course_id)
        if key in self._rows:
            raise ValueError(
                f"enrollment already exists for user={key[0]} course={key[1]}"
            )
        row_id = self._tables.next_id("enrollments")
        self._rows[key] = {"id": row_id, **enrollment_to_columns(enrollment)}
        return replace(enrollment, id=row_id)

    async def save(self, enrollment: Enrollment) -> None:
        row = self._rows.get((enrollment.user_id, enrollment.course_id))
        if row is None:
            raise KeyError("enrollment not found")
        row.update(enrollment_to_columns(enrollment))

    async def delete(self, user_id: int, course_id: int) -> bool:
        return self._rows.pop((user_id, course_id), None) is not None
