from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from enrollment_service.models.progress import StudentProgress
from enrollment_service.repos.mappers import progress_from_columns, progress_to_columns
from enrollment_service.repos.memory_tables import InMemoryTables


class StudentProgressRepo(Protocol):
    async def get(
        self, student_id: int, course_id: int, *, for_update: bool = False
    ) -> StudentProgress | None: ...
    async def list_for_student(self, student_id: int) -> list[StudentProgress]: ...
    async def list_student_ids(self) -> list[int]: ...
    async def add(self, progress: StudentProgress) -> StudentProgress: ...
    async def save(self, progress: StudentProgress) -> None: ...
    async def delete(self, student_id: int, course_id: int) -> bool: ...


class InMemoryStudentProgressRepo:
    # for_update is accepted for Protocol parity; the in-memory store
    # already serialises whole transactions.

    def __init__(self, tables: InMemoryTables) -> None:
        self._rows = tables.student_progress
        self._tables = tables

    async def get(
        self, student_id: int, course_id: int, *, for_update: bool = False
    ) -> StudentProgress | None:
        row = self._rows.get((student_id, course_id))
        return progress_from_columns(row) if row is not None else None

    async def list_for_student(self, student_id: int) -> list[StudentProgress]:
        return [
            progress_from_columns(row)
            for (sid, _), row in sorted(self._rows.items())
            if sid == student_id
        ]

    async def list_student_ids(self) -> list[int]:
        return sorted({sid for sid, _ in self._rows})

    async def add(self, progress: StudentProgress) -> StudentProgress:
        key = (progress.student_id, progress.course_id)
        if key in self._rows:
            raise ValueError(
                f"student_progress already exists for student={key[0]} course={key[1]}"
            )
        row_id = self._tables.next_id("student_progress")
        self._rows[key] = {"id": row_id, **progress_to_columns(progress)}
        return replace(progress, id=row_id)

    async def save(self, progress: StudentProgress) -> None:
        key = (progress.student_id, progress.course_id)
        row = self._rows.get(key)
        if row is None:
            raise KeyError("student_progress not found")
        row.update(progress_to_columns(progress))

    async def delete(self, student_id: int, course_id: int) -> bool:
        return self._rows.pop((student_id, course_id), None) is not None
