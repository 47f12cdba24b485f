"""PostgreSQL implementation of StudentProgressRepo."""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_service.db.tables import StudentProgressRow
from enrollment_service.models.progress import StudentProgress
from enrollment_service.repos.mappers import progress_from_columns, progress_to_columns

_table = StudentProgressRow.__table__


def _pair(student_id: int, course_id: int):
    return (StudentProgressRow.student_id == student_id) & (
        StudentProgressRow.course_id == course_id
    )


class PgStudentProgressRepo:
    """Satisfies the StudentProgressRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, student_id: int, course_id: int, *, for_update: bool = False
    ) -> StudentProgress | None:
        stmt = select(_table).where(_pair(student_id, course_id))
        if for_update:
            # Row lock held until commit; concurrent writers for the same
            # (student, course) queue here instead of losing updates.
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).mappings().one_or_none()
        return progress_from_columns(row) if row is not None else None

    async def list_for_student(self, student_id: int) -> list[StudentProgress]:
        stmt = (
            select(_table)
            .where(StudentProgressRow.student_id == student_id)
            .order_by(StudentProgressRow.course_id)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [progress_from_columns(r) for r in rows]

    async def list_student_ids(self) -> list[int]:
        stmt = select(StudentProgressRow.student_id).distinct()
        return sorted((await self._session.execute(stmt)).scalars().all())

    async def add(self, progress: StudentProgress) -> StudentProgress:
        stmt = (
            insert(StudentProgressRow)
            .values(**progress_to_columns(progress))
            .returning(StudentProgressRow.id)
        )
        row_id = (await self._session.execute(stmt)).scalar_one()
        return replace(progress, id=row_id)

    async def save(self, progress: StudentProgress) -> None:
        stmt = (
            update(StudentProgressRow)
            .where(_pair(progress.student_id, progress.course_id))
            .values(**progress_to_columns(progress))
        )
        await self._session.execute(stmt)

    async def delete(self, student_id: int, course_id: int) -> bool:
        stmt = delete(StudentProgressRow).where(_pair(student_id, course_id))
        result = await self._session.execute(stmt)
        return result.rowcount > 0
