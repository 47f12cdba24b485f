"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_service.db.tables import EnrollmentRow
from enrollment_service.models.enrollment import Enrollment
from enrollment_service.repos.mappers import (
    enrollment_from_columns,
    enrollment_to_columns,
)

_table = EnrollmentRow.__table__


def _pair(user_id: int, course_id: int):
    return (EnrollmentRow.user_id == user_id) & (EnrollmentRow.course_id == course_id)


class PgEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, user_id: int, course_id: int, *, for_update: bool = False
    ) -> Enrollment | None:
        stmt = select(_table).where(_pair(user_id, course_id))
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).mappings().one_or_none()
        return enrollment_from_columns(row) if row is not None else None

    async def list_for_user(self, user_id: int) -> list[Enrollment]:
        stmt = (
            select(_table)
            .where(EnrollmentRow.user_id == user_id)
            .order_by(EnrollmentRow.course_id)
        )
        rows = (await self._session.execute(stmt)).mappings().all()
        return [enrollment_from_columns(r) for r in rows]

    async def list_user_ids(self) -> list[int]:
        stmt = select(EnrollmentRow.user_id).distinct()
        return sorted((await self._session.execute(stmt)).scalars().all())

    async def add(self, enrollment: Enrollment) -> Enrollment:
        stmt = (
            insert(EnrollmentRow)
            .values(**enrollment_to_columns(enrollment))
            .returning(EnrollmentRow.id)
        )
        row_id = (await self._session.execute(stmt)).scalar_one()
        return replace(enrollment, id=row_id)

    async def save(self, enrollment: Enrollment) -> None:
        stmt = (
            update(EnrollmentRow)
            .where(_pair(enrollment.user_id, enrollment.course_id))
            .values(**enrollment_to_columns(enrollment))
        )
        await self._session.execute(stmt)

    async def delete(self, user_id: int, course_id: int) -> bool:
        result = await self._session.execute(
            delete(EnrollmentRow).where(_pair(user_id, course_id))
        )
        return result.rowcount > 0
