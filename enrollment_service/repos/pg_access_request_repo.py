"""PostgreSQL implementation of AccessRequestRepo."""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_service.db.tables import AccessRequestRow
from enrollment_service.models.access_request import AccessRequest
from enrollment_service.repos.mappers import request_from_columns, request_to_columns

_table = AccessRequestRow.__table__


def _pending_pair(student_id: int, course_id: int):
    return (
        (AccessRequestRow.student_id == student_id)
        & (AccessRequestRow.course_id == course_id)
        & (AccessRequestRow.status == "pending")
    )


class PgAccessRequestRepo:
    """Satisfies the AccessRequestRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, request_id: int, *, for_update: bool = False
    ) -> AccessRequest | None:
        stmt = select(_table).where(AccessRequestRow.id == request_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).mappings().one_or_none()
        return request_from_columns(row) if row is not None else None

    async def find_pending(
        self, student_id: int, course_id: int
    ) -> AccessRequest | None:
        stmt = select(_table).where(_pending_pair(student_id, course_id)).limit(1)
        row = (await self._session.execute(stmt)).mappings().one_or_none()
        return request_from_columns(row) if row is not None else None

    async def list_pending(self, student_id: int | None = None) -> list[AccessRequest]:
        stmt = select(_table).where(AccessRequestRow.status == "pending")
        if student_id is not None:
            stmt = stmt.where(AccessRequestRow.student_id == student_id)
        stmt = stmt.order_by(AccessRequestRow.id)
        rows = (await self._session.execute(stmt)).mappings().all()
        return [request_from_columns(r) for r in rows]

    async def add(self, request: AccessRequest) -> AccessRequest:
        stmt = (
            insert(AccessRequestRow)
            .values(**request_to_columns(request))
            .returning(AccessRequestRow.id)
        )
        row_id = (await self._session.execute(stmt)).scalar_one()
        return replace(request, id=row_id)

    async def save(self, request: AccessRequest) -> None:
        stmt = (
            update(AccessRequestRow)
            .where(AccessRequestRow.id == request.id)
            .values(**request_to_columns(request))
        )
        await self._session.execute(stmt)

    async def delete(self, request_id: int) -> bool:
        result = await self._session.execute(
            delete(AccessRequestRow).where(AccessRequestRow.id == request_id)
        )
        return result.rowcount > 0

    async def delete_pending(self, student_id: int, course_id: int) -> int:
        result = await self._session.execute(
            delete(AccessRequestRow).where(_pending_pair(student_id, course_id))
        )
        return result.rowcount or 0
