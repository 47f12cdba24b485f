"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_service.db.tables import ChapterRow, CourseRow, ModuleRow, UserRow
from enrollment_service.models.course import Course
from enrollment_service.models.user import User
from enrollment_service.repos.mappers import course_from_columns, user_from_columns


class PgCatalogRepo:
    """Satisfies the CatalogRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user(self, user_id: int) -> User | None:
        stmt = select(UserRow.__table__).where(UserRow.id == user_id)
        row = (await self._session.execute(stmt)).mappings().one_or_none()
        return user_from_columns(row) if row is not None else None

    async def get_course(self, course_id: int) -> Course | None:
        stmt = select(CourseRow.__table__).where(CourseRow.id == course_id)
        row = (await self._session.execute(stmt)).mappings().one_or_none()
        return course_from_columns(row) if row is not None else None

    async def get_chapter_course_id(self, chapter_id: int) -> int | None:
        stmt = (
            select(ModuleRow.course_id)
            .join(ChapterRow, ChapterRow.module_id == ModuleRow.id)
            .where(ChapterRow.id == chapter_id)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def count_chapters(self, course_id: int) -> int:
        # Counted live: curriculum edits change the denominator immediately
        stmt = (
            select(func.count(ChapterRow.id))
            .join(ModuleRow, ChapterRow.module_id == ModuleRow.id)
            .where(ModuleRow.course_id == course_id)
        )
        return int((await self._session.execute(stmt)).scalar_one() or 0)
