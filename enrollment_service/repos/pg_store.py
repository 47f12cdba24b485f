"""PostgreSQL store: one AsyncSession and one transaction per operation."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from enrollment_service.repos.pg_access_request_repo import PgAccessRequestRepo
from enrollment_service.repos.pg_catalog_repo import PgCatalogRepo
from enrollment_service.repos.pg_enrollment_repo import PgEnrollmentRepo
from enrollment_service.repos.pg_progress_repo import PgStudentProgressRepo
from enrollment_service.repos.unit_of_work import Transaction


class PgStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        async with self._session_factory() as session:
            # session.begin() commits on clean exit and rolls back on error
            async with session.begin():
                tx = Transaction(
                    catalog=PgCatalogRepo(session),
                    progress=PgStudentProgressRepo(session),
                    enrollments=PgEnrollmentRepo(session),
                    requests=PgAccessRequestRepo(session),
                )
                yield tx
        tx.run_after_commit()
