from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from enrollment_service.repos.access_request_repo import InMemoryAccessRequestRepo
from enrollment_service.repos.catalog_repo import InMemoryCatalogRepo
from enrollment_service.repos.enrollment_repo import InMemoryEnrollmentRepo
from enrollment_service.repos.memory_tables import InMemoryTables
from enrollment_service.repos.progress_repo import InMemoryStudentProgressRepo
from enrollment_service.repos.unit_of_work import Transaction

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Store backed by dicts, used when DATABASE_URL is not configured.

    Transactions run one at a time behind a store-wide lock (serialisable
    isolation).  A snapshot taken on entry is restored if the body
    raises, so a failed operation leaves no partial writes.
    """

    def __init__(self, tables: InMemoryTables | None = None) -> None:
        self.tables = tables or InMemoryTables()
        self.catalog = InMemoryCatalogRepo(self.tables)
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        async with self._lock:
            snapshot = self.tables.snapshot()
            tx = Transaction(
                catalog=InMemoryCatalogRepo(self.tables),
                progress=InMemoryStudentProgressRepo(self.tables),
                enrollments=InMemoryEnrollmentRepo(self.tables),
                requests=InMemoryAccessRequestRepo(self.tables),
            )
            try:
                yield tx
            except BaseException:
                self.tables.restore(snapshot)
                logger.debug("In-memory transaction rolled back")
                raise
        tx.run_after_commit()
