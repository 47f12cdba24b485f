"""Transaction handle passed to every operation body.

A Transaction bundles the repos bound to one store transaction and a
list of callbacks to run once that transaction has committed.  Domain
events are published through ``after_commit`` so work that rolls back
never reaches subscribers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from enrollment_service.repos.access_request_repo import AccessRequestRepo
from enrollment_service.repos.catalog_repo import CatalogRepo
from enrollment_service.repos.enrollment_repo import EnrollmentRepo
from enrollment_service.repos.progress_repo import StudentProgressRepo

logger = logging.getLogger(__name__)


class Transaction:
    def __init__(
        self,
        *,
        catalog: CatalogRepo,
        progress: StudentProgressRepo,
        enrollments: EnrollmentRepo,
        requests: AccessRequestRepo,
    ) -> None:
        self.catalog = catalog
        self.progress = progress
        self.enrollments = enrollments
        self.requests = requests
        self._after_commit: list[Callable[[], None]] = []

    def after_commit(self, callback: Callable[[], None]) -> None:
        self._after_commit.append(callback)

    def run_after_commit(self) -> None:
        """Called by the store once the commit has succeeded."""
        callbacks, self._after_commit = self._after_commit, []
        for callback in callbacks:
            callback()
        if callbacks:
            logger.debug("Ran %d after-commit callback(s)", len(callbacks))


class Store(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[Transaction]: ...
