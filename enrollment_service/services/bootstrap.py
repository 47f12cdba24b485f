from __future__ import annotations

from enrollment_service.core.config import SETTINGS
from enrollment_service.db import engine as db
from enrollment_service.events import EventEmitter
from enrollment_service.repos.in_memory_store import InMemoryStore
from enrollment_service.repos.pg_store import PgStore
from enrollment_service.repos.unit_of_work import Store
from enrollment_service.services.audit import register_audit_log
from enrollment_service.services.data_manager import DataManager


def build_data_manager() -> DataManager:
    """Wire store, emitter and audit subscriber from SETTINGS.

    PostgreSQL when DATABASE_URL is set, otherwise an empty in-memory store.
    """
    store: Store
    if db.async_session_factory is not None:
        store = PgStore(db.async_session_factory)
    else:
        store = InMemoryStore()

    emitter = EventEmitter()
    register_audit_log(emitter)
    return DataManager(
        store,
        emitter,
        default_max_retries=SETTINGS.operation_max_retries,
        include_tracebacks=SETTINGS.is_dev,
    )
