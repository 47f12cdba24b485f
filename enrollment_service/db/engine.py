"""Async SQLAlchemy engine and session factory.

When DATABASE_URL is configured, provides:
- async engine for PostgreSQL via asyncpg, at DB_ISOLATION_LEVEL
- async session factory used by PgStore (one session per operation)
- lifespan hook for startup/shutdown

When DATABASE_URL is None, all exports are None and the app falls
back to the in-memory store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from enrollment_service.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def sync_database_url(url: str) -> str:
    """The psycopg2 form of an asyncpg URL, for alembic's synchronous runs."""
    return url.replace("postgresql+asyncpg://", "postgresql+psycopg2://", 1)


# --- Engine and session factory (None when no DATABASE_URL) ---

if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        isolation_level=SETTINGS.db_isolation_level,
    )
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def lifespan_db():
    """Startup/shutdown hook for the database engine."""
    if engine is None:
        logger.info("No DATABASE_URL configured; using in-memory store")
        yield
        return

    logger.info(
        "Database engine created: %s (isolation=%s)",
        engine.url.render_as_string(hide_password=True),
        SETTINGS.db_isolation_level,
    )
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
