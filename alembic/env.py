"""Migration runner for the enrollment schema.

The service talks to PostgreSQL through asyncpg, but alembic migrates
synchronously, so the configured DATABASE_URL is rewritten to psycopg2
(the ``migrations`` extra).  Without DATABASE_URL the placeholder in
alembic.ini is used, which is enough for ``--sql`` output.  Migrations
run at the same DB_ISOLATION_LEVEL as the service.
"""

from __future__ import annotations

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from enrollment_service.core.config import SETTINGS
from enrollment_service.db import tables  # noqa: F401  registers every table
from enrollment_service.db.engine import Base, sync_database_url

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

if SETTINGS.database_url:
    config.set_main_option(
        "sqlalchemy.url", sync_database_url(SETTINGS.database_url)
    )

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    # Integer/Text changes and server defaults are part of the schema here
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Write the migration SQL to stdout."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        isolation_level=SETTINGS.db_isolation_level,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
