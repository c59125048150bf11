"""Alembic environment for the watch_progress schema.

Migrations run over the same asyncpg driver as the service, so the
DATABASE_URL the app reads is used as-is; alembic.ini only supplies a
placeholder for offline SQL generation.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

import watchtrack.db.tables  # noqa: F401  registers WatchProgressRow on Base
from alembic import context
from watchtrack.core.config import SETTINGS
from watchtrack.db.engine import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

if SETTINGS.database_url:
    config.set_main_option("sqlalchemy.url", SETTINGS.database_url)

target_metadata = Base.metadata


def _configure(**kwargs: object) -> None:
    # compare_type so autogenerate notices String length changes on title/poster_path
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_run_with_connection)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
