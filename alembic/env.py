"""Alembic environment for the catalog_records schema.

Migrations run through the same async SQLAlchemy/asyncpg stack as the
application. The URL comes from DATABASE_URL via catalog_sync.config, never
from alembic.ini, so there is one place that rewrites postgresql:// URLs.

Usage:
    alembic upgrade head
    alembic revision --autogenerate -m "add catalog column"
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from catalog_sync.config import get_database_url
from catalog_sync.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# CatalogRecord metadata drives autogenerate
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit migration SQL to stdout without connecting to the database."""
    context.configure(
        url=get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def apply_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Apply migrations over an async connection.

    Raises:
        ConfigurationError: If DATABASE_URL is not set.
    """
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = get_database_url()

    migration_engine = async_engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    try:
        async with migration_engine.connect() as connection:
            await connection.run_sync(apply_migrations)
    finally:
        await migration_engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
