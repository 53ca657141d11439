"""Async database engine and session factory for the catalog store.

The engine is built at import time only when DATABASE_URL is present, so the
package imports cleanly in tests and in tools that never touch the catalog.
SqlCatalogStore.from_default() refuses to start without it.

Usage:
    from catalog_sync.database import async_session_factory

    async with async_session_factory() as session, session.begin():
        session.add(record)
"""

import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from catalog_sync.config import get_database_url


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by every catalog transaction.

    expire_on_commit=False keeps returned CatalogRecord rows readable after the
    short write transaction has closed.
    """
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


def create_catalog_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the pooled asyncpg engine.

    Args:
        database_url: Override for DATABASE_URL

    Raises:
        ConfigurationError: If no URL is given and DATABASE_URL is not set
    """
    return create_async_engine(
        database_url or get_database_url(),
        pool_size=10,
        max_overflow=5,
        pool_pre_ping=True,
        echo=os.getenv("DATABASE_ECHO", "").lower() == "true",
    )


engine: AsyncEngine | None = create_catalog_engine() if os.getenv("DATABASE_URL") else None

async_session_factory: async_sessionmaker[AsyncSession] | None = (
    build_session_factory(engine) if engine else None
)
