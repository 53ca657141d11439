"""Shared pytest fixtures for async database and service testing.

This module provides reusable fixtures backed by an in-memory SQLite database
(aiosqlite) plus in-memory fakes for the remote asset source and the clock.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from catalog_sync.catalog_store import SqlCatalogStore
from catalog_sync.config import get_cloudflare_account_id, get_database_url, get_stream_api_token
from catalog_sync.database import build_session_factory
from catalog_sync.models import Base
from tests.support.fakes import FakeClock, FakeRemoteAssetSource


@pytest.fixture(autouse=True)
def clear_config_cache():
    """Reset cached configuration so monkeypatched env vars take effect."""
    get_database_url.cache_clear()
    get_cloudflare_account_id.cache_clear()
    get_stream_api_token.cache_clear()
    yield
    get_database_url.cache_clear()
    get_cloudflare_account_id.cache_clear()
    get_stream_api_token.cache_clear()


@pytest_asyncio.fixture
async def async_engine():
    """Create an async SQLite engine for testing.

    StaticPool keeps a single connection so every session sees the same
    in-memory database. Creates all tables before yielding, disposes after.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, matching production settings."""
    return build_session_factory(async_engine)


@pytest.fixture
def catalog_store(session_factory) -> SqlCatalogStore:
    return SqlCatalogStore(session_factory)


@pytest.fixture
def remote_source() -> FakeRemoteAssetSource:
    return FakeRemoteAssetSource()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
