"""Tests for database session factory setup."""

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync import database


@pytest.mark.asyncio
async def test_session_factory_keeps_objects_after_commit(async_engine):
    factory = database.build_session_factory(async_engine)

    assert factory.kw["expire_on_commit"] is False
    assert factory.class_ is AsyncSession

    async with factory() as session, session.begin():
        result = await session.execute(text("SELECT 1"))
        assert result.scalar_one() == 1
