from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import player_api.models  # noqa: F401
from player_api.db import Base, DatabaseConfig, create_engine_for, create_sessionmaker
from player_api.features.authorization.catalog import sync_catalog
from player_api.settings import Settings


@pytest.fixture()
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    engine = create_engine_for(DatabaseConfig.from_settings(settings))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory over a schema seeded with the built-in catalog."""

    factory = create_sessionmaker(engine)
    async with factory() as session:
        await sync_catalog(session)
        await session.commit()
    return factory


@pytest.fixture()
async def session(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """One session for the whole test; the SQLite pool holds a single connection."""

    async with sessionmaker() as session:
        yield session
