"""Pytest fixtures for integration tests.

Provides an in-memory SQLite database for the SQL store and an HTTP client
bound to the FastAPI app. Production deployments use PostgreSQL; the store
only relies on portable column types so SQLite covers its query logic.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import AsyncGenerator

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from cognigen.config import CognigenConfig
from cognigen.pipeline.engine import GenerationEngine
from cognigen.store.models import Base
from cognigen.store.sql import SqlGenerationStore
from cognigen.web.app import create_app


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine with the store tables."""
    test_engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def sql_store(session_factory: async_sessionmaker[AsyncSession]) -> SqlGenerationStore:
    return SqlGenerationStore(session_factory)


@pytest_asyncio.fixture
async def generation_engine(
    make_engine: Callable[..., GenerationEngine],
) -> AsyncGenerator[GenerationEngine, None]:
    """Engine wired with in-process capabilities and the in-memory store."""
    gen_engine = make_engine()
    yield gen_engine
    await gen_engine.shutdown()


@pytest_asyncio.fixture
async def app(generation_engine: GenerationEngine) -> FastAPI:
    """FastAPI app with the test engine installed.

    ASGITransport does not run the lifespan, so the engine is set directly.
    """
    application = create_app(CognigenConfig())
    application.state.engine = generation_engine
    return application


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
