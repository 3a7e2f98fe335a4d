"""Database connection management for the SQL generation store.

Example usage:
    >>> from cognigen.config import DatabaseConfig
    >>> from cognigen.store.database import get_engine, get_session_factory
    >>>
    >>> engine = get_engine(DatabaseConfig(url="sqlite+aiosqlite:///cognigen.db"))
    >>> session_factory = get_session_factory(engine)
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cognigen.config import DatabaseConfig
from cognigen.store.models import Base


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Pool sizing is applied to server databases only; SQLite engines use the
    dialect's default pool.
    """
    if config.url.startswith("sqlite"):
        return create_async_engine(config.url, echo=config.echo)
    return create_async_engine(
        config.url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        echo=config.echo,
    )


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    Sessions use expire_on_commit=False so rows stay readable after commit
    without lazy loads.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create the store tables if they do not exist.

    Production deployments run the Alembic migrations instead.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
