"""Async engine and session factory for the market-state store.

The engine is built on demand so that importing the pricing domain never
opens a connection pool.
"""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from config.settings import settings


def build_engine(url: str | None = None, *, null_pool: bool = False) -> AsyncEngine:
    """NullPool for short-lived event loops (tests, migrations, scripts)."""
    if null_pool:
        return create_async_engine(url or settings.DATABASE_URL, poolclass=NullPool)
    return create_async_engine(
        url or settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=20,
        max_overflow=10,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Yields an AsyncSession and closes it afterwards. Commit boundaries stay with the caller."""
    async with factory() as session:
        yield session
