"""Integration-test fixtures.

Requires a migrated PostgreSQL (alembic upgrade head). Tests skip when the
database is unreachable.
"""
import uuid
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import build_engine, build_session_factory, session_scope


@pytest_asyncio.fixture
async def db() -> AsyncIterator[AsyncSession]:
    """Fresh NullPool engine per test to avoid event-loop binding."""
    engine = build_engine(null_pool=True)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM amm_markets LIMIT 1"))
    except (OSError, OperationalError, DBAPIError) as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL with migrated schema not available: {exc}")
    async for session in session_scope(build_session_factory(engine)):
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def funded_user(db: AsyncSession) -> AsyncIterator[str]:
    user_id = f"it-{uuid.uuid4().hex[:12]}"
    async with db.begin():
        await db.execute(
            text("INSERT INTO accounts (user_id, available_balance) VALUES (:u, 1000000)"),
            {"u": user_id},
        )
    yield user_id
    async with db.begin():
        await db.execute(text("DELETE FROM ledger_entries WHERE user_id = :u"), {"u": user_id})
        await db.execute(text("DELETE FROM accounts WHERE user_id = :u"), {"u": user_id})
