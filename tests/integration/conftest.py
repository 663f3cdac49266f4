"""Fixtures for tests against a real PostgreSQL database.

Set LEDGERFLOW_TEST_DATABASE_URL (an asyncpg URL) to run them; the schema
is created from the models before each test and dropped afterwards, so
point it at a throwaway database.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from unittest.mock import patch

import pytest
import pytest_asyncio

TEST_DATABASE_URL = os.environ.get("LEDGERFLOW_TEST_DATABASE_URL")

requires_postgres = pytest.mark.skipif(
    not TEST_DATABASE_URL,
    reason="LEDGERFLOW_TEST_DATABASE_URL not set",
)


@pytest_asyncio.fixture
async def pg_session_factory() -> AsyncGenerator:
    """A sessionmaker over a fresh schema, with get_db_context patched to use it."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from ledgerflow.models._base import Base

    engine = create_async_engine(TEST_DATABASE_URL, pool_size=10, isolation_level="READ COMMITTED")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    @asynccontextmanager
    async def _db_context() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
            finally:
                await session.close()

    with patch("ledgerflow.db.session.get_db_context", _db_context):
        yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def pg_store(pg_session_factory):
    from ledgerflow.domains.usage_events.repository import UsageEventRepository
    from ledgerflow.domains.usage_events.service import UsageEventService

    return UsageEventService(repository=UsageEventRepository())


@pytest.fixture
def pg_ledger(pg_session_factory):
    from ledgerflow.domains.ledger.debit_engine import LedgerDebitEngine
    from ledgerflow.domains.ledger.repository import LedgerRepository

    return LedgerDebitEngine(repository=LedgerRepository())
