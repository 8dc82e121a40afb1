"""
Integration Tests for DatabaseService
====================================

Purpose
-------
Test engine lifecycle, sessions and transaction handling against a real
SQLite database through aiosqlite.
"""

import pytest
from sqlalchemy import select, text

from batchcache.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)
from tests.fixtures.models import TokenRecord


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.database
class TestDatabaseLifecycle:
    async def test_session_before_initialize_raises(self):
        with pytest.raises(DatabaseNotInitializedError):
            async with DatabaseService.get_session():
                pass

    async def test_health_check_uninitialized(self):
        assert await DatabaseService.health_check() is False

    async def test_unknown_dialect_fails_initialization(self):
        with pytest.raises(DatabaseInitializationError):
            await DatabaseService.initialize("nosuchdialect+async://host/db")

        assert DatabaseService.is_initialized() is False

    async def test_initialize_is_idempotent(self, database):
        engine = database.get_engine()

        await database.initialize()

        assert database.get_engine() is engine
        assert database.is_initialized() is True

    async def test_health_check(self, database):
        assert await database.health_check() is True

    async def test_shutdown_twice_is_safe(self, database):
        await database.shutdown()
        await database.shutdown()

        assert database.is_initialized() is False


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.database
class TestTransactions:
    async def test_commit_on_success(self, database):
        async with database.get_transaction() as session:
            session.add(TokenRecord(id="t1", symbol="DAI", decimals=18))

        async with database.get_session() as session:
            token = await session.get(TokenRecord, "t1")

        assert token is not None
        assert token.symbol == "DAI"

    async def test_rollback_on_error(self, database):
        with pytest.raises(RuntimeError):
            async with database.get_transaction() as session:
                session.add(TokenRecord(id="t2", symbol="USDC", decimals=6))
                await session.flush()
                raise RuntimeError("abort")

        async with database.get_session() as session:
            result = await session.execute(select(TokenRecord))

        assert result.scalars().all() == []

    async def test_raw_query(self, database):
        async with database.get_session() as session:
            result = await session.execute(text("SELECT 1 AS value"))

        assert result.scalar_one() == 1
