"""
Pytest Configuration and Fixtures for batchcache Tests
=======================================================

Purpose
-------
Centralized fixtures for the batchcache test suite: the recording store stub,
initialized cache instances, and a SQLite-backed DatabaseService for
integration tests.

Architecture Notes
------------------
- Unit tests use ``RecordingStore`` (fast, isolated, inspects every call)
- Integration tests use a temporary SQLite file through aiosqlite
- Every test gets a fresh cache; nothing is shared between tests
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from batchcache.cache.service import EntityCache
from batchcache.core.config.config import Config
from batchcache.core.database.base import Base
from batchcache.core.database.service import DatabaseService
from batchcache.pipeline.context import BatchContext
from tests.fixtures import models  # noqa: F401  registers ORM tables on Base
from tests.fixtures.entities import RELATIONS, Pool, Swap, Token
from tests.fixtures.store import RecordingStore

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"
    Config.load()


# ============================================================================
# UNIT FIXTURES
# ============================================================================


@pytest.fixture
def store() -> RecordingStore:
    """
    Recording store seeded with a small token/pool/swap graph.

    s1 -> p1 -> (t1, t2)
    s2 -> p2 -> (t2, t3)
    """
    return RecordingStore().seed(
        Token(id="t1", symbol="DAI"),
        Token(id="t2", symbol="USDC", decimals=6),
        Token(id="t3", symbol="WETH"),
        Pool(id="p1", token0="t1", token1="t2", liquidity=100),
        Pool(id="p2", token0="t2", token1="t3", liquidity=200),
        Swap(id="s1", pool="p1", amount=5),
        Swap(id="s2", pool="p2", amount=7),
    )


@pytest.fixture
def context(store: RecordingStore) -> BatchContext:
    return BatchContext(store=store, batch_id="batch-1", block_height=1000)


@pytest.fixture
def cache(context: BatchContext) -> EntityCache:
    """Initialized cache with the token/pool/swap relation catalog."""
    return EntityCache(concurrent_io=True).init(context, RELATIONS)


@pytest.fixture
def sequential_cache(context: BatchContext) -> EntityCache:
    return EntityCache(concurrent_io=False).init(context, RELATIONS)


@pytest.fixture
def uninitialized_cache() -> EntityCache:
    return EntityCache()


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[type, None]:
    """
    DatabaseService bound to a fresh SQLite file with all tables created.

    Scope: function (clean slate per test)
    """
    await DatabaseService.initialize(f"sqlite+aiosqlite:///{tmp_path / 'batchcache.db'}")

    async with DatabaseService.get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield DatabaseService

    await DatabaseService.shutdown()
