"""
Async SQLAlchemy engine and session management for ``SqlAlchemyStore``.

One engine per process. Reads go through ``get_session()`` (nothing is
committed); writes go through ``get_transaction()``, which commits when the
block exits cleanly and rolls back otherwise. SQLite and the testing
environment use ``NullPool``; server databases get a pre-pinged
``AsyncAdaptedQueuePool`` sized from Config.

Retries and schema migrations are out of scope: the batch driver retries a
failed ``load``/``flush``, and tables are created by the embedding
application.

    await DatabaseService.initialize()
    async with DatabaseService.get_transaction() as session:
        await session.merge(token)
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from batchcache.core.config.config import Config
from batchcache.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """The engine could not be created from the configured URL."""


class DatabaseNotInitializedError(RuntimeError):
    """A session was requested before ``DatabaseService.initialize()``."""


def _engine_options(url: str) -> Dict[str, Any]:
    if Config.is_testing() or url.startswith("sqlite"):
        return {"echo": Config.DATABASE_ECHO, "poolclass": NullPool}
    return {
        "echo": Config.DATABASE_ECHO,
        "poolclass": AsyncAdaptedQueuePool,
        "pool_size": Config.DATABASE_POOL_SIZE,
        "max_overflow": Config.DATABASE_MAX_OVERFLOW,
        "pool_recycle": Config.DATABASE_POOL_RECYCLE,
        "pool_timeout": Config.DATABASE_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }


class DatabaseService:
    """Process-wide engine holder; all methods are classmethods."""

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _init_lock: Optional[asyncio.Lock] = None

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        # Created lazily so the lock binds to the running event loop.
        if cls._init_lock is None:
            cls._init_lock = asyncio.Lock()
        return cls._init_lock

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Create the engine and session factory; a second call is a no-op.

        Raises
        ------
        DatabaseInitializationError
            If no URL is configured or the engine cannot be created.
        """
        async with cls._lock():
            if cls._engine is not None:
                return

            database_url = url or Config.DATABASE_URL
            if not database_url:
                raise DatabaseInitializationError("DATABASE_URL is not configured")

            scheme = database_url.split(":", 1)[0]
            try:
                options = _engine_options(database_url)
                cls._engine = create_async_engine(database_url, **options)
            except Exception as exc:
                logger.error(
                    "Database engine creation failed",
                    extra={"url_scheme": scheme, "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

            cls._session_factory = async_sessionmaker(
                bind=cls._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            logger.info(
                "Database initialized",
                extra={"url_scheme": scheme, "pool_class": options["poolclass"].__name__},
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine. Safe to call when not initialized."""
        async with cls._lock():
            engine, cls._engine, cls._session_factory = cls._engine, None, None
            if engine is None:
                return
            await engine.dispose()
            logger.info("Database shut down")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    @classmethod
    def _factory(cls) -> async_sessionmaker[AsyncSession]:
        if cls._session_factory is None:
            raise DatabaseNotInitializedError(
                "Call DatabaseService.initialize() before opening sessions"
            )
        return cls._session_factory

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        cls._factory()
        assert cls._engine is not None
        return cls._engine

    @classmethod
    async def health_check(cls) -> bool:
        """``SELECT 1`` against the engine; False instead of raising."""
        if cls._engine is None:
            return False

        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        return True

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """Read session; closed on exit without committing."""
        async with cls._factory()() as session:
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """Write session; commits on clean exit, rolls back and re-raises otherwise."""
        start = time.perf_counter()
        async with cls._factory()() as session:
            try:
                yield session
                await session.commit()
            except Exception as exc:
                await session.rollback()
                logger.error(
                    "Transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    },
                )
                raise
