"""
SQLAlchemy-backed ``EntityStore``.

Purpose
-------
Implements the store contract over ``DatabaseService``: reads run in a
read-only session, writes and deletes run inside ``get_transaction()`` so a
failed type rolls back cleanly without affecting other types.

Responsibilities
----------------
- Translate ``FindOptions`` into repository calls (ids / where / everything)
- Split large id-membership reads into chunks of ``STORE_MAX_IDS_PER_QUERY``
- Keep one ``EntityRepository`` per entity type
- Log every batched call with counts and latency

Non-Responsibilities
--------------------
- Deduplication and relation fan-out (EntityCache)
- Retries (the batch driver decides)

Each call opens its own session, so the cache may issue reads for different
entity types concurrently.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from batchcache.core.config.config import Config
from batchcache.core.database.service import DatabaseService
from batchcache.core.logging.logger import get_logger
from batchcache.store.protocols import FindOptions
from batchcache.store.repository import EntityRepository

logger = get_logger(__name__)


class SqlAlchemyStore:
    """
    ``EntityStore`` implementation backed by SQLAlchemy async sessions.

    Parameters
    ----------
    database:
        Object exposing ``get_session()`` and ``get_transaction()`` async
        context managers. Defaults to the process-wide ``DatabaseService``.
    max_ids_per_query:
        Chunk size for id-membership reads. Defaults to
        ``Config.STORE_MAX_IDS_PER_QUERY``.
    """

    def __init__(
        self,
        database: Any = DatabaseService,
        max_ids_per_query: Optional[int] = None,
    ) -> None:
        self._database = database
        self._max_ids = max_ids_per_query or Config.STORE_MAX_IDS_PER_QUERY
        self._repositories: Dict[type, EntityRepository[Any]] = {}

    def repository(self, entity_type: type) -> EntityRepository[Any]:
        repo = self._repositories.get(entity_type)
        if repo is None:
            repo = EntityRepository(entity_type, logger)
            self._repositories[entity_type] = repo
        return repo

    async def find(self, entity_type: type, options: FindOptions) -> List[Any]:
        repo = self.repository(entity_type)
        start = time.perf_counter()

        async with self._database.get_session() as session:
            if options.ids is not None:
                ids = list(options.ids)
                records: List[Any] = []
                for offset in range(0, len(ids), self._max_ids):
                    chunk = ids[offset:offset + self._max_ids]
                    records.extend(
                        await repo.get_many(session, chunk, options.relations)
                    )
                mode = "ids"
            elif options.where is not None:
                records = (
                    await repo.find_many_where(session, options.where, options.relations)
                    if options.where
                    else []
                )
                mode = "where"
            else:
                records = await repo.find_all(session, options.relations)
                mode = "all"

        logger.debug(
            "Store find completed",
            extra={
                "entity_type": entity_type.__name__,
                "mode": mode,
                "found_count": len(records),
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return records

    async def save(self, entity_type: type, records: Sequence[Any]) -> None:
        if not records:
            return

        start = time.perf_counter()
        async with self._database.get_transaction() as session:
            await self.repository(entity_type).save_many(session, records)

        logger.debug(
            "Store save completed",
            extra={
                "entity_type": entity_type.__name__,
                "count": len(records),
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

    async def remove(self, entity_type: type, ids: Sequence[Any]) -> None:
        if not ids:
            return

        start = time.perf_counter()
        async with self._database.get_transaction() as session:
            deleted = await self.repository(entity_type).delete_many(session, ids)

        logger.debug(
            "Store remove completed",
            extra={
                "entity_type": entity_type.__name__,
                "requested_count": len(ids),
                "deleted_count": deleted,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
