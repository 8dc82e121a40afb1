"""
EntityCache: batch-scoped, relation-aware entity cache.

Purpose
-------
Sits between processing units and the persistent store. Units declare what
they will read, the batch driver calls ``load()`` once, units read and mutate
resident entities synchronously, then the driver calls ``flush()`` and
``purge()``.

Responsibilities
----------------
- Deferred read/remove registration (``deferred_get``, ``deferred_find_where``,
  ``deferred_remove``), chainable
- Synchronous resident access (``get``, ``get_all``, ``has``, ``upsert``)
- Batched load with id dedup and one-hop relation fan-out (LoadEngine)
- Batched write-back, one save and one remove per type (FlushEngine)
- Per-instance metrics and structured logging

Non-Responsibilities
--------------------
- Query semantics and transactions (EntityStore)
- Retries (the batch driver decides)
- Multi-hop relation graphs

Usage
-----
    cache = EntityCache()
    cache.init(BatchContext(store=SqlAlchemyStore()), [Token, (Pool, {"token0": Token})])

    cache.deferred_get(Pool, ["0xpool"]).deferred_get(Token)
    await cache.load()

    pool = cache.get(Pool, "0xpool")
    token0 = cache.get(Token, pool.token0)
    cache.upsert(pool)

    await cache.flush()
    cache.purge()

Relations are held as bare foreign ids; resolve them with a fresh ``get``.
"""

from __future__ import annotations

import time
from typing import Any, FrozenSet, Hashable, Iterable, List, Optional

from batchcache.cache.flusher import FlushEngine
from batchcache.cache.loader import LoadEngine
from batchcache.cache.metrics import CacheMetrics
from batchcache.cache.registry import RequestRegistry, as_id_list
from batchcache.cache.relations import RelationCatalog
from batchcache.cache.resident import ResidentStore, ResidentView
from batchcache.core.config.config import Config
from batchcache.core.exceptions import (
    CacheAlreadyInitializedError,
    CacheNotInitializedError,
    CacheUsageError,
    EntityTypeMismatchError,
    FlushError,
    InvalidEntityError,
    StoreReadError,
    is_transient_error,
    should_alert,
)
from batchcache.core.logging.logger import LogContext, get_logger

logger = get_logger(__name__)


class EntityCache:
    """
    One coordinating cache per batch pipeline.

    Construct it in the batch driver and hand it to every processing unit;
    tests build independent instances.
    """

    def __init__(self, concurrent_io: Optional[bool] = None) -> None:
        self._registry = RequestRegistry()
        self._resident = ResidentStore()
        self._relations = RelationCatalog()
        self._context: Any = None
        self._store: Any = None
        self._loader: Optional[LoadEngine] = None
        self._flusher: Optional[FlushEngine] = None
        self._concurrent_io = (
            Config.CACHE_CONCURRENT_IO if concurrent_io is None else concurrent_io
        )
        self.metrics = CacheMetrics()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self, context: Any, relation_params: Iterable[Any] = ()) -> "EntityCache":
        """
        Bind the batch context and relation catalog. Allowed once.

        ``context.store`` must be an ``EntityStore``. ``relation_params`` is a
        list of bare entity types or ``(entity_type, {field: related_type})``
        pairs.
        """
        if self._store is not None:
            raise CacheAlreadyInitializedError()

        store = getattr(context, "store", None)
        if store is None:
            raise CacheUsageError(
                "init() context must provide a store",
                details={"context_type": type(context).__name__},
                error_code="CACHE_MISSING_STORE",
            )

        relations = RelationCatalog(relation_params)

        self._context = context
        self._store = store
        self._relations = relations
        self._loader = LoadEngine(
            store, self._registry, relations, self._resident, self.metrics,
            concurrent=self._concurrent_io,
        )
        self._flusher = FlushEngine(
            store, self._registry, self._resident, self.metrics,
            concurrent=self._concurrent_io,
        )

        logger.info(
            "Entity cache initialized",
            extra={
                "store": type(store).__name__,
                "entity_types": [t.__name__ for t in relations.entity_types()],
                "concurrent_io": self._concurrent_io,
            },
        )
        return self

    @property
    def is_initialized(self) -> bool:
        return self._store is not None

    @property
    def context(self) -> Any:
        return self._context

    @property
    def relations(self) -> RelationCatalog:
        return self._relations

    def _require_init(self, operation: str) -> None:
        if self._store is None:
            raise CacheNotInitializedError(operation)

    # ------------------------------------------------------------------
    # Deferred requests
    # ------------------------------------------------------------------

    def deferred_get(self, entity_type: type, ids: Any = None) -> "EntityCache":
        """Queue ids for ``load``; no ids (or ``"*"``) queues the whole type."""
        if ids is None:
            self._registry.add_wildcard(entity_type)
        else:
            self._registry.add_gets(entity_type, as_id_list(ids))
        return self

    def deferred_find_where(self, entity_type: type, where: Any) -> "EntityCache":
        """Queue filter expression(s); each runs as its own query, results unioned."""
        expressions = list(where) if isinstance(where, (list, tuple)) else [where]
        self._registry.add_finds(entity_type, expressions)
        return self

    def deferred_remove(self, entity_type: type, ids: Any) -> "EntityCache":
        """Drop ids from the resident store now and delete them from the store on ``flush``."""
        id_list = as_id_list(ids)
        self._registry.add_removes(entity_type, id_list)
        for id_value in id_list:
            self._resident.pop(entity_type, id_value)
        return self

    # ------------------------------------------------------------------
    # Resident access
    # ------------------------------------------------------------------

    def get(self, entity_type: type, id_value: Hashable) -> Optional[Any]:
        return self._resident.get(entity_type, id_value)

    def get_all(self, entity_type: type) -> ResidentView:
        return self._resident.values(entity_type)

    def has(self, entity_type: type, id_value: Hashable) -> bool:
        return self._resident.has(entity_type, id_value)

    def upsert(self, entities: Any) -> "EntityCache":
        """
        Insert or replace entities by id, bucketed by their concrete type.

        All entities in one call must share a type. Upserting an id that is
        pending removal cancels the removal.
        """
        if hasattr(entities, "id") or not isinstance(entities, (list, tuple, set, frozenset)):
            batch: List[Any] = [entities]
        else:
            batch = list(entities)
        if not batch:
            return self

        entity_type = type(batch[0])
        for entity in batch:
            if type(entity) is not entity_type:
                raise EntityTypeMismatchError(entity_type, type(entity))
            id_value = getattr(entity, "id", None)
            if id_value is None or id_value == "":
                raise InvalidEntityError(entity_type, "missing id")

        for entity in batch:
            self._resident.put(entity_type, entity.id, entity)
            self._registry.discard_remove(entity_type, entity.id)
        return self

    def is_dirty(self) -> bool:
        return self._registry.has_pending_reads()

    def ready(self) -> bool:
        return not self.is_dirty()

    def pending_removals(self, entity_type: type) -> FrozenSet[Hashable]:
        return frozenset(self._registry.removed_ids(entity_type))

    def resident_count(self, entity_type: Optional[type] = None) -> int:
        if entity_type is None:
            return len(self._resident)
        return self._resident.count(entity_type)

    # ------------------------------------------------------------------
    # Store I/O
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """
        Resolve every pending read in one pass: find, get, then one-hop fan-out.

        On failure the pending reads are kept so ``load`` can be retried.
        """
        self._require_init("load")

        async with LogContext(component="entity_cache", operation="load"):
            start = time.perf_counter()
            try:
                admitted = await self._loader.run()
            except StoreReadError as exc:
                self.metrics.record_error()
                logger.error(
                    "Cache load failed; pending requests kept",
                    extra={
                        "error": exc.to_dict(),
                        "retryable": is_transient_error(exc),
                        "alert": should_alert(exc),
                    },
                    exc_info=True,
                )
                raise

            self._registry.clear_reads()
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.metrics.record_load(elapsed_ms)

            logger.info(
                "Cache load completed",
                extra={
                    "found_admitted": admitted["find"],
                    "get_admitted": admitted["get"],
                    "fanout_admitted": admitted["fanout"],
                    "resident_count": len(self._resident),
                    "duration_ms": round(elapsed_ms, 2),
                },
            )

    async def flush(self) -> None:
        """
        Save every resident entity (one write per type) and delete pending removals.

        Raises ``FlushError`` after all types were attempted if any failed;
        resident state is left untouched either way.
        """
        self._require_init("flush")

        async with LogContext(component="entity_cache", operation="flush"):
            start = time.perf_counter()
            try:
                summary = await self._flusher.run()
            except FlushError as exc:
                self.metrics.record_error()
                logger.error(
                    "Cache flush partially failed",
                    extra={
                        "error": exc.to_dict(),
                        "retryable": is_transient_error(exc),
                        "alert": should_alert(exc),
                    },
                )
                raise

            elapsed_ms = (time.perf_counter() - start) * 1000
            self.metrics.record_flush(elapsed_ms)

            logger.info(
                "Cache flush completed",
                extra={**summary, "duration_ms": round(elapsed_ms, 2)},
            )

    def purge(self) -> None:
        """Drop all resident entities. Pending tables, relations and store stay."""
        count = len(self._resident)
        self._resident.clear()
        logger.debug("Cache purged", extra={"purged_count": count})

    def __repr__(self) -> str:
        return (
            f"EntityCache(initialized={self.is_initialized}, "
            f"resident={len(self._resident)}, dirty={self.is_dirty()})"
        )
