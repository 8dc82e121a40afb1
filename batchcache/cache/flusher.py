"""
Flush Engine: writes resident state back to the store.

Each entity type is one job: a single ``save`` of the full resident snapshot
of that type, then a single ``remove`` of its pending removals. Jobs are
independent and may run concurrently; there is no cross-type transaction.
Every job runs even when another fails, and the failures are reported
together as one ``FlushError``.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Optional

from batchcache.cache.metrics import CacheMetrics
from batchcache.cache.registry import RequestRegistry
from batchcache.cache.resident import ResidentStore
from batchcache.core.exceptions import FlushError, StoreWriteError
from batchcache.core.logging.logger import get_logger
from batchcache.store.protocols import EntityStore

logger = get_logger(__name__)


class FlushEngine:
    def __init__(
        self,
        store: EntityStore,
        registry: RequestRegistry,
        resident: ResidentStore,
        metrics: CacheMetrics,
        concurrent: bool = True,
    ) -> None:
        self._store = store
        self._registry = registry
        self._resident = resident
        self._metrics = metrics
        self._concurrent = concurrent

    async def run(self) -> Dict[str, int]:
        removals = self._registry.pending_removes()
        entity_types = list(self._resident.entity_types())
        entity_types += [t for t in removals if t not in entity_types]

        if self._concurrent:
            outcomes = await asyncio.gather(
                *(self._flush_type(t, removals.get(t)) for t in entity_types)
            )
        else:
            outcomes = [await self._flush_type(t, removals.get(t)) for t in entity_types]

        failures = [outcome for outcome in outcomes if outcome is not None]
        persisted = [t for t, outcome in zip(entity_types, outcomes) if outcome is None]

        if failures:
            raise FlushError(failures, persisted)

        return {
            "types": len(entity_types),
            "written": sum(self._resident.count(t) for t in entity_types),
            "deleted": sum(len(ids) for ids in removals.values()),
        }

    async def _flush_type(
        self, entity_type: type, removals: Optional[set]
    ) -> Optional[StoreWriteError]:
        """Persist one type; returns the failure instead of raising."""
        records: List[Any] = self._resident.snapshot(entity_type)
        start = time.perf_counter()
        operation = "flush:save"

        try:
            if records:
                await self._store.save(entity_type, records)
                self._metrics.record_write(len(records))
            if removals:
                operation = "flush:remove"
                await self._store.remove(entity_type, sorted(removals, key=str))
                self._metrics.record_delete(len(removals))
        except Exception as exc:
            error = StoreWriteError(entity_type, operation, exc)
            error.__cause__ = exc
            logger.error(
                "Store write failed",
                extra={
                    "entity_type": entity_type.__name__,
                    "store_operation": operation,
                    "record_count": len(records),
                    "remove_count": len(removals or ()),
                },
                exc_info=True,
            )
            return error

        if removals:
            self._registry.clear_removes(entity_type)

        logger.debug(
            "Store write completed",
            extra={
                "entity_type": entity_type.__name__,
                "record_count": len(records),
                "remove_count": len(removals or ()),
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return None
