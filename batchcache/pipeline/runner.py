"""
Batch runner: drives one batch through register -> load -> process -> flush -> purge.

Errors propagate unchanged and ``purge`` is skipped, so the caller can inspect
resident state or retry the failed step.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Iterable, List

from batchcache.cache.service import EntityCache
from batchcache.core.logging.logger import LogContext, get_logger
from batchcache.pipeline.unit import ProcessingUnit

logger = get_logger(__name__)


class BatchRunner:
    def __init__(self, cache: EntityCache) -> None:
        self.cache = cache

    def register(self, units: Iterable[ProcessingUnit]) -> int:
        """Register every unit's read intent; returns the number of requests."""
        registered = 0
        for unit in units:
            for entity_type, ids in unit.requests().items():
                self.cache.deferred_get(entity_type, ids)
                registered += 1
            for entity_type, filters in unit.find_requests().items():
                self.cache.deferred_find_where(entity_type, filters)
                registered += 1
        return registered

    async def run(self, units: Iterable[ProcessingUnit]) -> Dict[str, Any]:
        batch: List[ProcessingUnit] = list(units)
        context = self.cache.context
        batch_id = getattr(context, "batch_id", None)
        block_height = getattr(context, "block_height", None)

        async with LogContext(
            batch_id=batch_id, block_height=block_height, component="batch_runner"
        ):
            start = time.perf_counter()

            registered = self.register(batch)
            await self.cache.load()

            for unit in batch:
                async with LogContext(unit=unit.unit_name):
                    await unit.process(self.cache)

            resident = self.cache.resident_count()
            await self.cache.flush()
            self.cache.purge()

            summary = {
                "units": len(batch),
                "requests": registered,
                "resident_count": resident,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            }
            logger.info("Batch completed", extra=summary)
            return summary
