"""
Load Engine: resolves pending reads against the store in three phases.

Phases run strictly in order, each one's merges visible before the next
starts:

1. find    - one filtered read per type with pending ``deferred_find_where``
2. get     - one point read per type (or one full read for a wildcard),
             minus ids already resident
3. fan-out - one point read per related type for foreign ids found on
             resident entities; entities loaded here are not scanned again

Reads for different types inside one phase are independent and may be
issued concurrently. A failed read raises ``StoreReadError`` and nothing from
that phase is merged; the caller keeps the registry populated for a retry.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Hashable, List, Set

from batchcache.cache.metrics import CacheMetrics
from batchcache.cache.registry import RequestRegistry
from batchcache.cache.relations import RelationCatalog
from batchcache.cache.resident import ResidentStore
from batchcache.core.exceptions import StoreReadError
from batchcache.core.logging.logger import get_logger
from batchcache.store.protocols import EntityStore, FindOptions

logger = get_logger(__name__)


class LoadEngine:
    def __init__(
        self,
        store: EntityStore,
        registry: RequestRegistry,
        relations: RelationCatalog,
        resident: ResidentStore,
        metrics: CacheMetrics,
        concurrent: bool = True,
    ) -> None:
        self._store = store
        self._registry = registry
        self._relations = relations
        self._resident = resident
        self._metrics = metrics
        self._concurrent = concurrent

    async def run(self) -> Dict[str, int]:
        """Run all three phases; returns per-phase admitted record counts."""
        return {
            "find": await self._find_phase(),
            "get": await self._get_phase(),
            "fanout": await self._fanout_phase(),
        }

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _find_phase(self) -> int:
        requests = {
            entity_type: FindOptions.matching(
                expressions, self._relations.fields_for(entity_type)
            )
            for entity_type, expressions in self._registry.pending_finds().items()
        }
        return await self._read_and_merge("find", requests)

    async def _get_phase(self) -> int:
        requests: Dict[type, FindOptions] = {}

        for entity_type, (wildcard, ids) in self._registry.pending_gets().items():
            relations = self._relations.fields_for(entity_type)
            if wildcard:
                requests[entity_type] = FindOptions.everything(relations)
                continue

            missing = [
                id_value
                for id_value in ids
                if not self._resident.has(entity_type, id_value)
                and not self._registry.is_removed(entity_type, id_value)
            ]
            self._metrics.ids_deduplicated += sum(
                1 for id_value in ids if self._resident.has(entity_type, id_value)
            )
            if missing:
                requests[entity_type] = FindOptions.by_ids(missing, relations)

        return await self._read_and_merge("get", requests)

    async def _fanout_phase(self) -> int:
        wanted: Dict[type, Set[Hashable]] = {}

        for entity_type, spec in self._relations:
            if not spec:
                continue
            for entity in self._resident.values(entity_type):
                for field_name, related_type in spec.items():
                    foreign_id = getattr(entity, field_name, None)
                    if not foreign_id:
                        continue
                    if self._resident.has(related_type, foreign_id):
                        continue
                    if self._registry.is_removed(related_type, foreign_id):
                        continue
                    wanted.setdefault(related_type, set()).add(foreign_id)

        self._metrics.fanout_ids += sum(len(ids) for ids in wanted.values())
        requests = {
            related_type: FindOptions.by_ids(
                ids, self._relations.fields_for(related_type)
            )
            for related_type, ids in wanted.items()
        }
        return await self._read_and_merge("fanout", requests)

    # ------------------------------------------------------------------
    # I/O and merge
    # ------------------------------------------------------------------

    async def _read(self, phase: str, entity_type: type, options: FindOptions) -> List[Any]:
        start = time.perf_counter()
        try:
            records = list(await self._store.find(entity_type, options))
        except Exception as exc:
            raise StoreReadError(entity_type, f"load:{phase}", exc) from exc

        self._metrics.record_read(len(records))
        logger.debug(
            "Store read completed",
            extra={
                "phase": phase,
                "entity_type": entity_type.__name__,
                "requested_ids": len(options.ids) if options.ids is not None else None,
                "found_count": len(records),
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return records

    async def _read_and_merge(self, phase: str, requests: Dict[type, FindOptions]) -> int:
        if not requests:
            return 0

        entity_types = list(requests)
        if self._concurrent:
            outcomes = await asyncio.gather(
                *(self._read(phase, t, requests[t]) for t in entity_types),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
        else:
            outcomes = [await self._read(phase, t, requests[t]) for t in entity_types]

        return sum(
            self._merge(entity_type, records)
            for entity_type, records in zip(entity_types, outcomes)
        )

    def _merge(self, entity_type: type, records: List[Any]) -> int:
        """Admit loaded records; resident instances and pending removals win."""
        admitted = 0
        for record in records:
            id_value = record.id
            if self._registry.is_removed(entity_type, id_value):
                continue
            # Keep the resident instance so in-batch mutations made before load survive.
            if self._resident.has(entity_type, id_value):
                continue
            self._resident.put(entity_type, id_value, record)
            admitted += 1
        return admitted
