"""
Cache metrics for batchcache.

Purpose
-------
Counts what the cache saved and spent: store round trips, records moved in
each direction, ids skipped because they were already resident, and the ids
pulled in by relation fan-out. One ``CacheMetrics`` instance belongs to one
``EntityCache``; counters survive ``purge`` and are reset explicitly.

The cache is driven by a single pipeline, so updates are plain attribute
increments without locking.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(slots=True)
class CacheMetrics:
    loads: int = 0
    flushes: int = 0
    store_reads: int = 0
    records_loaded: int = 0
    ids_deduplicated: int = 0
    fanout_ids: int = 0
    store_writes: int = 0
    records_written: int = 0
    store_deletes: int = 0
    records_deleted: int = 0
    errors: int = 0
    total_load_time_ms: float = 0.0
    total_flush_time_ms: float = 0.0

    def record_read(self, record_count: int) -> None:
        self.store_reads += 1
        self.records_loaded += record_count

    def record_write(self, record_count: int) -> None:
        self.store_writes += 1
        self.records_written += record_count

    def record_delete(self, id_count: int) -> None:
        self.store_deletes += 1
        self.records_deleted += id_count

    def record_load(self, elapsed_ms: float) -> None:
        self.loads += 1
        self.total_load_time_ms += elapsed_ms

    def record_flush(self, elapsed_ms: float) -> None:
        self.flushes += 1
        self.total_flush_time_ms += elapsed_ms

    def record_error(self) -> None:
        self.errors += 1

    def reset(self) -> None:
        for name, value in asdict(CacheMetrics()).items():
            setattr(self, name, value)

    def get_metrics(self) -> Dict[str, Any]:
        """
        Raw counters plus derived averages.

        ``dedup_rate`` is the share of requested point-lookup ids that were
        already resident and never hit the store.
        """
        requested = self.ids_deduplicated + self.records_loaded
        return {
            **asdict(self),
            "avg_load_time_ms": (
                self.total_load_time_ms / self.loads if self.loads else 0.0
            ),
            "avg_flush_time_ms": (
                self.total_flush_time_ms / self.flushes if self.flushes else 0.0
            ),
            "dedup_rate": (self.ids_deduplicated / requested if requested else 0.0),
        }
