"""
batchcache: deferred, deduplicated, relation-aware entity cache for batch pipelines.
"""

from batchcache.cache import WILDCARD, CacheMetrics, EntityCache
from batchcache.core.exceptions import (
    BatchCacheException,
    CacheNotInitializedError,
    CacheUsageError,
    FlushError,
    StoreError,
    StoreReadError,
    StoreWriteError,
)
from batchcache.pipeline import BatchContext, BatchRunner, ProcessingUnit
from batchcache.store import EntityStore, FindOptions, SqlAlchemyStore

__version__ = "0.1.0"

__all__ = [
    "EntityCache",
    "CacheMetrics",
    "WILDCARD",
    "BatchContext",
    "BatchRunner",
    "ProcessingUnit",
    "EntityStore",
    "FindOptions",
    "SqlAlchemyStore",
    "BatchCacheException",
    "CacheUsageError",
    "CacheNotInitializedError",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "FlushError",
]
