"""
Batch entity cache.

Public API
----------
- EntityCache: the facade processing units talk to
- CacheMetrics: per-instance counters
- RequestRegistry, RelationCatalog, ResidentStore: building blocks
- WILDCARD: marker for "load every record of a type"
"""

from batchcache.cache.flusher import FlushEngine
from batchcache.cache.loader import LoadEngine
from batchcache.cache.metrics import CacheMetrics
from batchcache.cache.registry import WILDCARD, RequestRegistry, as_id_list
from batchcache.cache.relations import RelationCatalog
from batchcache.cache.resident import ResidentStore, ResidentView
from batchcache.cache.service import EntityCache

__all__ = [
    "EntityCache",
    "CacheMetrics",
    "LoadEngine",
    "FlushEngine",
    "RequestRegistry",
    "RelationCatalog",
    "ResidentStore",
    "ResidentView",
    "WILDCARD",
    "as_id_list",
]
