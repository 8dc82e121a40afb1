"""
In-memory store of resident entities: ``{entity_type: {id: entity}}``.

Relation fields stay as bare foreign ids on the stored entities; a holder
resolves a related entity with a fresh lookup, so an update to that entity is
visible to every holder without propagation.
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, Iterator, KeysView, Optional, Tuple


class ResidentView:
    """
    Lazy, finite, restartable sequence of the resident entities of one type.

    Each iteration walks a snapshot of the bucket taken when iteration
    starts, so callers may upsert or remove while looping.
    """

    __slots__ = ("_store", "_entity_type")

    def __init__(self, store: "ResidentStore", entity_type: type) -> None:
        self._store = store
        self._entity_type = entity_type

    def __iter__(self) -> Iterator[Any]:
        return iter(self._store.snapshot(self._entity_type))

    def __len__(self) -> int:
        return self._store.count(self._entity_type)

    def __repr__(self) -> str:
        return f"ResidentView({self._entity_type.__name__}, count={len(self)})"


class ResidentStore:
    def __init__(self) -> None:
        self._buckets: Dict[type, Dict[Hashable, Any]] = {}

    def get(self, entity_type: type, id_value: Hashable) -> Optional[Any]:
        bucket = self._buckets.get(entity_type)
        if bucket is None:
            return None
        return bucket.get(id_value)

    def has(self, entity_type: type, id_value: Hashable) -> bool:
        return id_value in self._buckets.get(entity_type, ())

    def put(self, entity_type: type, id_value: Hashable, entity: Any) -> None:
        self._buckets.setdefault(entity_type, {})[id_value] = entity

    def pop(self, entity_type: type, id_value: Hashable) -> Optional[Any]:
        bucket = self._buckets.get(entity_type)
        if bucket is None:
            return None
        return bucket.pop(id_value, None)

    def values(self, entity_type: type) -> "ResidentView":
        """Restartable view over one type, in insertion order."""
        return ResidentView(self, entity_type)

    def ids(self, entity_type: type) -> KeysView[Hashable]:
        bucket = self._buckets.get(entity_type)
        if bucket is None:
            return {}.keys()
        return bucket.keys()

    def count(self, entity_type: type) -> int:
        return len(self._buckets.get(entity_type, ()))

    def entity_types(self) -> Tuple[type, ...]:
        """Types with at least one resident entity."""
        return tuple(t for t, bucket in self._buckets.items() if bucket)

    def snapshot(self, entity_type: type) -> list:
        return list(self._buckets.get(entity_type, {}).values())

    def clear(self) -> None:
        self._buckets.clear()

    def __iter__(self) -> Iterator[Tuple[type, Dict[Hashable, Any]]]:
        return iter(self._buckets.items())

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())
