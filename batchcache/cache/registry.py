"""
Request Registry: deferred reads and removals awaiting ``load``/``flush``.

Pure bookkeeping, no I/O. Per entity type it holds:

- pending point lookups (a set of ids, or the wildcard marker for "load all")
- pending filtered queries (a list of filter expressions, in call order)
- pending removals (a set of ids to delete from the store on ``flush``)
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, Iterable, List, Set, Tuple

WILDCARD = "*"


def as_id_list(id_or_ids: Any) -> List[Hashable]:
    """Accept a single id or any iterable of ids; strings count as one id."""
    if isinstance(id_or_ids, (str, bytes, int)):
        return [id_or_ids]
    return list(id_or_ids)


class RequestRegistry:
    """Pending request tables, keyed by entity type."""

    def __init__(self) -> None:
        self._gets: Dict[type, Set[Hashable]] = {}
        self._wildcards: Set[type] = set()
        self._finds: Dict[type, List[Any]] = {}
        self._removes: Dict[type, Set[Hashable]] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def add_gets(self, entity_type: type, ids: Iterable[Hashable]) -> None:
        pending = self._gets.setdefault(entity_type, set())
        for id_value in ids:
            if id_value == WILDCARD:
                self._wildcards.add(entity_type)
            else:
                pending.add(id_value)

    def add_wildcard(self, entity_type: type) -> None:
        self._wildcards.add(entity_type)

    def add_finds(self, entity_type: type, expressions: Iterable[Any]) -> None:
        self._finds.setdefault(entity_type, []).extend(expressions)

    def pending_gets(self) -> Dict[type, Tuple[bool, Set[Hashable]]]:
        """Snapshot of point lookups: ``{type: (wildcard, ids)}``."""
        types = set(self._wildcards) | {t for t, ids in self._gets.items() if ids}
        return {
            entity_type: (
                entity_type in self._wildcards,
                set(self._gets.get(entity_type, ())),
            )
            for entity_type in types
        }

    def pending_finds(self) -> Dict[type, List[Any]]:
        return {t: list(exprs) for t, exprs in self._finds.items() if exprs}

    def has_pending_reads(self) -> bool:
        return bool(self._wildcards) or any(self._gets.values()) or any(self._finds.values())

    def clear_reads(self) -> None:
        self._gets.clear()
        self._wildcards.clear()
        self._finds.clear()

    # ------------------------------------------------------------------
    # Removals
    # ------------------------------------------------------------------

    def add_removes(self, entity_type: type, ids: Iterable[Hashable]) -> None:
        self._removes.setdefault(entity_type, set()).update(ids)

    def discard_remove(self, entity_type: type, id_value: Hashable) -> None:
        pending = self._removes.get(entity_type)
        if pending is not None:
            pending.discard(id_value)

    def is_removed(self, entity_type: type, id_value: Hashable) -> bool:
        return id_value in self._removes.get(entity_type, ())

    def removed_ids(self, entity_type: type) -> Set[Hashable]:
        return set(self._removes.get(entity_type, ()))

    def pending_removes(self) -> Dict[type, Set[Hashable]]:
        return {t: set(ids) for t, ids in self._removes.items() if ids}

    def clear_removes(self, entity_type: type) -> None:
        self._removes.pop(entity_type, None)
