"""
Store collaborator contract.

The cache never talks to a database directly. It issues batched reads and
writes against an ``EntityStore``: anything with the three coroutines below.
``SqlAlchemyStore`` is the bundled implementation; tests use an in-memory
recording stub.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable


@dataclass(frozen=True)
class FindOptions:
    """
    Query options for one batched read of a single entity type.

    At most one selector is set:

    - ``ids``: id membership. An empty tuple is valid and yields no records.
    - ``where``: filter expressions, OR-ed together (results are unioned).
    - neither: every record of the type (wildcard load).

    ``relations`` names relation id fields the store should make sure are
    populated on the returned records.
    """

    ids: Optional[Tuple[Any, ...]] = None
    where: Optional[Tuple[Any, ...]] = None
    relations: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.ids is not None and self.where is not None:
            raise ValueError("FindOptions accepts either ids or where, not both")

    @classmethod
    def by_ids(cls, ids: Iterable[Any], relations: Sequence[str] = ()) -> "FindOptions":
        return cls(ids=tuple(ids), relations=tuple(relations))

    @classmethod
    def matching(cls, where: Iterable[Any], relations: Sequence[str] = ()) -> "FindOptions":
        return cls(where=tuple(where), relations=tuple(relations))

    @classmethod
    def everything(cls, relations: Sequence[str] = ()) -> "FindOptions":
        return cls(relations=tuple(relations))

    @property
    def is_wildcard(self) -> bool:
        return self.ids is None and self.where is None


@runtime_checkable
class EntityStore(Protocol):
    """Batched persistence primitives required by ``EntityCache``."""

    async def find(self, entity_type: type, options: FindOptions) -> List[Any]:
        """Return every record of ``entity_type`` matching ``options``."""
        ...

    async def save(self, entity_type: type, records: Sequence[Any]) -> None:
        """Persist ``records`` of one entity type, upserting by id."""
        ...

    async def remove(self, entity_type: type, ids: Sequence[Any]) -> None:
        """Delete records of ``entity_type`` by id; unknown ids are ignored."""
        ...
