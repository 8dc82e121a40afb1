"""
Processing units: one per decoded event in a batch.

A unit decodes its event in ``parse``, declares read intent through
``requests``/``find_requests`` before the batch loads, and then mutates
entities through the cache in ``process``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from batchcache.cache.service import EntityCache


class ProcessingUnit(ABC):
    """Base class for batch processing units."""

    name: str = ""

    def __init__(self) -> None:
        self.data: Optional[Any] = None

    @property
    def unit_name(self) -> str:
        return self.name or type(self).__name__

    async def parse(self, event: Any) -> "ProcessingUnit":
        """Decode ``event`` into ``self.data``; returns ``self`` for chaining."""
        self.data = await self.decode(event)
        return self

    @abstractmethod
    async def decode(self, event: Any) -> Optional[Any]:
        """Return decoded data, or ``None`` when the event is not relevant."""

    def requests(self) -> Dict[type, List[Any]]:
        """Point-lookup intent: ``{entity_type: [ids]}``. Empty when unparsed."""
        if self.data is None:
            return {}
        return self.read_ids()

    def read_ids(self) -> Dict[type, List[Any]]:
        return {}

    def find_requests(self) -> Dict[type, List[Any]]:
        """Filter-query intent: ``{entity_type: [filter]}``."""
        return {}

    @abstractmethod
    async def process(self, cache: "EntityCache") -> None:
        """Apply this unit's effect through the cache contract."""
