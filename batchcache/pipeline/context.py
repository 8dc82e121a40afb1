"""Per-batch handle passed to ``EntityCache.init``."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


@dataclass
class BatchContext:
    """
    Opaque batch context. The cache only reads ``store``; processing units
    may use the rest (clock, block height) when building entities.
    """

    store: Any
    batch_id: Optional[str] = None
    block_height: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
