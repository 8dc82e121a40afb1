"""
Database subsystem for batchcache.

Provides the async SQLAlchemy engine and session management used by
``SqlAlchemyStore``, plus ORM base classes for entity definitions.
"""

from batchcache.core.database.base import (
    Base,
    StringIdMixin,
    TimestampMixin,
    utc_now,
)
from batchcache.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "StringIdMixin",
    "TimestampMixin",
    "utc_now",
    # Main service
    "DatabaseService",
    # Exceptions
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
