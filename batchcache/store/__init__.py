"""
Persistent store collaborators for the batch entity cache.

- ``EntityStore`` / ``FindOptions``: the contract the cache depends on
- ``SqlAlchemyStore``: implementation over async SQLAlchemy sessions
- ``EntityRepository``: generic batched repository used by the store
"""

from batchcache.store.protocols import EntityStore, FindOptions
from batchcache.store.repository import EntityRepository
from batchcache.store.sqlalchemy_store import SqlAlchemyStore

__all__ = [
    "EntityStore",
    "FindOptions",
    "EntityRepository",
    "SqlAlchemyStore",
]
