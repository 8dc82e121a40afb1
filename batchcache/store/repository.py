"""
Entity Repository

Purpose
-------
Provides a type-safe, generic repository abstraction for the batched reads
and writes ``SqlAlchemyStore`` performs, following SQLAlchemy 2.0 async
patterns. Entities are keyed by a string ``id`` column.

Design Notes
------------
This repository provides:
- Batched id-membership reads
- Filtered reads (OR of filter clauses)
- Full-table reads
- Batched upsert (``merge``) and id-based delete
- Relation id projection via ``undefer`` (relations are never loaded as objects)
- Structured DEBUG logging for every operation

What this class does NOT do:
- Manage transactions (DatabaseService handles that)
- Cache anything (EntityCache handles that)

Usage
-----
    repo = EntityRepository(Token, logger)
    async with DatabaseService.get_session() as session:
        tokens = await repo.get_many(session, ["0xabc", "0xdef"])
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Mapping, Optional, Sequence, Type, TypeVar

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.orm import undefer

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class EntityRepository(Generic[T]):
    """
    Generic repository for batched entity reads and writes.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------

    def _select(self, relations: Sequence[str] = ()) -> Select:
        stmt = select(self.model_class)
        for field_name in relations:
            stmt = stmt.options(undefer(getattr(self.model_class, field_name)))
        return stmt

    def to_clause(self, expression: Any) -> ColumnElement[bool]:
        """
        Normalize a filter expression into a SQLAlchemy boolean clause.

        Accepts a ready-made clause (``Token.symbol == "DAI"``) or a mapping
        of column name to value, which becomes an AND of equalities.
        """
        if isinstance(expression, Mapping):
            if not expression:
                raise ValueError("Empty filter mapping")
            return and_(
                *(
                    getattr(self.model_class, column) == value
                    for column, value in expression.items()
                )
            )
        return expression

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_many(
        self,
        session: AsyncSession,
        id_values: Sequence[Any],
        relations: Sequence[str] = (),
    ) -> List[T]:
        """
        Get multiple records by primary key.

        Returns fewer instances than requested when some ids do not exist;
        an empty id list returns an empty list without touching the database.
        """
        if not id_values:
            return []

        stmt = self._select(relations).where(
            self.model_class.id.in_(list(id_values))  # type: ignore[attr-defined]
        )
        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.get_many: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "requested_count": len(id_values),
                "found_count": len(instances),
            },
        )

        return instances

    async def find_many_where(
        self,
        session: AsyncSession,
        expressions: Sequence[Any],
        relations: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[T]:
        """
        Find records matching ANY of the given filter expressions.

        Each expression is normalized with ``to_clause``; the clauses are
        OR-ed so overlapping filters return each record once.
        """
        clauses = [self.to_clause(expression) for expression in expressions]
        stmt = self._select(relations).where(or_(*clauses))

        if limit is not None:
            stmt = stmt.limit(limit)

        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.find_many_where: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "filter_count": len(clauses),
                "found_count": len(instances),
                "limit": limit,
            },
        )

        return instances

    async def find_all(
        self,
        session: AsyncSession,
        relations: Sequence[str] = (),
    ) -> List[T]:
        """Return every record of the model."""
        result = await session.execute(self._select(relations))
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.find_all: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "found_count": len(instances),
            },
        )

        return instances

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_many(self, session: AsyncSession, instances: Sequence[T]) -> None:
        """
        Upsert instances by primary key.

        ``merge`` copies state onto the session's persistent instance, so the
        cache's own (detached) instances are never attached to the session.
        """
        for instance in instances:
            await session.merge(instance)

        self.log.debug(
            f"Repository.save_many: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "count": len(instances),
            },
        )

    async def delete_many(self, session: AsyncSession, id_values: Sequence[Any]) -> int:
        """Delete records by primary key; returns the number of rows removed."""
        if not id_values:
            return 0

        stmt = delete(self.model_class).where(
            self.model_class.id.in_(list(id_values))  # type: ignore[attr-defined]
        )
        result = await session.execute(stmt)
        deleted = result.rowcount or 0

        self.log.debug(
            f"Repository.delete_many: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "requested_count": len(id_values),
                "deleted_count": deleted,
            },
        )

        return deleted
