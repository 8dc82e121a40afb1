"""
ORM base classes for entities persisted through ``SqlAlchemyStore``.

Entities hold relations as plain foreign-id columns (``pool_id``), never as
eagerly loaded relationship objects, so the cache can resolve them with a
fresh ``get`` and every holder sees the latest instance.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for batchcache-managed entities."""


class StringIdMixin:
    """String primary key; ids are unique within one entity type."""

    id: Mapped[str] = mapped_column(String(255), primary_key=True)


class TimestampMixin:
    """Creation/update timestamps maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
