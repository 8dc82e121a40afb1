"""ORM entities for integration tests against SQLite."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from batchcache.core.database.base import Base, StringIdMixin, TimestampMixin


class TokenRecord(StringIdMixin, Base):
    __tablename__ = "tokens"

    symbol: Mapped[str] = mapped_column(String(32), nullable=False)
    decimals: Mapped[int] = mapped_column(Integer, default=18, nullable=False)


class PoolRecord(StringIdMixin, TimestampMixin, Base):
    __tablename__ = "pools"

    token0: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    token1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    liquidity: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


SQL_RELATIONS = [
    TokenRecord,
    (PoolRecord, {"token0": TokenRecord, "token1": TokenRecord}),
]
