"""SQLAlchemy models for the ledger."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class BaseUnits(TypeDecorator):
    """Non-negative integer amount stored as a decimal string.

    Base-unit amounts (e.g. 10**20 wei) overflow 64-bit integer columns and
    lose precision in floating columns, so they are kept as text.
    """

    impl = String(80)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0:
            raise ValueError(f"Negative base-unit amount: {value}")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class SwapDirection(str, Enum):
    """Direction of a pool swap."""

    BUY = "buy"    # native in, token out
    SELL = "sell"  # token in, native out


class TransferKind(str, Enum):
    """Kind of a recorded value movement."""

    DEPOSIT = "deposit"      # value entering the ledger
    SEND = "send"            # holder to holder
    LIQUIDITY = "liquidity"  # holder to pool reserves


class ProxyAccount(Base):
    """Owner-gated proxy account ("smart wallet")."""

    __tablename__ = "proxy_accounts"

    # Autoincrement id doubles as creation order within an owner's list
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False, index=True)
    owner: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Balance(Base):
    """Balance of one asset held by one address (proxy account or external)."""

    __tablename__ = "balances"
    __table_args__ = (Index("ix_balances_holder_asset", "holder", "asset", unique=True),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    holder: Mapped[str] = mapped_column(String(42), nullable=False)
    asset: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(BaseUnits, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class SwapPoolState(Base):
    """Reserves held by the swap pool."""

    __tablename__ = "swap_pools"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    native_reserve: Mapped[int] = mapped_column(BaseUnits, default=0, nullable=False)
    token_reserve: Mapped[int] = mapped_column(BaseUnits, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Swap(Base):
    """Record of an executed pool swap."""

    __tablename__ = "swaps"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    caller: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    direction: Mapped[SwapDirection] = mapped_column(String(10), nullable=False)
    amount_in: Mapped[int] = mapped_column(BaseUnits, nullable=False)
    amount_out: Mapped[int] = mapped_column(BaseUnits, nullable=False)
    min_amount_out: Mapped[int] = mapped_column(BaseUnits, nullable=False)
    price: Mapped[int] = mapped_column(BaseUnits, nullable=False)  # normalized, 8 decimals
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Transfer(Base):
    """Record of a deposit, send or liquidity movement."""

    __tablename__ = "transfers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    kind: Mapped[TransferKind] = mapped_column(String(20), nullable=False)
    asset: Mapped[str] = mapped_column(String(20), nullable=False)
    from_address: Mapped[Optional[str]] = mapped_column(String(42), nullable=True, index=True)
    to_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(BaseUnits, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
