# backend/argfolio/models.py
import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, Boolean, JSON, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# Enums help enforce data integrity at the database level
class MovementType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    DIVIDEND = "DIVIDEND"
    INTEREST = "INTEREST"
    FEE = "FEE"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


class AssetClass(str, enum.Enum):
    CEDEAR = "CEDEAR"
    CRYPTO = "CRYPTO"
    STABLE = "STABLE"
    FCI = "FCI"
    PF = "PF"  # Plazo fijo (fixed-term deposit)
    CASH_ARS = "CASH_ARS"
    CASH_USD = "CASH_USD"
    OTHER = "OTHER"


class Instrument(Base):
    """
    Static reference data for a tradable instrument.

    CEDEARs carry the conversion ratio against their foreign listing
    (e.g. 10 CEDEARs = 1 underlying share) and the underlying symbol.
    """
    __tablename__ = "instruments"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    symbol: Mapped[str] = mapped_column(String, index=True)  # e.g. "AAPL", "BTC"
    name: Mapped[str] = mapped_column(String)
    asset_class: Mapped[AssetClass] = mapped_column(Enum(AssetClass))
    native_currency: Mapped[str] = mapped_column(String, default="ARS")  # Currency the price is quoted in
    cedear_ratio: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    underlying_symbol: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    movements: Mapped[list["Movement"]] = relationship(back_populates="instrument")


class Movement(Base):
    """
    Immutable ledger entry.

    The ledger is append-only: corrections are new movements, never
    updates. Every derived figure (positions, lots, fixed deposits,
    settlements) is recomputed from these rows.

    ``meta`` carries class-specific facts. Fixed deposits use:
        principal, tna, term_days, start_date, alias   (constitution)
        pf_id, action                                  (redemption link)
    Settlement cash credits use:
        source, source_fixed_deposit_id
    MANUAL-costed sales use:
        lot_allocations: [{"lot_id": ..., "quantity": ...}]
    """
    __tablename__ = "movements"
    __table_args__ = (
        # "All movements of account A for instrument I, in time order"
        # is what the lot builder replays
        Index('ix_movement_account_instrument_ts', 'account_id', 'instrument_id', 'timestamp'),
        Index('ix_movement_asset_class_ts', 'asset_class', 'timestamp'),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    type: Mapped[MovementType] = mapped_column(Enum(MovementType))
    instrument_id: Mapped[str | None] = mapped_column(ForeignKey("instruments.id"), nullable=True, index=True)
    account_id: Mapped[str] = mapped_column(String, index=True)
    asset_class: Mapped[AssetClass | None] = mapped_column(Enum(AssetClass), nullable=True)
    institution: Mapped[str | None] = mapped_column(String, nullable=True)  # Bank / broker name

    # Numeric(24, 8) leaves room for large ARS amounts at crypto precision
    quantity: Mapped[Decimal] = mapped_column(Numeric(24, 8), default=Decimal(0))
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    trade_currency: Mapped[str] = mapped_column(String, default="ARS")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(24, 8), default=Decimal(0))
    fee_amount: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    fx_at_trade: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)  # ARS per USD when the trade happened

    notes: Mapped[str | None] = mapped_column(String, nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Set on movements synthesized by the engine (auto-settlement)
    is_auto: Mapped[bool] = mapped_column(Boolean, default=False)
    # Deterministic key for engine-generated movements; uniqueness makes re-runs no-ops
    idempotency_key: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))  # When it was recorded

    instrument: Mapped["Instrument | None"] = relationship(back_populates="movements")


class CashYieldAccount(Base):
    """
    Remunerated-account setting ("cuenta remunerada") of one account.

    The account's local cash earns `tna` (percent, 365-day base),
    compounded daily. Interest is written to the ledger as one INTEREST
    movement per elapsed day; `last_accrued_date` is the last day already
    credited. Unlike movements, this row is mutable configuration.
    """
    __tablename__ = "cash_yield_accounts"

    account_id: Mapped[str] = mapped_column(String, primary_key=True)
    tna: Mapped[Decimal] = mapped_column(Numeric(10, 4))
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    last_accrued_date: Mapped[date] = mapped_column(Date)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
