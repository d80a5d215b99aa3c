# backend/argfolio/schemas/movements.py
"""
Pydantic schemas for ledger Movements.

These schemas define:
- What data clients must send (Create)
- What data the API returns (Response)

There is no Update schema: the ledger is append-only.

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from argfolio.models import AssetClass, MovementType
from argfolio.schemas.validators import validate_currency
from argfolio.services.constants import (
    META_ALIAS,
    META_LOT_ALLOCATIONS,
    META_PF_ID,
    META_PRINCIPAL,
    META_START_DATE,
    META_TERM_DAYS,
    META_TNA,
)
from argfolio.utils.date_utils import ensure_utc


# =============================================================================
# NESTED INPUTS
# =============================================================================

class FixedDepositTerms(BaseModel):
    """Terms recorded on a fixed-deposit constitution."""

    principal: Decimal = Field(..., gt=0, description="Amount deposited, local currency")
    tna: Decimal = Field(..., ge=0, description="Nominal annual rate in percent", examples=["182.5"])
    term_days: int | None = Field(default=None, gt=0, description="Term in days (default 30)")
    start_date: datetime | None = Field(default=None, description="Defaults to the movement timestamp")
    alias: str | None = Field(default=None, max_length=100)


class LotAllocationInput(BaseModel):
    """One lot picked for a MANUAL-costed sale."""

    lot_id: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class MovementCreate(BaseModel):
    """
    Schema for appending a movement to the ledger.

    `fixed_deposit`, `pf_id` and `lot_allocations` are typed shortcuts
    for the metadata keys the engines read; they are merged into `meta`.
    """

    timestamp: datetime = Field(
        ...,
        description="When the movement happened",
        examples=["2026-01-15T14:30:00Z"]
    )
    type: MovementType
    account_id: str = Field(..., min_length=1, max_length=100)
    instrument_id: str | None = Field(default=None)
    asset_class: AssetClass | None = Field(default=None)
    institution: str | None = Field(default=None, max_length=100)

    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    unit_price: Decimal | None = Field(default=None, ge=0)
    total_amount: Decimal | None = Field(
        default=None,
        ge=0,
        description="Gross amount; computed as quantity × unit_price when omitted"
    )
    fee_amount: Decimal | None = Field(default=None, ge=0)
    trade_currency: str = Field(default="ARS")
    fx_at_trade: Decimal | None = Field(
        default=None,
        gt=0,
        description="Local currency per unit of hard currency at trade time"
    )

    notes: str | None = Field(default=None, max_length=500)
    meta: dict[str, Any] | None = Field(default=None)
    fixed_deposit: FixedDepositTerms | None = Field(default=None)
    pf_id: str | None = Field(default=None, description="Deposit this redemption closes")
    lot_allocations: list[LotAllocationInput] | None = Field(default=None)
    idempotency_key: str | None = Field(default=None, max_length=200)

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp_not_in_future(cls, v: datetime) -> datetime:
        """Prevent recording movements that haven't happened yet."""
        # Stored as UTC; SQLite keeps wall-clock time and drops the offset
        v = ensure_utc(v)

        current_time = datetime.now(timezone.utc)
        if v > current_time:
            raise ValueError(f"Movement timestamp cannot be in the future (sent: {v}, now: {current_time})")
        return v

    @field_validator('trade_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return validate_currency(v)

    @model_validator(mode='after')
    def check_fixed_deposit_tag(self) -> "MovementCreate":
        if self.fixed_deposit is not None and self.asset_class is not AssetClass.PF:
            raise ValueError("fixed_deposit terms require asset_class PF")
        return self

    def resolved_total(self) -> Decimal:
        if self.total_amount is not None:
            return self.total_amount
        if self.unit_price is not None:
            return self.quantity * self.unit_price
        if self.fixed_deposit is not None:
            return self.fixed_deposit.principal
        return Decimal("0")

    def resolved_meta(self) -> dict[str, Any] | None:
        """Free-form meta merged with the typed shortcuts (JSON-safe)."""
        meta: dict[str, Any] = dict(self.meta or {})

        if self.fixed_deposit is not None:
            terms = self.fixed_deposit
            meta[META_PRINCIPAL] = str(terms.principal)
            meta[META_TNA] = str(terms.tna)
            if terms.term_days is not None:
                meta[META_TERM_DAYS] = terms.term_days
            if terms.start_date is not None:
                meta[META_START_DATE] = ensure_utc(terms.start_date).isoformat()
            if terms.alias:
                meta[META_ALIAS] = terms.alias

        if self.pf_id:
            meta[META_PF_ID] = self.pf_id

        if self.lot_allocations:
            meta[META_LOT_ALLOCATIONS] = [
                {"lot_id": item.lot_id, "quantity": str(item.quantity)}
                for item in self.lot_allocations
            ]

        return meta or None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class MovementResponse(BaseModel):
    """Schema for returning a movement."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    timestamp: datetime
    type: MovementType
    account_id: str
    instrument_id: str | None
    asset_class: AssetClass | None
    institution: str | None
    quantity: Decimal
    unit_price: Decimal | None
    total_amount: Decimal
    fee_amount: Decimal | None
    trade_currency: str
    fx_at_trade: Decimal | None
    notes: str | None
    meta: dict[str, Any] | None
    is_auto: bool
    idempotency_key: str | None
    created_at: datetime

    @field_validator('timestamp', 'created_at')
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class MovementListResponse(BaseModel):
    """Chronological list of movements."""

    items: list[MovementResponse]
    total: int = Field(..., ge=0)
