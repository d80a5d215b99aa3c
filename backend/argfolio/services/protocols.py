# backend/argfolio/services/protocols.py
"""
Protocol interfaces for the engine's inputs, plus accessors that read them.

Using typing.Protocol enables structural subtyping:
- The ORM Movement model satisfies MovementRecord without modification
- Test doubles (plain dataclasses) work without explicit inheritance
- Clear documentation of which attributes the engines actually read
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from argfolio.utils.fx_conversion import FxQuotes


class MovementRecord(Protocol):
    """Read-only view of a ledger entry, as consumed by every engine."""

    id: str
    timestamp: datetime
    type: Any  # MovementType or its string value
    instrument_id: str | None
    account_id: str
    asset_class: Any  # AssetClass, its string value, or None
    institution: str | None
    quantity: Decimal
    unit_price: Decimal | None
    trade_currency: str
    total_amount: Decimal
    fee_amount: Decimal | None
    fx_at_trade: Decimal | None
    meta: dict[str, Any] | None


class QuoteSource(Protocol):
    """Supplies the FX quotes used by a background settlement pass."""

    def current_quotes(self) -> FxQuotes | None:
        ...


def movement_type(movement: MovementRecord) -> str:
    """Movement type as its plain string value (enum or str input)."""
    return getattr(movement.type, "value", movement.type)


def movement_asset_class(movement: MovementRecord) -> str | None:
    """Asset class tag as its plain string value, or None if untagged."""
    value = getattr(movement.asset_class, "value", movement.asset_class)
    return value.upper() if isinstance(value, str) else None
