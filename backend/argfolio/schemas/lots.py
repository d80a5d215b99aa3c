# backend/argfolio/schemas/lots.py
"""
Pydantic schemas for lots and sale allocation.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from argfolio.schemas.movements import LotAllocationInput
from argfolio.services.lots.types import CostingMethod, LotDetail


# =============================================================================
# RESPONSES
# =============================================================================

class LotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    date: datetime
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    current_value: Decimal | None
    unrealized_pnl: Decimal | None
    unit_cost_local: Decimal | None
    unit_cost_hard: Decimal | None


class AllocationEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lot_id: str
    quantity: Decimal
    cost: Decimal


class SaleAllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    allocations: list[AllocationEntryResponse]
    quantity_sold: Decimal
    total_cost: Decimal
    total_proceeds: Decimal
    realized_pnl: Decimal
    realized_pnl_pct: Decimal


class RealizedSaleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    movement_id: str
    date: datetime
    allocation: SaleAllocationResponse
    realized_pnl_local: Decimal | None
    realized_pnl_hard: Decimal | None


class LotsResponse(BaseModel):
    """Open lots and realized history of one instrument."""

    instrument_id: str
    account_id: str | None
    method: CostingMethod
    quantity: Decimal
    total_cost: Decimal
    avg_cost: Decimal | None
    lots: list[LotResponse]
    sales: list[RealizedSaleResponse]
    realized_pnl: Decimal
    realized_pnl_local: Decimal
    realized_pnl_hard: Decimal
    warnings: list[str]


class CostingMethodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    value: CostingMethod
    label: str
    short: str
    description: str


# =============================================================================
# INPUTS
# =============================================================================

class AllocationPreviewRequest(BaseModel):
    """Preview which lots a sale would consume, without recording it."""

    quantity: Decimal = Field(..., gt=0)
    sale_price: Decimal = Field(..., ge=0)
    method: CostingMethod | None = Field(default=None, description="Defaults to the configured method")
    account_id: str | None = None
    manual: list[LotAllocationInput] | None = Field(default=None, description="MANUAL lot picks")


class LotInput(BaseModel):
    """An open lot supplied by the caller."""

    id: str = Field(..., min_length=1)
    date: datetime
    quantity: Decimal = Field(..., ge=0)
    unit_cost: Decimal = Field(..., ge=0)
    total_cost: Decimal | None = Field(default=None, ge=0, description="Defaults to quantity × unit_cost")

    def to_lot(self) -> LotDetail:
        total_cost = self.total_cost if self.total_cost is not None else self.quantity * self.unit_cost
        return LotDetail(
            id=self.id,
            date=self.date,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            total_cost=total_cost,
        )


class AllocationRequest(BaseModel):
    """Allocate a sale against caller-supplied lots (no ledger)."""

    lots: list[LotInput]
    quantity: Decimal = Field(..., ge=0, description="Ignored by MANUAL, where the picks define it")
    sale_price: Decimal = Field(..., ge=0)
    method: CostingMethod
    manual: list[LotAllocationInput] | None = Field(default=None, description="MANUAL lot picks")
