# backend/argfolio/schemas/fixed_deposits.py
"""
Pydantic schemas for fixed-term deposits (plazos fijos).
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from argfolio.schemas.fx import FxQuotesInput
from argfolio.services.fixed_deposits.types import Horizon, PFStatus, RedemptionMatch


class PFPositionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    account_id: str
    institution: str
    alias: str | None
    principal: Decimal
    tna: Decimal
    tea: Decimal
    term_days: int
    start: datetime
    maturity: datetime
    expected_interest: Decimal
    expected_total: Decimal
    status: PFStatus
    initial_fx: Decimal | None
    redeemed_by: str | None
    match: RedemptionMatch | None


class PFTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    active_local: Decimal
    active_hard: Decimal | None = Field(..., description="None without an OFICIAL quote")
    matured_local: Decimal
    matured_hard: Decimal | None


class PFStateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    active: list[PFPositionResponse]
    matured: list[PFPositionResponse]
    closed: list[PFPositionResponse]
    totals: PFTotalsResponse


class PFStateRequest(BaseModel):
    quotes: FxQuotesInput | None = Field(default=None, description="Defaults to the last posted quotes")
    as_of: datetime | None = None


class ProjectionItem(BaseModel):
    id: str
    institution: str
    days_remaining: int
    projected_interest: Decimal


class ProjectionResponse(BaseModel):
    horizon: Horizon
    horizon_days: int
    total: Decimal
    items: list[ProjectionItem]


class SettlementRequest(BaseModel):
    quotes: FxQuotesInput | None = Field(default=None, description="Defaults to the last posted quotes")


class SettlementReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    settled: list[str]
    skipped: list[str]
    total_credited: Decimal
    movements_created: int
    enabled: bool = True
