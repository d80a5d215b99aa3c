# backend/argfolio/schemas/cash_yield.py
"""
Pydantic schemas for remunerated accounts (cash yield).
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CashYieldConfigRequest(BaseModel):
    """Create or update an account's cash-yield setting."""

    tna: Decimal = Field(
        ...,
        gt=0,
        le=1000,
        description="Nominal annual rate in percent (365-day base)",
        examples=["32"]
    )
    enabled: bool = True
    start_date: date | None = Field(
        default=None,
        description="First day that earns interest; today when omitted on creation"
    )


class YieldMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    daily_rate: Decimal
    tea: Decimal
    interest_tomorrow: Decimal
    proj_30d: Decimal
    proj_1y: Decimal


class CashYieldConfigResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: str
    tna: Decimal
    enabled: bool
    last_accrued_date: date
    updated_at: datetime


class CashYieldStatusResponse(BaseModel):
    """Setting, current local cash and projected yield of one account."""

    config: CashYieldConfigResponse
    balance: Decimal
    metrics: YieldMetricsResponse


class AccrualReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    accrued: list[str]
    skipped: list[str]
    total_interest: Decimal
    movements_created: int
    enabled: bool = True
