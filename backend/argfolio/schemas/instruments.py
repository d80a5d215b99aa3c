# backend/argfolio/schemas/instruments.py
"""
Pydantic schemas for Instrument reference data.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from argfolio.models import AssetClass
from argfolio.schemas.validators import validate_currency, validate_symbol


class InstrumentCreate(BaseModel):
    """Schema for registering an instrument."""

    symbol: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Trading symbol",
        examples=["AAPL", "BTC", "USDT"]
    )
    name: str = Field(..., min_length=1, max_length=200)
    asset_class: AssetClass = Field(..., examples=[AssetClass.CEDEAR])
    native_currency: str = Field(
        default="ARS",
        description="Currency the price is quoted in",
        examples=["ARS", "USD"]
    )
    cedear_ratio: Decimal | None = Field(
        default=None,
        gt=0,
        description="CEDEARs per underlying share (CEDEAR only)",
        examples=["10", "20"]
    )
    underlying_symbol: str | None = Field(default=None, max_length=20)

    @field_validator('symbol')
    @classmethod
    def validate_and_normalize_symbol(cls, v: str) -> str:
        return validate_symbol(v)

    @field_validator('native_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return validate_currency(v)


class InstrumentResponse(BaseModel):
    """Schema for returning an instrument."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    symbol: str
    name: str
    asset_class: AssetClass
    native_currency: str
    cedear_ratio: Decimal | None
    underlying_symbol: str | None
    created_at: datetime
