# backend/argfolio/schemas/fx.py
"""
Pydantic schemas for FX quotes and conversions.

Quotes are always "1 USD = X ARS". Clients send raw buy/sell pairs per
benchmark; a missing side is filled from the other one.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from argfolio.utils.fx_conversion import (
    ConversionDirection,
    FxKey,
    FxQuotes,
    ValuationMode,
    build_quotes,
)


# =============================================================================
# INPUTS
# =============================================================================

class FxPairInput(BaseModel):
    """Raw two-sided rate for one benchmark."""

    buy: Decimal | None = Field(default=None, ge=0, description="Compra (bid)", examples=["1000"])
    sell: Decimal | None = Field(default=None, ge=0, description="Venta (ask)", examples=["1050"])


class FxQuotesInput(BaseModel):
    """Raw pairs for every benchmark; missing benchmarks become empty quotes."""

    mep: FxPairInput | None = None
    oficial: FxPairInput | None = None
    cripto: FxPairInput | None = None

    def to_quotes(self) -> FxQuotes:
        return build_quotes(
            {
                FxKey.MEP.value: self.mep,
                FxKey.OFICIAL.value: self.oficial,
                FxKey.CRIPTO.value: self.cripto,
            }
        )


class ConversionRequest(BaseModel):
    """Convert one amount with one benchmark."""

    amount: Decimal
    benchmark: FxKey = FxKey.MEP
    direction: ConversionDirection = ConversionDirection.LOCAL_TO_HARD
    mode: ValuationMode | None = Field(default=None, description="Defaults to the configured mode")
    quotes: FxQuotesInput


# =============================================================================
# RESPONSES
# =============================================================================

class FxQuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bid: Decimal
    ask: Decimal
    mid: Decimal


class FxQuotesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mep: FxQuoteResponse
    oficial: FxQuoteResponse
    cripto: FxQuoteResponse
    posted_at: datetime | None = None


class ConversionResponse(BaseModel):
    amount: Decimal
    converted: Decimal | None = Field(..., description="None when the rate is missing or zero")
    benchmark: FxKey
    direction: ConversionDirection
    mode: ValuationMode
    rate: Decimal
    rate_label: str
