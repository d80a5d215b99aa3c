# backend/argfolio/schemas/valuation.py
"""
Pydantic schemas for Portfolio Valuation.

These schemas handle:
- Ad-hoc valuation of caller-supplied positions
- Ledger-backed portfolio valuation (lots, cash, fixed deposits)
- Per-asset metrics and portfolio totals

Prices and FX quotes are always sent by the client; the API never
fetches market data.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from argfolio.schemas.fixed_deposits import PFStateResponse
from argfolio.schemas.fx import FxQuotesInput
from argfolio.services.lots.types import CostingMethod
from argfolio.services.valuation.types import AssetInput, AssetPrices
from argfolio.utils.fx_conversion import FxKey, ValuationMode


# =============================================================================
# INPUTS
# =============================================================================

class PriceInput(BaseModel):
    """Live price data for one instrument."""

    current_price: Decimal | None = Field(default=None, description="Native-currency price per unit")
    underlying_price: Decimal | None = Field(default=None, description="CEDEAR underlying price (USD)")
    change_pct_1d: Decimal | None = Field(default=None, description="Daily change as a fraction (0.012 = +1.2%)")

    def to_prices(self) -> AssetPrices:
        return AssetPrices(
            current_price=self.current_price,
            underlying_price=self.underlying_price,
            change_pct_1d=self.change_pct_1d,
        )


class AssetPositionInput(PriceInput):
    """A position supplied inline (no ledger involved)."""

    instrument_id: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    name: str | None = None
    asset_class: str = Field(..., examples=["CEDEAR", "CRYPTO", "CASH_USD"])
    native_currency: str = Field(default="ARS")
    quantity: Decimal
    avg_cost_native: Decimal | None = None
    cost_basis_local: Decimal | None = None
    cost_basis_hard: Decimal | None = None
    avg_cost_hard: Decimal | None = None
    cedear_ratio: Decimal | None = Field(default=None, gt=0)
    underlying_symbol: str | None = None

    def to_asset(self) -> AssetInput:
        return AssetInput(
            instrument_id=self.instrument_id,
            symbol=self.symbol,
            name=self.name or self.symbol,
            asset_class=self.asset_class.upper(),
            native_currency=self.native_currency.upper(),
            quantity=self.quantity,
            avg_cost_native=self.avg_cost_native,
            cost_basis_local=self.cost_basis_local,
            cost_basis_hard=self.cost_basis_hard,
            avg_cost_hard=self.avg_cost_hard,
            cedear_ratio=self.cedear_ratio,
            underlying_symbol=self.underlying_symbol,
        )


class AssetValuationRequest(BaseModel):
    assets: list[AssetPositionInput]
    quotes: FxQuotesInput
    mode: ValuationMode | None = Field(default=None, description="Defaults to the configured mode")


class PortfolioValuationRequest(BaseModel):
    """Value the stored ledger with client-supplied market data."""

    quotes: FxQuotesInput
    prices: dict[str, PriceInput] = Field(default_factory=dict, description="Keyed by instrument id")
    mode: ValuationMode | None = None
    costing_method: CostingMethod | None = None
    as_of: datetime | None = Field(default=None, description="Evaluation time (defaults to now)")


# =============================================================================
# RESPONSES
# =============================================================================

class CedearDetailsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    usd_exposure: Decimal | None
    implied_fx: Decimal | None
    ratio: Decimal
    underlying_price: Decimal | None
    ratio_text: str


class AssetMetricsResponse(BaseModel):
    """Valuation of one position. Value/PnL fields are null without a price."""

    model_config = ConfigDict(from_attributes=True)

    instrument_id: str
    account_id: str | None
    symbol: str
    name: str
    asset_class: str
    native_currency: str
    quantity: Decimal
    current_price: Decimal | None
    avg_cost: Decimal | None
    avg_cost_hard: Decimal | None
    value_local: Decimal | None
    value_hard: Decimal | None
    cost_local: Decimal | None
    cost_hard: Decimal | None
    pnl_local: Decimal | None
    pnl_hard: Decimal | None
    pnl_pct: Decimal | None
    roi_pct: Decimal | None
    fx_key: FxKey
    fx_label: str
    fx_side_label: str
    fx_rate: Decimal
    change_pct_1d: Decimal | None
    change_local_1d: Decimal | None
    cedear_details: CedearDetailsResponse | None


class PortfolioTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_value_local: Decimal
    total_value_hard: Decimal
    total_cost_local: Decimal
    total_cost_hard: Decimal
    total_pnl_local: Decimal
    total_pnl_hard: Decimal
    total_pnl_pct: Decimal | None
    realized_pnl_local: Decimal
    realized_pnl_hard: Decimal


class CurrencyExposureResponse(BaseModel):
    """
    Real local vs hard currency split.

    Hard value is converted at the MEP bid. The derived fields are null
    when there is hard value but no MEP quote.
    """

    model_config = ConfigDict(from_attributes=True)

    local_real: Decimal
    hard_real: Decimal
    hard_rate: Decimal | None
    hard_as_local: Decimal | None
    total_local: Decimal | None
    pct_local: Decimal | None
    pct_hard: Decimal | None


class AssetValuationResponse(BaseModel):
    mode: ValuationMode
    assets: list[AssetMetricsResponse]
    totals: PortfolioTotalsResponse
    exposure: CurrencyExposureResponse


class CashBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: str
    currency: str
    amount: Decimal
    cost_local: Decimal | None


class PortfolioValuationResponse(BaseModel):
    """Complete valuation of the stored ledger."""

    model_config = ConfigDict(from_attributes=True)

    as_of: datetime
    mode: ValuationMode
    costing_method: CostingMethod
    assets: list[AssetMetricsResponse]
    totals: PortfolioTotalsResponse
    cash_balances: list[CashBalanceResponse]
    fixed_deposits: PFStateResponse | None
    warnings: list[str]
    exposure: CurrencyExposureResponse | None = None
