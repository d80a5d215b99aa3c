# backend/argfolio/services/valuation/types.py
"""
Internal data types for the Valuation Service.

These dataclasses are used internally by the valuation calculators.
They are NOT Pydantic schemas - those are defined in argfolio/schemas/valuation.py
for API serialization.

Design Principles:
- Immutable where possible (frozen=True for value objects)
- Use Decimal for ALL financial values (never float)
- Missing market data is None, never NaN/Infinity and never an exception
- "local" is the owner's currency (ARS), "hard" the reference currency (USD)

Type Hierarchy:
    AssetInput           - Identity, quantity and cost basis of one position
    AssetPrices          - Live price data for that position
    CedearDetails        - Structural CEDEAR figures (exposure, implied FX)
    AssetMetrics         - Complete valuation of one position
    PortfolioAssetTotals - Sum of all AssetMetrics plus realized PnL
    CashBalance          - Cash per account and currency
    CurrencyExposure     - Real local vs hard currency split of the portfolio
    PortfolioValuation   - Everything the ledger-backed service returns
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from argfolio.utils.fx_conversion import FxKey, ValuationMode

if TYPE_CHECKING:
    from argfolio.services.fixed_deposits.types import PFDerivedState
    from argfolio.services.lots.types import LotBuildResult

ZERO = Decimal("0")


# =============================================================================
# INPUTS
# =============================================================================

@dataclass(frozen=True)
class AssetInput:
    """
    One position to value.

    Attributes:
        instrument_id: Instrument identifier
        symbol: Display symbol (e.g. "AAPL")
        name: Display name
        asset_class: CEDEAR, CRYPTO, STABLE, FCI, PF, CASH_ARS, CASH_USD, ...
        native_currency: Currency the price is quoted in ("ARS" or "USD")
        quantity: Units held (for cash classes, the balance itself)
        avg_cost_native: Average unit cost in native currency
        cost_basis_local: Total cost in local currency
        cost_basis_hard: Historical total cost in hard currency, recorded at
                         trade-time FX (None if unknown)
        avg_cost_hard: Historical average unit cost in hard currency
        cedear_ratio: CEDEARs per underlying share (CEDEAR only)
        underlying_symbol: Foreign listing symbol (CEDEAR only)
        account_id: Owning account (None for ad-hoc valuations)
    """

    instrument_id: str
    symbol: str
    name: str
    asset_class: str
    native_currency: str
    quantity: Decimal
    avg_cost_native: Decimal | None = None
    cost_basis_local: Decimal | None = None
    cost_basis_hard: Decimal | None = None
    avg_cost_hard: Decimal | None = None
    cedear_ratio: Decimal | None = None
    underlying_symbol: str | None = None
    account_id: str | None = None


@dataclass(frozen=True)
class AssetPrices:
    """
    Live price data for one position.

    Attributes:
        current_price: Price per unit in native currency (None if unknown)
        underlying_price: Hard-currency price of the foreign listing
        change_pct_1d: Day-over-day change as a fraction (0.012 = +1.2%)
    """

    current_price: Decimal | None = None
    underlying_price: Decimal | None = None
    change_pct_1d: Decimal | None = None


# =============================================================================
# OUTPUTS
# =============================================================================

@dataclass(frozen=True)
class CedearDetails:
    """
    Structural figures for a CEDEAR, for display and sanity checks only.

    Attributes:
        usd_exposure: quantity × (underlying / ratio)
        implied_fx: (price × ratio) / underlying
        ratio: CEDEARs per underlying share
        underlying_price: Price of the foreign listing
        ratio_text: Display form, e.g. "10:1"
    """

    usd_exposure: Decimal | None
    implied_fx: Decimal | None
    ratio: Decimal
    underlying_price: Decimal | None
    ratio_text: str


@dataclass(frozen=True)
class AssetMetrics:
    """
    Complete valuation of one position.

    Attributes:
        value_local / value_hard: Current value (None without a usable price)
        cost_local / cost_hard: Cost basis in each currency
        pnl_local / pnl_hard: value - cost, independently per currency
        pnl_pct: pnl_local / cost_local
        roi_pct: Return in the position's own currency basis
        fx_key / fx_label / fx_rate: Benchmark and rate actually used
        fx_side_label: Quote side behind fx_rate (Compra, Venta or Mid)
        change_pct_1d / change_local_1d: Daily change
    """

    instrument_id: str
    symbol: str
    name: str
    asset_class: str
    native_currency: str
    quantity: Decimal
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
    current_price: Decimal | None
    avg_cost: Decimal | None
    avg_cost_hard: Decimal | None
    cedear_details: CedearDetails | None = None
    change_pct_1d: Decimal | None = None
    change_local_1d: Decimal | None = None
    account_id: str | None = None

    @property
    def has_complete_data(self) -> bool:
        """True if both currency values could be computed."""
        return self.value_local is not None and self.value_hard is not None


@dataclass(frozen=True)
class PortfolioAssetTotals:
    """
    Portfolio-wide totals.

    Attributes:
        total_value_local / total_value_hard: Sum of known values
        total_cost_local / total_cost_hard: Sum of known costs
        total_pnl_local / total_pnl_hard: Unrealized PnL (value - cost)
        total_pnl_pct: total_pnl_local / total_cost_local (None if cost <= 0)
        realized_pnl_local / realized_pnl_hard: From closed sales (0 if none)
    """

    total_value_local: Decimal = ZERO
    total_value_hard: Decimal = ZERO
    total_cost_local: Decimal = ZERO
    total_cost_hard: Decimal = ZERO
    total_pnl_local: Decimal = ZERO
    total_pnl_hard: Decimal = ZERO
    total_pnl_pct: Decimal | None = None
    realized_pnl_local: Decimal = ZERO
    realized_pnl_hard: Decimal = ZERO


# =============================================================================
# CASH BALANCE
# =============================================================================

@dataclass
class CashBalance:
    """
    Cash balance of one account in one currency.

    Attributes:
        account_id: Owning account
        currency: "ARS" or "USD"
        amount: Net balance from deposits, withdrawals and trade settlements
        cost_local: Local-currency cost of the balance (None if unknown)
    """

    account_id: str
    currency: str
    amount: Decimal = ZERO
    cost_local: Decimal | None = None


# =============================================================================
# CURRENCY EXPOSURE
# =============================================================================

@dataclass(frozen=True)
class CurrencyExposure:
    """
    How much of the portfolio is really in each currency.

    Hard-currency assets (CEDEARs, crypto, dollars...) count at their hard
    value; local ones (pesos, fixed deposits, peso FCIs) at their local
    value. The hard bucket is brought to local currency at the MEP bid.

    Attributes:
        local_real: Local-currency bucket, in local currency
        hard_real: Hard-currency bucket, in hard currency
        hard_rate: MEP bid used for the conversion (None without a quote)
        hard_as_local: hard_real at hard_rate (None if it cannot be converted)
        total_local: local_real + hard_as_local
        pct_local / pct_hard: Share of total_local (fractions; 0 when the
                              total is 0, None when it is unknown)
    """

    local_real: Decimal
    hard_real: Decimal
    hard_rate: Decimal | None
    hard_as_local: Decimal | None
    total_local: Decimal | None
    pct_local: Decimal | None
    pct_hard: Decimal | None


# =============================================================================
# PORTFOLIO VALUATION (ledger-backed)
# =============================================================================

@dataclass
class PortfolioValuation:
    """
    Complete valuation of the ledger.

    Attributes:
        as_of: Evaluation time
        mode: FX convention used for every conversion
        assets: Per-position metrics (instruments and cash)
        totals: Aggregated totals including realized PnL
        positions: Lot replay per (account, instrument) key
        cash_balances: Cash per account and currency
        fixed_deposits: Derived fixed-deposit state
        exposure: Real local vs hard currency split
        warnings: Data integrity notes collected while building
    """

    as_of: datetime
    mode: ValuationMode
    assets: list[AssetMetrics]
    totals: PortfolioAssetTotals
    positions: dict[tuple[str, str], LotBuildResult] = field(default_factory=dict)
    cash_balances: list[CashBalance] = field(default_factory=list)
    fixed_deposits: PFDerivedState | None = None
    exposure: CurrencyExposure | None = None
    warnings: list[str] = field(default_factory=list)
