# backend/argfolio/services/valuation/calculators.py
"""
Point-in-time valuation calculators.

Each calculator follows the Single Responsibility Principle:
- AssetMetricsCalculator: Values one position in local and hard currency
- CedearDetailsCalculator: USD exposure and implied FX of a CEDEAR
- DailyChangeCalculator: Local-currency daily change from a percentage
- PortfolioTotalsCalculator: Sums AssetMetrics and merges realized PnL
- CashCalculator: Cash balances per account and currency from the ledger
- CurrencyExposureCalculator: Real local vs hard currency split

Design Principles:
- Stateless (no instance state beyond fixed currency codes)
- Receives quotes and the valuation mode explicitly
- Uses Decimal for ALL financial calculations
- Missing or invalid market data yields None, never an exception

Usage:
    calc = AssetMetricsCalculator()
    metrics = calc.calculate(asset, prices, quotes, ValuationMode.LIQUIDATION)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from argfolio.services.constants import META_PF_ACTION, PF_SETTLE_ACTION
from argfolio.services.protocols import MovementRecord, movement_asset_class, movement_type
from argfolio.services.valuation.types import (
    ZERO,
    AssetInput,
    AssetMetrics,
    AssetPrices,
    CashBalance,
    CedearDetails,
    CurrencyExposure,
    PortfolioAssetTotals,
)
from argfolio.utils.fx_conversion import (
    FX_LABELS,
    ConversionDirection,
    FxKey,
    FxQuotes,
    ValuationMode,
    effective_rate,
    rate_label,
    to_decimal,
    to_hard_from_local,
    to_local_from_hard,
)

logger = logging.getLogger(__name__)

ONE = Decimal("1")

LOCAL_NATIVE_CLASSES = frozenset({"CEDEAR", "FCI", "PF"})
HARD_NATIVE_CLASSES = frozenset({"CRYPTO", "STABLE"})


# =============================================================================
# HELPERS
# =============================================================================

def fx_key_for_asset_class(asset_class: str | None) -> FxKey:
    """
    FX benchmark used to value an asset class.

    CEDEAR -> MEP; FCI, PF, CASH_ARS -> OFICIAL; CRYPTO, STABLE -> CRIPTO;
    everything else (CASH_USD included) -> MEP.
    """
    key = (getattr(asset_class, "value", asset_class) or "").upper()
    if key == "CEDEAR":
        return FxKey.MEP
    if key in ("FCI", "PF", "CASH_ARS", "ARS_CASH"):
        return FxKey.OFICIAL
    if key in ("CRYPTO", "STABLE"):
        return FxKey.CRIPTO
    return FxKey.MEP


def safe_pct(value: Decimal | None, base: Decimal | None) -> Decimal | None:
    """
    value / base as a fraction.

    Returns None instead of Infinity/NaN when either side is missing or
    non-finite, or the base is zero.
    """
    v = to_decimal(value)
    b = to_decimal(base)
    if v is None or b is None or b == ZERO:
        return None
    return v / b


def _usable_price(value: Decimal | None) -> Decimal | None:
    """A price is usable only if it is finite and strictly positive."""
    price = to_decimal(value)
    if price is None or price <= ZERO:
        return None
    return price


def _difference(value: Decimal | None, cost: Decimal | None) -> Decimal | None:
    if value is None or cost is None:
        return None
    return value - cost


# =============================================================================
# CEDEAR DETAILS
# =============================================================================

class CedearDetailsCalculator:
    """
    Structural figures of a CEDEAR (a local certificate over a foreign share).

    Formulas:
        usd_exposure = quantity × (underlying_price / ratio)
        implied_fx   = (local_price × ratio) / underlying_price

    These are informational only: they never feed back into valuation.
    """

    def calculate(
            self,
            quantity: Decimal,
            price: Decimal | None,
            underlying_price: Decimal | None,
            ratio: Decimal | None,
    ) -> CedearDetails:
        ratio = to_decimal(ratio)
        if ratio is None or ratio <= ZERO:
            ratio = ONE
        underlying = _usable_price(underlying_price)
        local_price = _usable_price(price)
        qty = to_decimal(quantity)

        usd_exposure = None
        implied_fx = None
        if underlying is not None:
            if qty is not None:
                usd_exposure = qty * (underlying / ratio)
            if local_price is not None:
                implied_fx = (local_price * ratio) / underlying

        return CedearDetails(
            usd_exposure=usd_exposure,
            implied_fx=implied_fx,
            ratio=ratio,
            underlying_price=underlying,
            ratio_text=f"{ratio.normalize():f}:1",
        )


# =============================================================================
# DAILY CHANGE
# =============================================================================

class DailyChangeCalculator:
    """
    Local-currency daily change derived from a day-over-day percentage.

    current = previous × (1 + pct)  =>  change = current - current / (1 + pct)

    Returns None when pct is -1 (a 100% drop leaves no previous value to
    recover) or when either input is missing.
    """

    def calculate(self, value_local: Decimal | None, change_pct: Decimal | None) -> Decimal | None:
        value = to_decimal(value_local)
        pct = to_decimal(change_pct)
        if value is None or pct is None:
            return None
        denominator = ONE + pct
        if denominator == ZERO:
            return None
        return value - value / denominator


# =============================================================================
# ASSET METRICS
# =============================================================================

class AssetMetricsCalculator:
    """
    Values a single position in local and hard currency.

    Dispatch by asset class:
        CASH_ARS        value_local = quantity
        CASH_USD        value_hard = quantity, cost_hard = quantity
        local-native    value_local = qty × price, converted to hard
                        (CEDEAR, FCI, PF, other local-currency instruments)
        hard-native     value_hard = qty × price, converted to local
                        (CRYPTO, STABLE, other hard-currency instruments)

    Cost in the counter-currency prefers the historical cost basis; only
    when one side is missing is it converted from the other at today's rate.

    ROI uses the hard basis for hard-native instruments. CASH_USD is the
    exception: it uses the local basis, so its ROI is the FX move of
    holding dollars.
    """

    def __init__(self, local_currency: str = "ARS") -> None:
        self.local_currency = local_currency.upper()
        self._cedear = CedearDetailsCalculator()
        self._daily = DailyChangeCalculator()

    def is_hard_native(self, asset: AssetInput) -> bool:
        asset_class = asset.asset_class.upper()
        if asset_class == "CASH_USD" or asset_class in HARD_NATIVE_CLASSES:
            return True
        if asset_class in LOCAL_NATIVE_CLASSES or asset_class == "CASH_ARS":
            return False
        return (asset.native_currency or self.local_currency).upper() != self.local_currency

    def calculate(
            self,
            asset: AssetInput,
            prices: AssetPrices,
            quotes: FxQuotes,
            mode: ValuationMode = ValuationMode.LIQUIDATION,
    ) -> AssetMetrics:
        """
        Compute metrics for one position.

        Args:
            asset: Position identity, quantity and cost basis
            prices: Live price data
            quotes: One quote per FX benchmark
            mode: LIQUIDATION or MARKET, applied to every conversion

        Returns:
            AssetMetrics; value/PnL fields are None when the price is
            missing, non-finite or non-positive
        """
        asset_class = asset.asset_class.upper()
        fx_key = fx_key_for_asset_class(asset_class)
        quote = quotes.get(fx_key)

        quantity = to_decimal(asset.quantity)
        price = _usable_price(prices.current_price)
        cost_local = to_decimal(asset.cost_basis_local)
        historical_cost_hard = to_decimal(asset.cost_basis_hard)
        hard_native = self.is_hard_native(asset)

        value_local: Decimal | None = None
        value_hard: Decimal | None = None
        cedear_details: CedearDetails | None = None

        if asset_class == "CASH_ARS":
            value_local = quantity
            value_hard = to_hard_from_local(value_local, quote, mode)
            if cost_local is None:
                cost_local = quantity
            cost_hard = historical_cost_hard if historical_cost_hard is not None else to_hard_from_local(cost_local, quote, mode)

        elif asset_class == "CASH_USD":
            value_hard = quantity
            value_local = to_local_from_hard(value_hard, quote, mode)
            cost_hard = quantity

        else:
            if price is None:
                logger.debug(f"No usable price for {asset.symbol} ({asset_class}), value left empty")
            elif quantity is not None:
                if hard_native:
                    value_hard = quantity * price
                    value_local = to_local_from_hard(value_hard, quote, mode)
                else:
                    value_local = quantity * price
                    value_hard = to_hard_from_local(value_local, quote, mode)

            cost_hard = historical_cost_hard if historical_cost_hard is not None else to_hard_from_local(cost_local, quote, mode)
            if cost_local is None:
                # Bought in hard currency without a recorded FX rate
                cost_local = to_local_from_hard(historical_cost_hard, quote, mode)

            if asset_class == "CEDEAR" and quantity is not None:
                cedear_details = self._cedear.calculate(
                    quantity, price, prices.underlying_price, asset.cedear_ratio
                )

        pnl_local = _difference(value_local, cost_local)
        pnl_hard = _difference(value_hard, cost_hard)
        pnl_pct = safe_pct(pnl_local, cost_local)

        if hard_native and asset_class != "CASH_USD":
            roi_pct = safe_pct(pnl_hard, cost_hard)
        else:
            roi_pct = pnl_pct

        direction = ConversionDirection.HARD_TO_LOCAL if hard_native else ConversionDirection.LOCAL_TO_HARD
        change_pct = to_decimal(prices.change_pct_1d)

        return AssetMetrics(
            instrument_id=asset.instrument_id,
            symbol=asset.symbol,
            name=asset.name,
            asset_class=asset_class,
            native_currency=asset.native_currency,
            quantity=quantity if quantity is not None else ZERO,
            value_local=value_local,
            value_hard=value_hard,
            cost_local=cost_local,
            cost_hard=cost_hard,
            pnl_local=pnl_local,
            pnl_hard=pnl_hard,
            pnl_pct=pnl_pct,
            roi_pct=roi_pct,
            fx_key=fx_key,
            fx_label=FX_LABELS[fx_key],
            fx_side_label=rate_label(direction, mode),
            fx_rate=effective_rate(quote, direction, mode),
            current_price=price,
            avg_cost=to_decimal(asset.avg_cost_native),
            avg_cost_hard=to_decimal(asset.avg_cost_hard),
            cedear_details=cedear_details,
            change_pct_1d=change_pct,
            change_local_1d=self._daily.calculate(value_local, change_pct),
            account_id=asset.account_id,
        )


# =============================================================================
# PORTFOLIO TOTALS
# =============================================================================

class PortfolioTotalsCalculator:
    """
    Sums per-asset metrics into portfolio totals.

    None or non-finite figures are skipped. Realized PnL is not computed
    here: it is merged from the lot builder's realized summaries.
    """

    def calculate(
            self,
            metrics: Iterable[AssetMetrics],
            realized: Iterable[object] | None = None,
    ) -> PortfolioAssetTotals:
        """
        Args:
            metrics: Per-asset metrics
            realized: Objects exposing realized_pnl_local / realized_pnl_hard
                      (RealizedSummary), or None

        Returns:
            PortfolioAssetTotals; total_pnl_pct is None when total local
            cost is not positive
        """
        total_value_local = ZERO
        total_value_hard = ZERO
        total_cost_local = ZERO
        total_cost_hard = ZERO

        for row in metrics:
            total_value_local += to_decimal(row.value_local) or ZERO
            total_value_hard += to_decimal(row.value_hard) or ZERO
            total_cost_local += to_decimal(row.cost_local) or ZERO
            total_cost_hard += to_decimal(row.cost_hard) or ZERO

        realized_local = ZERO
        realized_hard = ZERO
        for summary in realized or ():
            realized_local += to_decimal(getattr(summary, "realized_pnl_local", None)) or ZERO
            realized_hard += to_decimal(getattr(summary, "realized_pnl_hard", None)) or ZERO

        total_pnl_local = total_value_local - total_cost_local

        return PortfolioAssetTotals(
            total_value_local=total_value_local,
            total_value_hard=total_value_hard,
            total_cost_local=total_cost_local,
            total_cost_hard=total_cost_hard,
            total_pnl_local=total_pnl_local,
            total_pnl_hard=total_value_hard - total_cost_hard,
            total_pnl_pct=total_pnl_local / total_cost_local if total_cost_local > ZERO else None,
            realized_pnl_local=realized_local,
            realized_pnl_hard=realized_hard,
        )


# =============================================================================
# CASH CALCULATOR
# =============================================================================

class CashCalculator:
    """
    Calculates cash balances from movements, per account and currency.

    Cash flows (amount = total_amount, or quantity × unit_price):
    - DEPOSIT: + amount - fee
    - WITHDRAW: - amount - fee
    - DIVIDEND / INTEREST paid in cash (no instrument units): + amount
    - FEE: - amount
    - BUY: - (amount + fee)
    - SELL: + (amount - fee)

    Fixed-deposit (PF) movements:
    - BUY (constitution) debits cash; SELL (manual redemption) credits it
    - DEPOSIT / WITHDRAW move money straight into / out of the deposit
    - SELL written by settlement (action SETTLE) is skipped: the paired
      cash credit already carries the amount

    Smart Cash Detection:
        An account tracks cash ONLY if it has at least one DEPOSIT or
        WITHDRAW movement. Accounts with only BUY/SELL do not track cash
        (to avoid showing negative balances).

    Cost basis:
        Local cash costs its own balance. Hard cash carries a local cost
        built from each flow's fx_at_trade; it is None once any flow lacks
        one.
    """

    def __init__(self, local_currency: str = "ARS") -> None:
        self.local_currency = local_currency.upper()

    @staticmethod
    def _is_cash_flow_account(movements: list[MovementRecord]) -> bool:
        return any(
            movement_type(m) in ("DEPOSIT", "WITHDRAW") and movement_asset_class(m) != "PF"
            for m in movements
        )

    @staticmethod
    def _gross(mov: MovementRecord) -> Decimal:
        total = to_decimal(mov.total_amount)
        if total is not None and total != ZERO:
            return abs(total)
        quantity = to_decimal(mov.quantity) or ZERO
        price = to_decimal(mov.unit_price)
        return abs(quantity * (price if price is not None else ONE))

    @staticmethod
    def _is_pf_without_cash(mov: MovementRecord) -> bool:
        if movement_asset_class(mov) != "PF":
            return False
        kind = movement_type(mov)
        if kind in ("DEPOSIT", "WITHDRAW"):
            return True
        return kind == "SELL" and (mov.meta or {}).get(META_PF_ACTION) == PF_SETTLE_ACTION

    def _signed_amount(self, mov: MovementRecord) -> Decimal | None:
        """Signed cash effect of one movement, or None if it has none."""
        if self._is_pf_without_cash(mov):
            return None

        kind = movement_type(mov)
        fee = to_decimal(mov.fee_amount) or ZERO

        if kind == "DEPOSIT":
            return self._gross(mov) - fee
        if kind == "WITHDRAW":
            return -(self._gross(mov) + fee)
        if kind in ("DIVIDEND", "INTEREST"):
            # Paid in instrument units: the lot builder opens a lot instead
            if mov.instrument_id is not None and (to_decimal(mov.quantity) or ZERO) > ZERO:
                return None
            return self._gross(mov)
        if kind == "FEE":
            return -(self._gross(mov) + fee)
        if kind == "BUY":
            return -(self._gross(mov) + fee)
        if kind == "SELL":
            return self._gross(mov) - fee
        return None

    def calculate(self, movements: Iterable[MovementRecord]) -> list[CashBalance]:
        """
        Calculate cash balances.

        Args:
            movements: All ledger movements (any order)

        Returns:
            Non-zero balances, sorted by account then currency
        """
        by_account: dict[str, list[MovementRecord]] = {}
        for mov in movements:
            by_account.setdefault(mov.account_id, []).append(mov)

        balances: list[CashBalance] = []
        for account_id in sorted(by_account):
            account_movements = by_account[account_id]
            if not self._is_cash_flow_account(account_movements):
                continue

            amounts: dict[str, Decimal] = {}
            costs: dict[str, Decimal | None] = {}

            for mov in account_movements:
                amount = self._signed_amount(mov)
                if amount is None:
                    continue

                currency = (mov.trade_currency or self.local_currency).upper()
                amounts[currency] = amounts.get(currency, ZERO) + amount

                if currency == self.local_currency:
                    costs[currency] = amounts[currency]
                else:
                    fx = to_decimal(mov.fx_at_trade)
                    running = costs.get(currency, ZERO)
                    if running is None or fx is None or fx <= ZERO:
                        costs[currency] = None
                    else:
                        costs[currency] = running + amount * fx

            for currency in sorted(amounts):
                if amounts[currency] == ZERO:
                    continue
                balances.append(
                    CashBalance(
                        account_id=account_id,
                        currency=currency,
                        amount=amounts[currency],
                        cost_local=costs.get(currency),
                    )
                )

        return balances

    def to_asset_input(self, balance: CashBalance) -> AssetInput:
        """Express a balance as a CASH_ARS / CASH_USD position."""
        is_local = balance.currency == self.local_currency
        return AssetInput(
            instrument_id=f"cash:{balance.account_id}:{balance.currency}",
            symbol=balance.currency,
            name="Pesos" if is_local else "Dólares",
            asset_class="CASH_ARS" if is_local else "CASH_USD",
            native_currency=balance.currency,
            quantity=balance.amount,
            avg_cost_native=ONE,
            cost_basis_local=balance.cost_local,
            cost_basis_hard=None if is_local else balance.amount,
            account_id=balance.account_id,
        )


# =============================================================================
# CURRENCY EXPOSURE
# =============================================================================

class CurrencyExposureCalculator:
    """
    Splits valued positions into a real local and a real hard bucket.

    Classification by asset class:
    - Hard: CEDEAR, CRYPTO, STABLE, CASH_USD, STOCK, and FCIs quoted in USD
    - Local: CASH_ARS, PF, DEBT, WALLET, and FCIs quoted in pesos
    - Anything else follows its native currency (USD, USDT and USDC are hard)

    CEDEARs trade in pesos but track a foreign share, so they are hard.
    """

    HARD_CLASSES = frozenset({"CEDEAR", "CRYPTO", "STABLE", "CASH_USD", "USD_CASH", "STOCK"})
    LOCAL_CLASSES = frozenset({"CASH_ARS", "ARS_CASH", "PF", "DEBT", "WALLET"})
    HARD_CURRENCIES = frozenset({"USD", "USDT", "USDC"})

    def is_hard(self, metrics: AssetMetrics) -> bool:
        asset_class = (metrics.asset_class or "").upper()
        currency = (metrics.native_currency or "").upper()
        if asset_class in self.HARD_CLASSES:
            return True
        if asset_class in self.LOCAL_CLASSES:
            return False
        if asset_class == "FCI":
            return currency == "USD"
        return currency in self.HARD_CURRENCIES

    def calculate(self, metrics: Iterable[AssetMetrics], quotes: FxQuotes) -> CurrencyExposure:
        """
        Args:
            metrics: Valued positions (missing values count as zero)
            quotes: The MEP bid converts the hard bucket

        Returns:
            CurrencyExposure; derived figures are None when there is hard
            value but no MEP bid to convert it
        """
        local_real = ZERO
        hard_real = ZERO
        for row in metrics:
            if self.is_hard(row):
                hard_real += to_decimal(row.value_hard) or ZERO
            else:
                local_real += to_decimal(row.value_local) or ZERO

        rate = to_decimal(quotes.mep.bid)
        if rate is None or rate <= ZERO:
            rate = None

        if rate is not None:
            hard_as_local = hard_real * rate
        elif hard_real == ZERO:
            hard_as_local = ZERO
        else:
            logger.debug("No MEP bid, hard exposure left unconverted")
            hard_as_local = None

        if hard_as_local is None:
            return CurrencyExposure(
                local_real=local_real,
                hard_real=hard_real,
                hard_rate=None,
                hard_as_local=None,
                total_local=None,
                pct_local=None,
                pct_hard=None,
            )

        total = local_real + hard_as_local
        return CurrencyExposure(
            local_real=local_real,
            hard_real=hard_real,
            hard_rate=rate,
            hard_as_local=hard_as_local,
            total_local=total,
            pct_local=local_real / total if total > ZERO else ZERO,
            pct_hard=hard_as_local / total if total > ZERO else ZERO,
        )
