# backend/tests/services/test_valuation_calculators.py
"""
Unit tests for valuation calculators.

These tests verify the pure calculation logic WITHOUT database dependencies.
Movements are plain dataclasses from conftest.

Test Coverage:
- fx_key_for_asset_class: benchmark per asset class
- AssetMetricsCalculator: CEDEAR, CRYPTO, cash, missing prices, ROI basis
- CedearDetailsCalculator / DailyChangeCalculator
- PortfolioTotalsCalculator: None handling, realized PnL merge
- CashCalculator: smart cash detection, fixed-deposit cash rules
- CurrencyExposureCalculator: local vs hard buckets, missing MEP
"""

from decimal import Decimal

import pytest

from argfolio.services.valuation.calculators import (
    AssetMetricsCalculator,
    CashCalculator,
    CedearDetailsCalculator,
    CurrencyExposureCalculator,
    DailyChangeCalculator,
    PortfolioTotalsCalculator,
    fx_key_for_asset_class,
    safe_pct,
)
from argfolio.services.lots.types import RealizedSummary
from argfolio.services.valuation.types import AssetInput, AssetMetrics, AssetPrices
from argfolio.utils.fx_conversion import FxKey, FxQuotes, ValuationMode

from tests.conftest import make_movement, make_quotes


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def market_quotes() -> FxQuotes:
    return make_quotes(
        mep=("1470", "1485"),
        oficial=("1060", "1080"),
        cripto=("1520", "1535"),
    )


@pytest.fixture
def cedear() -> AssetInput:
    """5 AAPL CEDEARs bought at 15000 each, ratio 10:1."""
    return AssetInput(
        instrument_id="aapl",
        symbol="AAPL",
        name="Apple Inc.",
        asset_class="CEDEAR",
        native_currency="ARS",
        quantity=Decimal("5"),
        avg_cost_native=Decimal("15000"),
        cost_basis_local=Decimal("75000"),
        cedear_ratio=Decimal("10"),
        underlying_symbol="AAPL.US",
    )


@pytest.fixture
def cedear_prices() -> AssetPrices:
    return AssetPrices(
        current_price=Decimal("19790"),
        underlying_price=Decimal("175.50"),
        change_pct_1d=Decimal("0.015"),
    )


@pytest.fixture
def btc() -> AssetInput:
    return AssetInput(
        instrument_id="btc",
        symbol="BTC",
        name="Bitcoin",
        asset_class="CRYPTO",
        native_currency="USD",
        quantity=Decimal("0.02"),
        avg_cost_native=Decimal("40000"),
        cost_basis_local=Decimal("1200000"),
        cost_basis_hard=Decimal("800"),
        avg_cost_hard=Decimal("40000"),
    )


# =============================================================================
# BENCHMARK SELECTION
# =============================================================================

class TestFxKeyForAssetClass:

    @pytest.mark.parametrize("asset_class,expected", [
        ("CEDEAR", FxKey.MEP),
        ("CRYPTO", FxKey.CRIPTO),
        ("STABLE", FxKey.CRIPTO),
        ("FCI", FxKey.OFICIAL),
        ("PF", FxKey.OFICIAL),
        ("CASH_ARS", FxKey.OFICIAL),
        ("ARS_CASH", FxKey.OFICIAL),
        ("CASH_USD", FxKey.MEP),
        ("OTHER", FxKey.MEP),
        (None, FxKey.MEP),
    ])
    def test_benchmark(self, asset_class, expected):
        assert fx_key_for_asset_class(asset_class) is expected


# =============================================================================
# ASSET METRICS
# =============================================================================

class TestAssetMetricsCedear:

    def test_market_mode(self, cedear, cedear_prices, market_quotes):
        metrics = AssetMetricsCalculator().calculate(cedear, cedear_prices, market_quotes, ValuationMode.MARKET)

        assert metrics.value_local == Decimal("98950")
        # 98950 / 1477.5 (MEP mid)
        assert round(metrics.value_hard, 4) == Decimal("66.9712")
        assert metrics.cost_local == Decimal("75000")
        assert metrics.pnl_local == Decimal("23950")
        assert round(metrics.pnl_pct, 4) == Decimal("0.3193")
        assert metrics.fx_key is FxKey.MEP
        assert metrics.fx_rate == Decimal("1477.5")

    def test_liquidation_mode_uses_ask(self, cedear, cedear_prices, market_quotes):
        metrics = AssetMetricsCalculator().calculate(cedear, cedear_prices, market_quotes)

        # 98950 / 1485 (MEP ask)
        assert round(metrics.value_hard, 4) == Decimal("66.6330")
        assert metrics.fx_rate == Decimal("1485")

    def test_structural_details(self, cedear, cedear_prices, market_quotes):
        metrics = AssetMetricsCalculator().calculate(cedear, cedear_prices, market_quotes)
        details = metrics.cedear_details

        assert details is not None
        assert details.usd_exposure == Decimal("87.75")
        # (19790 × 10) / 175.50
        assert abs(details.implied_fx - Decimal("1127.92")) < Decimal("0.5")
        assert details.ratio_text == "10:1"

    def test_cost_hard_converted_when_not_recorded(self, cedear, cedear_prices, market_quotes):
        metrics = AssetMetricsCalculator().calculate(cedear, cedear_prices, market_quotes)

        # 75000 / 1485
        assert metrics.cost_hard == Decimal("75000") / Decimal("1485")

    def test_daily_change(self, cedear, cedear_prices, market_quotes):
        metrics = AssetMetricsCalculator().calculate(cedear, cedear_prices, market_quotes)

        expected = Decimal("98950") - Decimal("98950") / Decimal("1.015")
        assert metrics.change_local_1d == expected


class TestAssetMetricsCrypto:

    def test_market_mode(self, btc, market_quotes):
        metrics = AssetMetricsCalculator().calculate(
            btc, AssetPrices(current_price=Decimal("43000")), market_quotes, ValuationMode.MARKET
        )

        assert metrics.value_hard == Decimal("860")
        assert metrics.value_local == Decimal("1313650")  # 860 × 1527.5
        assert metrics.fx_key is FxKey.CRIPTO

    def test_liquidation_mode_uses_bid(self, btc, market_quotes):
        metrics = AssetMetricsCalculator().calculate(
            btc, AssetPrices(current_price=Decimal("43000")), market_quotes
        )

        assert metrics.value_local == Decimal("1307200")  # 860 × 1520

    def test_roi_uses_hard_basis(self, btc, market_quotes):
        metrics = AssetMetricsCalculator().calculate(
            btc, AssetPrices(current_price=Decimal("43000")), market_quotes
        )

        # Historical hard cost wins over today's conversion
        assert metrics.cost_hard == Decimal("800")
        assert metrics.pnl_hard == Decimal("60")
        assert metrics.roi_pct == Decimal("60") / Decimal("800")

    def test_local_cost_derived_from_hard_cost(self, market_quotes):
        asset = AssetInput(
            instrument_id="eth",
            symbol="ETH",
            name="Ether",
            asset_class="CRYPTO",
            native_currency="USD",
            quantity=Decimal("1"),
            cost_basis_hard=Decimal("2000"),
        )
        metrics = AssetMetricsCalculator().calculate(
            asset, AssetPrices(current_price=Decimal("2500")), market_quotes
        )

        assert metrics.cost_local == Decimal("2000") * Decimal("1520")


class TestAssetMetricsCash:

    def test_cash_ars(self, market_quotes):
        asset = AssetInput(
            instrument_id="cash-ars",
            symbol="ARS",
            name="Pesos",
            asset_class="CASH_ARS",
            native_currency="ARS",
            quantity=Decimal("250000"),
            cost_basis_local=Decimal("250000"),
        )
        metrics = AssetMetricsCalculator().calculate(asset, AssetPrices(), market_quotes)

        assert metrics.value_local == Decimal("250000")
        assert round(metrics.value_hard, 2) == Decimal("231.48")  # / 1080 oficial ask
        assert metrics.pnl_local == Decimal("0")
        assert metrics.fx_key is FxKey.OFICIAL

    def test_cash_usd_roi_uses_local_basis(self, market_quotes):
        asset = AssetInput(
            instrument_id="cash-usd",
            symbol="USD",
            name="Dólares",
            asset_class="CASH_USD",
            native_currency="USD",
            quantity=Decimal("100"),
            cost_basis_local=Decimal("140000"),
        )
        metrics = AssetMetricsCalculator().calculate(asset, AssetPrices(), market_quotes)

        assert metrics.value_hard == Decimal("100")
        assert metrics.cost_hard == Decimal("100")
        assert metrics.pnl_hard == Decimal("0")
        assert metrics.value_local == Decimal("147000")  # 100 × 1470 MEP bid
        assert metrics.pnl_local == Decimal("7000")
        assert metrics.roi_pct == Decimal("7000") / Decimal("140000")


class TestAssetMetricsMissingData:

    @pytest.mark.parametrize("price", [None, Decimal("0"), Decimal("-5"), Decimal("NaN")])
    def test_unusable_price_leaves_value_empty(self, cedear, market_quotes, price):
        metrics = AssetMetricsCalculator().calculate(
            cedear, AssetPrices(current_price=price), market_quotes
        )

        assert metrics.value_local is None
        assert metrics.value_hard is None
        assert metrics.pnl_local is None
        assert metrics.pnl_pct is None
        assert metrics.cost_local == Decimal("75000")
        assert not metrics.has_complete_data

    def test_missing_quote_leaves_hard_side_empty(self, cedear, cedear_prices):
        metrics = AssetMetricsCalculator().calculate(cedear, cedear_prices, FxQuotes())

        assert metrics.value_local == Decimal("98950")
        assert metrics.value_hard is None
        assert metrics.cost_hard is None
        assert metrics.fx_rate == Decimal("0")

    def test_safe_pct_never_divides_by_zero(self):
        assert safe_pct(Decimal("10"), Decimal("0")) is None
        assert safe_pct(None, Decimal("10")) is None
        assert safe_pct(Decimal("5"), Decimal("10")) == Decimal("0.5")


# =============================================================================
# HELPERS
# =============================================================================

class TestCedearDetailsCalculator:

    def test_missing_underlying(self):
        details = CedearDetailsCalculator().calculate(
            Decimal("5"), Decimal("19790"), None, Decimal("10")
        )
        assert details.usd_exposure is None
        assert details.implied_fx is None

    def test_invalid_ratio_defaults_to_one(self):
        details = CedearDetailsCalculator().calculate(
            Decimal("2"), Decimal("1000"), Decimal("1"), Decimal("0")
        )
        assert details.ratio == Decimal("1")
        assert details.ratio_text == "1:1"
        assert details.usd_exposure == Decimal("2")


class TestDailyChangeCalculator:

    def test_full_drop_has_no_previous_value(self):
        assert DailyChangeCalculator().calculate(Decimal("100"), Decimal("-1")) is None

    def test_missing_inputs(self):
        assert DailyChangeCalculator().calculate(None, Decimal("0.1")) is None
        assert DailyChangeCalculator().calculate(Decimal("100"), None) is None

    def test_ten_percent_gain(self):
        assert DailyChangeCalculator().calculate(Decimal("110"), Decimal("0.1")) == Decimal("10")


# =============================================================================
# PORTFOLIO TOTALS
# =============================================================================

class TestPortfolioTotalsCalculator:

    def _metrics(self, quotes, value, cost):
        asset = AssetInput(
            instrument_id="x",
            symbol="X",
            name="X",
            asset_class="CEDEAR",
            native_currency="ARS",
            quantity=Decimal("1"),
            cost_basis_local=cost,
        )
        return AssetMetricsCalculator().calculate(asset, AssetPrices(current_price=value), quotes)

    def test_sums_values(self, quotes):
        rows = [
            self._metrics(quotes, Decimal("100000"), Decimal("80000")),
            self._metrics(quotes, Decimal("50000"), Decimal("45000")),
        ]
        totals = PortfolioTotalsCalculator().calculate(rows)

        assert totals.total_value_local == Decimal("150000")
        assert totals.total_cost_local == Decimal("125000")
        assert totals.total_pnl_local == Decimal("25000")
        assert totals.total_pnl_pct == Decimal("0.2")

    def test_skips_missing_values(self, quotes):
        rows = [
            self._metrics(quotes, None, Decimal("100")),
            self._metrics(quotes, Decimal("200"), None),
        ]
        totals = PortfolioTotalsCalculator().calculate(rows)

        assert totals.total_value_local == Decimal("200")
        assert totals.total_cost_local == Decimal("100")

    def test_no_cost_means_no_pct(self):
        totals = PortfolioTotalsCalculator().calculate([])

        assert totals.total_pnl_pct is None
        assert totals.realized_pnl_local == Decimal("0")

    def test_merges_realized_pnl(self):
        realized = [
            RealizedSummary(realized_pnl_local=Decimal("6000"), realized_pnl_hard=Decimal("5")),
            RealizedSummary(realized_pnl_local=Decimal("-1000"), realized_pnl_hard=Decimal("-1")),
        ]
        totals = PortfolioTotalsCalculator().calculate([], realized)

        assert totals.realized_pnl_local == Decimal("5000")
        assert totals.realized_pnl_hard == Decimal("4")


# =============================================================================
# CASH CALCULATOR
# =============================================================================

class TestCashCalculator:

    def test_no_cash_without_deposits(self):
        """Accounts with only trades don't track cash."""
        movements = [
            make_movement("b1", "BUY", instrument_id="ggal", quantity="10", unit_price="1000"),
        ]
        assert CashCalculator().calculate(movements) == []

    def test_deposit_buy_sell_and_fees(self):
        movements = [
            make_movement("d1", "DEPOSIT", days_ago=10, total_amount="100000"),
            make_movement("b1", "BUY", days_ago=9, instrument_id="ggal",
                          quantity="10", unit_price="1000", fee_amount="50"),
            make_movement("s1", "SELL", days_ago=5, instrument_id="ggal",
                          quantity="5", unit_price="1200", fee_amount="30"),
            make_movement("f1", "FEE", days_ago=1, total_amount="20"),
        ]
        [balance] = CashCalculator().calculate(movements)

        # 100000 - 10050 + 5970 - 20
        assert balance.currency == "ARS"
        assert balance.amount == Decimal("95900")
        assert balance.cost_local == Decimal("95900")

    def test_usd_cash_cost_from_fx_at_trade(self):
        movements = [
            make_movement("d1", "DEPOSIT", total_amount="100", trade_currency="USD", fx_at_trade="1400"),
            make_movement("d2", "DEPOSIT", total_amount="50", trade_currency="USD", fx_at_trade="1500"),
        ]
        [balance] = CashCalculator().calculate(movements)

        assert balance.amount == Decimal("150")
        assert balance.cost_local == Decimal("215000")

    def test_usd_cash_cost_unknown_without_fx(self):
        movements = [
            make_movement("d1", "DEPOSIT", total_amount="100", trade_currency="USD", fx_at_trade="1400"),
            make_movement("d2", "DEPOSIT", total_amount="50", trade_currency="USD"),
        ]
        [balance] = CashCalculator().calculate(movements)

        assert balance.cost_local is None

    def test_dividend_in_units_is_not_cash(self):
        movements = [
            make_movement("d1", "DEPOSIT", total_amount="1000"),
            make_movement("dv1", "DIVIDEND", instrument_id="ggal", quantity="2", unit_price="0"),
            make_movement("dv2", "DIVIDEND", instrument_id="ggal", total_amount="300"),
        ]
        [balance] = CashCalculator().calculate(movements)

        assert balance.amount == Decimal("1300")

    def test_fixed_deposit_constitution_debits_cash(self):
        movements = [
            make_movement("d1", "DEPOSIT", days_ago=10, total_amount="500000"),
            make_movement("pf1", "BUY", days_ago=6, asset_class="PF",
                          quantity="1", unit_price="200000"),
        ]
        [balance] = CashCalculator().calculate(movements)

        assert balance.amount == Decimal("300000")

    def test_settled_fixed_deposit_counts_once(self):
        """The settlement SELL is skipped; its paired DEPOSIT carries the cash."""
        movements = [
            make_movement("d1", "DEPOSIT", days_ago=40, total_amount="500000"),
            make_movement("pf1", "BUY", days_ago=35, asset_class="PF",
                          quantity="1", unit_price="200000"),
            make_movement("pf-settle:pf1", "SELL", days_ago=1, asset_class="PF",
                          quantity="1", unit_price="230000",
                          meta={"pf_id": "pf1", "action": "SETTLE"}),
            make_movement("pf-credit:pf1", "DEPOSIT", days_ago=1, asset_class="CASH_ARS",
                          quantity="230000", unit_price="1",
                          meta={"source": "PF_SETTLEMENT", "source_fixed_deposit_id": "pf1"}),
        ]
        [balance] = CashCalculator().calculate(movements)

        assert balance.amount == Decimal("530000")

    def test_manual_fixed_deposit_redemption_credits_cash(self):
        movements = [
            make_movement("d1", "DEPOSIT", days_ago=40, total_amount="500000"),
            make_movement("pf1", "BUY", days_ago=35, asset_class="PF",
                          quantity="1", unit_price="200000"),
            make_movement("r1", "SELL", days_ago=1, asset_class="PF",
                          quantity="1", unit_price="230000", meta={"pf_id": "pf1"}),
        ]
        [balance] = CashCalculator().calculate(movements)

        assert balance.amount == Decimal("530000")

    def test_fixed_deposit_deposit_alone_does_not_track_cash(self):
        movements = [
            make_movement("pf1", "DEPOSIT", asset_class="PF", total_amount="200000"),
        ]
        assert CashCalculator().calculate(movements) == []

    def test_to_asset_input(self):
        calc = CashCalculator()
        [balance] = calc.calculate([make_movement("d1", "DEPOSIT", total_amount="100", trade_currency="USD")])
        asset = calc.to_asset_input(balance)

        assert asset.asset_class == "CASH_USD"
        assert asset.quantity == Decimal("100")
        assert asset.cost_basis_hard == Decimal("100")
        assert asset.instrument_id == "cash:broker-1:USD"


# =============================================================================
# CURRENCY EXPOSURE
# =============================================================================

def _valued(asset_class, native_currency="ARS", value_local=None, value_hard=None):
    return AssetMetrics(
        instrument_id=asset_class.lower(),
        symbol=asset_class,
        name=asset_class,
        asset_class=asset_class,
        native_currency=native_currency,
        quantity=Decimal("1"),
        value_local=None if value_local is None else Decimal(value_local),
        value_hard=None if value_hard is None else Decimal(value_hard),
        cost_local=None,
        cost_hard=None,
        pnl_local=None,
        pnl_hard=None,
        pnl_pct=None,
        roi_pct=None,
        fx_key=FxKey.MEP,
        fx_label="Dólar MEP",
        fx_side_label="Compra",
        fx_rate=Decimal("1000"),
        current_price=None,
        avg_cost=None,
        avg_cost_hard=None,
    )


class TestCurrencyExposureCalculator:

    @pytest.mark.parametrize("asset_class,currency,hard", [
        ("CEDEAR", "ARS", True),
        ("CRYPTO", "USD", True),
        ("STABLE", "USDT", True),
        ("CASH_USD", "USD", True),
        ("CASH_ARS", "ARS", False),
        ("PF", "ARS", False),
        ("FCI", "ARS", False),
        ("FCI", "USD", True),
        ("BOND", "USD", True),
        ("BOND", "ARS", False),
    ])
    def test_classification(self, asset_class, currency, hard):
        assert CurrencyExposureCalculator().is_hard(_valued(asset_class, currency)) is hard

    def test_splits_buckets_at_mep_bid(self, quotes):
        rows = [
            _valued("CASH_ARS", value_local="300000", value_hard="300"),
            _valued("PF", value_local="200000", value_hard="200"),
            _valued("CEDEAR", value_local="100000", value_hard="100"),
            _valued("CASH_USD", "USD", value_local="400000", value_hard="400"),
        ]
        exposure = CurrencyExposureCalculator().calculate(rows, quotes)

        assert exposure.local_real == Decimal("500000")
        assert exposure.hard_real == Decimal("500")
        assert exposure.hard_rate == Decimal("1000")
        assert exposure.hard_as_local == Decimal("500000")
        assert exposure.total_local == Decimal("1000000")
        assert exposure.pct_local == Decimal("0.5")
        assert exposure.pct_hard == Decimal("0.5")

    def test_hard_bucket_ignores_other_benchmarks(self):
        """Crypto valued at the cripto rate is still converted back at MEP."""
        rows = [_valued("CRYPTO", "USD", value_local="112000", value_hard="100")]
        exposure = CurrencyExposureCalculator().calculate(rows, make_quotes())

        assert exposure.hard_as_local == Decimal("100000")

    def test_unpriced_positions_count_as_zero(self, quotes):
        rows = [
            _valued("CEDEAR"),
            _valued("CASH_ARS", value_local="1000", value_hard="1"),
        ]
        exposure = CurrencyExposureCalculator().calculate(rows, quotes)

        assert exposure.hard_real == Decimal("0")
        assert exposure.pct_local == Decimal("1")

    def test_empty_portfolio(self, quotes):
        exposure = CurrencyExposureCalculator().calculate([], quotes)

        assert exposure.total_local == Decimal("0")
        assert exposure.pct_local == Decimal("0")
        assert exposure.pct_hard == Decimal("0")

    def test_missing_mep_leaves_split_unknown(self):
        rows = [
            _valued("CASH_ARS", value_local="1000"),
            _valued("CEDEAR", value_hard="10"),
        ]
        exposure = CurrencyExposureCalculator().calculate(rows, make_quotes(mep=None))

        assert exposure.local_real == Decimal("1000")
        assert exposure.hard_real == Decimal("10")
        assert exposure.hard_rate is None
        assert exposure.total_local is None
        assert exposure.pct_hard is None

    def test_missing_mep_without_hard_value(self):
        rows = [_valued("CASH_ARS", value_local="1000")]
        exposure = CurrencyExposureCalculator().calculate(rows, make_quotes(mep=None))

        assert exposure.hard_as_local == Decimal("0")
        assert exposure.total_local == Decimal("1000")
        assert exposure.pct_local == Decimal("1")
