# backend/argfolio/services/valuation/service.py
"""
Valuation Service - Main orchestrator for portfolio valuation.

This is the single entry point for all valuation operations:
- value_assets(): Ad-hoc valuation of caller-supplied positions
- value_ledger(): Pure valuation of a set of movements (no database)
- get_portfolio(): Ledger-backed valuation (lots, cash, fixed deposits)
- get_lots(): Open lots and realized PnL of one position
- exposure(): Real local vs hard currency split of valued positions

Design Principles:
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Composable: Uses specialized calculators for each task
- Explicit options: valuation mode and costing method come in as
  EngineOptions, never read from settings here
- Prices and FX quotes are supplied by the caller; nothing is fetched

Usage:
    from argfolio.services.valuation import ValuationService

    service = ValuationService()
    valuation = service.get_portfolio(db, prices, quotes, options=options)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from argfolio.services.fixed_deposits.deriver import accrued_interest, derive_positions
from argfolio.services.fixed_deposits.types import PFDerivedState, PFPosition
from argfolio.services.ledger import LedgerRepository
from argfolio.services.lots.builder import LotBuilder
from argfolio.services.lots.types import CostingMethod, LotBuildResult
from argfolio.services.options import EngineOptions
from argfolio.services.protocols import MovementRecord
from argfolio.services.valuation.calculators import (
    AssetMetricsCalculator,
    CashCalculator,
    CurrencyExposureCalculator,
    PortfolioTotalsCalculator,
)
from argfolio.services.valuation.types import (
    ZERO,
    AssetInput,
    AssetMetrics,
    AssetPrices,
    CurrencyExposure,
    PortfolioAssetTotals,
    PortfolioValuation,
)
from argfolio.utils.date_utils import ensure_utc, utc_now
from argfolio.utils.fx_conversion import FxQuotes, ValuationMode, to_decimal

logger = logging.getLogger(__name__)

ONE = Decimal("1")
NO_PRICE = AssetPrices()


class ValuationService:
    """
    Main service for portfolio valuation operations.

    Stateless apart from its calculators; one instance is shared by every
    request.
    """

    def __init__(self, local_currency: str = "ARS") -> None:
        self.local_currency = local_currency.upper()
        self._metrics_calc = AssetMetricsCalculator(self.local_currency)
        self._totals_calc = PortfolioTotalsCalculator()
        self._cash_calc = CashCalculator(self.local_currency)
        self._exposure_calc = CurrencyExposureCalculator()
        self._lot_builder = LotBuilder(self.local_currency)

        logger.info("ValuationService initialized")

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def value_assets(
            self,
            assets: Iterable[tuple[AssetInput, AssetPrices]],
            quotes: FxQuotes,
            mode: ValuationMode = ValuationMode.LIQUIDATION,
    ) -> tuple[list[AssetMetrics], PortfolioAssetTotals]:
        """
        Value caller-supplied positions.

        Args:
            assets: (position, prices) pairs
            quotes: One quote per FX benchmark
            mode: FX convention for every conversion

        Returns:
            Tuple of (per-asset metrics, totals)
        """
        metrics = [
            self._metrics_calc.calculate(asset, prices, quotes, mode)
            for asset, prices in assets
        ]
        return metrics, self._totals_calc.calculate(metrics)

    def exposure(self, metrics: Iterable[AssetMetrics], quotes: FxQuotes) -> CurrencyExposure:
        """Split valued positions into real local and hard currency (hard at the MEP bid)."""
        return self._exposure_calc.calculate(metrics, quotes)

    def get_portfolio(
            self,
            db: Session,
            prices: Mapping[str, AssetPrices],
            quotes: FxQuotes,
            now: datetime | None = None,
            options: EngineOptions | None = None,
    ) -> PortfolioValuation:
        """
        Value the whole ledger.

        Args:
            db: Database session
            prices: Live prices keyed by instrument id
            quotes: One quote per FX benchmark
            now: Evaluation time (defaults to the current UTC time)
            options: Valuation mode, costing method, deposit defaults

        Returns:
            PortfolioValuation
        """
        ledger = LedgerRepository(db)
        movements = ledger.list_movements()
        instruments = ledger.instruments_by_id(
            m.instrument_id for m in movements if m.instrument_id is not None
        )
        return self.value_ledger(movements, instruments, prices, quotes, now, options)

    def get_lots(
            self,
            db: Session,
            instrument_id: str,
            account_id: str | None = None,
            method: CostingMethod | str | None = None,
            current_price: Decimal | None = None,
            options: EngineOptions | None = None,
    ) -> LotBuildResult:
        """
        Open lots and realized PnL of one instrument.

        Args:
            db: Database session
            instrument_id: Instrument to replay
            account_id: Restrict to one account (None replays all accounts
                        together, as one inventory)
            method: Costing method (defaults to options.costing_method)
            current_price: Marks lots to market when given

        Raises:
            InstrumentNotFoundError: Unknown instrument id
        """
        options = options or EngineOptions()
        ledger = LedgerRepository(db)
        ledger.get_instrument(instrument_id)
        movements = ledger.list_movements(account_id=account_id, instrument_id=instrument_id)
        return self._lot_builder.build(
            movements,
            method if method is not None else options.costing_method,
            current_price,
        )

    def value_ledger(
            self,
            movements: Iterable[MovementRecord],
            instruments: Mapping[str, Any],
            prices: Mapping[str, AssetPrices],
            quotes: FxQuotes,
            now: datetime | None = None,
            options: EngineOptions | None = None,
    ) -> PortfolioValuation:
        """
        Value a set of movements without touching the database.

        Args:
            movements: Ledger movements (any order)
            instruments: Instrument rows (or look-alikes) keyed by id
            prices: Live prices keyed by instrument id
            quotes: One quote per FX benchmark
            now: Evaluation time
            options: Engine options

        Returns:
            PortfolioValuation
        """
        options = options or EngineOptions()
        now = ensure_utc(now or utc_now())
        mode = options.valuation_mode
        movements = list(movements)
        warnings: list[str] = []

        # 1. Lots per (account, instrument)
        positions = self._build_positions(movements, prices, options.costing_method)
        inputs: list[tuple[AssetInput, AssetPrices]] = []

        for (account_id, instrument_id), result in positions.items():
            warnings.extend(result.warnings)
            instrument = instruments.get(instrument_id)
            if instrument is None:
                message = f"Instrument {instrument_id} has movements but no reference data"
                logger.warning(message)
                warnings.append(message)
                continue
            if result.quantity <= ZERO:
                continue
            inputs.append(
                (
                    self._position_input(account_id, instrument, result),
                    prices.get(instrument_id, NO_PRICE),
                )
            )

        # 2. Cash
        cash_balances = self._cash_calc.calculate(movements)
        for balance in cash_balances:
            inputs.append((self._cash_calc.to_asset_input(balance), NO_PRICE))

        # 3. Fixed deposits still holding money
        fixed_deposits = derive_positions(movements, quotes, now, mode, options.default_term_days)
        today = now.date()
        for pf in fixed_deposits.active + fixed_deposits.matured:
            inputs.append(self._deposit_input(pf, today))

        # 4. Metrics and totals
        metrics = [
            self._metrics_calc.calculate(asset, asset_prices, quotes, mode)
            for asset, asset_prices in inputs
        ]
        totals = self._totals_calc.calculate(
            metrics,
            [result.realized for result in positions.values()],
        )

        logger.debug(
            f"Valued {len(metrics)} positions from {len(movements)} movements "
            f"({mode.value}, {options.costing_method.value})"
        )

        return PortfolioValuation(
            as_of=now,
            mode=mode,
            assets=metrics,
            totals=totals,
            positions=positions,
            cash_balances=cash_balances,
            fixed_deposits=fixed_deposits,
            warnings=warnings,
            exposure=self._exposure_calc.calculate(metrics, quotes),
        )

    def fixed_deposit_state(
            self,
            db: Session,
            quotes: FxQuotes,
            now: datetime | None = None,
            options: EngineOptions | None = None,
    ) -> PFDerivedState:
        """Derived fixed-deposit state of the whole ledger."""
        options = options or EngineOptions()
        movements = LedgerRepository(db).list_movements()
        return derive_positions(
            movements,
            quotes,
            ensure_utc(now or utc_now()),
            options.valuation_mode,
            options.default_term_days,
        )

    # =========================================================================
    # POSITION BUILDING
    # =========================================================================

    def _build_positions(
            self,
            movements: list[MovementRecord],
            prices: Mapping[str, AssetPrices],
            method: CostingMethod,
    ) -> dict[tuple[str, str], LotBuildResult]:
        groups: dict[tuple[str, str], list[MovementRecord]] = {}
        for mov in movements:
            if mov.instrument_id is None:
                continue
            groups.setdefault((mov.account_id, mov.instrument_id), []).append(mov)

        positions = {}
        for key in sorted(groups):
            price = prices.get(key[1], NO_PRICE).current_price
            positions[key] = self._lot_builder.build(groups[key], method, price)
        return positions

    @staticmethod
    def _position_input(account_id: str, instrument: Any, result: LotBuildResult) -> AssetInput:
        asset_class = getattr(instrument.asset_class, "value", instrument.asset_class)
        quantity = result.quantity
        cost_hard = result.cost_hard

        return AssetInput(
            instrument_id=instrument.id,
            symbol=instrument.symbol,
            name=instrument.name,
            asset_class=asset_class,
            native_currency=instrument.native_currency,
            quantity=quantity,
            avg_cost_native=result.avg_cost,
            cost_basis_local=result.cost_local,
            cost_basis_hard=cost_hard,
            avg_cost_hard=cost_hard / quantity if cost_hard is not None and quantity > ZERO else None,
            cedear_ratio=to_decimal(getattr(instrument, "cedear_ratio", None)),
            underlying_symbol=getattr(instrument, "underlying_symbol", None),
            account_id=account_id,
        )

    def _deposit_input(self, pf: PFPosition, today: date) -> tuple[AssetInput, AssetPrices]:
        """A deposit valued at principal plus interest accrued to date."""
        cost_hard = None
        if pf.initial_fx is not None and pf.initial_fx > ZERO:
            cost_hard = pf.principal / pf.initial_fx

        asset = AssetInput(
            instrument_id=f"pf:{pf.id}",
            symbol="PF",
            name=pf.alias or f"Plazo Fijo {pf.institution}",
            asset_class="PF",
            native_currency=self.local_currency,
            quantity=ONE,
            avg_cost_native=pf.principal,
            cost_basis_local=pf.principal,
            cost_basis_hard=cost_hard,
            avg_cost_hard=cost_hard,
            account_id=pf.account_id,
        )
        return asset, AssetPrices(current_price=pf.principal + accrued_interest(pf, today))
