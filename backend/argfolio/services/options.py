# backend/argfolio/services/options.py
"""
Explicit engine options.

Runtime preferences (valuation mode, costing method, background passes) are
read from settings ONCE, at the host boundary, and handed to the engines
as this frozen value. Engine functions never read settings themselves.

Usage:
    from argfolio.config import settings
    from argfolio.services.options import EngineOptions

    options = EngineOptions.from_settings(settings)
    service.get_portfolio(db, prices, quotes, options)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from argfolio.services.constants import DEFAULT_PF_TERM_DAYS
from argfolio.services.lots.allocation import parse_costing_method
from argfolio.services.lots.types import CostingMethod
from argfolio.utils.fx_conversion import ValuationMode

if TYPE_CHECKING:
    from argfolio.config import Settings


@dataclass(frozen=True)
class EngineOptions:
    """
    Behaviour switches passed into every engine entry point.

    Attributes:
        valuation_mode: LIQUIDATION (bid/ask) or MARKET (mid)
        costing_method: Lot consumption strategy for realized PnL
        default_term_days: Term assumed for deposits recorded without one
        auto_settle_enabled: Whether settlement passes may write
        auto_accrue_enabled: Whether cash-yield accrual passes may write
        local_currency: Portfolio owner's domestic currency
    """

    valuation_mode: ValuationMode = ValuationMode.LIQUIDATION
    costing_method: CostingMethod = CostingMethod.FIFO
    default_term_days: int = DEFAULT_PF_TERM_DAYS
    auto_settle_enabled: bool = True
    auto_accrue_enabled: bool = True
    local_currency: str = "ARS"

    @classmethod
    def from_settings(cls, settings: Settings) -> EngineOptions:
        return cls(
            valuation_mode=ValuationMode(settings.valuation_mode),
            costing_method=parse_costing_method(settings.costing_method),
            default_term_days=settings.default_term_days,
            auto_settle_enabled=settings.auto_settle_enabled,
            auto_accrue_enabled=settings.auto_accrue_enabled,
            local_currency=settings.local_currency.upper(),
        )

    def with_overrides(
            self,
            valuation_mode: ValuationMode | str | None = None,
            costing_method: CostingMethod | str | None = None,
    ) -> EngineOptions:
        """Copy with per-request overrides (None keeps the current value)."""
        return EngineOptions(
            valuation_mode=ValuationMode(valuation_mode) if valuation_mode is not None else self.valuation_mode,
            costing_method=parse_costing_method(costing_method) if costing_method is not None else self.costing_method,
            default_term_days=self.default_term_days,
            auto_settle_enabled=self.auto_settle_enabled,
            auto_accrue_enabled=self.auto_accrue_enabled,
            local_currency=self.local_currency,
        )
