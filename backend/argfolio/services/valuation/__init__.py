# backend/argfolio/services/valuation/__init__.py
"""
Valuation Service Package.

This package provides portfolio valuation in two currencies:
- Per-asset value, cost and PnL under LIQUIDATION or MARKET FX
- CEDEAR exposure and implied FX
- Cash balances per account and currency
- Real local vs hard currency exposure
- Portfolio totals including realized PnL from the lot builder

Usage:
    from argfolio.services.valuation import ValuationService

    service = ValuationService()
    valuation = service.get_portfolio(db, prices, quotes)

Architecture:
    valuation/
    ├── __init__.py      # This file - package exports
    ├── types.py         # Internal data classes
    ├── calculators.py   # Point-in-time calculators
    └── service.py       # ValuationService (orchestrator)
"""

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
from argfolio.services.valuation.service import ValuationService
from argfolio.services.valuation.types import (
    AssetInput,
    AssetMetrics,
    AssetPrices,
    CashBalance,
    CedearDetails,
    CurrencyExposure,
    PortfolioAssetTotals,
    PortfolioValuation,
)

__all__ = [
    # Main service
    "ValuationService",
    # Calculators
    "AssetMetricsCalculator",
    "CashCalculator",
    "CedearDetailsCalculator",
    "CurrencyExposureCalculator",
    "DailyChangeCalculator",
    "PortfolioTotalsCalculator",
    "fx_key_for_asset_class",
    "safe_pct",
    # Types
    "AssetInput",
    "AssetMetrics",
    "AssetPrices",
    "CashBalance",
    "CedearDetails",
    "CurrencyExposure",
    "PortfolioAssetTotals",
    "PortfolioValuation",
]
