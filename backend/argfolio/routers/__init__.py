# backend/argfolio/routers/__init__.py
"""
API routers for Argfolio.

Each router handles a specific domain:
- instruments: Instrument reference data
- movements: Append-only ledger
- fx: FX quotes and conversions
- valuation: Asset and portfolio valuation
- lots: Open lots, realized sales and allocation previews
- fixed_deposits: Fixed-term deposit state, projection and settlement
- cash_yield: Remunerated-account settings and daily interest accrual
"""

from argfolio.routers.cash_yield import router as cash_yield_router
from argfolio.routers.fixed_deposits import router as fixed_deposits_router
from argfolio.routers.fx import router as fx_router
from argfolio.routers.instruments import router as instruments_router
from argfolio.routers.lots import router as lots_router
from argfolio.routers.movements import router as movements_router
from argfolio.routers.valuation import router as valuation_router

__all__ = [
    "cash_yield_router",
    "fixed_deposits_router",
    "fx_router",
    "instruments_router",
    "lots_router",
    "movements_router",
    "valuation_router",
]
