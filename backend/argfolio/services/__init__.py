# backend/argfolio/services/__init__.py
"""
Service layer for the valuation engine.

This package holds the engine and the host services around it. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions and EngineOptions as parameters (not via Depends)
- Are easily testable via dependency injection

Usage:
    from argfolio.services import ValuationService
    from argfolio.services import SettlementService
    from argfolio.services import CashYieldService
    from argfolio.services import LedgerRepository
    from argfolio.services import allocate_sale, CostingMethod
    from argfolio.services import (
        InstrumentNotFoundError,
        DuplicateMovementError,
        SettlementError,
    )

Architecture:
    services/
    ├── __init__.py                  # This file - main exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Meta keys and business constants
    ├── protocols.py                 # Movement record / quote source protocols
    ├── options.py                   # EngineOptions passed into the core
    ├── ledger.py                    # Append-only ledger repository
    ├── quote_store.py               # Latest posted FX quotes
    ├── lots/                        # Lot allocation engine
    │   ├── allocation.py            # allocate_sale (PPP/FIFO/LIFO/CHEAPEST/MANUAL)
    │   ├── builder.py               # Ledger replay into open lots
    │   └── types.py                 # Lot data types
    ├── valuation/                   # Valuation engine
    │   ├── calculators.py           # Asset metrics, totals, cash, exposure
    │   ├── service.py               # Ledger-backed portfolio valuation
    │   └── types.py                 # Valuation data types
    ├── fixed_deposits/              # Plazo fijo engine
    │   ├── deriver.py               # Positions, accrual, projection
    │   ├── settlement.py            # Idempotent auto-settlement
    │   ├── scheduler.py             # Periodic settlement + accrual thread
    │   └── types.py                 # Fixed-deposit data types
    └── cash_yield/                  # Remunerated accounts
        ├── accrual.py               # TEA, projections, daily interest plan
        └── service.py               # Settings and idempotent accrual writer
"""

from argfolio.services.exceptions import (
    ServiceError,
    ValidationError,
    UnknownCostingMethodError,
    NotFoundError,
    InstrumentNotFoundError,
    MovementNotFoundError,
    CashYieldNotFoundError,
    LedgerError,
    DuplicateMovementError,
    SettlementError,
    AccrualError,
)
from argfolio.services.options import EngineOptions
from argfolio.services.ledger import LedgerRepository
from argfolio.services.quote_store import LatestQuoteStore
from argfolio.services.lots import (
    CostingMethod,
    LotBuilder,
    allocate_sale,
    parse_costing_method,
)
from argfolio.services.valuation import ValuationService
from argfolio.services.fixed_deposits import (
    SettlementScheduler,
    SettlementService,
    derive_positions,
    plan_settlement,
)
from argfolio.services.cash_yield import (
    CashYieldService,
    compute_yield_metrics,
    plan_accruals,
)

__all__ = [
    # Exceptions
    "ServiceError",
    "ValidationError",
    "UnknownCostingMethodError",
    "NotFoundError",
    "InstrumentNotFoundError",
    "MovementNotFoundError",
    "CashYieldNotFoundError",
    "LedgerError",
    "DuplicateMovementError",
    "SettlementError",
    "AccrualError",
    # Host services
    "EngineOptions",
    "LedgerRepository",
    "LatestQuoteStore",
    "ValuationService",
    "SettlementService",
    "SettlementScheduler",
    "CashYieldService",
    # Engine
    "CostingMethod",
    "LotBuilder",
    "allocate_sale",
    "parse_costing_method",
    "derive_positions",
    "plan_settlement",
    "compute_yield_metrics",
    "plan_accruals",
]
