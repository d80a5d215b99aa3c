# backend/argfolio/services/lots/__init__.py
"""
Lot Allocation Package.

This package decides which purchase lots a sale consumes:
- allocate_sale: pure allocation of one sale under a costing method
- LotBuilder: replays a position's ledger into open lots + realized PnL

Usage:
    from argfolio.services.lots import allocate_sale, CostingMethod

    result = allocate_sale(lots, Decimal("0.6"), Decimal("50000"), CostingMethod.FIFO)

Architecture:
    lots/
    ├── __init__.py      # This file - package exports
    ├── types.py         # Lot and allocation data classes
    ├── allocation.py    # allocate_sale() and costing method helpers
    └── builder.py       # LotBuilder (ledger replay)
"""

from argfolio.services.lots.allocation import (
    allocate_sale,
    parse_costing_method,
    costing_method_labels,
)
from argfolio.services.lots.builder import LotBuilder, manual_allocations_from_meta
from argfolio.services.lots.types import (
    CostingMethod,
    CostingMethodLabel,
    LotDetail,
    ManualAllocation,
    AllocationEntry,
    SaleAllocationResult,
    RealizedSale,
    RealizedSummary,
    LotBuildResult,
)

__all__ = [
    # Allocation
    "allocate_sale",
    "parse_costing_method",
    "costing_method_labels",
    # Ledger replay
    "LotBuilder",
    "manual_allocations_from_meta",
    # Types
    "CostingMethod",
    "CostingMethodLabel",
    "LotDetail",
    "ManualAllocation",
    "AllocationEntry",
    "SaleAllocationResult",
    "RealizedSale",
    "RealizedSummary",
    "LotBuildResult",
]
