# backend/argfolio/services/fixed_deposits/__init__.py
"""
Fixed-term deposits (plazos fijos): derivation, projection and settlement.

Usage:
    from argfolio.services.fixed_deposits import derive_positions, SettlementService

    state = derive_positions(movements, quotes, now)
    report = SettlementService().run(db, quotes, now)
"""

from argfolio.services.fixed_deposits.deriver import (
    accrued_interest,
    days_remaining,
    derive_positions,
    effective_annual_rate,
    expected_interest,
    find_redemption,
    project_earnings,
    project_state,
)
from argfolio.services.fixed_deposits.scheduler import SettlementScheduler
from argfolio.services.fixed_deposits.settlement import (
    PlannedMovement,
    SettlementPlan,
    SettlementReport,
    SettlementService,
    plan_settlement,
    settlement_keys,
)
from argfolio.services.fixed_deposits.types import (
    HORIZON_DAYS,
    Horizon,
    PFDerivedState,
    PFPosition,
    PFStatus,
    PFTotals,
    RedemptionMatch,
)

__all__ = [
    # Types
    "Horizon",
    "HORIZON_DAYS",
    "PFDerivedState",
    "PFPosition",
    "PFStatus",
    "PFTotals",
    "RedemptionMatch",
    # Deriver
    "accrued_interest",
    "days_remaining",
    "derive_positions",
    "effective_annual_rate",
    "expected_interest",
    "find_redemption",
    "project_earnings",
    "project_state",
    # Settlement
    "PlannedMovement",
    "SettlementPlan",
    "SettlementReport",
    "SettlementScheduler",
    "SettlementService",
    "plan_settlement",
    "settlement_keys",
]
