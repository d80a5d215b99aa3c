# backend/argfolio/services/cash_yield/__init__.py
"""
Remunerated accounts: daily compounding interest on local cash.

Usage:
    from argfolio.services.cash_yield import CashYieldService, compute_yield_metrics

    service.configure(db, "mercadopago", Decimal("32"))
    report = service.run(db, now)
"""

from argfolio.services.cash_yield.accrual import (
    AccrualPlan,
    YieldMetrics,
    accrual_key,
    compute_tea,
    compute_yield_metrics,
    daily_rate,
    last_accrued_day,
    local_cash_balance,
    plan_accruals,
)
from argfolio.services.cash_yield.service import AccrualReport, CashYieldService, CashYieldStatus

__all__ = [
    "AccrualPlan",
    "AccrualReport",
    "CashYieldService",
    "CashYieldStatus",
    "YieldMetrics",
    "accrual_key",
    "compute_tea",
    "compute_yield_metrics",
    "daily_rate",
    "last_accrued_day",
    "local_cash_balance",
    "plan_accruals",
]
