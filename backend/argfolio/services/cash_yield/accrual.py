# backend/argfolio/services/cash_yield/accrual.py
"""
Daily interest of remunerated accounts ("cuentas remuneradas").

Rates are TNA in percent on a 365-day base. Interest compounds daily:

    daily_rate = tna / 100 / 365
    TEA        = (1 + daily_rate) ** 365 - 1

Catch-up: every full day after the last accrued one, up to yesterday
(UTC), gets one INTEREST movement dated that day at 00:01 UTC. Today is
not accrued until it is over. The interest of each day is added to the
balance the next day accrues on.

Everything here is pure: plan_accruals() decides, CashYieldService
writes.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from argfolio.services.constants import (
    ACCRUAL_HOUR,
    ACCRUAL_MINUTE,
    CALENDAR_DAYS_PER_YEAR,
    CASH_YIELD_KEY_PREFIX,
    CASH_YIELD_SOURCE,
    CENT,
    HUNDRED,
    META_ACCRUAL_DATE,
    META_SOURCE,
    META_TNA,
)
from argfolio.services.ledger import PlannedMovement
from argfolio.services.protocols import MovementRecord
from argfolio.services.valuation.calculators import CashCalculator
from argfolio.utils.date_utils import ensure_utc, parse_timestamp
from argfolio.utils.fx_conversion import to_decimal

ZERO = Decimal("0")
ONE = Decimal("1")


class YieldSettings(Protocol):
    """What the planner reads from an account's cash-yield setting."""

    account_id: str
    tna: Decimal
    enabled: bool
    last_accrued_date: date


# =============================================================================
# RATE MATH
# =============================================================================

def daily_rate(tna: Decimal) -> Decimal:
    return to_decimal(tna) / HUNDRED / CALENDAR_DAYS_PER_YEAR


def compute_tea(tna: Decimal) -> Decimal:
    """Effective annual rate (fraction) of a daily-compounded TNA."""
    return (ONE + daily_rate(tna)) ** CALENDAR_DAYS_PER_YEAR - ONE


@dataclass(frozen=True)
class YieldMetrics:
    """
    Yield of a balance at a TNA.

    Attributes:
        daily_rate: tna / 100 / 365
        tea: Effective annual rate (fraction)
        interest_tomorrow: balance × daily_rate
        proj_30d / proj_1y: Compounded interest over 30 / 365 days
    """

    daily_rate: Decimal
    tea: Decimal
    interest_tomorrow: Decimal
    proj_30d: Decimal
    proj_1y: Decimal


def compute_yield_metrics(balance: Decimal, tna: Decimal) -> YieldMetrics:
    rate = daily_rate(tna)
    balance = to_decimal(balance) or ZERO
    return YieldMetrics(
        daily_rate=rate,
        tea=compute_tea(tna),
        interest_tomorrow=balance * rate,
        proj_30d=balance * ((ONE + rate) ** 30 - ONE),
        proj_1y=balance * ((ONE + rate) ** CALENDAR_DAYS_PER_YEAR - ONE),
    )


# =============================================================================
# PLANNING
# =============================================================================

def accrual_key(account_id: str, day: date) -> str:
    """Id and idempotency key of the interest movement for one day."""
    return f"{CASH_YIELD_KEY_PREFIX}{account_id}-{day.isoformat()}"


def accrual_timestamp(day: date) -> datetime:
    return datetime.combine(day, time(ACCRUAL_HOUR, ACCRUAL_MINUTE), tzinfo=timezone.utc)


def is_accrual(movement: MovementRecord) -> bool:
    return (movement.meta or {}).get(META_SOURCE) == CASH_YIELD_SOURCE


def last_accrued_day(
        movements: Iterable[MovementRecord],
        config: YieldSettings,
) -> date:
    """
    Latest day already credited: the setting's own marker or the newest
    accrual in the ledger, whichever is later.
    """
    last = config.last_accrued_date
    for mov in movements:
        if mov.account_id != config.account_id or not is_accrual(mov):
            continue
        stamped = parse_timestamp((mov.meta or {}).get(META_ACCRUAL_DATE))
        day = stamped.date() if stamped is not None else ensure_utc(mov.timestamp).date()
        if day > last:
            last = day
    return last


def local_cash_balance(
        movements: Iterable[MovementRecord],
        account_id: str,
        local_currency: str = "ARS",
) -> Decimal:
    """Local-currency cash of one account (zero when it tracks no cash)."""
    calculator = CashCalculator(local_currency)
    for balance in calculator.calculate(m for m in movements if m.account_id == account_id):
        if balance.currency == calculator.local_currency:
            return balance.amount
    return ZERO


@dataclass(frozen=True)
class AccrualPlan:
    """Interest movements one account is owed, oldest day first."""

    account_id: str
    movements: tuple[PlannedMovement, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.movements

    @property
    def total_interest(self) -> Decimal:
        return sum((m.total_amount for m in self.movements), ZERO)

    @property
    def last_day(self) -> date | None:
        if not self.movements:
            return None
        return self.movements[-1].timestamp.date()


def plan_accruals(
        movements: Iterable[MovementRecord],
        config: YieldSettings,
        now: datetime,
        local_currency: str = "ARS",
) -> AccrualPlan:
    """
    Interest movements owed to one account up to yesterday. Pure.

    The balance is the account's current local cash; each day's interest
    (rounded to cents) compounds into the next day's. A disabled setting,
    a zero TNA or a non-positive balance plans nothing.
    """
    plan = AccrualPlan(account_id=config.account_id)
    tna = to_decimal(config.tna)
    if not config.enabled or tna is None or tna <= ZERO:
        return plan

    movements = list(movements)
    balance = local_cash_balance(movements, config.account_id, local_currency)
    if balance <= ZERO:
        return plan

    rate = daily_rate(tna)
    today = ensure_utc(now).date()
    day = last_accrued_day(movements, config) + timedelta(days=1)

    planned: list[PlannedMovement] = []
    while day < today:
        interest = (balance * rate).quantize(CENT, rounding=ROUND_HALF_UP)
        if interest > ZERO:
            key = accrual_key(config.account_id, day)
            planned.append(PlannedMovement(
                id=key,
                idempotency_key=key,
                timestamp=accrual_timestamp(day),
                type="INTEREST",
                account_id=config.account_id,
                asset_class="CASH_ARS",
                quantity=interest,
                unit_price=ONE,
                total_amount=interest,
                trade_currency=local_currency,
                meta={
                    META_SOURCE: CASH_YIELD_SOURCE,
                    META_ACCRUAL_DATE: day.isoformat(),
                    META_TNA: str(tna),
                },
                notes=f"Rendimiento diario {tna}% TNA",
            ))
            balance += interest
        day += timedelta(days=1)

    return AccrualPlan(account_id=config.account_id, movements=tuple(planned))
