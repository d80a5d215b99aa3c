# backend/argfolio/services/fixed_deposits/deriver.py
"""
Fixed-deposit position deriver.

Rebuilds every fixed-term deposit from the ledger:

    constitution: PF-tagged BUY or DEPOSIT
    redemption:   PF-tagged SELL or WITHDRAW

Formulas (TNA quoted on a 365-day base):
    maturity          = start + term_days
    expected_interest = principal × tna/100 × term_days/365
    TEA               = (1 + tna/100 × term_days/365) ^ (365/term_days) - 1

The deriver is pure: the same movements, quotes and `now` always produce
an equal PFDerivedState. It never writes to the ledger; settlement does.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from decimal import Decimal

from argfolio.services.constants import (
    CALENDAR_DAYS_PER_YEAR,
    DEFAULT_INSTITUTION,
    DEFAULT_PF_TERM_DAYS,
    HUNDRED,
    META_ALIAS,
    META_PF_ID,
    META_PRINCIPAL,
    META_START_DATE,
    META_TERM_DAYS,
    META_TNA,
)
from argfolio.services.fixed_deposits.types import (
    ZERO,
    Horizon,
    PFDerivedState,
    PFPosition,
    PFStatus,
    PFTotals,
    RedemptionMatch,
)
from argfolio.services.protocols import MovementRecord, movement_asset_class, movement_type
from argfolio.utils.date_utils import days_between, ensure_utc, parse_timestamp
from argfolio.utils.fx_conversion import FxQuotes, ValuationMode, to_decimal, to_hard_from_local

logger = logging.getLogger(__name__)

ONE = Decimal("1")

CONSTITUTION_TYPES = frozenset({"BUY", "DEPOSIT"})
REDEMPTION_TYPES = frozenset({"SELL", "WITHDRAW"})


def is_constitution(movement: MovementRecord) -> bool:
    return movement_asset_class(movement) == "PF" and movement_type(movement) in CONSTITUTION_TYPES


def is_redemption(movement: MovementRecord) -> bool:
    return movement_asset_class(movement) == "PF" and movement_type(movement) in REDEMPTION_TYPES


# =============================================================================
# RATE MATH
# =============================================================================

def expected_interest(principal: Decimal, tna: Decimal, term_days: int) -> Decimal:
    """Simple interest over the term: principal × tna/100 × days/365."""
    return principal * (tna / HUNDRED) * Decimal(term_days) / Decimal(CALENDAR_DAYS_PER_YEAR)


def effective_annual_rate(tna: Decimal, term_days: int) -> Decimal:
    """
    TEA in percent, compounding the term's return over a year.

    Returns 0 for a non-positive term.
    """
    if term_days <= 0:
        return ZERO
    days = Decimal(term_days)
    year = Decimal(CALENDAR_DAYS_PER_YEAR)
    period_return = (tna / HUNDRED) * days / year
    base = ONE + period_return
    if base <= ZERO:
        return ZERO
    return (base ** (year / days) - ONE) * HUNDRED


# =============================================================================
# POSITION BUILDING
# =============================================================================

def _meta(movement: MovementRecord) -> dict:
    return movement.meta or {}


def _term_days(movement: MovementRecord, default_term_days: int) -> int:
    raw = to_decimal(_meta(movement).get(META_TERM_DAYS))
    if raw is None or raw <= ZERO:
        return default_term_days
    return int(raw)


def _principal(movement: MovementRecord) -> Decimal:
    principal = to_decimal(_meta(movement).get(META_PRINCIPAL))
    if principal is not None and principal > ZERO:
        return principal
    total = to_decimal(movement.total_amount)
    if total is not None and total > ZERO:
        return total
    return to_decimal(movement.quantity) or ZERO


def _start(movement: MovementRecord) -> datetime:
    return parse_timestamp(_meta(movement).get(META_START_DATE)) or ensure_utc(movement.timestamp)


def find_redemption(
        constitution: MovementRecord,
        redemptions: Iterable[MovementRecord],
) -> tuple[MovementRecord, RedemptionMatch] | None:
    """
    Find the redemption that closes a deposit.

    1. Explicit: a redemption whose meta["pf_id"] names this deposit.
    2. Heuristic (legacy rows without a link): a redemption not linked to
       another deposit, at the same institution, dated at or after the
       deposit started (meta["start_date"] when back-dated).

    Returns:
        (redemption, match kind), or None if the deposit is still open
    """
    redemptions = list(redemptions)

    for redemption in redemptions:
        if _meta(redemption).get(META_PF_ID) == constitution.id:
            return redemption, RedemptionMatch.EXPLICIT

    opened_at = _start(constitution)
    for redemption in redemptions:
        if _meta(redemption).get(META_PF_ID):
            continue
        if constitution.institution and redemption.institution \
                and constitution.institution != redemption.institution:
            continue
        if ensure_utc(redemption.timestamp) < opened_at:
            continue
        logger.warning(
            f"Fixed deposit {constitution.id} matched to redemption {redemption.id} "
            f"by institution and date (no pf_id link)"
        )
        return redemption, RedemptionMatch.HEURISTIC

    return None


def _build_position(
        constitution: MovementRecord,
        redemptions: list[MovementRecord],
        today: date,
        default_term_days: int,
) -> PFPosition:
    meta = _meta(constitution)
    principal = _principal(constitution)
    tna = to_decimal(meta.get(META_TNA)) or ZERO
    term_days = _term_days(constitution, default_term_days)
    start = _start(constitution)
    maturity = start + timedelta(days=term_days)
    interest = expected_interest(principal, tna, term_days)

    match = find_redemption(constitution, redemptions)
    if match is not None:
        status = PFStatus.CLOSED
    elif today >= maturity.date():
        status = PFStatus.MATURED
    else:
        status = PFStatus.ACTIVE

    return PFPosition(
        id=constitution.id,
        movement_id=constitution.id,
        account_id=constitution.account_id,
        institution=constitution.institution or DEFAULT_INSTITUTION,
        alias=meta.get(META_ALIAS),
        principal=principal,
        tna=tna,
        tea=effective_annual_rate(tna, term_days),
        term_days=term_days,
        start=start,
        maturity=maturity,
        expected_interest=interest,
        expected_total=principal + interest,
        status=status,
        initial_fx=to_decimal(constitution.fx_at_trade),
        redeemed_by=match[0].id if match else None,
        match=match[1] if match else None,
    )


def _sum_expected(positions: Iterable[PFPosition]) -> Decimal:
    return sum((p.expected_total for p in positions), ZERO)


def derive_positions(
        movements: Iterable[MovementRecord],
        quotes: FxQuotes,
        now: datetime,
        mode: ValuationMode = ValuationMode.LIQUIDATION,
        default_term_days: int = DEFAULT_PF_TERM_DAYS,
) -> PFDerivedState:
    """
    Derive every fixed deposit's state from the ledger.

    Args:
        movements: All ledger movements (non-PF rows are ignored)
        quotes: FX quotes; hard totals use the OFICIAL benchmark
        now: Evaluation time; the calendar day decides maturity
        mode: FX convention for the hard totals
        default_term_days: Term used when a deposit has none recorded

    Returns:
        PFDerivedState with each bucket sorted by maturity then id
    """
    movements = list(movements)
    constitutions = [m for m in movements if is_constitution(m)]
    redemptions = [m for m in movements if is_redemption(m)]
    today = ensure_utc(now).date()

    positions = [
        _build_position(c, redemptions, today, default_term_days)
        for c in constitutions
    ]
    positions.sort(key=lambda p: (p.maturity, p.id))

    active = tuple(p for p in positions if p.status is PFStatus.ACTIVE)
    matured = tuple(p for p in positions if p.status is PFStatus.MATURED)
    closed = tuple(p for p in positions if p.status is PFStatus.CLOSED)

    active_local = _sum_expected(active)
    matured_local = _sum_expected(matured)
    oficial = quotes.oficial

    totals = PFTotals(
        active_local=active_local,
        active_hard=to_hard_from_local(active_local, oficial, mode),
        matured_local=matured_local,
        matured_hard=to_hard_from_local(matured_local, oficial, mode),
    )

    return PFDerivedState(active=active, matured=matured, closed=closed, totals=totals)


# =============================================================================
# PROJECTION
# =============================================================================

def days_remaining(position: PFPosition, today: date) -> int:
    """Calendar days until maturity, never negative."""
    return max(0, days_between(today, position.maturity.date()))


def accrued_interest(position: PFPosition, today: date) -> Decimal:
    """
    Interest earned so far, accrued linearly over the term.

    Matured and closed deposits have earned the full expected interest.
    """
    if position.status is not PFStatus.ACTIVE:
        return position.expected_interest
    if position.term_days <= 0:
        return ZERO
    elapsed = min(max(days_between(position.start.date(), today), 0), position.term_days)
    return position.expected_interest * Decimal(elapsed) / Decimal(position.term_days)


def project_earnings(position: PFPosition, horizon_days: int | Horizon, today: date) -> Decimal:
    """
    Interest an active deposit accrues within a horizon.

    expected_interest × min(horizon, days_remaining) / term_days.
    Matured and closed deposits project 0.
    """
    if position.status is not PFStatus.ACTIVE or position.term_days <= 0:
        return ZERO
    if isinstance(horizon_days, Horizon):
        horizon_days = horizon_days.days
    accrual_days = min(max(horizon_days, 0), days_remaining(position, today))
    return position.expected_interest * Decimal(accrual_days) / Decimal(position.term_days)


def project_state(state: PFDerivedState, horizon: int | Horizon, today: date) -> Decimal:
    """Projected earnings of every active deposit."""
    return sum((project_earnings(p, horizon, today) for p in state.active), ZERO)
