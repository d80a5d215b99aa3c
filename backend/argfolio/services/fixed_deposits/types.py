# backend/argfolio/services/fixed_deposits/types.py
"""
Data types for fixed-term deposits (plazos fijos, "PF").

A deposit moves monotonically through:

    active -> matured -> closed

- active:  before its maturity day
- matured: maturity day reached, no redemption in the ledger yet
- closed:  a redemption (manual or settlement) is in the ledger
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

ZERO = Decimal("0")


class PFStatus(str, enum.Enum):
    ACTIVE = "active"
    MATURED = "matured"
    CLOSED = "closed"


class RedemptionMatch(str, enum.Enum):
    EXPLICIT = "explicit"  # redemption.meta["pf_id"] == deposit id
    HEURISTIC = "heuristic"  # same institution, redeemed after start


class Horizon(str, enum.Enum):
    """Projection horizons offered for expected earnings."""

    TODAY = "TODAY"
    TOMORROW = "TOMORROW"
    DAYS_7 = "7D"
    DAYS_30 = "30D"
    DAYS_90 = "90D"
    YEAR_1 = "1Y"

    @property
    def days(self) -> int:
        return HORIZON_DAYS[self]


HORIZON_DAYS: dict[Horizon, int] = {
    Horizon.TODAY: 1,
    Horizon.TOMORROW: 1,
    Horizon.DAYS_7: 7,
    Horizon.DAYS_30: 30,
    Horizon.DAYS_90: 90,
    Horizon.YEAR_1: 365,
}


@dataclass(frozen=True)
class PFPosition:
    """
    One fixed-term deposit reconstructed from the ledger.

    Attributes:
        id: Position id (the constitution movement id)
        movement_id: Constitution movement id
        account_id: Owning account
        institution: Bank name ("Desconocido" if not recorded)
        alias: Optional user label
        principal: Amount deposited (local currency)
        tna: Nominal annual rate, in percent (e.g. 182.5)
        tea: Effective annual rate, in percent
        term_days: Term in days
        start: Start of the deposit
        maturity: start + term_days
        expected_interest: principal × tna/100 × term/365
        expected_total: principal + expected_interest
        status: active / matured / closed
        initial_fx: FX recorded at constitution (None if not recorded)
        redeemed_by: Id of the matching redemption movement (closed only)
        match: How the redemption was matched (closed only)
    """

    id: str
    movement_id: str
    account_id: str
    institution: str
    alias: str | None
    principal: Decimal
    tna: Decimal
    tea: Decimal
    term_days: int
    start: datetime
    maturity: datetime
    expected_interest: Decimal
    expected_total: Decimal
    status: PFStatus
    initial_fx: Decimal | None = None
    redeemed_by: str | None = None
    match: RedemptionMatch | None = None


@dataclass(frozen=True)
class PFTotals:
    """
    Aggregated expected totals per bucket.

    Hard-currency figures use the OFICIAL benchmark and are None when
    that quote is unavailable.
    """

    active_local: Decimal = ZERO
    active_hard: Decimal | None = ZERO
    matured_local: Decimal = ZERO
    matured_hard: Decimal | None = ZERO


@dataclass(frozen=True)
class PFDerivedState:
    """Positions partitioned by status, plus bucket totals."""

    active: tuple[PFPosition, ...] = ()
    matured: tuple[PFPosition, ...] = ()
    closed: tuple[PFPosition, ...] = ()
    totals: PFTotals = field(default_factory=PFTotals)

    @property
    def positions(self) -> tuple[PFPosition, ...]:
        return self.active + self.matured + self.closed
