# backend/argfolio/services/fixed_deposits/settlement.py
"""
Idempotent auto-settlement of matured fixed deposits.

For each matured deposit that has not been settled yet, one pass writes
exactly two movements in one transaction:

    pf-settle:<id>  SELL of the deposit (PF, quantity 1, expected total)
    pf-credit:<id>  DEPOSIT of the same amount into the account's pesos

Both carry a deterministic idempotency key (and use it as their id), so
any number of passes (concurrent ones included) settles each deposit at
most once:
- plan_settlement() skips deposits whose keys are already in the ledger
- SettlementService serializes passes inside the process with a lock
- the unique constraint on idempotency_key rejects a concurrent writer
  from another process; that batch is rolled back and counted as skipped

Settlement never deletes or rewrites the constitution: it only appends.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from argfolio.services.constants import (
    DEFAULT_PF_TERM_DAYS,
    META_PF_ACTION,
    META_PF_ID,
    META_SOURCE,
    META_SOURCE_PF_ID,
    PF_CREDIT_KEY_PREFIX,
    PF_SETTLE_ACTION,
    PF_SETTLE_KEY_PREFIX,
    PF_SETTLEMENT_SOURCE,
)
from argfolio.services.exceptions import DuplicateMovementError, LedgerError, SettlementError
from argfolio.services.fixed_deposits.deriver import derive_positions
from argfolio.services.fixed_deposits.types import PFPosition
from argfolio.services.ledger import LedgerRepository, PlannedMovement, movement_from_record
from argfolio.services.protocols import MovementRecord
from argfolio.utils.date_utils import ensure_utc
from argfolio.utils.fx_conversion import FxQuotes, ValuationMode

logger = logging.getLogger(__name__)

ONE = Decimal("1")


def settlement_keys(pf_id: str) -> tuple[str, str]:
    """Idempotency keys (redemption, cash credit) for a deposit."""
    return f"{PF_SETTLE_KEY_PREFIX}{pf_id}", f"{PF_CREDIT_KEY_PREFIX}{pf_id}"


@dataclass(frozen=True)
class SettlementPlan:
    """Deposits to settle now and the movements that settle them."""

    deposits: tuple[PFPosition, ...] = ()
    movements: tuple[PlannedMovement, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.deposits


@dataclass
class SettlementReport:
    """
    Outcome of one settlement pass.

    Attributes:
        settled: Deposit ids settled by this pass
        skipped: Deposit ids another writer settled first
        total_credited: Cash credited by this pass
        movements_created: Number of movements appended
    """

    settled: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    total_credited: Decimal = Decimal("0")
    movements_created: int = 0


def _existing_keys(movements: Iterable[MovementRecord]) -> set[str]:
    keys = set()
    for mov in movements:
        keys.add(mov.id)
        key = getattr(mov, "idempotency_key", None)
        if key:
            keys.add(key)
    return keys


def _settlement_movements(position: PFPosition, now: datetime, local_currency: str) -> tuple[PlannedMovement, PlannedMovement]:
    settle_key, credit_key = settlement_keys(position.id)
    amount = position.expected_total

    redemption = PlannedMovement(
        id=settle_key,
        idempotency_key=settle_key,
        timestamp=now,
        type="SELL",
        account_id=position.account_id,
        asset_class="PF",
        institution=position.institution,
        quantity=ONE,
        unit_price=amount,
        total_amount=amount,
        trade_currency=local_currency,
        meta={META_PF_ID: position.id, META_PF_ACTION: PF_SETTLE_ACTION},
        notes="Vencimiento PF (auto-liquidación)",
    )
    credit = PlannedMovement(
        id=credit_key,
        idempotency_key=credit_key,
        timestamp=now,
        type="DEPOSIT",
        account_id=position.account_id,
        asset_class="CASH_ARS",
        institution=position.institution,
        quantity=amount,
        unit_price=ONE,
        total_amount=amount,
        trade_currency=local_currency,
        meta={META_SOURCE: PF_SETTLEMENT_SOURCE, META_SOURCE_PF_ID: position.id},
        notes="Acreditación PF vencido (auto)",
    )
    return redemption, credit


def plan_settlement(
        movements: Iterable[MovementRecord],
        quotes: FxQuotes,
        now: datetime,
        mode: ValuationMode = ValuationMode.LIQUIDATION,
        default_term_days: int = DEFAULT_PF_TERM_DAYS,
        local_currency: str = "ARS",
) -> SettlementPlan:
    """
    Decide which matured deposits to settle. Pure: writes nothing.

    A matured deposit is skipped when either of its settlement keys is
    already present (as an id or idempotency key), so a partially visible
    earlier settlement is never duplicated.

    Returns:
        SettlementPlan in maturity order
    """
    movements = list(movements)
    now = ensure_utc(now)
    state = derive_positions(movements, quotes, now, mode, default_term_days)
    existing = _existing_keys(movements)

    deposits = []
    planned: list[PlannedMovement] = []
    for position in state.matured:
        if any(key in existing for key in settlement_keys(position.id)):
            continue
        deposits.append(position)
        planned.extend(_settlement_movements(position, now, local_currency))

    return SettlementPlan(deposits=tuple(deposits), movements=tuple(planned))


class SettlementService:
    """
    The single authoritative writer of settlement movements.

    Thread-safe: passes are serialized with a lock shared by every
    instance in the process (the HTTP endpoint and the scheduler may
    call run() at the same time).
    """

    _lock = threading.Lock()

    def __init__(
            self,
            mode: ValuationMode = ValuationMode.LIQUIDATION,
            default_term_days: int = DEFAULT_PF_TERM_DAYS,
            local_currency: str = "ARS",
    ) -> None:
        self.mode = mode
        self.default_term_days = default_term_days
        self.local_currency = local_currency

    def run(
            self,
            db: Session,
            quotes: FxQuotes,
            now: datetime,
            enabled: bool = True,
    ) -> SettlementReport:
        """
        Settle every matured, unsettled deposit.

        Args:
            db: Database session
            quotes: FX quotes (only used for derived hard totals)
            now: Settlement time; becomes the movements' timestamp
            enabled: When False the pass is a no-op

        Returns:
            SettlementReport

        Raises:
            SettlementError: The database rejected a batch for a reason
                             other than an already-settled deposit
        """
        report = SettlementReport()
        if not enabled:
            logger.debug("Auto-settlement disabled, skipping pass")
            return report

        with self._lock:
            ledger = LedgerRepository(db)
            plan = plan_settlement(
                ledger.list_movements(),
                quotes,
                now,
                self.mode,
                self.default_term_days,
                self.local_currency,
            )
            if plan.is_empty:
                return report

            for position in plan.deposits:
                self._settle_one(ledger, position, plan, report)

        if report.settled:
            logger.info(
                f"Settled {len(report.settled)} fixed deposit(s), "
                f"credited {report.total_credited} {self.local_currency}"
            )
        return report

    def _settle_one(
            self,
            ledger: LedgerRepository,
            position: PFPosition,
            plan: SettlementPlan,
            report: SettlementReport,
    ) -> None:
        keys = settlement_keys(position.id)
        records = [m for m in plan.movements if m.idempotency_key in keys]

        try:
            ledger.append_many([movement_from_record(m) for m in records])
        except DuplicateMovementError:
            logger.info(f"Fixed deposit {position.id} already settled by another writer")
            report.skipped.append(position.id)
            return
        except LedgerError as e:
            raise SettlementError(f"Could not settle fixed deposit {position.id}: {e.message}") from e

        report.settled.append(position.id)
        report.total_credited += position.expected_total
        report.movements_created += len(records)
