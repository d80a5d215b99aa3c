# backend/argfolio/services/cash_yield/service.py
"""
Cash-yield settings and the writer of daily interest movements.

An accrual pass appends, per enabled account, the interest movements
plan_accruals() returns, all of one account in one transaction. Like
settlement it is idempotent:
- planning starts after the last day already in the ledger
- passes inside the process are serialized with a lock
- a concurrent writer from another process trips the unique key on
  "yield-<account>-<day>"; that account's batch is rolled back and
  counted as skipped, and the next pass plans again from the ledger
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from argfolio.models import CashYieldAccount
from argfolio.services.cash_yield.accrual import (
    AccrualPlan,
    YieldMetrics,
    compute_yield_metrics,
    local_cash_balance,
    plan_accruals,
)
from argfolio.services.exceptions import (
    AccrualError,
    CashYieldNotFoundError,
    DuplicateMovementError,
    LedgerError,
    ValidationError,
)
from argfolio.services.ledger import LedgerRepository, movement_from_record
from argfolio.utils.date_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass
class AccrualReport:
    """
    Outcome of one accrual pass.

    Attributes:
        accrued: Account ids credited by this pass
        skipped: Account ids another writer credited first
        total_interest: Interest credited by this pass
        movements_created: Number of movements appended
    """

    accrued: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    total_interest: Decimal = Decimal("0")
    movements_created: int = 0


@dataclass(frozen=True)
class CashYieldStatus:
    """A setting with the account's balance and what it yields."""

    account: CashYieldAccount
    balance: Decimal
    metrics: YieldMetrics


class CashYieldService:
    """
    The single authoritative writer of cash-yield interest.

    Thread-safe: passes share one lock per process, so the HTTP endpoint
    and the scheduler never plan the same day twice.
    """

    _lock = threading.Lock()

    def __init__(self, local_currency: str = "ARS") -> None:
        self.local_currency = local_currency

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def configure(
            self,
            db: Session,
            account_id: str,
            tna: Decimal,
            enabled: bool = True,
            start_date: date | None = None,
            now: datetime | None = None,
    ) -> CashYieldAccount:
        """
        Create or update an account's setting.

        Interest accrues from `start_date` (today when omitted on creation).
        Changing the TNA only affects days not accrued yet.

        Raises:
            ValidationError: Non-positive TNA
        """
        if tna <= 0:
            raise ValidationError("TNA must be positive", field="tna")

        account = db.get(CashYieldAccount, account_id)
        if account is None:
            first_day = start_date or ensure_utc(now or utc_now()).date()
            account = CashYieldAccount(
                account_id=account_id,
                tna=tna,
                enabled=enabled,
                last_accrued_date=first_day - timedelta(days=1),
            )
            db.add(account)
        else:
            account.tna = tna
            account.enabled = enabled
            if start_date is not None:
                account.last_accrued_date = start_date - timedelta(days=1)

        db.commit()
        db.refresh(account)
        logger.info(f"Cash yield for account {account_id}: {tna}% TNA, enabled={enabled}")
        return account

    def get(self, db: Session, account_id: str) -> CashYieldAccount:
        """
        Raises:
            CashYieldNotFoundError: Account has no setting
        """
        account = db.get(CashYieldAccount, account_id)
        if account is None:
            raise CashYieldNotFoundError(account_id)
        return account

    def list_accounts(self, db: Session) -> list[CashYieldAccount]:
        return list(db.scalars(select(CashYieldAccount).order_by(CashYieldAccount.account_id)))

    def status(self, db: Session, account_id: str) -> CashYieldStatus:
        """Current balance of the account and the yield it projects."""
        account = self.get(db, account_id)
        movements = LedgerRepository(db).list_movements(account_id=account_id)
        balance = local_cash_balance(movements, account_id, self.local_currency)
        return CashYieldStatus(
            account=account,
            balance=balance,
            metrics=compute_yield_metrics(balance, account.tna),
        )

    # =========================================================================
    # ACCRUAL
    # =========================================================================

    def run(self, db: Session, now: datetime, enabled: bool = True) -> AccrualReport:
        """
        Credit every enabled account up to yesterday.

        Args:
            db: Database session
            now: Pass time; days before its UTC date are accrued
            enabled: When False the pass is a no-op

        Raises:
            AccrualError: The database rejected a batch for a reason
                          other than an already-credited day
        """
        report = AccrualReport()
        if not enabled:
            logger.debug("Cash-yield accrual disabled, skipping pass")
            return report

        with self._lock:
            ledger = LedgerRepository(db)
            accounts = [a for a in self.list_accounts(db) if a.enabled]
            if not accounts:
                return report

            movements = ledger.list_movements()
            for account in accounts:
                plan = plan_accruals(movements, account, now, self.local_currency)
                if not plan.is_empty:
                    self._accrue_one(db, ledger, account, plan, report)

        if report.accrued:
            logger.info(
                f"Accrued cash yield on {len(report.accrued)} account(s), "
                f"credited {report.total_interest} {self.local_currency}"
            )
        return report

    def _accrue_one(
            self,
            db: Session,
            ledger: LedgerRepository,
            account: CashYieldAccount,
            plan: AccrualPlan,
            report: AccrualReport,
    ) -> None:
        try:
            ledger.append_many([movement_from_record(m) for m in plan.movements])
        except DuplicateMovementError:
            logger.info(f"Cash yield of account {account.account_id} already accrued by another writer")
            report.skipped.append(account.account_id)
            return
        except LedgerError as e:
            raise AccrualError(f"Could not accrue cash yield for account {account.account_id}: {e.message}") from e

        account.last_accrued_date = plan.last_day
        db.commit()

        report.accrued.append(account.account_id)
        report.total_interest += plan.total_interest
        report.movements_created += len(plan.movements)
