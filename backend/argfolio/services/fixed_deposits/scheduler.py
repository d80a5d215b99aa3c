# backend/argfolio/services/fixed_deposits/scheduler.py
"""
Background runner for fixed-deposit settlement and cash-yield accrual.

A daemon thread wakes every `interval_seconds`, opens its own session and
runs one pass: SettlementService.run(), then CashYieldService.run() when
an accrual service is given (settlement credits cash first, so matured
deposits start earning the same day).

Settlement amounts are in local currency and do not depend on FX; quotes
only feed the derived hard totals, so a pass runs with empty quotes when
none have been posted yet.

Each pass logs under its own correlation id ("settle-<uuid>").

Usage:
    scheduler = SettlementScheduler(SessionLocal, SettlementService(), quote_store,
                                    accrual_service=CashYieldService())
    scheduler.start()
    ...
    scheduler.stop()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from argfolio.services.exceptions import ServiceError
from argfolio.services.fixed_deposits.settlement import SettlementReport, SettlementService
from argfolio.services.protocols import QuoteSource
from argfolio.utils.context import clear_correlation_id, new_pass_id, set_correlation_id
from argfolio.utils.date_utils import utc_now
from argfolio.utils.fx_conversion import FxQuotes

if TYPE_CHECKING:
    from argfolio.services.cash_yield import AccrualReport, CashYieldService

logger = logging.getLogger(__name__)


class SettlementScheduler:
    """Periodically settles matured fixed deposits and accrues cash yield."""

    def __init__(
            self,
            session_factory: Callable[[], Session],
            service: SettlementService,
            quote_source: QuoteSource,
            interval_seconds: int = 300,
            accrual_service: CashYieldService | None = None,
            settle_enabled: bool = True,
            accrue_enabled: bool = True,
    ) -> None:
        self._session_factory = session_factory
        self._service = service
        self._quote_source = quote_source
        self._interval = interval_seconds
        self._accrual_service = accrual_service
        self._settle_enabled = settle_enabled
        self._accrue_enabled = accrue_enabled
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_accrual: AccrualReport | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, now: datetime | None = None) -> SettlementReport:
        """Run a single pass in the calling thread."""
        now = now or utc_now()
        quotes = self._quote_source.current_quotes() or FxQuotes()
        set_correlation_id(new_pass_id())
        db = self._session_factory()
        try:
            report = self._service.run(db, quotes, now, enabled=self._settle_enabled)
            if self._accrual_service is not None:
                self.last_accrual = self._accrual_service.run(db, now, enabled=self._accrue_enabled)
            return report
        finally:
            db.close()
            clear_correlation_id()

    def _loop(self) -> None:
        logger.info(f"Settlement scheduler started (every {self._interval}s)")
        while not self._stop.is_set():
            try:
                self.run_once()
            except ServiceError as e:
                logger.error(f"Scheduler pass failed: {e}")
            except Exception:
                logger.exception("Unexpected error in scheduler pass")
            self._stop.wait(self._interval)
        logger.info("Settlement scheduler stopped")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="pf-settlement",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
