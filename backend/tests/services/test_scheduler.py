# backend/tests/services/test_scheduler.py
"""
Tests for the background settlement and accrual scheduler.
"""

import threading
from datetime import date, timedelta
from decimal import Decimal

import pytest

from argfolio.models import AssetClass, MovementType
from argfolio.services.cash_yield import AccrualReport, CashYieldService
from argfolio.services.exceptions import SettlementError
from argfolio.services.fixed_deposits import SettlementReport, SettlementScheduler, SettlementService
from argfolio.services.ledger import LedgerRepository
from argfolio.services.quote_store import LatestQuoteStore
from argfolio.utils.context import get_correlation_id
from argfolio.utils.fx_conversion import FxQuotes

from tests.conftest import NOW, create_movement


class RecordingService:
    """Stands in for SettlementService; records each pass."""

    def __init__(self, fail_first: bool = False):
        self.calls = []
        self.correlation_ids = []
        self.fail_first = fail_first
        self.called = threading.Event()

    def run(self, db, quotes, now, enabled=True):
        self.calls.append((quotes, now))
        self.correlation_ids.append(get_correlation_id())
        self.called.set()
        if self.fail_first and len(self.calls) == 1:
            raise SettlementError("boom")
        return SettlementReport()


def _seed(db):
    create_movement(
        db,
        "pf-1",
        MovementType.BUY,
        NOW - timedelta(days=40),
        asset_class=AssetClass.PF,
        quantity=Decimal("1"),
        unit_price=Decimal("200000"),
        total_amount=Decimal("200000"),
        meta={"principal": "200000", "tna": "182.5", "term_days": 30},
    )


class TestRunOnce:

    def test_settles_with_own_session(self, db, session_factory, quotes):
        _seed(db)
        store = LatestQuoteStore()
        store.update(quotes)
        scheduler = SettlementScheduler(session_factory, SettlementService(), store)

        report = scheduler.run_once(NOW)

        assert report.settled == ["pf-1"]
        assert len(LedgerRepository(db).list_movements()) == 3

    def test_runs_without_posted_quotes(self, db, session_factory):
        _seed(db)
        scheduler = SettlementScheduler(session_factory, SettlementService(), LatestQuoteStore())

        report = scheduler.run_once(NOW)

        assert report.total_credited == Decimal("230000")

    def test_passes_latest_quotes(self, session_factory, quotes):
        store = LatestQuoteStore()
        store.update(quotes)
        service = RecordingService()

        SettlementScheduler(session_factory, service, store).run_once(NOW)

        assert service.calls == [(quotes, NOW)]


    def test_pass_runs_under_its_own_correlation_id(self, session_factory):
        service = RecordingService()
        scheduler = SettlementScheduler(session_factory, service, LatestQuoteStore())

        scheduler.run_once(NOW)
        scheduler.run_once(NOW)

        first, second = service.correlation_ids
        assert first.startswith("settle-")
        assert second.startswith("settle-")
        assert first != second
        assert get_correlation_id() is None

    def test_correlation_id_cleared_after_failed_pass(self, session_factory):
        scheduler = SettlementScheduler(session_factory, RecordingService(fail_first=True), LatestQuoteStore())

        with pytest.raises(SettlementError):
            scheduler.run_once(NOW)

        assert get_correlation_id() is None


class TestAccrualPass:

    def test_accrues_after_settling(self, db, session_factory):
        create_movement(db, "d1", MovementType.DEPOSIT, NOW - timedelta(days=10), total_amount=Decimal("365000"))
        accrual = CashYieldService()
        accrual.configure(db, "broker-1", Decimal("36.5"), start_date=date(2026, 2, 26), now=NOW)
        scheduler = SettlementScheduler(session_factory, RecordingService(), LatestQuoteStore(),
                                        accrual_service=accrual)

        scheduler.run_once(NOW)

        assert scheduler.last_accrual.accrued == ["broker-1"]
        assert scheduler.last_accrual.total_interest == Decimal("1096.10")

    def test_accrual_disabled(self, db, session_factory):
        create_movement(db, "d1", MovementType.DEPOSIT, NOW - timedelta(days=10), total_amount=Decimal("365000"))
        accrual = CashYieldService()
        accrual.configure(db, "broker-1", Decimal("36.5"), start_date=date(2026, 2, 26), now=NOW)
        scheduler = SettlementScheduler(session_factory, RecordingService(), LatestQuoteStore(),
                                        accrual_service=accrual, accrue_enabled=False)

        scheduler.run_once(NOW)

        assert scheduler.last_accrual == AccrualReport()
        assert len(LedgerRepository(db).list_movements()) == 1

    def test_settlement_can_be_disabled_alone(self, session_factory):
        service = RecordingService()
        calls = []

        class RecordingAccrual:
            def run(self, db, now, enabled=True):
                calls.append(enabled)
                return AccrualReport()

        SettlementScheduler(session_factory, service, LatestQuoteStore(),
                            accrual_service=RecordingAccrual(), settle_enabled=False).run_once(NOW)

        assert calls == [True]
        assert service.calls == [(FxQuotes(), NOW)]


class TestLifecycle:

    def test_start_and_stop(self, session_factory):
        service = RecordingService()
        scheduler = SettlementScheduler(session_factory, service, LatestQuoteStore(), interval_seconds=3600)

        scheduler.start()
        assert service.called.wait(5)
        assert scheduler.is_running

        scheduler.stop()
        assert not scheduler.is_running
        assert len(service.calls) == 1

    def test_start_twice_keeps_one_thread(self, session_factory):
        service = RecordingService()
        scheduler = SettlementScheduler(session_factory, service, LatestQuoteStore(), interval_seconds=3600)

        scheduler.start()
        scheduler.start()
        service.called.wait(5)
        scheduler.stop()

        assert len(service.calls) == 1

    def test_failed_pass_does_not_kill_the_loop(self, session_factory):
        service = RecordingService(fail_first=True)
        scheduler = SettlementScheduler(session_factory, service, LatestQuoteStore(), interval_seconds=0)

        scheduler.start()
        try:
            deadline = threading.Event()
            for _ in range(50):
                if len(service.calls) >= 2:
                    break
                deadline.wait(0.1)
        finally:
            scheduler.stop()

        assert len(service.calls) >= 2
