# backend/argfolio/routers/cash_yield.py
"""
Remunerated-account (cash yield) endpoints.

- PUT  /accounts/{account_id}/cash-yield  Create or update the setting
- GET  /accounts/{account_id}/cash-yield  Setting, balance and projected yield
- GET  /cash-yield                        All settings
- POST /cash-yield/accrue                 Credit interest up to yesterday now
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from argfolio.database import get_db
from argfolio.dependencies import get_cash_yield_service, get_engine_options
from argfolio.schemas.cash_yield import (
    AccrualReportResponse,
    CashYieldConfigRequest,
    CashYieldConfigResponse,
    CashYieldStatusResponse,
    YieldMetricsResponse,
)
from argfolio.services.cash_yield import CashYieldService
from argfolio.services.options import EngineOptions
from argfolio.utils.date_utils import utc_now

router = APIRouter(tags=["Cash Yield"])


def _status_response(service: CashYieldService, db: Session, account_id: str) -> CashYieldStatusResponse:
    status = service.status(db, account_id)
    return CashYieldStatusResponse(
        config=CashYieldConfigResponse.model_validate(status.account),
        balance=status.balance,
        metrics=YieldMetricsResponse.model_validate(status.metrics),
    )


@router.put(
    "/accounts/{account_id}/cash-yield",
    response_model=CashYieldStatusResponse,
    summary="Configure an account's cash yield",
)
def configure_cash_yield(
        account_id: str,
        payload: CashYieldConfigRequest,
        db: Session = Depends(get_db),
        service: CashYieldService = Depends(get_cash_yield_service),
):
    """
    Interest accrues daily from `start_date` on the account's local cash.
    A new TNA applies to days not credited yet.
    """
    service.configure(
        db,
        account_id,
        payload.tna,
        enabled=payload.enabled,
        start_date=payload.start_date,
    )
    return _status_response(service, db, account_id)


@router.get(
    "/accounts/{account_id}/cash-yield",
    response_model=CashYieldStatusResponse,
    summary="Cash yield of an account",
)
def get_cash_yield(
        account_id: str,
        db: Session = Depends(get_db),
        service: CashYieldService = Depends(get_cash_yield_service),
):
    """
    **Errors:**
    - 404: the account has no cash-yield setting
    """
    return _status_response(service, db, account_id)


@router.get(
    "/cash-yield",
    response_model=list[CashYieldConfigResponse],
    summary="All cash-yield settings",
)
def list_cash_yield(
        db: Session = Depends(get_db),
        service: CashYieldService = Depends(get_cash_yield_service),
):
    return service.list_accounts(db)


@router.post(
    "/cash-yield/accrue",
    response_model=AccrualReportResponse,
    summary="Accrue cash yield now",
)
def accrue(
        db: Session = Depends(get_db),
        service: CashYieldService = Depends(get_cash_yield_service),
        options: EngineOptions = Depends(get_engine_options),
):
    """
    Run one accrual pass. Safe to call any number of times: each day is
    credited at most once. A no-op when auto-accrual is disabled.
    """
    report = service.run(db, utc_now(), enabled=options.auto_accrue_enabled)
    return AccrualReportResponse(
        accrued=report.accrued,
        skipped=report.skipped,
        total_interest=report.total_interest,
        movements_created=report.movements_created,
        enabled=options.auto_accrue_enabled,
    )
