# backend/argfolio/routers/fixed_deposits.py
"""
Fixed-term deposit (plazo fijo) endpoints.

- POST /fixed-deposits/state       Derived state (active / matured / closed)
- GET  /fixed-deposits/projection  Projected earnings for a horizon
- POST /fixed-deposits/settle      Run one settlement pass now

Requests without quotes use the last quotes posted to the API.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from argfolio.database import get_db
from argfolio.dependencies import (
    get_engine_options,
    get_quote_store,
    get_settlement_service,
    get_valuation_service,
    resolve_quotes,
)
from argfolio.schemas.fixed_deposits import (
    PFStateRequest,
    PFStateResponse,
    ProjectionItem,
    ProjectionResponse,
    SettlementReportResponse,
    SettlementRequest,
)
from argfolio.services.fixed_deposits import (
    Horizon,
    SettlementService,
    days_remaining,
    project_earnings,
)
from argfolio.services.options import EngineOptions
from argfolio.services.quote_store import LatestQuoteStore
from argfolio.services.valuation import ValuationService
from argfolio.utils.date_utils import utc_now


router = APIRouter(
    prefix="/fixed-deposits",
    tags=["Fixed Deposits"],
)


@router.post(
    "/state",
    response_model=PFStateResponse,
    summary="Derived fixed-deposit state",
)
def get_state(
        payload: PFStateRequest,
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
        options: EngineOptions = Depends(get_engine_options),
        store: LatestQuoteStore = Depends(get_quote_store),
):
    quotes = resolve_quotes(payload.quotes, store)
    state = service.fixed_deposit_state(db, quotes, payload.as_of, options)
    return PFStateResponse.model_validate(state)


@router.get(
    "/projection",
    response_model=ProjectionResponse,
    summary="Projected earnings of active deposits",
)
def get_projection(
        horizon: Horizon = Query(default=Horizon.DAYS_30),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
        options: EngineOptions = Depends(get_engine_options),
        store: LatestQuoteStore = Depends(get_quote_store),
):
    """
    Interest active deposits accrue within the horizon, capped at each
    deposit's remaining days. Matured deposits project nothing.
    """
    now = utc_now()
    today = now.date()
    state = service.fixed_deposit_state(db, resolve_quotes(None, store), now, options)

    items = [
        ProjectionItem(
            id=position.id,
            institution=position.institution,
            days_remaining=days_remaining(position, today),
            projected_interest=project_earnings(position, horizon, today),
        )
        for position in state.active
    ]
    return ProjectionResponse(
        horizon=horizon,
        horizon_days=horizon.days,
        total=sum((item.projected_interest for item in items), Decimal("0")),
        items=items,
    )


@router.post(
    "/settle",
    response_model=SettlementReportResponse,
    summary="Settle matured deposits now",
)
def settle(
        payload: SettlementRequest | None = None,
        db: Session = Depends(get_db),
        service: SettlementService = Depends(get_settlement_service),
        options: EngineOptions = Depends(get_engine_options),
        store: LatestQuoteStore = Depends(get_quote_store),
):
    """
    Run one settlement pass.

    Safe to call any number of times: a deposit is settled at most once.
    A no-op when auto-settlement is disabled.
    """
    quotes = resolve_quotes(payload.quotes if payload else None, store)
    report = service.run(db, quotes, utc_now(), enabled=options.auto_settle_enabled)
    return SettlementReportResponse(
        settled=report.settled,
        skipped=report.skipped,
        total_credited=report.total_credited,
        movements_created=report.movements_created,
        enabled=options.auto_settle_enabled,
    )
