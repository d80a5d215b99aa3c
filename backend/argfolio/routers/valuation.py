# backend/argfolio/routers/valuation.py
"""
Valuation endpoints.

- POST /valuation/assets     Value caller-supplied positions (no ledger)
- POST /valuation/portfolio  Value the stored ledger

Market data (prices, FX quotes) always comes in the request body.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from argfolio.database import get_db
from argfolio.dependencies import (
    get_engine_options,
    get_quote_store,
    get_valuation_service,
    resolve_quotes,
)
from argfolio.schemas.fixed_deposits import PFStateResponse
from argfolio.schemas.valuation import (
    AssetMetricsResponse,
    AssetValuationRequest,
    AssetValuationResponse,
    CashBalanceResponse,
    CurrencyExposureResponse,
    PortfolioTotalsResponse,
    PortfolioValuationRequest,
    PortfolioValuationResponse,
)
from argfolio.services.options import EngineOptions
from argfolio.services.quote_store import LatestQuoteStore
from argfolio.services.valuation import ValuationService

router = APIRouter(
    prefix="/valuation",
    tags=["Valuation"],
)


@router.post(
    "/assets",
    response_model=AssetValuationResponse,
    summary="Value a list of positions",
)
def value_assets(
        payload: AssetValuationRequest,
        service: ValuationService = Depends(get_valuation_service),
        options: EngineOptions = Depends(get_engine_options),
        store: LatestQuoteStore = Depends(get_quote_store),
):
    """
    Value positions sent inline, with their own cost basis and prices.

    Positions without a usable price come back with null value and PnL.
    """
    mode = payload.mode or options.valuation_mode
    quotes = resolve_quotes(payload.quotes, store)
    metrics, totals = service.value_assets(
        ((item.to_asset(), item.to_prices()) for item in payload.assets),
        quotes,
        mode,
    )
    return AssetValuationResponse(
        mode=mode,
        assets=[AssetMetricsResponse.model_validate(m) for m in metrics],
        totals=PortfolioTotalsResponse.model_validate(totals),
        exposure=CurrencyExposureResponse.model_validate(service.exposure(metrics, quotes)),
    )


@router.post(
    "/portfolio",
    response_model=PortfolioValuationResponse,
    summary="Value the stored ledger",
)
def value_portfolio(
        payload: PortfolioValuationRequest,
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
        options: EngineOptions = Depends(get_engine_options),
        store: LatestQuoteStore = Depends(get_quote_store),
):
    """
    Replay the ledger into lots, cash and fixed deposits, then value
    everything with the supplied prices and quotes.

    `mode` and `costing_method` override the configured defaults for
    this request only.
    """
    options = options.with_overrides(
        valuation_mode=payload.mode,
        costing_method=payload.costing_method,
    )
    quotes = resolve_quotes(payload.quotes, store)
    prices = {key: price.to_prices() for key, price in payload.prices.items()}

    valuation = service.get_portfolio(db, prices, quotes, payload.as_of, options)

    return PortfolioValuationResponse(
        as_of=valuation.as_of,
        mode=valuation.mode,
        costing_method=options.costing_method,
        assets=[AssetMetricsResponse.model_validate(m) for m in valuation.assets],
        totals=PortfolioTotalsResponse.model_validate(valuation.totals),
        cash_balances=[CashBalanceResponse.model_validate(c) for c in valuation.cash_balances],
        fixed_deposits=(
            PFStateResponse.model_validate(valuation.fixed_deposits)
            if valuation.fixed_deposits is not None else None
        ),
        warnings=valuation.warnings,
        exposure=(
            CurrencyExposureResponse.model_validate(valuation.exposure)
            if valuation.exposure is not None else None
        ),
    )
