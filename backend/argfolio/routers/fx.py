# backend/argfolio/routers/fx.py
"""
FX quote endpoints.

- POST /fx/quotes   Post the latest quotes (used by background settlement)
- GET  /fx/quotes   Last posted quotes
- POST /fx/convert  Convert an amount with one benchmark
"""

from fastapi import APIRouter, Depends, HTTPException, status

from argfolio.dependencies import get_engine_options, get_quote_store
from argfolio.schemas.fx import (
    ConversionRequest,
    ConversionResponse,
    FxQuoteResponse,
    FxQuotesInput,
    FxQuotesResponse,
)
from argfolio.services.options import EngineOptions
from argfolio.services.quote_store import LatestQuoteStore
from argfolio.utils.fx_conversion import (
    ConversionDirection,
    effective_rate,
    rate_label,
    to_hard_from_local,
    to_local_from_hard,
)

router = APIRouter(
    prefix="/fx",
    tags=["FX"],
)


def _quotes_response(store: LatestQuoteStore) -> FxQuotesResponse:
    quotes = store.current_quotes()
    if quotes is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No FX quotes have been posted yet",
        )
    return FxQuotesResponse(
        mep=FxQuoteResponse.model_validate(quotes.mep),
        oficial=FxQuoteResponse.model_validate(quotes.oficial),
        cripto=FxQuoteResponse.model_validate(quotes.cripto),
        posted_at=store.posted_at,
    )


@router.post("/quotes", response_model=FxQuotesResponse, summary="Post the latest FX quotes")
def post_quotes(
        payload: FxQuotesInput,
        store: LatestQuoteStore = Depends(get_quote_store),
):
    store.update(payload.to_quotes())
    return _quotes_response(store)


@router.get("/quotes", response_model=FxQuotesResponse, summary="Last posted FX quotes")
def get_quotes(store: LatestQuoteStore = Depends(get_quote_store)):
    return _quotes_response(store)


@router.post("/convert", response_model=ConversionResponse, summary="Convert an amount")
def convert(
        payload: ConversionRequest,
        options: EngineOptions = Depends(get_engine_options),
):
    """
    Convert between local and hard currency.

    `converted` is null when the benchmark's rate is missing or zero.
    """
    mode = payload.mode or options.valuation_mode
    quote = payload.quotes.to_quotes().get(payload.benchmark)

    if payload.direction is ConversionDirection.LOCAL_TO_HARD:
        converted = to_hard_from_local(payload.amount, quote, mode)
    else:
        converted = to_local_from_hard(payload.amount, quote, mode)

    return ConversionResponse(
        amount=payload.amount,
        converted=converted,
        benchmark=payload.benchmark,
        direction=payload.direction,
        mode=mode,
        rate=effective_rate(quote, payload.direction, mode),
        rate_label=rate_label(payload.direction, mode),
    )
