# backend/argfolio/routers/movements.py
"""
Ledger movement endpoints.

The ledger is append-only: there is no update or delete endpoint.
Corrections are recorded as new movements.

- POST /movements      Append a movement
- GET  /movements      List movements (chronological, filterable)
- GET  /movements/{id} Get one movement

BUY and SELL movements posted without fx_at_trade get the rate of the
last posted quotes for their benchmark (ask for buys, bid for sells).
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from argfolio.dependencies import get_ledger, get_quote_store
from argfolio.models import AssetClass, Movement, MovementType
from argfolio.schemas.movements import MovementCreate, MovementListResponse, MovementResponse
from argfolio.services.constants import META_FX_KEY, META_FX_SIDE
from argfolio.services.ledger import LedgerRepository
from argfolio.services.quote_store import LatestQuoteStore
from argfolio.services.valuation.calculators import fx_key_for_asset_class
from argfolio.utils.fx_conversion import trade_snapshot_rate

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/movements",
    tags=["Movements"],
)


# =============================================================================
# HELPERS
# =============================================================================

def _snapshot_fx(
        payload: MovementCreate,
        meta: dict[str, Any] | None,
        ledger: LedgerRepository,
        store: LatestQuoteStore,
) -> tuple[Decimal | None, dict[str, Any] | None]:
    """fx_at_trade for a trade sent without one, from the last posted quotes."""
    if payload.fx_at_trade is not None or payload.type not in (MovementType.BUY, MovementType.SELL):
        return payload.fx_at_trade, meta

    asset_class = payload.asset_class
    if asset_class is None and payload.instrument_id is not None:
        asset_class = ledger.get_instrument(payload.instrument_id).asset_class
    # Fixed deposits carry no trade-time rate
    if asset_class is None or asset_class == AssetClass.PF:
        return None, meta

    quotes = store.current_quotes()
    if quotes is None:
        return None, meta

    fx_key = fx_key_for_asset_class(asset_class)
    quote = quotes.get(fx_key)
    if quote.is_empty:
        return None, meta

    rate, side = trade_snapshot_rate(payload.type.value, quote)
    if rate <= 0:
        return None, meta

    meta = dict(meta or {})
    meta[META_FX_KEY] = fx_key.value
    meta[META_FX_SIDE] = side
    return rate, meta


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/",
    response_model=MovementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Append a movement to the ledger",
)
def create_movement(
        payload: MovementCreate,
        ledger: LedgerRepository = Depends(get_ledger),
        store: LatestQuoteStore = Depends(get_quote_store),
):
    """
    Append one movement.

    **Errors:**
    - 404: instrument_id does not exist
    - 409: idempotency_key already used
    """
    fx_at_trade, meta = _snapshot_fx(payload, payload.resolved_meta(), ledger, store)
    movement = Movement(
        timestamp=payload.timestamp,
        type=payload.type,
        account_id=payload.account_id,
        instrument_id=payload.instrument_id,
        asset_class=payload.asset_class,
        institution=payload.institution,
        quantity=payload.quantity,
        unit_price=payload.unit_price,
        total_amount=payload.resolved_total(),
        fee_amount=payload.fee_amount,
        trade_currency=payload.trade_currency,
        fx_at_trade=fx_at_trade,
        notes=payload.notes,
        meta=meta,
        idempotency_key=payload.idempotency_key,
    )
    created = ledger.append(movement)
    logger.info(f"Recorded {created.type.value} {created.id} on account {created.account_id}")
    return created


@router.get(
    "/",
    response_model=MovementListResponse,
    summary="List movements",
)
def list_movements(
        account_id: str | None = Query(default=None),
        instrument_id: str | None = Query(default=None),
        asset_class: AssetClass | None = Query(default=None),
        since: datetime | None = Query(default=None),
        until: datetime | None = Query(default=None),
        ledger: LedgerRepository = Depends(get_ledger),
):
    items = ledger.list_movements(
        account_id=account_id,
        instrument_id=instrument_id,
        asset_class=asset_class,
        since=since,
        until=until,
    )
    return {"items": items, "total": len(items)}


@router.get(
    "/{movement_id}",
    response_model=MovementResponse,
    summary="Get a movement",
)
def get_movement(
        movement_id: str,
        ledger: LedgerRepository = Depends(get_ledger),
):
    return ledger.get_movement(movement_id)
