# backend/argfolio/routers/lots.py
"""
Lot endpoints.

- GET  /lots/methods                     Costing methods with labels
- POST /lots/allocate                    Allocate a sale against posted lots
- GET  /instruments/{id}/lots            Open lots and realized sales
- POST /instruments/{id}/lots/allocate   Preview a sale's allocation
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from argfolio.database import get_db
from argfolio.dependencies import get_engine_options, get_valuation_service
from argfolio.schemas.lots import (
    AllocationPreviewRequest,
    AllocationRequest,
    CostingMethodResponse,
    LotResponse,
    LotsResponse,
    RealizedSaleResponse,
    SaleAllocationResponse,
)
from argfolio.services.lots import (
    CostingMethod,
    ManualAllocation,
    allocate_sale,
    costing_method_labels,
)
from argfolio.services.options import EngineOptions
from argfolio.services.valuation import ValuationService

router = APIRouter(tags=["Lots"])


@router.get(
    "/lots/methods",
    response_model=list[CostingMethodResponse],
    summary="List costing methods",
)
def list_costing_methods():
    return [CostingMethodResponse.model_validate(label) for label in costing_method_labels()]


@router.post(
    "/lots/allocate",
    response_model=SaleAllocationResponse,
    summary="Allocate a sale against the given lots",
)
def allocate(payload: AllocationRequest):
    """
    Run the costing method over lots sent in the request.

    Stateless: nothing is read from or written to the ledger. Unknown
    MANUAL lot ids are ignored and picks are clamped to each lot.
    """
    manual = [
        ManualAllocation(lot_id=item.lot_id, quantity=item.quantity)
        for item in payload.manual or []
    ]
    allocation = allocate_sale(
        [lot.to_lot() for lot in payload.lots],
        payload.quantity,
        payload.sale_price,
        payload.method,
        manual or None,
    )
    return SaleAllocationResponse.model_validate(allocation)


@router.get(
    "/instruments/{instrument_id}/lots",
    response_model=LotsResponse,
    summary="Open lots of an instrument",
)
def get_lots(
        instrument_id: str,
        account_id: str | None = Query(default=None),
        method: CostingMethod | None = Query(default=None),
        current_price: Decimal | None = Query(default=None, gt=0),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
        options: EngineOptions = Depends(get_engine_options),
):
    """
    Replay the instrument's movements into open lots.

    Without `account_id` every account is replayed as one inventory.
    """
    method = method or options.costing_method
    result = service.get_lots(db, instrument_id, account_id, method, current_price)

    return LotsResponse(
        instrument_id=instrument_id,
        account_id=account_id,
        method=method,
        quantity=result.quantity,
        total_cost=result.total_cost,
        avg_cost=result.avg_cost,
        lots=[LotResponse.model_validate(lot) for lot in result.lots],
        sales=[RealizedSaleResponse.model_validate(sale) for sale in result.realized.sales],
        realized_pnl=result.realized.realized_pnl,
        realized_pnl_local=result.realized.realized_pnl_local,
        realized_pnl_hard=result.realized.realized_pnl_hard,
        warnings=result.warnings,
    )


@router.post(
    "/instruments/{instrument_id}/lots/allocate",
    response_model=SaleAllocationResponse,
    summary="Preview which lots a sale would consume",
)
def preview_allocation(
        instrument_id: str,
        payload: AllocationPreviewRequest,
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
        options: EngineOptions = Depends(get_engine_options),
):
    """
    Allocate a hypothetical sale against the current open lots.

    Nothing is written. Quantities above holdings are clamped.
    """
    method = payload.method or options.costing_method
    result = service.get_lots(db, instrument_id, payload.account_id, method)
    manual = [
        ManualAllocation(lot_id=item.lot_id, quantity=item.quantity)
        for item in payload.manual or []
    ]
    allocation = allocate_sale(result.lots, payload.quantity, payload.sale_price, method, manual or None)
    return SaleAllocationResponse.model_validate(allocation)
