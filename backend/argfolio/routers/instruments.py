# backend/argfolio/routers/instruments.py
"""
Instrument reference data endpoints.

- POST /instruments      Register an instrument
- GET  /instruments      List instruments
- GET  /instruments/{id} Get one instrument
"""

from fastapi import APIRouter, Depends, status

from argfolio.dependencies import get_ledger
from argfolio.models import Instrument
from argfolio.schemas.instruments import InstrumentCreate, InstrumentResponse
from argfolio.services.ledger import LedgerRepository

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/instruments",
    tags=["Instruments"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/",
    response_model=InstrumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an instrument",
)
def create_instrument(
        payload: InstrumentCreate,
        ledger: LedgerRepository = Depends(get_ledger),
):
    instrument = Instrument(**payload.model_dump())
    return ledger.add_instrument(instrument)


@router.get(
    "/",
    response_model=list[InstrumentResponse],
    summary="List instruments",
)
def list_instruments(ledger: LedgerRepository = Depends(get_ledger)):
    return ledger.list_instruments()


@router.get(
    "/{instrument_id}",
    response_model=InstrumentResponse,
    summary="Get an instrument",
)
def get_instrument(
        instrument_id: str,
        ledger: LedgerRepository = Depends(get_ledger),
):
    """Raises 404 (InstrumentNotFoundError) for unknown ids."""
    return ledger.get_instrument(instrument_id)
