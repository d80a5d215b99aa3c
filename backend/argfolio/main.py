# backend/argfolio/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Starts/stops the settlement and cash-yield accrual scheduler
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from argfolio.config import settings
from argfolio.database import SessionLocal, get_db, init_db
from argfolio.dependencies import (
    get_cash_yield_service,
    get_engine_options,
    get_quote_store,
    get_settlement_service,
)
from argfolio.middleware import CorrelationIdMiddleware
from argfolio.routers import (
    cash_yield_router,
    fixed_deposits_router,
    fx_router,
    instruments_router,
    lots_router,
    movements_router,
    valuation_router,
)
from argfolio.schemas.errors import ErrorDetail, FieldError, ValidationErrorDetail
from argfolio.services.exceptions import (
    AccrualError,
    DuplicateMovementError,
    LedgerError,
    NotFoundError,
    ServiceError,
    SettlementError,
    ValidationError,
)
from argfolio.services.fixed_deposits import SettlementScheduler
from argfolio.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create ledger tables and run the background scheduler (settlement and
    cash-yield accrual) while the app is up. The scheduler is not started
    in the test environment.
    """
    init_db()

    options = get_engine_options()
    scheduler = None
    if (options.auto_settle_enabled or options.auto_accrue_enabled) and not settings.is_test:
        scheduler = SettlementScheduler(
            SessionLocal,
            get_settlement_service(),
            get_quote_store(),
            interval_seconds=settings.settlement_interval_seconds,
            accrual_service=get_cash_yield_service(),
            settle_enabled=options.auto_settle_enabled,
            accrue_enabled=options.auto_accrue_enabled,
        )
        scheduler.start()
    app.state.settlement_scheduler = scheduler

    yield

    if scheduler is not None:
        scheduler.stop()


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Multi-currency portfolio valuation for the Argentine market",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# These handlers catch service-layer exceptions and convert them to
# consistent HTTP responses. Starlette picks the most specific handler
# along the exception's MRO.
# =============================================================================

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle missing instruments and movements (404)."""
    logger.warning(f"Not found: {exc.resource_type} {exc.resource_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={
                "resource_type": exc.resource_type,
                "resource_id": exc.resource_id,
            },
        ).model_dump(),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(DuplicateMovementError)
async def duplicate_movement_handler(request: Request, exc: DuplicateMovementError) -> JSONResponse:
    """Handle idempotency key conflicts (409)."""
    logger.info(f"Duplicate movement rejected: {exc.key}")
    return JSONResponse(
        status_code=409,
        content=ErrorDetail(
            error="DuplicateMovementError",
            message=str(exc),
            details={"key": exc.key},
        ).model_dump(),
    )


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Handle other ledger write failures (409)."""
    logger.warning(f"Ledger error: {exc}")
    return JSONResponse(
        status_code=409,
        content=ErrorDetail(
            error="LedgerError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    """Handle settlement failures (500)."""
    logger.error(f"Settlement error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="SettlementError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(AccrualError)
async def accrual_error_handler(request: Request, exc: AccrualError) -> JSONResponse:
    """Handle cash-yield accrual failures (500)."""
    logger.error(f"Accrual error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="AccrualError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        409: "ConflictError",
        422: "ValidationError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    error_type = error_types.get(exc.status_code, "HTTPError")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_type,
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors with consistent format.

    Converts the default 422 validation error to our ValidationErrorDetail format.
    """
    errors = [
        FieldError(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            type=error["type"],
        )
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            error="ValidationError",
            message="Request validation failed",
            details=errors,
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(instruments_router)  # /instruments/*
app.include_router(movements_router)  # /movements/*
app.include_router(fx_router)  # /fx/*
app.include_router(valuation_router)  # /valuation/*
app.include_router(lots_router)  # /lots/*, /instruments/{id}/lots
app.include_router(fixed_deposits_router)  # /fixed-deposits/*
app.include_router(cash_yield_router)  # /cash-yield, /accounts/{id}/cash-yield


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
def root():
    """
    API root - returns basic application info.
    """
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns HTTP 503 if the ledger database is unreachable. The
    settlement scheduler is reported but is not critical.
    """
    checks = {}

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy", "critical": True}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {"status": "unhealthy", "critical": True, "error": str(e)}
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "checks": checks},
        )

    scheduler = getattr(request.app.state, "settlement_scheduler", None)
    checks["settlement_scheduler"] = {
        "status": "running" if scheduler is not None and scheduler.is_running else "stopped",
        "critical": False,
    }

    return {"status": "healthy", "checks": checks}


@app.get("/health/live", tags=["Health"])
def liveness_check():
    """
    Liveness check endpoint.

    Returns HTTP 200 if the application is running. Does NOT check
    dependencies.
    """
    return {"status": "alive"}
