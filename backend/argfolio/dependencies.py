# backend/argfolio/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests. This is more efficient than creating new instances per request
and ensures shared state (the latest FX quotes, the settlement and
accrual locks) works correctly.

Services are lazily initialized on first use to avoid import-time side effects.

Usage in routers:
    from argfolio.dependencies import get_valuation_service, get_engine_options

    @router.post("/valuation/portfolio")
    def value_portfolio(
        service: ValuationService = Depends(get_valuation_service),
        options: EngineOptions = Depends(get_engine_options),
    ):
        ...
"""

import logging
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from argfolio.config import settings
from argfolio.database import get_db
from argfolio.schemas.fx import FxQuotesInput
from argfolio.services.cash_yield import CashYieldService
from argfolio.services.fixed_deposits.settlement import SettlementService
from argfolio.services.ledger import LedgerRepository
from argfolio.services.options import EngineOptions
from argfolio.services.quote_store import LatestQuoteStore
from argfolio.services.valuation.service import ValuationService
from argfolio.utils.fx_conversion import FxQuotes

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Using @lru_cache ensures the function returns the same instance on every call
#
# Order matters: define dependencies before dependents
# 1. get_engine_options (reads settings once)
# 2. get_quote_store (no deps)
# 3. get_valuation_service (depends on options)
# 4. get_settlement_service (depends on options)
# 5. get_cash_yield_service (depends on options)


@lru_cache(maxsize=1)
def get_engine_options() -> EngineOptions:
    """
    Get the configured engine options.

    This is the only place settings are turned into engine behaviour.
    """
    options = EngineOptions.from_settings(settings)
    logger.debug(
        f"Engine options: mode={options.valuation_mode.value}, "
        f"costing={options.costing_method.value}, auto_settle={options.auto_settle_enabled}, "
        f"auto_accrue={options.auto_accrue_enabled}"
    )
    return options


@lru_cache(maxsize=1)
def get_quote_store() -> LatestQuoteStore:
    """Get the singleton store of the last FX quotes posted to the API."""
    logger.debug("Initializing singleton LatestQuoteStore")
    return LatestQuoteStore()


@lru_cache(maxsize=1)
def get_valuation_service() -> ValuationService:
    """Get the singleton ValuationService instance."""
    logger.debug("Initializing singleton ValuationService")
    return ValuationService(local_currency=get_engine_options().local_currency)


@lru_cache(maxsize=1)
def get_settlement_service() -> SettlementService:
    """
    Get the singleton SettlementService instance.

    Shared by the HTTP endpoint and the background scheduler.
    """
    options = get_engine_options()
    logger.debug("Initializing singleton SettlementService")
    return SettlementService(
        mode=options.valuation_mode,
        default_term_days=options.default_term_days,
        local_currency=options.local_currency,
    )


@lru_cache(maxsize=1)
def get_cash_yield_service() -> CashYieldService:
    """
    Get the singleton CashYieldService instance.

    Shared by the HTTP endpoints and the background scheduler.
    """
    logger.debug("Initializing singleton CashYieldService")
    return CashYieldService(local_currency=get_engine_options().local_currency)


# =============================================================================
# REQUEST-SCOPED DEPENDENCIES
# =============================================================================

def get_ledger(db: Session = Depends(get_db)) -> LedgerRepository:
    """Ledger repository bound to the request's session."""
    return LedgerRepository(db)


def resolve_quotes(quotes: FxQuotesInput | None, store: LatestQuoteStore) -> FxQuotes:
    """
    Quotes for one request.

    Quotes sent with the request win and become the latest known quotes;
    otherwise the last posted ones are used (empty when none were posted).
    """
    if quotes is not None:
        resolved = quotes.to_quotes()
        store.update(resolved)
        return resolved
    return store.current_quotes() or FxQuotes()
