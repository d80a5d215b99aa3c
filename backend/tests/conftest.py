# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- API client with the database dependency overridden
- Movement/instrument factories (plain dataclasses and ORM rows)
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("APP_NAME", "Test App")

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from argfolio.database import get_db
from argfolio.dependencies import get_quote_store
from argfolio.main import app
from argfolio.models import AssetClass, Base, Instrument, Movement, MovementType
from argfolio.utils.fx_conversion import FxQuote, FxQuotes, build_quote

# Fixed evaluation time shared by the pure engine tests
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def client(db: Session) -> Iterator[TestClient]:
    """Create TestClient with database dependency override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    get_quote_store().clear()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    get_quote_store().clear()


# =============================================================================
# FX FIXTURES
# =============================================================================

def make_quotes(
        mep: tuple[str, str] | None = ("1000", "1050"),
        oficial: tuple[str, str] | None = ("900", "950"),
        cripto: tuple[str, str] | None = ("1100", "1120"),
) -> FxQuotes:
    """FxQuotes from (buy, sell) pairs; None leaves a benchmark empty."""

    def quote(pair: tuple[str, str] | None) -> FxQuote:
        if pair is None:
            return FxQuote()
        return build_quote({"buy": pair[0], "sell": pair[1]})

    return FxQuotes(mep=quote(mep), oficial=quote(oficial), cripto=quote(cripto))


@pytest.fixture
def quotes() -> FxQuotes:
    return make_quotes()


QUOTES_PAYLOAD = {
    "mep": {"buy": "1000", "sell": "1050"},
    "oficial": {"buy": "900", "sell": "950"},
    "cripto": {"buy": "1100", "sell": "1120"},
}


# =============================================================================
# MOVEMENT FACTORIES
# =============================================================================

@dataclass
class FakeMovement:
    """Plain movement satisfying MovementRecord (no database needed)."""

    id: str
    timestamp: datetime
    type: str
    account_id: str = "broker-1"
    instrument_id: str | None = None
    asset_class: str | None = None
    institution: str | None = None
    quantity: Decimal = Decimal("0")
    unit_price: Decimal | None = None
    trade_currency: str = "ARS"
    total_amount: Decimal = Decimal("0")
    fee_amount: Decimal | None = None
    fx_at_trade: Decimal | None = None
    meta: dict[str, Any] | None = field(default=None)
    idempotency_key: str | None = None
    is_auto: bool = False


def make_movement(
        id: str,
        type: str,
        days_ago: int = 0,
        now: datetime = NOW,
        **kwargs: Any,
) -> FakeMovement:
    """FakeMovement dated `days_ago` days before `now`; Decimal-coerces numbers."""
    for name in ("quantity", "unit_price", "total_amount", "fee_amount", "fx_at_trade"):
        if name in kwargs and kwargs[name] is not None:
            kwargs[name] = Decimal(str(kwargs[name]))
    if "total_amount" not in kwargs and "quantity" in kwargs and kwargs.get("unit_price") is not None:
        kwargs["total_amount"] = kwargs["quantity"] * kwargs["unit_price"]
    return FakeMovement(id=id, type=type, timestamp=now - timedelta(days=days_ago), **kwargs)


def make_pf(
        id: str = "pf-1",
        principal: str = "200000",
        tna: str = "182.5",
        term_days: int | None = 30,
        days_ago: int = 6,
        now: datetime = NOW,
        institution: str | None = "Banco Nación",
        type: str = "BUY",
        **kwargs: Any,
) -> FakeMovement:
    """A fixed-deposit constitution."""
    meta = {"principal": principal, "tna": tna}
    if term_days is not None:
        meta["term_days"] = term_days
    return make_movement(
        id,
        type,
        days_ago=days_ago,
        now=now,
        asset_class="PF",
        institution=institution,
        quantity=Decimal("1"),
        unit_price=Decimal(principal),
        total_amount=Decimal(principal),
        meta=meta,
        **kwargs,
    )


# =============================================================================
# DATABASE FACTORIES
# =============================================================================

def create_instrument(
        db: Session,
        id: str = "ggal",
        symbol: str = "GGAL",
        name: str = "Grupo Financiero Galicia",
        asset_class: AssetClass = AssetClass.CEDEAR,
        native_currency: str = "ARS",
        cedear_ratio: Decimal | None = None,
        underlying_symbol: str | None = None,
) -> Instrument:
    """Factory function for creating Instrument rows."""
    instrument = Instrument(
        id=id,
        symbol=symbol,
        name=name,
        asset_class=asset_class,
        native_currency=native_currency,
        cedear_ratio=cedear_ratio,
        underlying_symbol=underlying_symbol,
    )
    db.add(instrument)
    db.commit()
    db.refresh(instrument)
    return instrument


def create_movement(
        db: Session,
        id: str,
        type: MovementType,
        timestamp: datetime,
        account_id: str = "broker-1",
        **kwargs: Any,
) -> Movement:
    """Factory function for creating Movement rows."""
    movement = Movement(id=id, type=type, timestamp=timestamp, account_id=account_id, **kwargs)
    db.add(movement)
    db.commit()
    db.refresh(movement)
    return movement
