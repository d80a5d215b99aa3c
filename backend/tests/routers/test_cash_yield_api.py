# tests/routers/test_cash_yield_api.py
"""
Integration tests for remunerated-account (cash yield) endpoints.

- PUT /accounts/{account_id}/cash-yield
- GET /accounts/{account_id}/cash-yield
- GET /cash-yield
- POST /cash-yield/accrue

Accrual runs at the current time, so cash and start dates are relative to
now. The account holds 365,000 at 36.5% TNA: 365.00 on the first day.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from argfolio.dependencies import get_engine_options
from argfolio.main import app
from argfolio.models import MovementType
from argfolio.services.options import EngineOptions

from tests.conftest import create_movement


def _today():
    return datetime.now(timezone.utc).date()


@pytest.fixture
def seeded(db):
    create_movement(
        db,
        "d1",
        MovementType.DEPOSIT,
        datetime.now(timezone.utc) - timedelta(days=10),
        total_amount=Decimal("365000"),
    )
    return db


def _configure(client, start_days_ago=3, **overrides):
    payload = {"tna": "36.5", "start_date": (_today() - timedelta(days=start_days_ago)).isoformat()}
    payload.update(overrides)
    return client.put("/accounts/broker-1/cash-yield", json=payload)


class TestConfigure:

    def test_configure(self, client, seeded):
        response = _configure(client)

        assert response.status_code == 200
        data = response.json()
        assert data["config"]["account_id"] == "broker-1"
        assert Decimal(data["config"]["tna"]) == Decimal("36.5")
        assert data["config"]["last_accrued_date"] == (_today() - timedelta(days=4)).isoformat()
        assert Decimal(data["balance"]) == Decimal("365000")
        assert Decimal(data["metrics"]["daily_rate"]) == Decimal("0.001")
        assert Decimal(data["metrics"]["interest_tomorrow"]) == Decimal("365")

    @pytest.mark.parametrize("tna", ["0", "-5", "1001"])
    def test_invalid_tna(self, client, tna):
        response = client.put("/accounts/broker-1/cash-yield", json={"tna": tna})

        assert response.status_code == 422

    def test_get(self, client, seeded):
        _configure(client)

        response = client.get("/accounts/broker-1/cash-yield")

        assert response.status_code == 200
        assert Decimal(response.json()["config"]["tna"]) == Decimal("36.5")

    def test_get_unknown_account(self, client):
        response = client.get("/accounts/nope/cash-yield")

        assert response.status_code == 404
        assert response.json()["error"] == "CashYieldNotFoundError"

    def test_list(self, client, seeded):
        _configure(client)
        client.put("/accounts/wallet/cash-yield", json={"tna": "30", "enabled": False})

        data = client.get("/cash-yield").json()

        assert [item["account_id"] for item in data] == ["broker-1", "wallet"]
        assert data[1]["enabled"] is False


class TestAccrue:

    def test_accrue(self, client, seeded):
        _configure(client)

        data = client.post("/cash-yield/accrue").json()

        assert data["enabled"] is True
        assert data["accrued"] == ["broker-1"]
        assert data["movements_created"] == 3
        assert Decimal(data["total_interest"]) == Decimal("1096.10")

    def test_interest_is_in_the_ledger(self, client, seeded):
        _configure(client)
        client.post("/cash-yield/accrue")

        items = client.get("/movements/", params={"asset_class": "CASH_ARS"}).json()["items"]
        items = [item for item in items if item["type"] == "INTEREST"]

        assert len(items) == 3
        assert all(item["is_auto"] for item in items)
        assert {item["meta"]["source"] for item in items} == {"CASH_YIELD"}

    def test_accrue_twice(self, client, seeded):
        _configure(client)
        client.post("/cash-yield/accrue")

        data = client.post("/cash-yield/accrue").json()

        assert data["movements_created"] == 0
        assert Decimal(client.get("/accounts/broker-1/cash-yield").json()["balance"]) == Decimal("366096.10")

    def test_new_setting_owes_nothing_today(self, client, seeded):
        client.put("/accounts/broker-1/cash-yield", json={"tna": "36.5"})

        data = client.post("/cash-yield/accrue").json()

        assert data["movements_created"] == 0

    def test_disabled(self, client, seeded):
        _configure(client)
        app.dependency_overrides[get_engine_options] = lambda: EngineOptions(auto_accrue_enabled=False)

        data = client.post("/cash-yield/accrue").json()

        assert data["enabled"] is False
        assert data["accrued"] == []
