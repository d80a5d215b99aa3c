# tests/routers/test_fixed_deposits_api.py
"""
Integration tests for fixed-deposit (plazo fijo) API endpoints.

- POST /fixed-deposits/state
- GET /fixed-deposits/projection
- POST /fixed-deposits/settle

These endpoints evaluate at the current time, so deposits are dated
relative to now. Every deposit is 200,000 at 182.5% TNA over 30 days
(30,000 interest, 1,000 per day).
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from argfolio.dependencies import get_engine_options
from argfolio.main import app
from argfolio.models import AssetClass, MovementType
from argfolio.services.options import EngineOptions

from tests.conftest import QUOTES_PAYLOAD, create_movement


def _seed_deposit(db, id, days_ago, institution="Banco Nación"):
    create_movement(
        db,
        id,
        MovementType.BUY,
        datetime.now(timezone.utc) - timedelta(days=days_ago),
        asset_class=AssetClass.PF,
        institution=institution,
        quantity=Decimal("1"),
        unit_price=Decimal("200000"),
        total_amount=Decimal("200000"),
        meta={"principal": "200000", "tna": "182.5", "term_days": 30},
    )


@pytest.fixture
def seeded(db):
    _seed_deposit(db, "pf-old", days_ago=40)
    _seed_deposit(db, "pf-new", days_ago=6)
    return db


# =============================================================================
# STATE
# =============================================================================

class TestState:

    def test_buckets(self, client, seeded):
        response = client.post("/fixed-deposits/state", json={"quotes": QUOTES_PAYLOAD})

        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data["active"]] == ["pf-new"]
        assert [p["id"] for p in data["matured"]] == ["pf-old"]
        assert data["closed"] == []

        pf = data["active"][0]
        assert pf["status"] == "active"
        assert pf["term_days"] == 30
        assert Decimal(pf["expected_total"]) == Decimal("230000")
        assert Decimal(pf["tna"]) == Decimal("182.5")

    def test_totals(self, client, seeded):
        totals = client.post("/fixed-deposits/state", json={"quotes": QUOTES_PAYLOAD}).json()["totals"]

        assert Decimal(totals["active_local"]) == Decimal("230000")
        assert Decimal(totals["active_hard"]) == Decimal("230000") / Decimal("950")

    def test_hard_totals_null_without_quotes(self, client, seeded):
        totals = client.post("/fixed-deposits/state", json={}).json()["totals"]

        assert Decimal(totals["matured_local"]) == Decimal("230000")
        assert totals["matured_hard"] is None

    def test_as_of(self, client, seeded):
        past = (datetime.now(timezone.utc) - timedelta(days=20)).isoformat()

        data = client.post("/fixed-deposits/state", json={"as_of": past}).json()

        # Twenty days ago pf-old was still running
        assert "pf-old" in [p["id"] for p in data["active"]]
        assert data["matured"] == []


# =============================================================================
# PROJECTION
# =============================================================================

class TestProjection:

    def test_default_horizon(self, client, seeded):
        response = client.get("/fixed-deposits/projection")

        assert response.status_code == 200
        data = response.json()
        assert data["horizon"] == "30D"
        assert data["horizon_days"] == 30
        [item] = data["items"]
        assert item["id"] == "pf-new"
        assert item["days_remaining"] == 24
        assert Decimal(item["projected_interest"]) == Decimal("24000")
        assert Decimal(data["total"]) == Decimal("24000")

    def test_short_horizon(self, client, seeded):
        data = client.get("/fixed-deposits/projection", params={"horizon": "7D"}).json()

        assert Decimal(data["total"]) == Decimal("7000")

    def test_unknown_horizon(self, client):
        response = client.get("/fixed-deposits/projection", params={"horizon": "2W"})

        assert response.status_code == 422


# =============================================================================
# SETTLEMENT
# =============================================================================

class TestSettle:

    def test_settles_matured_deposit(self, client, seeded):
        response = client.post("/fixed-deposits/settle")

        assert response.status_code == 200
        data = response.json()
        assert data["settled"] == ["pf-old"]
        assert data["movements_created"] == 2
        assert Decimal(data["total_credited"]) == Decimal("230000")
        assert data["enabled"] is True

    def test_writes_keyed_auto_movements(self, client, seeded):
        client.post("/fixed-deposits/settle")

        items = client.get("/movements/").json()["items"]
        auto = {item["id"]: item for item in items if item["is_auto"]}

        assert set(auto) == {"pf-settle:pf-old", "pf-credit:pf-old"}
        assert auto["pf-credit:pf-old"]["idempotency_key"] == "pf-credit:pf-old"
        assert auto["pf-credit:pf-old"]["meta"] == {
            "source": "PF_SETTLEMENT",
            "source_fixed_deposit_id": "pf-old",
        }

    def test_second_call_is_a_no_op(self, client, seeded):
        client.post("/fixed-deposits/settle")

        data = client.post("/fixed-deposits/settle", json={"quotes": QUOTES_PAYLOAD}).json()

        assert data["settled"] == []
        assert data["movements_created"] == 0
        assert client.get("/movements/").json()["total"] == 4

    def test_settled_deposit_is_closed(self, client, seeded):
        client.post("/fixed-deposits/settle")

        data = client.post("/fixed-deposits/state", json={}).json()

        assert data["matured"] == []
        [closed] = data["closed"]
        assert closed["redeemed_by"] == "pf-settle:pf-old"
        assert closed["match"] == "explicit"

    def test_disabled(self, client, seeded):
        app.dependency_overrides[get_engine_options] = lambda: EngineOptions(auto_settle_enabled=False)

        data = client.post("/fixed-deposits/settle").json()

        assert data["enabled"] is False
        assert data["settled"] == []
        assert client.get("/movements/").json()["total"] == 2
