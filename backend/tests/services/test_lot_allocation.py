# backend/tests/services/test_lot_allocation.py
"""
Unit tests for allocate_sale().

Reference lots: L1 0.5 @ 40000, L2 0.3 @ 60000, L3 0.2 @ 30000
(total 1.0 units at a cost of 44000).
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from argfolio.services.exceptions import UnknownCostingMethodError
from argfolio.services.lots import (
    CostingMethod,
    LotDetail,
    ManualAllocation,
    allocate_sale,
    costing_method_labels,
    parse_costing_method,
)


def _lot(lot_id: str, day: int, quantity: str, unit_cost: str) -> LotDetail:
    qty = Decimal(quantity)
    cost = Decimal(unit_cost)
    return LotDetail(
        id=lot_id,
        date=datetime(2025, 1, day, tzinfo=timezone.utc),
        quantity=qty,
        unit_cost=cost,
        total_cost=qty * cost,
    )


@pytest.fixture
def lots() -> list[LotDetail]:
    return [
        _lot("L1", 1, "0.5", "40000"),
        _lot("L2", 2, "0.3", "60000"),
        _lot("L3", 3, "0.2", "30000"),
    ]


def _quantities(result) -> list[tuple[str, Decimal]]:
    return [(a.lot_id, a.quantity) for a in result.allocations]


# =============================================================================
# ORDERED METHODS
# =============================================================================

class TestFifo:

    def test_partial_sale_consumes_oldest_first(self, lots):
        result = allocate_sale(lots, Decimal("0.6"), Decimal("50000"), CostingMethod.FIFO)

        assert _quantities(result) == [("L1", Decimal("0.5")), ("L2", Decimal("0.1"))]
        assert [a.cost for a in result.allocations] == [Decimal("20000"), Decimal("6000")]
        assert result.total_cost == Decimal("26000")
        assert result.total_proceeds == Decimal("30000")
        assert result.realized_pnl == Decimal("4000")

    def test_lot_order_in_input_does_not_matter(self, lots):
        result = allocate_sale(list(reversed(lots)), Decimal("0.6"), Decimal("50000"), CostingMethod.FIFO)

        assert result.total_cost == Decimal("26000")


class TestLifo:

    def test_consumes_newest_first(self, lots):
        result = allocate_sale(lots, Decimal("0.4"), Decimal("50000"), CostingMethod.LIFO)

        assert _quantities(result) == [("L3", Decimal("0.2")), ("L2", Decimal("0.2"))]
        assert result.total_cost == Decimal("18000")


class TestCheapest:

    def test_consumes_lowest_cost_first(self, lots):
        result = allocate_sale(lots, Decimal("0.6"), Decimal("50000"), CostingMethod.CHEAPEST)

        assert _quantities(result) == [("L3", Decimal("0.2")), ("L1", Decimal("0.4"))]
        assert result.total_cost == Decimal("22000")

    def test_equal_costs_consume_older_lot_first(self):
        lots = [
            _lot("newer", 10, "1", "100"),
            _lot("older", 5, "1", "100"),
        ]
        result = allocate_sale(lots, Decimal("1"), Decimal("120"), CostingMethod.CHEAPEST)

        assert _quantities(result) == [("older", Decimal("1"))]


# =============================================================================
# PPP
# =============================================================================

class TestPpp:

    def test_full_sale(self, lots):
        result = allocate_sale(lots, Decimal("1.0"), Decimal("50000"), CostingMethod.PPP)

        assert result.allocations == ()
        assert result.quantity_sold == Decimal("1.0")
        assert result.total_cost == Decimal("44000")
        assert result.total_proceeds == Decimal("50000")
        assert result.realized_pnl == Decimal("6000")

    def test_partial_sale_uses_weighted_average(self, lots):
        result = allocate_sale(lots, Decimal("0.5"), Decimal("50000"), CostingMethod.PPP)

        assert result.total_cost == Decimal("22000")


# =============================================================================
# MANUAL
# =============================================================================

class TestManual:

    def test_uses_caller_picks(self, lots):
        manual = [ManualAllocation("L2", Decimal("0.3")), ManualAllocation("L3", Decimal("0.1"))]
        result = allocate_sale(lots, Decimal("0"), Decimal("50000"), CostingMethod.MANUAL, manual)

        assert _quantities(result) == [("L2", Decimal("0.3")), ("L3", Decimal("0.1"))]
        assert result.total_cost == Decimal("21000")

    def test_picks_are_clamped_and_unknown_ids_ignored(self, lots):
        manual = [
            ManualAllocation("L3", Decimal("0.15")),
            ManualAllocation("L3", Decimal("0.15")),
            ManualAllocation("nope", Decimal("1")),
        ]
        result = allocate_sale(lots, Decimal("1"), Decimal("50000"), CostingMethod.MANUAL, manual)

        assert _quantities(result) == [("L3", Decimal("0.15")), ("L3", Decimal("0.05"))]
        assert result.quantity_sold == Decimal("0.20")

    def test_without_picks_falls_back_to_fifo(self, lots):
        result = allocate_sale(lots, Decimal("0.6"), Decimal("50000"), "MANUAL")

        assert result.total_cost == Decimal("26000")


# =============================================================================
# EDGE CASES
# =============================================================================

class TestEdgeCases:

    def test_no_lots(self):
        result = allocate_sale([], Decimal("1"), Decimal("100"), CostingMethod.FIFO)

        assert result.is_empty
        assert result.allocations == ()

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1"), None])
    def test_non_positive_quantity(self, lots, quantity):
        result = allocate_sale(lots, quantity, Decimal("100"), CostingMethod.FIFO)

        assert result.is_empty
        assert result.total_cost == Decimal("0")

    def test_quantity_clamped_to_holdings(self, lots):
        result = allocate_sale(lots, Decimal("5"), Decimal("50000"), CostingMethod.FIFO)

        assert result.quantity_sold == Decimal("1.0")
        assert result.total_cost == Decimal("44000")

    @pytest.mark.parametrize("method", list(CostingMethod))
    def test_allocated_quantity_matches_request(self, lots, method):
        result = allocate_sale(lots, Decimal("0.7"), Decimal("50000"), method)

        assert result.quantity_sold == Decimal("0.7")
        if result.allocations:
            assert sum(a.quantity for a in result.allocations) == Decimal("0.7")

    def test_lots_are_not_mutated(self, lots):
        before = list(lots)
        allocate_sale(lots, Decimal("0.6"), Decimal("50000"), CostingMethod.FIFO)

        assert lots == before

    def test_deterministic(self, lots):
        first = allocate_sale(lots, Decimal("0.6"), Decimal("50000"), CostingMethod.CHEAPEST)
        second = allocate_sale(lots, Decimal("0.6"), Decimal("50000"), CostingMethod.CHEAPEST)

        assert first == second

    def test_zero_cost_has_zero_pct(self):
        lots = [_lot("free", 1, "1", "0")]
        result = allocate_sale(lots, Decimal("1"), Decimal("10"), CostingMethod.FIFO)

        assert result.realized_pnl == Decimal("10")
        assert result.realized_pnl_pct == Decimal("0")

    def test_unknown_method(self, lots):
        with pytest.raises(UnknownCostingMethodError) as exc_info:
            allocate_sale(lots, Decimal("1"), Decimal("10"), "AVERAGE")

        assert exc_info.value.field == "method"


class TestCostingMethodHelpers:

    def test_parse_is_case_insensitive(self):
        assert parse_costing_method(" fifo ") is CostingMethod.FIFO

    def test_parse_rejects_non_strings(self):
        with pytest.raises(UnknownCostingMethodError):
            parse_costing_method(42)

    def test_labels_cover_every_method(self):
        assert [label.value for label in costing_method_labels()] == list(CostingMethod)
