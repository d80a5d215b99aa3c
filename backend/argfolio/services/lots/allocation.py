# backend/argfolio/services/lots/allocation.py
"""
Lot allocation engine.

Given open lots and a quantity to sell, decides which lots are consumed
and at what cost, under one of five costing methods:

    PPP      - Weighted average cost (pooled, no per-lot list)
    FIFO     - Oldest lots first
    LIFO     - Newest lots first
    CHEAPEST - Lowest unit cost first, oldest first among equal costs
    MANUAL   - Caller-specified per-lot quantities (FIFO when none given)

allocate_sale() is a pure function: lots are never mutated, it only
computes a hypothetical consumption. The same call on the same inputs
always returns an equal result.

Usage:
    result = allocate_sale(lots, Decimal("0.6"), Decimal("50000"), CostingMethod.FIFO)
    result.total_cost       # Decimal("26000")
"""

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from argfolio.services.exceptions import UnknownCostingMethodError
from argfolio.services.lots.types import (
    COSTING_METHOD_LABELS,
    ZERO,
    AllocationEntry,
    CostingMethod,
    CostingMethodLabel,
    LotDetail,
    ManualAllocation,
    SaleAllocationResult,
)
from argfolio.utils.date_utils import ensure_utc
from argfolio.utils.fx_conversion import to_decimal

logger = logging.getLogger(__name__)


# =============================================================================
# COSTING METHOD HELPERS
# =============================================================================

def parse_costing_method(value: CostingMethod | str) -> CostingMethod:
    """
    Normalize a costing method tag.

    Accepts the enum or its string value (case-insensitive, surrounding
    whitespace ignored).

    Raises:
        UnknownCostingMethodError: If the tag is not a known method
    """
    if isinstance(value, CostingMethod):
        return value
    if isinstance(value, str):
        try:
            return CostingMethod(value.strip().upper())
        except ValueError:
            pass
    raise UnknownCostingMethodError(value)


def costing_method_labels() -> list[CostingMethodLabel]:
    """Display metadata for every costing method, in menu order."""
    return list(COSTING_METHOD_LABELS)


# =============================================================================
# PUBLIC API
# =============================================================================

def allocate_sale(
        lots: Sequence[LotDetail],
        quantity: Decimal | int | str,
        sale_price: Decimal | int | str | None,
        method: CostingMethod | str,
        manual: Iterable[ManualAllocation] | None = None,
) -> SaleAllocationResult:
    """
    Simulate a sale allocation without mutating lots.

    Args:
        lots: Current open lots, in any order
        quantity: Quantity to sell (clamped to [0, total held])
        sale_price: Sale price per unit in the lots' cost currency
        method: Costing method (enum or string tag)
        manual: Per-lot quantities, only used when method is MANUAL

    Returns:
        SaleAllocationResult; an all-zero result when there are no lots or
        nothing to sell

    Raises:
        UnknownCostingMethodError: If method is not a known tag
    """
    method = parse_costing_method(method)
    price = to_decimal(sale_price) or ZERO

    if not lots:
        return SaleAllocationResult()

    manual_list = list(manual) if manual is not None else []

    # MANUAL: the caller's per-lot quantities define what is sold
    if method is CostingMethod.MANUAL and manual_list:
        return _allocate_manual(lots, manual_list, price)

    requested = to_decimal(quantity)
    if requested is None:
        requested = ZERO
    total_held = sum((lot.quantity for lot in lots), ZERO)
    safe_quantity = min(max(requested, ZERO), total_held)

    if safe_quantity <= ZERO:
        return SaleAllocationResult()

    if method is CostingMethod.PPP:
        return _allocate_ppp(lots, safe_quantity, price)

    ordering = CostingMethod.FIFO if method is CostingMethod.MANUAL else method
    sorted_lots = _sort_lots_for_method(lots, ordering)
    return _allocate_ordered(sorted_lots, safe_quantity, price)


# =============================================================================
# INTERNAL: PPP
# =============================================================================

def _allocate_ppp(
        lots: Sequence[LotDetail],
        quantity: Decimal,
        price: Decimal,
) -> SaleAllocationResult:
    """cost = quantity × (total cost / total quantity); no per-lot list."""
    total_qty = sum((lot.quantity for lot in lots), ZERO)
    total_cost_all = sum((lot.total_cost for lot in lots), ZERO)
    avg_cost = total_cost_all / total_qty if total_qty > ZERO else ZERO

    cost = quantity * avg_cost
    return _build_result((), quantity, cost, price)


# =============================================================================
# INTERNAL: ORDERED (FIFO / LIFO / CHEAPEST)
# =============================================================================

def _sort_lots_for_method(
        lots: Sequence[LotDetail],
        method: CostingMethod,
) -> list[LotDetail]:
    if method is CostingMethod.FIFO:
        return sorted(lots, key=lambda lot: ensure_utc(lot.date))
    if method is CostingMethod.LIFO:
        return sorted(lots, key=lambda lot: ensure_utc(lot.date), reverse=True)
    if method is CostingMethod.CHEAPEST:
        # Equal unit costs: oldest first
        return sorted(lots, key=lambda lot: (lot.unit_cost, ensure_utc(lot.date)))
    raise UnknownCostingMethodError(method)


def _allocate_ordered(
        sorted_lots: Sequence[LotDetail],
        quantity: Decimal,
        price: Decimal,
) -> SaleAllocationResult:
    allocations: list[AllocationEntry] = []
    remaining = quantity

    for lot in sorted_lots:
        if remaining <= ZERO:
            break
        take = min(lot.quantity, remaining)
        if take <= ZERO:
            continue
        allocations.append(AllocationEntry(lot_id=lot.id, quantity=take, cost=take * lot.unit_cost))
        remaining -= take

    quantity_sold = sum((a.quantity for a in allocations), ZERO)
    total_cost = sum((a.cost for a in allocations), ZERO)
    return _build_result(tuple(allocations), quantity_sold, total_cost, price)


# =============================================================================
# INTERNAL: MANUAL
# =============================================================================

def _allocate_manual(
        lots: Sequence[LotDetail],
        manual: list[ManualAllocation],
        price: Decimal,
) -> SaleAllocationResult:
    """
    Consume exactly the requested {lot_id, quantity} pairs.

    Each pair is clamped to what is left of its lot (repeated ids share the
    lot's quantity); unknown lot ids are ignored.
    """
    lots_by_id = {lot.id: lot for lot in lots}
    consumed: dict[str, Decimal] = {}
    allocations: list[AllocationEntry] = []

    for entry in manual:
        lot = lots_by_id.get(entry.lot_id)
        if lot is None:
            logger.debug(f"Manual allocation references unknown lot {entry.lot_id}, ignoring")
            continue
        requested = to_decimal(entry.quantity) or ZERO
        available = lot.quantity - consumed.get(lot.id, ZERO)
        take = min(max(requested, ZERO), available)
        if take <= ZERO:
            continue
        consumed[lot.id] = consumed.get(lot.id, ZERO) + take
        allocations.append(AllocationEntry(lot_id=lot.id, quantity=take, cost=take * lot.unit_cost))

    quantity_sold = sum((a.quantity for a in allocations), ZERO)
    total_cost = sum((a.cost for a in allocations), ZERO)
    return _build_result(tuple(allocations), quantity_sold, total_cost, price)


# =============================================================================
# INTERNAL: RESULT
# =============================================================================

def _build_result(
        allocations: tuple[AllocationEntry, ...],
        quantity_sold: Decimal,
        total_cost: Decimal,
        price: Decimal,
) -> SaleAllocationResult:
    proceeds = quantity_sold * price
    realized = proceeds - total_cost
    return SaleAllocationResult(
        allocations=allocations,
        quantity_sold=quantity_sold,
        total_cost=total_cost,
        total_proceeds=proceeds,
        realized_pnl=realized,
        realized_pnl_pct=realized / total_cost if total_cost > ZERO else ZERO,
    )
