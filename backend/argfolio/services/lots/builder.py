# backend/argfolio/services/lots/builder.py
"""
Lot builder: replays one position's ledger into open lots.

Strategy (movements in timestamp order):
- ADD (BUY, TRANSFER_IN, DIVIDEND/INTEREST paid in units): open a new lot
- REMOVE (SELL, TRANSFER_OUT): consume lots through allocate_sale() with
  the configured costing method; SELLs record realized PnL

Cost conventions:
- Lot cost INCLUDES the buy fee: unit_cost = (qty × price + fee) / qty
- Sale proceeds EXCLUDE the sell fee: realized = proceeds - fee - cost
- fx_at_trade is "local per hard" at trade time; it gives every lot a
  local and a hard unit cost so historical hard cost never drifts with
  today's FX rate

Usage:
    builder = LotBuilder()
    result = builder.build(movements, CostingMethod.FIFO, current_price=Decimal("21000"))
    result.lots          # open LotDetail list
    result.realized      # RealizedSummary
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal

from argfolio.services.constants import META_LOT_ALLOCATIONS
from argfolio.services.lots.allocation import allocate_sale, parse_costing_method
from argfolio.services.lots.types import (
    ZERO,
    CostingMethod,
    LotBuildResult,
    LotDetail,
    ManualAllocation,
    RealizedSale,
    RealizedSummary,
    SaleAllocationResult,
)
from argfolio.services.protocols import MovementRecord, movement_type
from argfolio.utils.date_utils import ensure_utc
from argfolio.utils.fx_conversion import to_decimal

logger = logging.getLogger(__name__)

ADD_TYPES = frozenset({"BUY", "TRANSFER_IN", "DIVIDEND", "INTEREST"})
REMOVE_TYPES = frozenset({"SELL", "TRANSFER_OUT"})


def manual_allocations_from_meta(meta: dict | None) -> list[ManualAllocation]:
    """Read MANUAL lot picks stored on a sale: meta["lot_allocations"]."""
    if not meta:
        return []
    raw = meta.get(META_LOT_ALLOCATIONS) or []
    allocations = []
    for item in raw:
        lot_id = item.get("lot_id")
        quantity = to_decimal(item.get("quantity"))
        if lot_id is None or quantity is None:
            continue
        allocations.append(ManualAllocation(lot_id=str(lot_id), quantity=quantity))
    return allocations


class LotBuilder:
    """
    Builds open lots and realized PnL from one position's movements.

    Stateless: every call to build() starts from an empty inventory.
    """

    def __init__(self, local_currency: str = "ARS") -> None:
        self.local_currency = local_currency

    def build(
            self,
            movements: Iterable[MovementRecord],
            method: CostingMethod | str = CostingMethod.FIFO,
            current_price: Decimal | None = None,
    ) -> LotBuildResult:
        """
        Replay movements into lots.

        Args:
            movements: Movements of ONE account and instrument, any order
            method: Costing method used to consume lots on each sale
            current_price: Price used to fill current_value/unrealized_pnl

        Returns:
            LotBuildResult with open lots and the realized summary
        """
        method = parse_costing_method(method)
        ordered = sorted(
            (m for m in movements if m.instrument_id is not None),
            key=lambda m: ensure_utc(m.timestamp),
        )

        lots: list[LotDetail] = []
        realized = RealizedSummary()
        warnings: list[str] = []

        for mov in ordered:
            kind = movement_type(mov)
            quantity = to_decimal(mov.quantity) or ZERO
            if quantity <= ZERO:
                continue

            if kind in ADD_TYPES:
                lots.append(self._open_lot(mov, quantity))

            elif kind in REMOVE_TYPES:
                held = sum((lot.quantity for lot in lots), ZERO)
                if quantity > held:
                    message = (
                        f"Movement {mov.id} removes {quantity} units but only {held} are held"
                    )
                    logger.warning(message)
                    warnings.append(message)

                manual = manual_allocations_from_meta(mov.meta) if method is CostingMethod.MANUAL else None
                price = self._unit_price(mov, quantity)
                allocation = allocate_sale(lots, quantity, price, method, manual)

                if kind == "SELL" and not allocation.is_empty:
                    sale = self._realize(mov, allocation, lots)
                    realized.sales.append(sale)
                    realized.realized_pnl += sale.allocation.realized_pnl
                    if sale.realized_pnl_local is not None:
                        realized.realized_pnl_local += sale.realized_pnl_local
                    if sale.realized_pnl_hard is not None:
                        realized.realized_pnl_hard += sale.realized_pnl_hard

                lots = self._consume(lots, allocation)

        if current_price is not None:
            lots = [self._mark(lot, current_price) for lot in lots]

        return LotBuildResult(lots=lots, realized=realized, warnings=warnings)

    # =========================================================================
    # LOT CREATION
    # =========================================================================

    def _unit_price(self, mov: MovementRecord, quantity: Decimal) -> Decimal:
        price = to_decimal(mov.unit_price)
        if price is not None:
            return price
        total = to_decimal(mov.total_amount)
        if total is not None and quantity > ZERO:
            return total / quantity
        return ZERO

    def _open_lot(self, mov: MovementRecord, quantity: Decimal) -> LotDetail:
        price = self._unit_price(mov, quantity)
        fee = to_decimal(mov.fee_amount) or ZERO
        unit_cost = (quantity * price + fee) / quantity

        unit_local, unit_hard = self._split_currencies(unit_cost, mov)

        return LotDetail(
            id=mov.id,
            date=ensure_utc(mov.timestamp),
            quantity=quantity,
            unit_cost=unit_cost,
            total_cost=quantity * unit_cost,
            unit_cost_local=unit_local,
            unit_cost_hard=unit_hard,
        )

    def _split_currencies(
            self,
            amount: Decimal,
            mov: MovementRecord,
    ) -> tuple[Decimal | None, Decimal | None]:
        """
        Express a trade-currency amount in (local, hard) currency.

        The side that needs FX is None when fx_at_trade is missing.
        """
        fx = to_decimal(mov.fx_at_trade)
        has_fx = fx is not None and fx > ZERO

        if (mov.trade_currency or self.local_currency).upper() == self.local_currency:
            return amount, (amount / fx if has_fx else None)
        return (amount * fx if has_fx else None), amount

    # =========================================================================
    # CONSUMPTION
    # =========================================================================

    def _consume(self, lots: list[LotDetail], allocation: SaleAllocationResult) -> list[LotDetail]:
        """Return new lots with the allocation removed (input lots untouched)."""
        if allocation.is_empty:
            return lots

        if not allocation.allocations:
            # PPP: shrink every lot proportionally so the average cost holds
            held = sum((lot.quantity for lot in lots), ZERO)
            factor = (held - allocation.quantity_sold) / held if held > ZERO else ZERO
            remaining = []
            for lot in lots:
                quantity = lot.quantity * factor
                if quantity > ZERO:
                    remaining.append(replace(lot, quantity=quantity, total_cost=quantity * lot.unit_cost))
            return remaining

        taken: dict[str, Decimal] = {}
        for entry in allocation.allocations:
            taken[entry.lot_id] = taken.get(entry.lot_id, ZERO) + entry.quantity

        remaining = []
        for lot in lots:
            quantity = lot.quantity - taken.get(lot.id, ZERO)
            if quantity > ZERO:
                remaining.append(replace(lot, quantity=quantity, total_cost=quantity * lot.unit_cost))
        return remaining

    # =========================================================================
    # REALIZED PNL
    # =========================================================================

    def _consumed_cost(
            self,
            allocation: SaleAllocationResult,
            lots: list[LotDetail],
            attribute: str,
    ) -> Decimal | None:
        """Cost of the sold units in the currency given by a lot attribute."""
        if not allocation.allocations:
            held = sum((lot.quantity for lot in lots), ZERO)
            total = ZERO
            for lot in lots:
                unit = getattr(lot, attribute)
                if unit is None:
                    return None
                total += lot.quantity * unit
            return allocation.quantity_sold * total / held if held > ZERO else None

        lots_by_id = {lot.id: lot for lot in lots}
        total = ZERO
        for entry in allocation.allocations:
            unit = getattr(lots_by_id[entry.lot_id], attribute)
            if unit is None:
                return None
            total += entry.quantity * unit
        return total

    def _net_proceeds(self, mov: MovementRecord, allocation: SaleAllocationResult) -> Decimal:
        fee = to_decimal(mov.fee_amount) or ZERO
        return allocation.total_proceeds - fee

    def _realize(
            self,
            mov: MovementRecord,
            allocation: SaleAllocationResult,
            lots: list[LotDetail],
    ) -> RealizedSale:
        fee = to_decimal(mov.fee_amount) or ZERO
        if fee != ZERO:
            realized = allocation.realized_pnl - fee
            cost = allocation.total_cost
            allocation = replace(
                allocation,
                realized_pnl=realized,
                realized_pnl_pct=realized / cost if cost > ZERO else ZERO,
            )

        proceeds_local, proceeds_hard = self._split_currencies(self._net_proceeds(mov, allocation), mov)
        cost_local = self._consumed_cost(allocation, lots, "unit_cost_local")
        cost_hard = self._consumed_cost(allocation, lots, "unit_cost_hard")

        return RealizedSale(
            movement_id=mov.id,
            date=ensure_utc(mov.timestamp),
            allocation=allocation,
            realized_pnl_local=_difference(proceeds_local, cost_local),
            realized_pnl_hard=_difference(proceeds_hard, cost_hard),
        )

    # =========================================================================
    # MARK TO MARKET
    # =========================================================================

    def _mark(self, lot: LotDetail, current_price: Decimal) -> LotDetail:
        price = to_decimal(current_price)
        if price is None or price <= ZERO:
            return lot
        value = lot.quantity * price
        return replace(lot, current_value=value, unrealized_pnl=value - lot.total_cost)


def _difference(proceeds: Decimal | None, cost: Decimal | None) -> Decimal | None:
    if proceeds is None or cost is None:
        return None
    return proceeds - cost
