# backend/argfolio/services/lots/types.py
"""
Data types for the lot allocation engine.

Design Principles:
- Lots are immutable (frozen=True); allocation never mutates a lot
- Use Decimal for ALL quantities and money
- Costs are in the instrument's native currency unless suffixed
  (_local / _hard)

Type Hierarchy:
    CostingMethod        - Strategy tag (PPP, FIFO, LIFO, CHEAPEST, MANUAL)
    LotDetail            - One open purchase lot
    ManualAllocation     - Caller-chosen quantity for one lot
    AllocationEntry      - Quantity and cost consumed from one lot
    SaleAllocationResult - Outcome of allocating one sale
    RealizedSale         - One closed sale replayed from the ledger
    RealizedSummary      - Realized PnL of a position's history
    LotBuildResult       - Open lots + realized summary for one position
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

ZERO = Decimal("0")


class CostingMethod(str, enum.Enum):
    PPP = "PPP"  # Precio Promedio Ponderado (weighted average)
    FIFO = "FIFO"
    LIFO = "LIFO"
    CHEAPEST = "CHEAPEST"
    MANUAL = "MANUAL"


@dataclass(frozen=True)
class CostingMethodLabel:
    value: CostingMethod
    label: str
    short: str
    description: str


COSTING_METHOD_LABELS: tuple[CostingMethodLabel, ...] = (
    CostingMethodLabel(CostingMethod.PPP, "PPP", "PPP", "Precio Promedio Ponderado: costo = qty × promedio"),
    CostingMethodLabel(CostingMethod.FIFO, "PEPS (FIFO)", "PEPS", "Primeras Entradas, Primeras Salidas"),
    CostingMethodLabel(CostingMethod.LIFO, "UEPS (LIFO)", "UEPS", "Últimas Entradas, Primeras Salidas"),
    CostingMethodLabel(CostingMethod.CHEAPEST, "Baratos primero", "Baratos", "Consume lotes con menor precio de compra primero"),
    CostingMethodLabel(CostingMethod.MANUAL, "Manual", "Manual", "Seleccioná qué lotes vender y cuánto"),
)


# =============================================================================
# LOTS
# =============================================================================

@dataclass(frozen=True)
class LotDetail:
    """
    One open purchase lot.

    Attributes:
        id: Lot identifier (the id of the movement that opened it)
        date: When the lot was acquired
        quantity: Units still held in this lot
        unit_cost: Cost per unit in native currency
        total_cost: quantity × unit_cost
        current_value: quantity × current price (None without a price)
        unrealized_pnl: current_value - total_cost (None without a price)
        unit_cost_local: Cost per unit in local currency (None if unknown)
        unit_cost_hard: Cost per unit in hard currency (None if unknown)
    """

    id: str
    date: datetime
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    current_value: Decimal | None = None
    unrealized_pnl: Decimal | None = None
    unit_cost_local: Decimal | None = None
    unit_cost_hard: Decimal | None = None


@dataclass(frozen=True)
class ManualAllocation:
    lot_id: str
    quantity: Decimal


@dataclass(frozen=True)
class AllocationEntry:
    lot_id: str
    quantity: Decimal
    cost: Decimal


@dataclass(frozen=True)
class SaleAllocationResult:
    """
    Outcome of allocating one sale against a set of lots.

    Attributes:
        allocations: Per-lot consumption (empty for PPP)
        quantity_sold: Quantity actually allocated (clamped to holdings)
        total_cost: Cost of the units sold
        total_proceeds: quantity_sold × sale price
        realized_pnl: total_proceeds - total_cost
        realized_pnl_pct: realized_pnl / total_cost as a fraction, 0 when
                          total_cost is 0
    """

    allocations: tuple[AllocationEntry, ...] = ()
    quantity_sold: Decimal = ZERO
    total_cost: Decimal = ZERO
    total_proceeds: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    realized_pnl_pct: Decimal = ZERO

    @property
    def is_empty(self) -> bool:
        return self.quantity_sold == ZERO


# =============================================================================
# LEDGER REPLAY
# =============================================================================

@dataclass(frozen=True)
class RealizedSale:
    """
    One sale replayed from the ledger.

    realized_pnl_local / realized_pnl_hard are None when the sale or any
    consumed lot lacks the FX-at-trade figure needed to express them.
    """

    movement_id: str
    date: datetime
    allocation: SaleAllocationResult
    realized_pnl_local: Decimal | None = None
    realized_pnl_hard: Decimal | None = None


@dataclass
class RealizedSummary:
    """Realized PnL accumulated over a position's closed sales."""

    sales: list[RealizedSale] = field(default_factory=list)
    realized_pnl: Decimal = ZERO  # Native currency
    realized_pnl_local: Decimal = ZERO
    realized_pnl_hard: Decimal = ZERO

    @property
    def has_sales(self) -> bool:
        return len(self.sales) > 0


@dataclass
class LotBuildResult:
    """
    Open lots and realized history for one (account, instrument) position.

    Attributes:
        lots: Open lots in acquisition order
        realized: Realized PnL of all replayed sales
        warnings: Data integrity notes (e.g. sales exceeding holdings)
    """

    lots: list[LotDetail]
    realized: RealizedSummary
    warnings: list[str] = field(default_factory=list)

    @property
    def quantity(self) -> Decimal:
        return sum((lot.quantity for lot in self.lots), ZERO)

    @property
    def total_cost(self) -> Decimal:
        return sum((lot.total_cost for lot in self.lots), ZERO)

    @property
    def cost_local(self) -> Decimal | None:
        """Open cost in local currency; None if any lot lacks a local cost."""
        total = ZERO
        for lot in self.lots:
            if lot.unit_cost_local is None:
                return None
            total += lot.quantity * lot.unit_cost_local
        return total

    @property
    def cost_hard(self) -> Decimal | None:
        """Open cost in hard currency; None if any lot lacks a hard cost."""
        total = ZERO
        for lot in self.lots:
            if lot.unit_cost_hard is None:
                return None
            total += lot.quantity * lot.unit_cost_hard
        return total

    @property
    def avg_cost(self) -> Decimal | None:
        qty = self.quantity
        if qty == ZERO:
            return None
        return self.total_cost / qty
