# backend/argfolio/services/ledger.py
"""
Ledger repository: the only place that reads and writes ledger rows.

The ledger is append-only. There is no update or delete: a correction is
a new movement. Engine-generated movements carry a deterministic
idempotency key; the unique constraint on it makes a duplicate append a
rolled-back no-op surfaced as DuplicateMovementError.

Usage:
    ledger = LedgerRepository(db)
    movement = ledger.append(Movement(...))
    movements = ledger.list_movements(account_id="broker-1")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from argfolio.models import AssetClass, Instrument, Movement, MovementType
from argfolio.services.exceptions import (
    DuplicateMovementError,
    InstrumentNotFoundError,
    LedgerError,
    MovementNotFoundError,
)
from argfolio.services.protocols import MovementRecord, movement_asset_class, movement_type
from argfolio.utils.date_utils import ensure_utc

logger = logging.getLogger(__name__)


def _is_unique_constraint_violation(integrity_error: IntegrityError) -> bool:
    """
    Check if an IntegrityError is caused by a unique constraint violation.

    PostgreSQL reports SQLSTATE 23505; SQLite only says so in the message.
    """
    if hasattr(integrity_error.orig, 'pgcode'):
        return integrity_error.orig.pgcode == '23505'
    message = str(integrity_error.orig).lower()
    return 'unique constraint' in message or 'primary key' in message


@dataclass(frozen=True)
class PlannedMovement:
    """
    A movement an engine intends to append (settlement, cash-yield
    accrual). Satisfies MovementRecord; append it with
    movement_from_record().
    """

    id: str
    idempotency_key: str
    timestamp: datetime
    type: str
    account_id: str
    asset_class: str
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal
    meta: dict[str, Any]
    institution: str | None = None
    trade_currency: str = "ARS"
    instrument_id: str | None = None
    fee_amount: Decimal | None = None
    fx_at_trade: Decimal | None = None
    notes: str | None = None
    is_auto: bool = True


def movement_from_record(record: MovementRecord) -> Movement:
    """
    Build an ORM Movement from any MovementRecord-shaped object.

    Used for engine-generated movements (PlannedMovement), which are
    plain dataclasses until they are appended.
    """
    asset_class = movement_asset_class(record)
    return Movement(
        id=record.id,
        timestamp=record.timestamp,
        type=MovementType(movement_type(record)),
        instrument_id=record.instrument_id,
        account_id=record.account_id,
        asset_class=AssetClass(asset_class) if asset_class else None,
        institution=record.institution,
        quantity=record.quantity,
        unit_price=record.unit_price,
        trade_currency=record.trade_currency,
        total_amount=record.total_amount,
        fee_amount=record.fee_amount,
        fx_at_trade=record.fx_at_trade,
        notes=getattr(record, "notes", None),
        meta=dict(record.meta) if record.meta else None,
        is_auto=getattr(record, "is_auto", False),
        idempotency_key=getattr(record, "idempotency_key", None),
    )


class LedgerRepository:
    """
    Data access for instruments and movements.

    Every write commits on success and rolls back on failure, so the
    session is always usable after an exception.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # =========================================================================
    # INSTRUMENTS
    # =========================================================================

    def add_instrument(self, instrument: Instrument) -> Instrument:
        self.db.add(instrument)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _is_unique_constraint_violation(e):
                raise LedgerError(f"Instrument {instrument.id} already exists") from e
            raise LedgerError(f"Could not store instrument {instrument.symbol}: {e.orig}") from e
        self.db.refresh(instrument)
        logger.info(f"Registered instrument {instrument.symbol} ({instrument.asset_class.value})")
        return instrument

    def get_instrument(self, instrument_id: str) -> Instrument:
        instrument = self.db.get(Instrument, instrument_id)
        if instrument is None:
            raise InstrumentNotFoundError(instrument_id)
        return instrument

    def list_instruments(self) -> list[Instrument]:
        return list(self.db.scalars(select(Instrument).order_by(Instrument.symbol, Instrument.id)))

    def instruments_by_id(self, ids: Iterable[str]) -> dict[str, Instrument]:
        ids = set(ids)
        if not ids:
            return {}
        rows = self.db.scalars(select(Instrument).where(Instrument.id.in_(ids)))
        return {row.id: row for row in rows}

    # =========================================================================
    # MOVEMENTS (read)
    # =========================================================================

    def list_movements(
            self,
            account_id: str | None = None,
            instrument_id: str | None = None,
            asset_class: AssetClass | None = None,
            since: datetime | None = None,
            until: datetime | None = None,
    ) -> list[Movement]:
        """
        Movements in chronological order, optionally filtered.

        Args:
            account_id: Only this account
            instrument_id: Only this instrument
            asset_class: Only movements tagged with this class
            since / until: Inclusive timestamp bounds
        """
        query = select(Movement)
        if account_id is not None:
            query = query.where(Movement.account_id == account_id)
        if instrument_id is not None:
            query = query.where(Movement.instrument_id == instrument_id)
        if asset_class is not None:
            query = query.where(Movement.asset_class == asset_class)
        if since is not None:
            query = query.where(Movement.timestamp >= ensure_utc(since))
        if until is not None:
            query = query.where(Movement.timestamp <= ensure_utc(until))

        query = query.order_by(Movement.timestamp, Movement.id)
        return list(self.db.scalars(query))

    def get_movement(self, movement_id: str) -> Movement:
        movement = self.db.get(Movement, movement_id)
        if movement is None:
            raise MovementNotFoundError(movement_id)
        return movement

    def existing_keys(self, keys: Iterable[str]) -> set[str]:
        """Subset of the given idempotency keys already in the ledger."""
        keys = set(keys)
        if not keys:
            return set()
        rows = self.db.scalars(
            select(Movement.idempotency_key).where(Movement.idempotency_key.in_(keys))
        )
        return set(rows)

    # =========================================================================
    # MOVEMENTS (append)
    # =========================================================================

    def _check_instrument(self, movement: Movement) -> None:
        if movement.instrument_id is not None and self.db.get(Instrument, movement.instrument_id) is None:
            raise InstrumentNotFoundError(movement.instrument_id)

    def append(self, movement: Movement) -> Movement:
        """
        Append one movement.

        Raises:
            InstrumentNotFoundError: instrument_id does not exist
            DuplicateMovementError: id or idempotency key already stored
            LedgerError: any other integrity failure
        """
        return self.append_many([movement])[0]

    def append_many(self, movements: Sequence[Movement]) -> list[Movement]:
        """
        Append several movements in ONE transaction: all or none.

        Raises:
            Same as append(); on any failure nothing is written.
        """
        if not movements:
            return []

        for movement in movements:
            self._check_instrument(movement)
            # Offsets are not kept by every backend: store the UTC instant
            movement.timestamp = ensure_utc(movement.timestamp)

        self.db.add_all(movements)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _is_unique_constraint_violation(e):
                key = movements[0].idempotency_key or movements[0].id
                logger.info(f"Duplicate ledger append rejected (first key: {key})")
                raise DuplicateMovementError(key) from e
            logger.error(f"Ledger append failed: {e.orig}")
            raise LedgerError(f"Could not append movements: {e.orig}") from e

        for movement in movements:
            self.db.refresh(movement)
        logger.debug(f"Appended {len(movements)} movement(s) to the ledger")
        return list(movements)
