# backend/argfolio/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer is responsible for mapping these to appropriate HTTP responses.

Missing market data (prices, FX quotes, cost basis) is never an exception:
the engines degrade those fields to None. Only programmer errors and
ledger integrity problems raise.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── UnknownCostingMethodError
    ├── NotFoundError
    │   ├── InstrumentNotFoundError
    │   ├── MovementNotFoundError
    │   └── CashYieldNotFoundError
    ├── LedgerError
    │   └── DuplicateMovementError
    ├── SettlementError
    └── AccrualError
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    This is for programmatic validation errors (unknown strategy tags,
    inconsistent parameters), NOT for user input validation which is
    handled by Pydantic.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class UnknownCostingMethodError(ValidationError):
    """
    Raised when a costing method tag is not one of PPP, FIFO, LIFO,
    CHEAPEST or MANUAL.
    """

    VALID_METHODS = ("PPP", "FIFO", "LIFO", "CHEAPEST", "MANUAL")

    def __init__(self, method: object) -> None:
        self.method = method
        super().__init__(
            f"Unknown costing method: '{method}'. "
            f"Valid options: {', '.join(self.VALID_METHODS)}",
            field="method",
        )


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Instrument", "Movement")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class InstrumentNotFoundError(NotFoundError):
    """Raised when an instrument id is not in the ledger."""

    def __init__(self, instrument_id: str) -> None:
        self.instrument_id = instrument_id
        super().__init__(
            f"Instrument {instrument_id} not found",
            resource_type="Instrument",
            resource_id=instrument_id,
        )


class MovementNotFoundError(NotFoundError):
    """Raised when a movement id is not in the ledger."""

    def __init__(self, movement_id: str) -> None:
        self.movement_id = movement_id
        super().__init__(
            f"Movement {movement_id} not found",
            resource_type="Movement",
            resource_id=movement_id,
        )


# =============================================================================
# LEDGER ERRORS
# =============================================================================


class LedgerError(ServiceError):
    """Base exception for ledger write failures."""
    pass


class DuplicateMovementError(LedgerError):
    """
    Raised when appending a movement whose id or idempotency key is
    already in the ledger.

    The settlement service treats this as "already settled", not as a
    failure.

    Attributes:
        key: The conflicting idempotency key (or movement id)
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Movement with key '{key}' already exists in the ledger")


# =============================================================================
# SETTLEMENT ERRORS
# =============================================================================


class SettlementError(ServiceError):
    """
    Raised when a settlement pass cannot write its movements for a reason
    other than a duplicate key (e.g. the database rejected the batch).
    """
    pass


# =============================================================================
# CASH YIELD ERRORS
# =============================================================================


class CashYieldNotFoundError(NotFoundError):
    """Raised when an account has no cash-yield setting."""

    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(
            f"Account {account_id} has no cash yield configured",
            resource_type="CashYield",
            resource_id=account_id,
        )


class AccrualError(ServiceError):
    """
    Raised when an accrual pass cannot write its interest movements for
    a reason other than a duplicate key.
    """
    pass


__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "UnknownCostingMethodError",
    # Not Found
    "NotFoundError",
    "InstrumentNotFoundError",
    "MovementNotFoundError",
    "CashYieldNotFoundError",
    # Ledger
    "LedgerError",
    "DuplicateMovementError",
    # Settlement
    "SettlementError",
    # Cash yield
    "AccrualError",
]
