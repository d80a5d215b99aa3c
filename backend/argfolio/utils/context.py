# backend/argfolio/utils/context.py
"""
Correlation ids for ledger work.

One id follows one unit of work through the logs:
- an API call (id taken from the caller's headers, or generated), set by
  CorrelationIdMiddleware
- one background pass of the scheduler (settlement and cash-yield
  accrual), set by the scheduler thread as "settle-<uuid>"

The id lives in a ContextVar, so request handlers and the scheduler
thread never see each other's id.
"""

import uuid
from contextvars import ContextVar

# Prefix of ids minted for scheduler passes
SETTLEMENT_PASS_PREFIX = "settle-"

_correlation_id: ContextVar[str | None] = ContextVar("argfolio_correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Id of the current request or pass, None outside of one."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def new_pass_id(prefix: str = SETTLEMENT_PASS_PREFIX) -> str:
    """Fresh id for a background pass, e.g. "settle-0b9c...". """
    return f"{prefix}{uuid.uuid4()}"


def is_pass_id(correlation_id: str | None) -> bool:
    """True for ids minted by new_pass_id()."""
    return bool(correlation_id) and correlation_id.startswith(SETTLEMENT_PASS_PREFIX)
