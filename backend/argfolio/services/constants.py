# backend/argfolio/services/constants.py
"""
Centralized constants for the Argfolio services.

Usage:
    from argfolio.services.constants import (
        CALENDAR_DAYS_PER_YEAR,
        DEFAULT_PF_TERM_DAYS,
        PF_SETTLE_KEY_PREFIX,
        CASH_YIELD_KEY_PREFIX,
    )
"""

from decimal import Decimal


# =============================================================================
# FINANCIAL CALENDAR CONSTANTS
# =============================================================================

# Fixed-deposit rates (TNA) are quoted on a 365-day base in Argentina
CALENDAR_DAYS_PER_YEAR: int = 365

# Term assumed for a fixed deposit recorded without one
DEFAULT_PF_TERM_DAYS: int = 30

HUNDRED: Decimal = Decimal("100")


# =============================================================================
# FIXED-DEPOSIT METADATA KEYS
# =============================================================================

# Constitution facts
META_PRINCIPAL = "principal"
META_TNA = "tna"
META_TERM_DAYS = "term_days"
META_START_DATE = "start_date"
META_ALIAS = "alias"

# Redemption link back to the originating deposit
META_PF_ID = "pf_id"
META_PF_ACTION = "action"

# Cash credit produced by a settlement
META_SOURCE = "source"
META_SOURCE_PF_ID = "source_fixed_deposit_id"
PF_SETTLEMENT_SOURCE = "PF_SETTLEMENT"
PF_SETTLE_ACTION = "SETTLE"

# MANUAL-costed sales
META_LOT_ALLOCATIONS = "lot_allocations"


# =============================================================================
# SETTLEMENT IDEMPOTENCY KEYS
# =============================================================================

PF_SETTLE_KEY_PREFIX = "pf-settle:"
PF_CREDIT_KEY_PREFIX = "pf-credit:"

DEFAULT_INSTITUTION = "Desconocido"


# =============================================================================
# TRADE FX SNAPSHOT
# =============================================================================

# Set when fx_at_trade was taken from the last posted quotes
META_FX_KEY = "fx_key"
META_FX_SIDE = "fx_side"


# =============================================================================
# CASH YIELD (remunerated accounts)
# =============================================================================

# Daily interest movements: id and idempotency key are "yield-<account>-<YYYY-MM-DD>"
CASH_YIELD_KEY_PREFIX = "yield-"
CASH_YIELD_SOURCE = "CASH_YIELD"
META_ACCRUAL_DATE = "accrual_date"

# Interest is credited at 00:01 UTC of the day after it was earned
ACCRUAL_HOUR: int = 0
ACCRUAL_MINUTE: int = 1

# Daily interest is rounded to cents before it compounds
CENT: Decimal = Decimal("0.01")
