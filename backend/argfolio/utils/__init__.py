# backend/argfolio/utils/__init__.py
"""
Utility modules for Argfolio.

This package contains cross-cutting utilities used throughout the application:
- logging: Handler setup, correlation id and origin on every record
- context: Correlation id of the current API call or scheduler pass
- date_utils: UTC normalization of stored and posted timestamps
- fx_conversion: FX quote construction and bid/ask/mid conversions

Usage:
    from argfolio.utils import setup_logging
    from argfolio.utils import get_correlation_id, new_pass_id
    from argfolio.utils.fx_conversion import build_quote, to_hard_from_local
"""

from argfolio.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    new_pass_id,
)
from argfolio.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "new_pass_id",
]
