# backend/argfolio/utils/logging.py
"""
Log output for the Argfolio API and its scheduler thread.

Every record is tagged with:
- correlation_id: the API call or scheduler pass that produced it
- origin: "request", "scheduler" or "-" (startup, shutdown, tests)

so one settlement pass can be followed from its start to
the ledger appends it made, and told apart from API traffic.

Usage:
    from argfolio.utils import setup_logging

    setup_logging()            # level and format from settings
    setup_logging("DEBUG")     # per-lot allocation detail

What each level shows:
    DEBUG   Missing prices, skipped positions, lot allocation detail
    INFO    Ledger appends, scheduler passes, settled deposits, accruals
    WARNING Heuristic redemption matches, rejected requests
    ERROR   Failed settlement or accrual passes

Settings: LOG_LEVEL (DEBUG/INFO/WARNING/ERROR) and LOG_FORMAT (text/json).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from argfolio.config import settings
from argfolio.utils.context import get_correlation_id, is_pass_id

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(origin)-9s | %(correlation_id)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "no-correlation-id"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Kept at WARNING: SQL echo and the server's own access log
QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "uvicorn.access",
    "asyncio",
)

# LogRecord attributes that never go into the JSON "extra" object
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "correlation_id", "origin"}


def _origin(correlation_id: str | None) -> str:
    if correlation_id is None:
        return "-"
    return "scheduler" if is_pass_id(correlation_id) else "request"


class CorrelationIdFilter(logging.Filter):
    """Stamps correlation_id and origin on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = get_correlation_id()
        record.correlation_id = correlation_id or NO_CORRELATION_ID
        record.origin = _origin(correlation_id)
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line, e.g.

        {"timestamp": "2026-03-01T12:00:00.120000+00:00", "level": "INFO",
         "logger": "argfolio.services.fixed_deposits.settlement",
         "origin": "scheduler", "correlation_id": "settle-0b9c...",
         "message": "Settled 1 fixed deposit(s)",
         "extra": {"deposit_id": "pf-1"}}

    Fields passed with `extra=` that are not JSON-serializable (Decimal,
    datetime) are written with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "origin": getattr(record, "origin", "-"),
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def parse_log_level(name: str) -> int:
    """
    Logging constant for a level name (case-insensitive).

    Raises:
        ValueError: Unknown level name
    """
    try:
        return LOG_LEVELS[name.strip().upper()]
    except KeyError:
        raise ValueError(
            f"Invalid log level: '{name}'. Valid levels are: {', '.join(LOG_LEVELS)}"
        ) from None


def _formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "json":
        return JsonFormatter()
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        quiet_third_party: bool = True,
) -> None:
    """
    Send all application logs to stdout through one tagged handler.

    Args:
        level: Level name; defaults to settings.log_level
        log_format: "text" or "json"; defaults to settings.log_format
        quiet_third_party: Raise QUIET_LOGGERS to WARNING
    """
    level_name = level or settings.log_level
    format_name = log_format or settings.log_format

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_formatter(format_name))
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    root.setLevel(parse_log_level(level_name))
    root.handlers.clear()
    root.addHandler(handler)

    if quiet_third_party:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level_name}, format={format_name}")
