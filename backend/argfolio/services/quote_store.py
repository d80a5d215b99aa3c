# backend/argfolio/services/quote_store.py
"""
In-process store of the last FX quotes posted to the API.

The engine never fetches quotes itself: clients send them with each
valuation request. Background work (the settlement scheduler) has no
request to read them from, so every request that carries quotes also
records them here.

Thread Safety:
    Uses threading.Lock; request handlers and the scheduler thread share
    one instance. With several worker processes each keeps its own copy.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from argfolio.utils.date_utils import utc_now
from argfolio.utils.fx_conversion import FxQuotes

logger = logging.getLogger(__name__)


class LatestQuoteStore:
    """Holds the most recent FxQuotes. Satisfies the QuoteSource protocol."""

    def __init__(self) -> None:
        self._quotes: FxQuotes | None = None
        self._posted_at: datetime | None = None
        self._lock = threading.Lock()

    def update(self, quotes: FxQuotes, posted_at: datetime | None = None) -> None:
        with self._lock:
            self._quotes = quotes
            self._posted_at = posted_at or utc_now()
        logger.debug("FX quotes updated")

    def current_quotes(self) -> FxQuotes | None:
        with self._lock:
            return self._quotes

    @property
    def posted_at(self) -> datetime | None:
        with self._lock:
            return self._posted_at

    def clear(self) -> None:
        with self._lock:
            self._quotes = None
            self._posted_at = None
