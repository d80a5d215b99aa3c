# tests/test_correlation_id.py
"""
Tests for correlation ID middleware, context management and log records.
"""

import json
import logging
from decimal import Decimal

import pytest

from argfolio.utils.context import (
    clear_correlation_id,
    get_correlation_id,
    is_pass_id,
    new_pass_id,
    set_correlation_id,
)
from argfolio.utils.logging import CorrelationIdFilter, JsonFormatter, parse_log_level


class TestContext:

    def test_unset_is_none(self):
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_set_then_clear(self):
        set_correlation_id("trace-123")
        assert get_correlation_id() == "trace-123"

        clear_correlation_id()
        assert get_correlation_id() is None

    def test_pass_ids_are_unique_and_prefixed(self):
        first, second = new_pass_id(), new_pass_id()

        assert first.startswith("settle-")
        assert first != second

    def test_is_pass_id(self):
        assert is_pass_id(new_pass_id())
        assert not is_pass_id("trace-123")
        assert not is_pass_id(None)


class TestCorrelationIdMiddleware:

    def test_generates_an_id(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        correlation_id = response.headers["X-Correlation-ID"]
        assert len(correlation_id) == 36  # UUID length
        assert correlation_id.count("-") == 4

    def test_uses_provided_correlation_id(self, client):
        custom_id = "my-custom-trace-id-123"
        response = client.get("/health", headers={"X-Correlation-ID": custom_id})

        assert response.headers["X-Correlation-ID"] == custom_id

    def test_uses_request_id_header_as_fallback(self, client):
        custom_id = "my-request-id-456"
        response = client.get("/health", headers={"X-Request-ID": custom_id})

        assert response.headers["X-Correlation-ID"] == custom_id

    def test_prefers_correlation_id_over_request_id(self, client):
        response = client.get(
            "/health",
            headers={
                "X-Correlation-ID": "correlation-123",
                "X-Request-ID": "request-456",
            }
        )

        assert response.headers["X-Correlation-ID"] == "correlation-123"

    def test_error_responses_carry_the_id(self, client):
        """Handled domain errors still go back through the middleware."""
        response = client.get("/instruments/missing", headers={"X-Correlation-ID": "trace-404"})

        assert response.status_code == 404
        assert response.headers["X-Correlation-ID"] == "trace-404"

    def test_different_requests_get_different_ids(self, client):
        id1 = client.get("/health").headers["X-Correlation-ID"]
        id2 = client.get("/health").headers["X-Correlation-ID"]

        assert id1 != id2


class TestLogRecords:

    def _record(self, message="Settled 1 fixed deposit(s)"):
        return logging.LogRecord(
            name="argfolio.services.fixed_deposits.settlement",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg=message,
            args=(),
            exc_info=None,
        )

    def test_filter_adds_current_id(self):
        record = self._record()
        set_correlation_id("trace-1")
        try:
            CorrelationIdFilter().filter(record)
        finally:
            clear_correlation_id()

        assert record.correlation_id == "trace-1"
        assert record.origin == "request"

    def test_filter_without_request(self):
        clear_correlation_id()
        record = self._record()
        CorrelationIdFilter().filter(record)

        assert record.correlation_id == "no-correlation-id"
        assert record.origin == "-"

    def test_filter_marks_scheduler_passes(self):
        record = self._record()
        set_correlation_id(new_pass_id())
        try:
            CorrelationIdFilter().filter(record)
        finally:
            clear_correlation_id()

        assert record.origin == "scheduler"
        assert record.correlation_id.startswith("settle-")

    def test_json_formatter(self):
        record = self._record()
        record.correlation_id = "trace-2"
        record.origin = "request"
        record.deposit_id = "pf-1"

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "argfolio.services.fixed_deposits.settlement"
        assert entry["correlation_id"] == "trace-2"
        assert entry["origin"] == "request"
        assert entry["message"] == "Settled 1 fixed deposit(s)"
        assert entry["extra"] == {"deposit_id": "pf-1"}

    def test_json_formatter_writes_decimals_as_text(self):
        record = self._record()
        record.amount = Decimal("230000.50")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["extra"] == {"amount": "230000.50"}


class TestLogLevel:

    @pytest.mark.parametrize("name,level", [
        ("debug", logging.DEBUG),
        (" INFO ", logging.INFO),
        ("warn", logging.WARNING),
    ])
    def test_parse(self, name, level):
        assert parse_log_level(name) == level

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            parse_log_level("LOUD")
