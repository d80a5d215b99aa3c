# backend/argfolio/middleware/correlation.py
"""
Tags every API call with a correlation id.

The id is read from the first of INCOMING_HEADERS the caller sent, or
generated (uuid4). It is set for the duration of the call, so ledger
appends and manual settlement runs log under it, and echoed back in
X-Correlation-ID, error responses included.

    curl -H "X-Correlation-ID: import-2026-03" -X POST .../movements/
"""

import uuid
from collections.abc import Awaitable, Callable

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from argfolio.utils.context import clear_correlation_id, set_correlation_id

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Checked in order; X-Request-ID is what most proxies set
INCOMING_HEADERS = (CORRELATION_ID_HEADER, "X-Request-ID")


def correlation_id_from(headers: Headers) -> str:
    """First non-empty incoming id header, or a new uuid4."""
    for name in INCOMING_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):

    async def dispatch(
            self,
            request: Request,
            call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = correlation_id_from(request.headers)
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
