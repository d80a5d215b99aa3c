# backend/argfolio/middleware/__init__.py
"""
Middleware components for Argfolio.

Usage:
    from argfolio.middleware import CorrelationIdMiddleware

    app.add_middleware(CorrelationIdMiddleware)
"""

from argfolio.middleware.correlation import CorrelationIdMiddleware

__all__ = [
    "CorrelationIdMiddleware",
]
