# backend/argfolio/__init__.py
"""Argfolio: multi-currency portfolio valuation engine and ledger API."""
