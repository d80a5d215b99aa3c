# backend/argfolio/schemas/errors.py
"""
Error bodies returned by the API.

Service exceptions (unknown instrument, duplicate idempotency key,
failed settlement...) are turned into ErrorDetail by the handlers in
main.py; request validation failures into ValidationErrorDetail.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """`error` is the exception class name; clients branch on it."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{
                "error": "DuplicateMovementError",
                "message": "Movement already recorded: pf-settle:pf-1",
                "details": {"key": "pf-settle:pf-1"},
            }]
        }
    )

    error: str = Field(..., description="Exception name, e.g. 'InstrumentNotFoundError'")
    message: str
    details: dict[str, Any] | None = Field(
        default=None,
        description="Offending resource or key, when there is one"
    )


class FieldError(BaseModel):
    """One rejected request field."""

    field: str = Field(..., description="Dotted location, e.g. 'body.fixed_deposit.tna'")
    message: str
    type: str


class ValidationErrorDetail(BaseModel):
    """422 body listing every rejected field."""

    error: str = "ValidationError"
    message: str = "Request validation failed"
    details: list[FieldError]
