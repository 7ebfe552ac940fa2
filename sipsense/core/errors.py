"""
Custom exception hierarchy for SipSense.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Insufficient data is never an error here: the engine degrades to defaults
and 0.0 scores instead of raising.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class SipSenseException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class SuggestionNotFoundError(SipSenseException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "SUGGESTION_NOT_FOUND"

    def __init__(self, suggestion_id: str):
        super().__init__(
            message=f"No pending suggestion with id {suggestion_id}.",
            details={"suggestion_id": suggestion_id},
        )


class ReminderStoreError(SipSenseException):
    """The accepted reminder could not be written; the suggestion stays pending."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "REMINDER_STORE_UNAVAILABLE"

    def __init__(self, suggestion_id: str):
        super().__init__(
            message="The reminder could not be saved. Try accepting the suggestion again.",
            details={"suggestion_id": suggestion_id},
        )


class FeatureArityError(SipSenseException):
    """A feature vector or weight vector does not match the model's arity."""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "FEATURE_ARITY_MISMATCH"

    def __init__(self, expected: int, received: int):
        super().__init__(
            message=f"Expected {expected} features, received {received}.",
            details={"expected": expected, "received": received},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def sipsense_exception_handler(request: Request, exc: SipSenseException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
