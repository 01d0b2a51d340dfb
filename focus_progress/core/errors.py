"""
Exception hierarchy for the progress sync service.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages. A failed write is
always an error response; "nothing changed" is a 200.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class ProgressException(Exception):
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


class MissingKeyFieldsError(ProgressException):
    """A write or delete was attempted without its key fields."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "MISSING_KEY_FIELDS"

    def __init__(self, missing: list[str]):
        super().__init__(
            message=f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


class ReconciliationFailure(ProgressException):
    """The store rejected an upsert or delete. The record keeps its prior state."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "RECONCILIATION_FAILED"

    def __init__(self, project_id: str, day: Optional[date], reason: str):
        details: dict[str, Any] = {"project_id": project_id, "reason": reason}
        if day is not None:
            details["date"] = str(day)
        super().__init__(
            message=f"Failed to persist daily achievements for project {project_id}.",
            details=details,
        )


class StoreReadError(ProgressException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"

    def __init__(self, project_id: str, reason: str):
        super().__init__(
            message=f"Failed to read daily achievements for project {project_id}.",
            details={"project_id": project_id, "reason": reason},
        )


class AuthenticationRequiredError(ProgressException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_REQUIRED"

    def __init__(self):
        super().__init__(message="This operation requires a signed-in user.")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def progress_exception_handler(request: Request, exc: ProgressException) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.code, exc.details)
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
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
