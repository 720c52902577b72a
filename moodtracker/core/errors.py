"""
Custom exception hierarchy for the mood tracker.

Every error carries a machine-readable `code` string so renderers
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)

MOOD_MIN = 1
MOOD_MAX = 5


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class MoodTrackerException(Exception):
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


class StorageError(MoodTrackerException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORAGE_ERROR"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Entry store could not complete {operation}: {reason}",
            details={"operation": operation},
        )


class InvalidMoodValue(MoodTrackerException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_MOOD_VALUE"

    def __init__(self, mood: Any):
        super().__init__(
            message=f"Mood must be an integer between {MOOD_MIN} and {MOOD_MAX}. Received {mood!r}.",
            details={"mood": mood, "min": MOOD_MIN, "max": MOOD_MAX},
        )


class ControllerNotRunningError(MoodTrackerException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "CONTROLLER_NOT_RUNNING"

    def __init__(self):
        super().__init__(message="Tracker controller is not running.")


class UnhandledIntentError(MoodTrackerException):
    code = "UNHANDLED_INTENT"

    def __init__(self, intent: Any):
        super().__init__(
            message=f"No handler for intent {type(intent).__name__}.",
            details={"intent": type(intent).__name__},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

_REQUEST_PARTS = {"body", "query", "path"}


async def tracker_exception_handler(request: Request, exc: MoodTrackerException) -> JSONResponse:
    """
    Translate tracker errors raised at the HTTP boundary, e.g.
    CONTROLLER_NOT_RUNNING (503) when an intent arrives outside the lifespan.
    StorageError and InvalidMoodValue normally stay on the notice channel.
    """
    logger.info("%s %s -> %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed intents (mood missing, not a strict int, outside 1-5) → 422 per field."""
    field_errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc not in _REQUEST_PARTS),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Intent rejected: request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )


def install_exception_handlers(app: FastAPI) -> None:
    # Most specific first.
    app.add_exception_handler(MoodTrackerException, tracker_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
