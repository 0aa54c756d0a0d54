"""
Error taxonomy for the service layer and the handlers that render it.

Every failure leaves the API as ``{"error": true, "message": ...}`` with the
status code of its class.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class TravelStoryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TravelStoryError):
    """A required field is missing or malformed."""

    status_code = 400


class Conflict(TravelStoryError):
    """The email address is already registered."""

    status_code = 400


class InvalidCredentials(TravelStoryError):
    """The password does not match the stored hash."""

    status_code = 400


class Unauthenticated(TravelStoryError):
    """Bearer token missing, malformed, expired or pointing at nobody."""

    status_code = 401


class NotFound(TravelStoryError):
    """Record absent, or owned by somebody else."""

    status_code = 404


class InternalError(TravelStoryError):
    """Unexpected failure from a store or blob collaborator."""

    status_code = 500


class ConfigurationError(RuntimeError):
    """Raised at startup when a required setting is absent."""


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": True, "message": message}
    )


def _travel_story_error_handler(request: Request, exc: TravelStoryError):
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message
        )
    return error_response(exc.status_code, exc.message)


def _validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return error_response(400, "Invalid request")
    first = errors[0]
    loc = [
        str(part)
        for part in first.get("loc") or ()
        if part not in ("body", "query", "path", "form")
    ]
    field = ".".join(loc)
    message = first.get("msg", "Invalid value")
    return error_response(400, f"{field}: {message}" if field else message)


def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and detail == "Not Found":
        detail = "Route not found"
    return error_response(exc.status_code, detail)


def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    # Surface the underlying message for diagnostics.
    error = InternalError(str(exc) or "Internal server error")
    return error_response(error.status_code, error.message)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TravelStoryError, _travel_story_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
