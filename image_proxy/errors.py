"""Error taxonomy and the centralized JSON error responder.

Every exception raised while serving a request ends up in one of the
handlers registered by :func:`register_exception_handlers`, which render
the ``{status, message}`` body. Outside production the body also carries
``cause`` and ``stack`` for diagnostics.
"""
from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from image_proxy.config import get_settings

logger = logging.getLogger(__name__)

_PRODUCTION_MESSAGES = {
    400: (
        "The request cannot or will not be processed due to something that is "
        "perceived to be a client error (for example validation error)"
    ),
    403: (
        "The request contained valid data and was understood by the server, but "
        "the server is refusing action due to the authenticated user not having "
        "the necessary permissions for the resource."
    ),
    404: "The requested resource was not found.",
    500: "An unexpected condition was encountered.",
}


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status: int = 500
    default_message = "An unexpected condition was encountered."

    def __init__(self, message: str | None = None, *, headers: dict[str, str] | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.headers = headers


class BadRequestError(ApiError):
    status = 400
    default_message = "Bad request."


class AuthenticationError(ApiError):
    status = 401
    default_message = "Access token invalid or not provided."

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(ApiError):
    status = 403
    default_message = "Forbidden."


class NotFoundError(ApiError):
    status = 404
    default_message = "Not found."


class PayloadTooLargeError(ApiError):
    status = 413
    default_message = "The request body is too large."


# ---------------------------------------------------------------------------
# Response rendering
# ---------------------------------------------------------------------------


def _stack_of(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def error_body(status: int, message: str, exc: BaseException | None = None) -> dict[str, Any]:
    """Build the JSON error body for *status* according to the environment."""

    if not get_settings().is_development:
        return {"status": status, "message": _PRODUCTION_MESSAGES.get(status, message)}

    # Development only!
    cause = exc.__cause__ if exc is not None else None
    return {
        "status": status,
        "message": message,
        "cause": {
            "status": getattr(cause, "status", None),
            "message": str(cause),
            "stack": _stack_of(cause),
        }
        if cause is not None
        else None,
        "stack": _stack_of(exc) if exc is not None else None,
    }


def error_response(
    status: int,
    message: str,
    exc: BaseException | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(status_code=status, content=error_body(status, message, exc), headers=headers)


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status, exc.message, exc, exc.headers)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), exc, getattr(exc, "headers", None))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, f"Invalid request: {exc.errors()}", exc)


def unhandled_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, str(exc) or exc.__class__.__name__, exc)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return unhandled_error_response(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
