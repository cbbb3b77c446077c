"""Error taxonomy and the translation of failures into JSON responses.

Every user-visible error body has the shape ``{"msg": "..."}``. Handlers and
middleware raise the `ApiError` subclasses below and never build error
responses themselves; `error_response` is the single place that does.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)

INTERNAL_ERROR_MSG = "something went wrong, try again later"


class ApiError(Exception):
    """Base class for failures that map onto an HTTP status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_msg: str = INTERNAL_ERROR_MSG

    def __init__(self, msg: str | None = None):
        self.msg = msg or self.default_msg
        super().__init__(self.msg)


class BadRequestError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_msg = "bad request"


class UnauthenticatedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_msg = "authentication invalid"


class UnauthorizedError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_msg = "not authorized to access this route"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_msg = "not found"


class PayloadTooLargeError(ApiError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    default_msg = "request entity too large"


class FatalStartupError(Exception):
    """Raised when the process cannot reach the listening state."""


def format_validation_errors(exc: RequestValidationError | ValidationError) -> str:
    """Join pydantic validation messages into a single client-facing string."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error.get("loc", ()) if loc != "body")
        message = error.get("msg", "invalid value")
        messages.append(f"{field}: {message}" if field else message)
    return ", ".join(messages) or BadRequestError.default_msg


def error_response(exc: Exception) -> JSONResponse:
    """Convert any exception into a structured JSON error response.

    Args:
        exc (Exception): The failure raised by a middleware stage, dependency or
            route handler.

    Returns:
        JSONResponse: A response with the mapped status code and a ``{"msg"}`` body.

    Notes:
        1. `ApiError` subclasses carry their own status code and message.
        2. Starlette HTTP exceptions keep their status code; the detail becomes the message.
        3. Request and model validation failures become 400 with the joined validation messages.
        4. Anything else is logged with its traceback and reported as a generic 500,
           so internal details never reach the caller.

    """
    if isinstance(exc, ApiError):
        status_code, msg = exc.status_code, exc.msg
    elif isinstance(exc, StarletteHTTPException):
        status_code = exc.status_code
        msg = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        if status_code == status.HTTP_404_NOT_FOUND:
            msg = NotFoundError.default_msg
    elif isinstance(exc, (RequestValidationError, ValidationError)):
        status_code = status.HTTP_400_BAD_REQUEST
        msg = format_validation_errors(exc)
    else:
        _msg = f"Unhandled error: {exc}"
        log.exception(_msg, exc_info=exc)
        status_code, msg = status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MSG

    headers = getattr(exc, "headers", None)
    return JSONResponse(status_code=status_code, content={"msg": msg}, headers=headers)


async def api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler delegating to `error_response`."""
    _msg = f"{request.method} {request.url.path} failed: {exc!r}"
    log.debug(_msg)
    return error_response(exc)


def register_error_handlers(app) -> None:
    """Install the error layer as the application's exception handlers.

    The `Exception` handler is wired by Starlette into its outermost
    server-error middleware. It only sees failures from the stages outside the
    error boundary; everything further in is translated by the boundary.
    """
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, api_error_handler)
    app.add_exception_handler(RequestValidationError, api_error_handler)
    app.add_exception_handler(ValidationError, api_error_handler)
    app.add_exception_handler(Exception, api_error_handler)
