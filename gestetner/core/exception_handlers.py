"""Global exception handlers for consistent error responses.

Pastes are plain text, so errors are plain text too: the response body is the
same message the raw-socket ingress would write back.

Design:
- ValidationAppError → 400 with the validation message
- RateLimitedAppError → 429 "Rate limited\\n" (+ Retry-After / X-RateLimit-*)
- StorageAppError → 500, no filesystem details leaked
- Routing HTTPException (unknown path, wrong method) → its status, plain text
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gestetner.core.errors import AppError, RateLimitedAppError, StorageAppError, ValidationAppError
from gestetner.core.logging import get_request_id
from gestetner.core.rate_limit import rate_limit_headers

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error\n"
NOT_FOUND_MESSAGE = "Not Found"


async def app_error_handler(request: Request, exc: AppError) -> PlainTextResponse:
    """Handle domain application errors.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        PlainTextResponse with the status code for the error type.
    """
    headers: dict[str, str] = {}
    body = exc.message

    if isinstance(exc, ValidationAppError):
        status_code = 400
    elif isinstance(exc, RateLimitedAppError):
        status_code = 429
        include = request.app.state.settings.app.rate_limit_include_headers
        if include and exc.result is not None:
            headers.update(rate_limit_headers(exc.result))
    elif isinstance(exc, StorageAppError):
        status_code = 500
        body = INTERNAL_ERROR_MESSAGE
    else:
        status_code = 400

    log = logger.error if status_code >= 500 else logger.info
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    return PlainTextResponse(body, status_code=status_code, headers=headers or None)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> PlainTextResponse:
    """Render routing errors raised by the framework as plain text.

    Unknown paths get the same 404 body as a missing paste; other statuses
    keep their reason phrase and headers (``Allow`` on a 405).
    """
    body = NOT_FOUND_MESSAGE if exc.status_code == 404 else str(exc.detail)
    return PlainTextResponse(body, status_code=exc.status_code, headers=exc.headers)


async def general_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return PlainTextResponse(INTERNAL_ERROR_MESSAGE, status_code=500)


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> from gestetner.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
