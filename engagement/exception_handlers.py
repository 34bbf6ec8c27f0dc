"""
Global Exception Handlers for the engagement service

Every failure leaves the API in one envelope, which the blog UI reads to
decide between a login redirect (401), a zero-count fallback (503) and a
plain error message:

{
    "error": {
        "status_code": 401,
        "error_code": "AUTH_REQUIRED",
        "message": "Authentication required",
        "type": "Unauthorized",
        "details": {"login_url": "/login"},
        "path": "/api/blog/hello-world/likes"
    }
}
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from engagement.exceptions import EngagementError, ErrorCode, TransientStoreError

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying after a 503
STORE_RETRY_AFTER_SECONDS = 5

ERROR_TYPES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Validation Error",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}

# Codes for errors raised by FastAPI/Starlette rather than by our services
HTTP_ERROR_CODES = {
    400: ErrorCode.VALIDATION_FAILED,
    401: ErrorCode.AUTH_FAILED,
    403: ErrorCode.AUTH_PERMISSION_DENIED,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    422: ErrorCode.VALIDATION_FAILED,
    429: ErrorCode.RATE_LIMIT_EXCEEDED,
    500: ErrorCode.INTERNAL_ERROR,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


def create_error_response(
    status_code: int,
    message: str,
    error_code: str | ErrorCode | None = None,
    details: dict[str, Any] | None = None,
    path: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """
    Build the standard error envelope.

    ``error_code``, ``details`` and ``path`` are only included when given.
    """
    error: dict[str, Any] = {
        "status_code": status_code,
        "message": message,
        "type": get_error_type(status_code),
    }
    if error_code:
        error["error_code"] = error_code.value if isinstance(error_code, ErrorCode) else error_code
    if details:
        error["details"] = details
    if path:
        error["path"] = path

    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


def get_error_type(status_code: int) -> str:
    return ERROR_TYPES.get(status_code, "Error")


def get_http_error_code(status_code: int) -> str:
    return HTTP_ERROR_CODES.get(status_code, ErrorCode.UNKNOWN_ERROR).value


async def engagement_exception_handler(request: Request, exc: EngagementError) -> JSONResponse:
    """Client-side failures (auth, missing post, bad input) log at WARNING."""
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        f"{type(exc).__name__}: {exc.message}",
        extra={"status_code": exc.status_code, "error_code": exc.error_code.value, "path": request.url.path},
    )
    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details or None,
        path=request.url.path,
    )


async def transient_store_exception_handler(request: Request, exc: TransientStoreError) -> JSONResponse:
    """Store outages answer 503 with Retry-After; the UI falls back to zero counts."""
    logger.warning(
        f"Store unavailable during {exc.details.get('operation', 'request')}",
        extra={"status_code": exc.status_code, "error_code": exc.error_code.value, "path": request.url.path},
    )
    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details or None,
        path=request.url.path,
        headers={"Retry-After": str(STORE_RETRY_AFTER_SECONDS)},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning(f"HTTPException: {exc.detail}", extra={"status_code": exc.status_code, "path": request.url.path})
    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=get_http_error_code(exc.status_code),
        path=request.url.path,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Query and path parameter errors, e.g. an unknown trending scope."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"Validation error on {request.url.path}", extra={"path": request.url.path})

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code=ErrorCode.VALIDATION_FAILED,
        details={"validation_errors": errors},
        path=request.url.path,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception: {exc!r}",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    # Internal details stay in the log
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code=ErrorCode.INTERNAL_ERROR,
        path=request.url.path,
    )


def register_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(TransientStoreError, transient_store_exception_handler)
    app.add_exception_handler(EngagementError, engagement_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
