"""
API rate limiting for the like endpoints.

View admission has its own Redis-backed per-post limiter; this slowapi limiter
only guards the authenticated like/unlike endpoints against hammering.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from engagement.exception_handlers import create_error_response
from engagement.exceptions import ErrorCode
from engagement.utils.request_context import get_client_ip

limiter = Limiter(
    key_func=get_client_ip,
    storage_uri="memory://",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return create_error_response(
        status_code=429,
        message=f"Rate limit exceeded: {exc.detail}",
        error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
        path=request.url.path,
    )


def configure_rate_limiting(app) -> None:
    """
    Attach the limiter to the application.

    Args:
        app: FastAPI application instance
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
