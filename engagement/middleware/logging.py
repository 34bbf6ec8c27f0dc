"""
Structured Logging Middleware

JSON request logging with request IDs. Tracking beacons are high volume, so
successful view and engagement pings are logged at DEBUG and everything else
at INFO or above.
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from engagement.utils.request_context import get_client_ip

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

QUIET_PATHS = ("/health", "/health/redis", "/metrics")
BEACON_SUFFIXES = ("/views", "/engagement")
POST_TYPE_PREFIXES = (("/api/blog/", "editorial"), ("/api/community-blogs/", "community"))

EXTRA_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_ip",
    "viewer_id",
    "post_type",
    "post_id",
    "outcome",
    "error_code",
)


class RequestIdFilter(logging.Filter):
    """Stamp every record with the current request ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", ""):
            record.request_id = request_id_var.get("")
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID, times the request and writes one access log line."""

    def __init__(self, app: ASGIApp, logger_name: str = "engagement.access"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_var.set(request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            self._log_request(request, 500, (time.perf_counter() - start_time) * 1000, request_id, error=str(e))
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id
        self._log_request(request, response.status_code, duration_ms, request_id=request_id)
        return response

    def _log_request(
        self,
        request: Request,
        status_code: int,
        duration_ms: float,
        request_id: str | None = None,
        error: str | None = None,
    ) -> None:
        path = request.url.path
        if path in QUIET_PATHS:
            return

        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        elif request.method == "POST" and path.endswith(BEACON_SUFFIXES):
            log_level = logging.DEBUG
        else:
            log_level = logging.INFO

        extra = {
            "method": request.method,
            "path": path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": get_client_ip(request),
        }
        if request_id:
            extra["request_id"] = request_id

        for prefix, post_type in POST_TYPE_PREFIXES:
            if path.startswith(prefix):
                extra["post_type"] = post_type
                break

        # Set by the viewer dependency on authenticated requests
        viewer_id = getattr(request.state, "viewer_id", None)
        if viewer_id is not None:
            extra["viewer_id"] = viewer_id

        message = f"{request.method} {path} - {status_code} ({duration_ms:.2f}ms)"
        if error:
            message += f" - Error: {error}"

        self.logger.log(log_level, message, extra=extra)


def setup_structured_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure root logging for the service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use the JSON formatter (True outside local development)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"))
    handler.addFilter(RequestIdFilter())
    root_logger.addHandler(handler)

    for logger_name, level in {
        "engagement": log_level,
        "engagement.access": log_level,
        "uvicorn.access": "WARNING",
        "sqlalchemy.engine": "WARNING",
        "apscheduler": "WARNING",
    }.items():
        logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))
