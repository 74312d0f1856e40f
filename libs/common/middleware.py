"""Request middleware for the store API.

Provides:
- Request ID generation and propagation (X-Request-ID)
- Request timing and structured completion logs
- A response header carrying the processing time

Usage:
    from libs.common.middleware import add_observability_middleware

    app = FastAPI()
    add_observability_middleware(app)
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

QUIET_PATHS = ("/health", "/favicon.ico")


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request ID to the log context and log each request once it completes."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        request.state.request_id = request_id
        quiet = request.url.path in QUIET_PATHS or request.url.path.startswith("/static")

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled error while serving %s %s",
                request.method,
                request.url.path,
                extra={
                    "extra_fields": {
                        "error": str(e),
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    }
                },
            )
            raise
        finally:
            clear_request_context()

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if not quiet:
            level = "warning" if response.status_code >= 400 else "info"
            getattr(logger, level)(
                "%s %s -> %s",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "extra_fields": {
                        "status_code": response.status_code,
                        "duration_ms": duration_ms,
                        "client_ip": _client_ip(request),
                    }
                },
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time-Ms"] = str(duration_ms)
        return response


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request context middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Observability middleware initialized")
