"""Rate limiting configuration for the store API.

Uses slowapi keyed on the client IP. Storage defaults to in-process memory and
can point at Redis through RATE_LIMIT_STORAGE_URI.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def _get_client_ip(request: Request) -> str:
    """
    Get client IP from request, handling proxies.

    Checks X-Forwarded-For header first (for proxied requests),
    then falls back to direct connection IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


@lru_cache
def get_limiter() -> Limiter:
    """Create and return a cached Limiter instance."""
    settings = get_settings()

    return Limiter(
        key_func=_get_client_ip,
        default_limits=["200/minute"],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Return the standard failure envelope with a Retry-After header."""
    retry_after = exc.detail.split("per")[0].strip() if exc.detail else "1 minute"

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": f"Too many requests. Try again later ({retry_after} allowed).",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def auth_limit(func: Callable) -> Callable:
    """Strict limit for admin login (5/minute)."""
    return limiter.limit("5/minute")(func)


def checkout_limit(func: Callable) -> Callable:
    """Limit for payment intent creation and confirmation (10/minute)."""
    return limiter.limit("10/minute")(func)
