"""Global exception handlers for consistent error responses.

Every failure leaves the API as ``{"success": false, "message": "..."}`` with
the matching HTTP status. Handlers raise ``StoreError`` (or ``HTTPException``)
and let these handlers shape the body.
"""

from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from libs.common.logging import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """A failure that should be reported to the caller as-is."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        data: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.data = data
        super().__init__(message)


class NotFoundError(StoreError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)


def error_body(message: str, data: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if data:
        body.update(data)
    return body


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content=error_body(exc.message, exc.data)
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"
    return JSONResponse(
        status_code=422,
        content=error_body(message, {"errors": [e.get("msg") for e in errors]}),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception on %s %s", request.method, request.url.path
    )
    return JSONResponse(
        status_code=500, content=error_body("An unexpected error occurred")
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register the store's exception handlers on ``app``."""
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
