"""Exception handlers mapping render-service errors to JSON responses.

Bad query parameters (ValidationAppError) are the client's fault and answer
400. A renderer that could not draw a code (RenderAppError) answers 500 and
leaves nothing in the cache. Anything else falls through to a generic 500
that never echoes the exception text.

Throttled requests do not pass through here: the rate limit dependency raises
FastAPI's HTTPException and keeps its ``{"detail": ...}`` body.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.errors import AppError, RenderAppError, ValidationAppError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[AppError], int] = {
    ValidationAppError: 400,
    RenderAppError: 500,
}


def status_for(exc: AppError) -> int:
    """HTTP status for a domain error; unknown AppError subclasses count as 400."""
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "request.rejected" if status_code < 500 else "request.render_failed",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "status": status_code,
            "parameter": (exc.details or {}).get("parameter"),
        },
    )
    return _error_response(status_code, exc.code, exc.message, exc.details)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain and fallback handlers on ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
