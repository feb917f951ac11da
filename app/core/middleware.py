"""Request correlation and access logging.

Every response carries the request id (taken from the client when it looks
safe, generated otherwise) and the handling time. One ``request.completed``
line per request records the route, status and render cache outcome, which
is enough to reconstruct hit ratios and throttling from the logs alone.
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

DURATION_HEADER = "X-Request-Duration-ms"

# Client-supplied ids end up in headers and log lines
_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def resolve_request_id(incoming: str | None) -> str:
    """Reuse the caller's id if it is short and header-safe, else mint a UUID4."""
    if incoming and _SAFE_REQUEST_ID.fullmatch(incoming):
        return incoming
    return str(uuid.uuid4())


async def request_id_middleware(request: Request, call_next) -> Response:
    header_name = settings.log.request_id_header
    request_id = resolve_request_id(request.headers.get(header_name))
    set_request_id(request_id)

    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        level = logging.WARNING if response.status_code == 429 else logging.INFO
        logger.log(
            level,
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "cache": response.headers.get("X-Cache"),
                "duration_ms": elapsed_ms,
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers[DURATION_HEADER] = f"{elapsed_ms:.2f}"
    return response
