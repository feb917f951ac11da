"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the bucket store sits behind an abstract interface.
- Explicit state: the limiter lives on ``app.state`` and is built by the app
  factory, so each app instance (and each test) gets its own budgets.

Rate limiting strategy:
- Token bucket per client address.
- Client address is the first X-Forwarded-For entry when trusted, otherwise
  the transport peer address.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.core.config import AppSettings, settings
from app.core.logging import hash_for_log

logger = logging.getLogger(__name__)

FORWARDED_FOR_HEADER = "X-Forwarded-For"


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the application handling this request."""
    return request.app.state.rate_limiter  # type: ignore[no-any-return]


def _app_settings(request: Request) -> AppSettings:
    app_settings = getattr(request.app.state, "settings", None)
    return app_settings.app if app_settings is not None else settings.app


def strip_port(address: str) -> str:
    """Drop a trailing port from an address.

    Examples:
        >>> strip_port("1.2.3.4:5678")
        '1.2.3.4'
        >>> strip_port("[::1]:8080")
        '::1'
        >>> strip_port("2001:db8::1")
        '2001:db8::1'
    """
    address = address.strip()
    if address.startswith("["):
        end = address.find("]")
        if end != -1:
            return address[1:end]
    if address.count(":") == 1:
        return address.split(":", 1)[0]
    return address


def get_client_key(request: Request, *, trust_forwarded_for: bool | None = None) -> str:
    """Derive the rate limit key for the current request.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Override for ``settings.app.trust_forwarded_for``.

    Returns:
        str: Client address without port, or "unknown".
    """
    if trust_forwarded_for is None:
        trust_forwarded_for = settings.app.trust_forwarded_for

    if trust_forwarded_for:
        forwarded = request.headers.get(FORWARDED_FOR_HEADER)
        if forwarded:
            first = strip_port(forwarded.split(",")[0])
            if first:
                return first

    if request.client and request.client.host:
        return strip_port(request.client.host)
    return "unknown"


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing per-client rate limits.

    When enabled, consumes 1 token from the requester's bucket. If the bucket
    is empty, raises HTTP 429 before any parameter parsing or render work.

    Args:
        request: FastAPI request.

    Raises:
        HTTPException: 429 Too Many Requests when rate limit is exceeded.
    """

    cfg = _app_settings(request)
    if not cfg.rate_limit_enabled:
        return

    limiter = get_rate_limiter(request)
    key = get_client_key(request, trust_forwarded_for=cfg.trust_forwarded_for)
    key_hash = hash_for_log(key)

    result = limiter.consume(key)
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 1
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": result.limit,
            "remaining": result.remaining,
            "retry_after_s": retry_after,
            "path": request.url.path,
        },
    )

    headers: dict[str, str] = {}
    if cfg.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded",
        headers=headers or None,
    )
