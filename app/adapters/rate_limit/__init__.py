"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory token bucket registry and later migrate to a shared store without
changing the API layer.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from app.adapters.rate_limit.token_bucket import TokenBucket

__all__ = [
    "AbstractRateLimiter",
    "InMemoryTokenBucketRateLimiter",
    "RateLimitResult",
    "TokenBucket",
]
