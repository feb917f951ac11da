"""In-memory per-key token bucket rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Buckets are created on first sight of a key and kept for the lifetime of
  the process; the registry grows with the number of distinct clients.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.token_bucket import TokenBucket

logger = logging.getLogger(__name__)


class InMemoryTokenBucketRateLimiter(AbstractRateLimiter):
    """Registry mapping client keys to their own TokenBucket.

    All buckets share the configured rate and capacity. The registry lock only
    guards bucket creation; the admission decision is made by the bucket under
    its own lock.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        rate: float,
        capacity: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the registry.

        Args:
            rate: Tokens per second credited to every bucket.
            capacity: Burst size of every bucket.
            clock: Time source shared by all buckets.

        Raises:
            ValueError: If rate or capacity are invalid.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if rate <= 0:
            raise ValueError("rate must be > 0")

        self._rate = rate
        self._capacity = capacity
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[str, TokenBucket] = {}

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def capacity(self) -> float:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._buckets

    def get_bucket(self, key: str) -> TokenBucket:
        """Return the bucket for key, creating it atomically if unseen.

        Args:
            key: Client key.

        Returns:
            The single TokenBucket owned by this key.
        """
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(
                    capacity=self._capacity,
                    refill_rate=self._rate,
                    clock=self._clock,
                )
                self._buckets[key] = bucket
                logger.debug(
                    "rate_limit.bucket_created",
                    extra={"buckets": len(self._buckets)},
                )
        return bucket

    def consume(self, key: str) -> RateLimitResult:
        """Consume one token from the bucket of the provided key.

        Args:
            key: Unique identifier for rate limiting (e.g., client address).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        return self.get_bucket(key).consume()
