"""Single-key token bucket with lazy refill.

There is no background timer: tokens are credited from the elapsed time on
every probe, then one token is spent if available.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import RateLimitResult


class TokenBucket:
    """Thread-safe token bucket.

    ``capacity`` is the burst allowance and ``refill_rate`` (tokens per
    second) the sustained throughput. The bucket starts full.
    """

    def __init__(
        self,
        *,
        capacity: float,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a fully charged bucket.

        Args:
            capacity: Maximum number of tokens held.
            refill_rate: Tokens credited per second.
            clock: Time source returning seconds as float.

        Raises:
            ValueError: If capacity or refill_rate are invalid.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if refill_rate <= 0:
            raise ValueError("refill_rate must be > 0")

        self._capacity = float(capacity)
        self._refill_rate = float(refill_rate)
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = self._capacity
        self._last_refill = clock()

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def refill_rate(self) -> float:
        return self._refill_rate

    @property
    def tokens(self) -> float:
        """Current balance, without crediting elapsed time."""
        with self._lock:
            return self._tokens

    def _refill_locked(self, now: float) -> None:
        # A clock that steps backwards credits nothing.
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._refill_rate)
        self._last_refill = now

    def consume(self) -> RateLimitResult:
        """Refill from elapsed time, then spend one token if available.

        Returns:
            RateLimitResult with the decision and retry metadata.
        """
        with self._lock:
            now = self._clock()
            self._refill_locked(now)

            if self._tokens >= 1:
                self._tokens -= 1
                allowed = True
                retry_after = None
            else:
                allowed = False
                retry_after = max(1, math.ceil((1 - self._tokens) / self._refill_rate))

            tokens = self._tokens

        reset_at = now + (self._capacity - tokens) / self._refill_rate
        return RateLimitResult(
            allowed=allowed,
            limit=int(self._capacity),
            remaining=int(math.floor(tokens)),
            reset_at=reset_at,
            retry_after_seconds=retry_after,
        )

    def allow(self) -> bool:
        """Return True if a request may proceed now."""
        return self.consume().allowed
