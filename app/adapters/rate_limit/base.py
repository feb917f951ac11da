"""Rate limiter interfaces.

The API layer depends on this abstraction (not the concrete implementation)
so the per-key bucket store can be replaced without touching the routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Burst capacity of the bucket.
        remaining: Whole tokens left after the decision.
        reset_at: Clock reading at which the bucket is full again.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for keyed rate limiters."""

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Consume one token from the budget of the given key.

        Args:
            key: Unique identifier (e.g., client address).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    def allow(self, key: str) -> bool:
        """Return True if the request for ``key`` may proceed now."""
        return self.consume(key).allowed
