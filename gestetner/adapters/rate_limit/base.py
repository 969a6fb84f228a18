"""Rate limiter interfaces.

Ingress code depends on this abstraction (not the concrete implementation)
so a shared store could replace the in-memory buckets with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Bucket size (requests per minute).
        remaining: Whole tokens left after this check (0 when blocked).
        retry_after_seconds: Wait before the key is next admitted, when blocked.
        retry_at: Clock instant at which the key is next admitted, when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: float | None = None
    retry_at: float | None = None


class AbstractRateLimiter(ABC):
    """Interface for keyed rate limiters."""

    @abstractmethod
    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for a given key.

        Args:
            key: Normalized client key.
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    def prune(self) -> int:
        """Drop state that no longer affects decisions. Returns keys dropped."""
        return 0
