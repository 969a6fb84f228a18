"""In-memory keyed token-bucket rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a short map lock guards bucket lookup/creation, and each bucket
  has its own lock so checks on different keys never serialize each other.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from gestetner.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _Bucket:
    tokens: float
    updated_at: float
    lock: threading.Lock = field(default_factory=threading.Lock)
    retired: bool = False


class InMemoryTokenBucketRateLimiter(AbstractRateLimiter):
    """Token bucket per key: ``limit`` tokens, refilled evenly over ``period_seconds``.

    A fresh key starts with a full bucket, so a client may burst ``limit``
    requests and is then admitted once every ``period_seconds / limit``.

    Important:
        Buckets are created lazily and kept until ``prune()`` drops the ones
        that have refilled completely; without pruning the map grows with
        every distinct key seen.
    """

    def __init__(
        self,
        *,
        limit: int,
        period_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Bucket size and number of tokens refilled per period.
            period_seconds: Time to refill an empty bucket completely.
            clock: Monotonic time source in seconds.

        Raises:
            ValueError: If limit or period_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if period_seconds <= 0:
            raise ValueError("period_seconds must be > 0")

        self._limit = limit
        self._period = float(period_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[str, _Bucket] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _get_bucket(self, key: str, now: float) -> _Bucket:
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = _Bucket(tokens=float(self._limit), updated_at=now)
                self._buckets[key] = bucket
            return bucket

    def _refill(self, bucket: _Bucket, now: float) -> None:
        elapsed = max(0.0, now - bucket.updated_at)
        # multiply before dividing so whole refill intervals land on exact tokens
        bucket.tokens = min(float(self._limit), bucket.tokens + elapsed * self._limit / self._period)
        bucket.updated_at = max(bucket.updated_at, now)

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume ``cost`` tokens from the key's bucket if available.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        while True:
            now = self._clock()
            bucket = self._get_bucket(key, now)
            with bucket.lock:
                if bucket.retired:
                    # dropped by prune() between lookup and lock; look up again
                    continue
                self._refill(bucket, now)

                if bucket.tokens >= cost:
                    bucket.tokens -= cost
                    return RateLimitResult(
                        allowed=True,
                        limit=self._limit,
                        remaining=int(bucket.tokens),
                    )

                wait = (cost - bucket.tokens) * self._period / self._limit
                return RateLimitResult(
                    allowed=False,
                    limit=self._limit,
                    remaining=0,
                    retry_after_seconds=wait,
                    retry_at=now + wait,
                )

    def prune(self) -> int:
        """Drop buckets that have refilled completely.

        A full bucket behaves exactly like a missing one, so removing it does
        not change any future decision.

        Returns:
            Number of keys dropped.
        """
        now = self._clock()
        dropped = 0
        with self._lock:
            for key, bucket in list(self._buckets.items()):
                with bucket.lock:
                    self._refill(bucket, now)
                    if bucket.tokens >= self._limit:
                        bucket.retired = True
                        del self._buckets[key]
                        dropped += 1
        return dropped
