"""Rate limiting wiring shared by the HTTP and raw-socket ingresses.

Design goals:
- Minimal coupling: ingresses depend on ``check_client`` / a FastAPI
  dependency only, never on a concrete limiter.
- Explicit ownership: the limiter is built once at startup and handed to both
  ingresses; nothing here keeps a module-level instance.

Keying strategy:
- IPv4 addresses are used verbatim.
- IPv6 addresses are truncated to their /64, since a single client can
  trivially rotate through the rest of its subnet.
- IPv4-mapped IPv6 addresses (dual-stack sockets) are treated as IPv4.
- Anything that is not an IP address is used verbatim.
"""

from __future__ import annotations

import ipaddress
import logging
import math

from fastapi import Request

from gestetner.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from gestetner.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from gestetner.core.config import AppSettings
from gestetner.core.errors import RateLimitedAppError
from gestetner.core.logging import hash_client_key

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Rate limited\n"


def build_rate_limiter(app_settings: AppSettings) -> AbstractRateLimiter | None:
    """Build the process-wide limiter, or None when rate limiting is disabled."""

    if not app_settings.rate_limit_enabled:
        return None
    return InMemoryTokenBucketRateLimiter(
        limit=app_settings.rate_limit_per_minute,
        period_seconds=60.0,
    )


def normalize_client_key(address: str) -> str:
    """Map a client address to its rate-limit key.

    Examples:
        >>> normalize_client_key("2001:470:6bd2::41:1")
        '2001:470:6bd2::'
        >>> normalize_client_key("192.0.2.7")
        '192.0.2.7'
        >>> normalize_client_key("::ffff:192.0.2.7")
        '192.0.2.7'
    """
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return address

    if isinstance(ip, ipaddress.IPv6Address):
        if ip.ipv4_mapped is not None:
            return str(ip.ipv4_mapped)
        network = ipaddress.IPv6Network((ip, 64), strict=False)
        return str(network.network_address)
    return str(ip)


def check_client(limiter: AbstractRateLimiter, address: str) -> RateLimitResult:
    """Consume one paste from the budget of the client at ``address``.

    Args:
        limiter: Shared limiter instance.
        address: Raw peer address (host part only).

    Returns:
        RateLimitResult for the normalized client key.
    """

    key = normalize_client_key(address)
    result = limiter.consume(key)

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": hash_client_key(key),
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
    else:
        logger.info(
            "rate_limit.exceeded",
            extra={
                "key_hash": hash_client_key(key),
                "limit": result.limit,
                "retry_after_s": round(result.retry_after_seconds or 0, 3),
            },
        )
    return result


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Response headers describing a denial."""

    return {
        "Retry-After": str(max(1, math.ceil(result.retry_after_seconds or 0))),
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
    }


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the per-client paste quota.

    Uses the limiter stored on ``app.state.rate_limiter``; does nothing when
    it is None (rate limiting disabled).

    Raises:
        RateLimitedAppError: When the client's bucket is empty.
    """

    limiter: AbstractRateLimiter | None = request.app.state.rate_limiter
    if limiter is None:
        return

    address = request.client.host if request.client else "unknown"
    result = check_client(limiter, address)
    if result.allowed:
        return

    raise RateLimitedAppError(
        code="rate_limited",
        message=RATE_LIMITED_MESSAGE,
        details={"retry_after": result.retry_after_seconds or 0.0},
        result=result,
    )
