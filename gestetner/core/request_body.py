"""Bounded request body reading for paste uploads."""
from __future__ import annotations

import logging

from fastapi import Request

logger = logging.getLogger(__name__)


def declared_content_length(request: Request) -> int | None:
    """Return the Content-Length header as an int, or None if absent/unparseable."""
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value >= 0 else None


async def read_body_limited(request: Request, limit: int) -> bytes:
    """Read at most ``limit`` bytes of the request body.

    Anything past the limit is left unread; oversized bodies are truncated,
    not rejected.

    Args:
        request: Incoming request.
        limit: Maximum number of bytes to keep.

    Returns:
        The body prefix, at most ``limit`` bytes long.
    """
    size = 0
    chunks: list[bytes] = []

    async for chunk in request.stream():
        if not chunk:
            continue
        room = limit - size
        if len(chunk) >= room:
            chunks.append(chunk[:room])
            size += room
            logger.debug("request_body.limit_reached", extra={"limit": limit})
            break
        chunks.append(chunk)
        size += len(chunk)

    return b"".join(chunks)
