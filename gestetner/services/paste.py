"""Validation of submitted paste bodies, shared by both ingresses."""

from __future__ import annotations

import logging

from gestetner.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

INVALID_UTF8_MESSAGE = "Failed to parse paste as UTF-8"
NO_CONTENT_MESSAGE = "No content"


def validate_paste(raw: bytes) -> bytes:
    """Check that ``raw`` is a non-empty UTF-8 document.

    Args:
        raw: Bytes captured from the client, already bounded by the ingress.

    Returns:
        The same bytes, unchanged, ready to be stored.

    Raises:
        ValidationAppError: ``invalid_utf8`` when decoding fails,
            ``no_content`` when the body is empty.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        logger.info(
            "paste.invalid_utf8",
            extra={"size": len(raw), "offset": exc.start},
        )
        raise ValidationAppError(
            code="invalid_utf8",
            message=INVALID_UTF8_MESSAGE,
            details={"size": len(raw)},
        ) from exc

    if not text:
        logger.info("paste.no_content")
        raise ValidationAppError(code="no_content", message=NO_CONTENT_MESSAGE)

    return raw
