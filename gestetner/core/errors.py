"""Application-level exception types.

This module defines domain errors used across services and both ingresses,
enabling consistent error handling, logging, and client responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict

from gestetner.adapters.rate_limit.base import RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional; only what is known at the raise site is filled in.
    """

    code: str
    message: str
    hint: str
    path: str
    size: int
    retry_after: float
    errno: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable message, also used as the client reply body.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when a submitted paste is rejected (bad encoding, empty body)."""


@dataclass
class RateLimitedAppError(AppError):
    """Raised when a client exceeds its paste quota."""

    result: RateLimitResult | None = None


class StorageAppError(AppError):
    """Raised when the paste directory cannot be read, pruned, or written."""
