"""Random paste slugs.

Slugs are drawn uniformly from lowercase ASCII letters. There is no
uniqueness check: a new slug may name an existing paste and replace it. The
chance of that grows quickly once the number of stored pastes approaches
``sqrt(26 ** length)`` (birthday bound), so size ``slug_length`` for the
expected store population.
"""

from __future__ import annotations

import re
import secrets
import string

SLUG_ALPHABET = string.ascii_lowercase

_SLUG_RE = re.compile(r"^[a-z]+$")


def generate_slug(length: int) -> str:
    """Return ``length`` independently chosen lowercase letters.

    Raises:
        ValueError: If length is not positive.
    """
    if length < 1:
        raise ValueError("length must be >= 1")
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))


def is_valid_slug(candidate: str) -> bool:
    """Whether ``candidate`` could have been produced by ``generate_slug``."""
    return bool(_SLUG_RE.match(candidate))
