"""Unit tests for slug generation."""

import string

import pytest

from gestetner.services.slug import generate_slug, is_valid_slug


@pytest.mark.parametrize("length", [1, 4, 12])
def test_generate_slug_has_requested_length(length: int) -> None:
    assert len(generate_slug(length)) == length


def test_generate_slug_uses_lowercase_letters_only() -> None:
    seen: set[str] = set()
    for _ in range(500):
        slug = generate_slug(8)
        assert set(slug) <= set(string.ascii_lowercase)
        seen.update(slug)

    # 4000 draws over 26 letters; every letter, including "z", shows up
    assert seen == set(string.ascii_lowercase)


def test_generate_slug_rejects_non_positive_length() -> None:
    with pytest.raises(ValueError):
        generate_slug(0)


@pytest.mark.parametrize(
    ("candidate", "expected"),
    [
        ("abcd", True),
        ("z", True),
        ("", False),
        ("ABCD", False),
        ("ab1d", False),
        ("..", False),
        ("ab/cd", False),
        ("favicon.ico", False),
    ],
)
def test_is_valid_slug(candidate: str, expected: bool) -> None:
    assert is_valid_slug(candidate) is expected
