"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any gestetner import so the module-level
settings never pick up a developer's .env file or the default /tmp/gst.
"""

import os
import tempfile

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_STORAGE_PATH", os.path.join(tempfile.gettempdir(), "gestetner-tests"))
os.environ.setdefault("APP_BASE_URL", "http://paste.test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from pathlib import Path
from typing import Any, Callable

import pytest

from gestetner.core.config import AppSettings, LogSettings, Settings


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    path = tmp_path / "pastes"
    path.mkdir()
    return path


@pytest.fixture
def make_settings(storage_dir: Path) -> Callable[..., Settings]:
    """Build isolated Settings; keyword arguments override AppSettings fields."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "base_url": "http://paste.test",
            "storage_path": storage_dir,
            "tcp_listen": "127.0.0.1:0",
            "http_listen": "127.0.0.1:0",
        }
        values.update(overrides)
        return Settings(app=AppSettings(**values), log=LogSettings())

    return _make


@pytest.fixture
def test_settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()
