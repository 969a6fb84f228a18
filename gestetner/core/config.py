"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Listen addresses are parsed at load time, so a malformed address fails the
process before any socket is bound.
"""

from __future__ import annotations

import ipaddress
import os
from pathlib import Path
from typing import NamedTuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_MAX_PASTE = 524_288  # 512KiB
DEFAULT_MAX_CAPACITY = 104_857_600  # 100MiB


class ListenAddress(NamedTuple):
    """A parsed ``HOST:PORT`` socket address."""

    host: str
    port: int

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def parse_listen_address(value: str | ListenAddress) -> ListenAddress:
    """Parse ``HOST:PORT`` (IPv6 hosts in brackets) into a ListenAddress.

    Args:
        value: Address string such as ``127.0.0.1:9999`` or ``[::]:8080``.

    Returns:
        ListenAddress with the bare host (no brackets) and integer port.

    Raises:
        ValueError: If the string is not a valid socket address.

    Examples:
        >>> parse_listen_address("[::1]:9999")
        ListenAddress(host='::1', port=9999)
        >>> parse_listen_address("0.0.0.0:8080")
        ListenAddress(host='0.0.0.0', port=8080)
    """
    if isinstance(value, ListenAddress):
        return value

    text = value.strip()
    if text.startswith("["):
        host, sep, port_text = text[1:].partition("]:")
        if not sep:
            raise ValueError(f"invalid socket address: {value!r}")
        ipaddress.IPv6Address(host)
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep or not host or ":" in host:
            raise ValueError(f"invalid socket address: {value!r}")
        ipaddress.IPv4Address(host)

    if not port_text.isdigit() or not 0 <= int(port_text) <= 65535:
        raise ValueError(f"invalid port in socket address: {value!r}")

    return ListenAddress(host=host, port=int(port_text))


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Static type checkers treat defaulted BaseSettings fields as constructor
    arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Paste service configuration, shared read-only by every component."""

    base_url: str = Field(
        "http://localhost:8080",
        description="Public base URL prefixed to every paste slug",
    )
    tcp_listen: str = Field(
        "[::]:9999",
        description="Listening socket address for raw (netcat) pastes",
    )
    http_listen: str = Field(
        "[::]:8080",
        description="Listening socket address for the HTTP server",
    )
    storage_path: Path = Field(
        Path("/tmp/gst"),
        description="Directory holding one file per paste",
    )
    slug_length: int = Field(
        4,
        description="Length of the random paste slug",
        ge=1,
    )
    max_paste_size: int = Field(
        DEFAULT_MAX_PASTE,
        description="Maximum size of a single paste in bytes",
        ge=1,
    )
    capacity: int = Field(
        DEFAULT_MAX_CAPACITY,
        description="Maximum total size of the paste directory in bytes",
        ge=1,
    )
    capacity_enabled: bool = Field(
        True,
        description="Evict the oldest pastes when the directory would exceed capacity",
    )
    serialize_writes: bool = Field(
        True,
        description="Hold a directory lock around eviction + write",
    )
    socket_read_timeout_seconds: float = Field(
        1.0,
        description="Inactivity timeout while reading a raw-socket paste",
        gt=0,
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on both ingresses",
    )
    rate_limit_per_minute: int = Field(
        5,
        description="Maximum number of pastes per minute from a single client",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_sweep_seconds: int = Field(
        300,
        description="Interval for dropping idle rate-limit buckets (0 disables)",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @field_validator("tcp_listen", "http_listen")
    @classmethod
    def _validate_listen(cls, value: str) -> str:
        return str(parse_listen_address(value))

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def tcp_address(self) -> ListenAddress:
        return parse_listen_address(self.tcp_listen)

    @property
    def http_address(self) -> ListenAddress:
        return parse_listen_address(self.http_listen)


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file at this size (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance used by the default ASGI entrypoint
settings = Settings()
