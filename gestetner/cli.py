"""Command line entrypoint: ``gestetner -u URL -l HOST:PORT -w HOST:PORT -p PATH``."""

from __future__ import annotations

from typing import Any

import click
from pydantic import ValidationError

from gestetner.core.config import AppSettings, LogSettings, Settings
from gestetner.core.logging import configure_logging
from gestetner.server import serve


def build_settings(app_overrides: dict[str, Any], log_overrides: dict[str, Any]) -> Settings:
    """Merge CLI flags over environment/.env configuration.

    Flags left unset (None) fall through to the environment.

    Raises:
        ValidationError: If any resulting value is invalid.
    """
    app_kwargs = {k: v for k, v in app_overrides.items() if v is not None}
    log_kwargs = {k: v for k, v in log_overrides.items() if v is not None}
    return Settings(app=AppSettings(**app_kwargs), log=LogSettings(**log_kwargs))


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    help="gestetner - A netcat & HTTP pastebin",
)
@click.option("-u", "base_url", metavar="URL", help="Base URL returned in paste responses.")
@click.option("-l", "tcp_listen", metavar="HOST:PORT", help="Listening socket address for incoming pastes.")
@click.option("-w", "http_listen", metavar="HOST:PORT", help="Listening socket address for the HTTP server.")
@click.option("-p", "storage_path", metavar="PATH", type=click.Path(file_okay=False), help="Directory in which to store pastes.")
@click.option("-n", "slug_length", metavar="LENGTH", type=int, help="Length of the random paste slug (default: 4).")
@click.option("-m", "max_paste_size", metavar="MAX_SIZE", type=int, help="Maximum size of a paste in bytes (default: 512KiB).")
@click.option("-r", "rate_limit_per_minute", metavar="RATE", type=int, help="Maximum pastes per minute from a single IP (default: 5).")
@click.option("--capacity", "capacity", metavar="SIZE", type=int, help="Maximum size of the paste directory (default: 100MiB).")
@click.option("--no-rate-limit", is_flag=True, default=False, help="Disable per-client rate limiting.")
@click.option("--log-level", metavar="LEVEL", help="Root log level (default: INFO).")
@click.option("--log-format", type=click.Choice(["json", "plain"]), help="Log line format.")
def cli(
    base_url: str | None,
    tcp_listen: str | None,
    http_listen: str | None,
    storage_path: str | None,
    slug_length: int | None,
    max_paste_size: int | None,
    rate_limit_per_minute: int | None,
    capacity: int | None,
    no_rate_limit: bool,
    log_level: str | None,
    log_format: str | None,
) -> None:
    try:
        cfg = build_settings(
            {
                "base_url": base_url,
                "tcp_listen": tcp_listen,
                "http_listen": http_listen,
                "storage_path": storage_path,
                "slug_length": slug_length,
                "max_paste_size": max_paste_size,
                "rate_limit_per_minute": rate_limit_per_minute,
                "capacity": capacity,
                "rate_limit_enabled": False if no_rate_limit else None,
            },
            {"level": log_level, "format": log_format},
        )
    except ValidationError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)

    configure_logging(cfg.log)
    serve(cfg)


if __name__ == "__main__":
    cli()
