from __future__ import annotations

from urllib.parse import urlsplit

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from gestetner.core.config import AppSettings

router = APIRouter(tags=["Index"])

INDEX_TEMPLATE = """\
gestetner - a netcat & HTTP pastebin

Paste with netcat:
    $ echo "hello" | nc {host} {tcp_port}
    {base_url}/abcd

Paste with curl:
    $ curl --data-binary @file.txt {base_url}/
    {base_url}/abcd

Read a paste:
    $ curl {base_url}/abcd

Pastes are UTF-8 text up to {max_paste_size} bytes; longer bodies are truncated.
At most {rate} pastes per minute are accepted from one address.
The oldest pastes are deleted once {capacity} bytes are stored.
"""


def url_host(base_url: str) -> str:
    """Best guess of the host part of the public URL, for usage examples."""
    host = urlsplit(base_url).hostname
    return host or base_url


def render_index(app_settings: AppSettings) -> str:
    return INDEX_TEMPLATE.format(
        host=url_host(app_settings.base_url),
        tcp_port=app_settings.tcp_address.port,
        base_url=app_settings.base_url,
        max_paste_size=app_settings.max_paste_size,
        rate=app_settings.rate_limit_per_minute if app_settings.rate_limit_enabled else "unlimited",
        capacity=app_settings.capacity,
    )


@router.get("/", response_class=PlainTextResponse)
def index(request: Request) -> PlainTextResponse:
    """Usage instructions for both ingresses."""

    return PlainTextResponse(render_index(request.app.state.settings.app))
