"""Raw-socket ingress tests over real loopback connections."""

from __future__ import annotations

import re
import socket
from unittest.mock import Mock

import pytest

from gestetner.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from gestetner.core.errors import StorageAppError
from gestetner.ingress.socket_listener import read_paste, start_socket_listener
from gestetner.services.paste_store import PasteStore

URL_REPLY = re.compile(r"^http://paste\.test/([a-z]{4})\n$")


@pytest.fixture
def listen(make_settings):
    """Start a listener on an ephemeral loopback port; stops it afterwards."""
    servers = []

    def _listen(*, paste_store=None, rate_limiter=None, **overrides):
        cfg = make_settings(**overrides)
        store = paste_store or PasteStore(cfg.app)
        server, thread = start_socket_listener(
            cfg.app,
            paste_store=store,
            rate_limiter=rate_limiter,
        )
        servers.append((server, thread))
        return server

    yield _listen

    for server, thread in servers:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def _paste(server, data: bytes, *, half_close: bool = True) -> str:
    with socket.create_connection(tuple(server.listen_address), timeout=5) as conn:
        if data:
            conn.sendall(data)
        if half_close:
            conn.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            chunk = conn.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks).decode("utf-8")


def test_replies_with_paste_url(listen, storage_dir) -> None:
    server = listen()

    reply = _paste(server, b"hello\n")

    match = URL_REPLY.match(reply)
    assert match, reply
    assert (storage_dir / match.group(1)).read_bytes() == b"hello\n"


def test_client_without_half_close_is_stored_after_timeout(listen, storage_dir) -> None:
    server = listen(socket_read_timeout_seconds=0.2)

    reply = _paste(server, b"no eof", half_close=False)

    match = URL_REPLY.match(reply)
    assert match, reply
    assert (storage_dir / match.group(1)).read_bytes() == b"no eof"


def test_empty_connection_gets_no_content(listen, storage_dir) -> None:
    server = listen()

    assert _paste(server, b"") == "No content"
    assert list(storage_dir.iterdir()) == []


def test_invalid_utf8_is_rejected(listen, storage_dir) -> None:
    server = listen()

    assert _paste(server, b"\xc3\x28") == "Failed to parse paste as UTF-8"
    assert list(storage_dir.iterdir()) == []


def test_rate_limited_connection(listen, storage_dir) -> None:
    server = listen(rate_limiter=InMemoryTokenBucketRateLimiter(limit=1))

    assert URL_REPLY.match(_paste(server, b"first"))
    # nothing is sent, so the server never leaves unread bytes behind
    assert _paste(server, b"", half_close=False) == "Rate limited\n"
    assert len(list(storage_dir.iterdir())) == 1


def test_storage_failure_closes_without_reply(listen) -> None:
    store = Mock(spec=PasteStore)
    store.create.side_effect = StorageAppError(code="write_failed", message="Failed to write paste")
    server = listen(paste_store=store)

    assert _paste(server, b"hello") == ""
    store.create.assert_called_once_with(b"hello")


def test_listener_stops_on_shutdown(make_settings) -> None:
    cfg = make_settings()
    server, thread = start_socket_listener(
        cfg.app,
        paste_store=PasteStore(cfg.app),
        rate_limiter=None,
    )
    address = tuple(server.listen_address)

    server.shutdown()
    server.server_close()
    thread.join(timeout=5)

    assert not thread.is_alive()
    with pytest.raises(ConnectionRefusedError):
        socket.create_connection(address, timeout=1)


class TestReadPaste:
    def test_reads_until_eof(self) -> None:
        a, b = socket.socketpair()
        with a, b:
            a.sendall(b"abc")
            a.shutdown(socket.SHUT_WR)

            assert read_paste(b, 100, 1.0) == b"abc"

    def test_stops_at_max_size(self) -> None:
        a, b = socket.socketpair()
        with a, b:
            a.sendall(b"abcdef")

            assert read_paste(b, 4, 1.0) == b"abcd"

    def test_timeout_returns_partial_data(self) -> None:
        a, b = socket.socketpair()
        with a, b:
            a.sendall(b"partial")

            assert read_paste(b, 100, 0.1) == b"partial"

    def test_timeout_without_data_returns_empty(self) -> None:
        a, b = socket.socketpair()
        with a, b:
            assert read_paste(b, 100, 0.1) == b""
