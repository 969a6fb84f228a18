"""Raw byte-stream (netcat) paste ingress.

Each accepted connection is handled on its own thread:

    accepted -> [rate limit] -> read (bounded, 1s inactivity) -> validate
             -> store -> reply with the URL, then close

Validation and admission failures are answered with a short text message.
I/O and storage failures propagate out of the handler; the server logs them
and the connection is closed without a reply.
"""

from __future__ import annotations

import logging
import socket
import socketserver
import threading
import uuid

from gestetner.adapters.rate_limit.base import AbstractRateLimiter
from gestetner.core.config import AppSettings, ListenAddress
from gestetner.core.errors import ValidationAppError
from gestetner.core.logging import hash_client_key, set_request_id
from gestetner.core.rate_limit import RATE_LIMITED_MESSAGE, check_client, normalize_client_key
from gestetner.services.paste import validate_paste
from gestetner.services.paste_store import PasteStore

logger = logging.getLogger(__name__)

_RECV_CHUNK = 64 * 1024


def read_paste(sock: socket.socket, max_size: int, timeout: float) -> bytes:
    """Read up to ``max_size`` bytes, stopping at EOF or after ``timeout`` idle seconds.

    A timeout is not an error: whatever arrived before it is returned, so a
    client that never half-closes still gets its paste stored.

    Raises:
        OSError: For any socket error other than the read timeout.
    """
    sock.settimeout(timeout)
    chunks: list[bytes] = []
    size = 0
    while size < max_size:
        try:
            chunk = sock.recv(min(_RECV_CHUNK, max_size - size))
        except TimeoutError:
            logger.debug("socket.read_timeout", extra={"size": size})
            break
        if not chunk:
            break
        chunks.append(chunk)
        size += len(chunk)
    return b"".join(chunks)


class PasteRequestHandler(socketserver.BaseRequestHandler):
    """Handles a single raw-socket paste connection."""

    server: "PasteSocketServer"

    def setup(self) -> None:
        # every connection runs on a fresh thread, hence in a fresh context
        set_request_id(str(uuid.uuid4()))

    def _reply(self, message: str) -> None:
        self.request.sendall(message.encode("utf-8"))

    def handle(self) -> None:
        peer_host = self.client_address[0]
        key_hash = hash_client_key(normalize_client_key(peer_host))
        logger.debug("socket.connection_accepted", extra={"key_hash": key_hash})

        limiter = self.server.rate_limiter
        if limiter is not None and not check_client(limiter, peer_host).allowed:
            self._reply(RATE_LIMITED_MESSAGE)
            return

        app_settings = self.server.app_settings
        raw = read_paste(
            self.request,
            app_settings.max_paste_size,
            app_settings.socket_read_timeout_seconds,
        )

        try:
            content = validate_paste(raw)
        except ValidationAppError as exc:
            self._reply(exc.message)
            return

        url = self.server.paste_store.create(content)
        self._reply(f"{url}\n")
        logger.debug("socket.connection_closed", extra={"key_hash": key_hash})


class PasteSocketServer(socketserver.ThreadingTCPServer):
    """Thread-per-connection listener feeding the shared paste store."""

    allow_reuse_address = True
    daemon_threads = True

    def __init__(
        self,
        address: ListenAddress,
        *,
        app_settings: AppSettings,
        paste_store: PasteStore,
        rate_limiter: AbstractRateLimiter | None,
    ) -> None:
        self.app_settings = app_settings
        self.paste_store = paste_store
        self.rate_limiter = rate_limiter
        self.address_family = socket.AF_INET6 if ":" in address.host else socket.AF_INET
        super().__init__((address.host, address.port), PasteRequestHandler)

    @property
    def listen_address(self) -> ListenAddress:
        host, port = self.server_address[:2]
        return ListenAddress(host=host, port=port)

    def handle_error(self, request, client_address) -> None:
        logger.exception(
            "socket.connection_failed",
            extra={"key_hash": hash_client_key(normalize_client_key(client_address[0]))},
        )


def start_socket_listener(
    app_settings: AppSettings,
    *,
    paste_store: PasteStore,
    rate_limiter: AbstractRateLimiter | None,
    address: ListenAddress | None = None,
) -> tuple[PasteSocketServer, threading.Thread]:
    """Bind the raw-socket listener and serve it from a daemon thread.

    Args:
        app_settings: Shared settings.
        paste_store: Shared store.
        rate_limiter: Shared limiter, or None to admit every connection.
        address: Override of ``app_settings.tcp_address`` (port 0 picks a free port).

    Returns:
        The bound server and the thread running ``serve_forever``.
    """
    server = PasteSocketServer(
        address or app_settings.tcp_address,
        app_settings=app_settings,
        paste_store=paste_store,
        rate_limiter=rate_limiter,
    )
    thread = threading.Thread(
        target=server.serve_forever,
        name="gestetner-socket-listener",
        daemon=True,
    )
    thread.start()
    logger.info(
        "socket.listening",
        extra={"listen_address": str(server.listen_address)},
    )
    return server, thread
