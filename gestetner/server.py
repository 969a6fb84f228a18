"""Process wiring: one store and one limiter shared by both ingresses."""

from __future__ import annotations

import logging
import threading

import uvicorn

from gestetner.adapters.rate_limit.base import AbstractRateLimiter
from gestetner.core.app_factory import create_app
from gestetner.core.config import Settings
from gestetner.core.rate_limit import build_rate_limiter
from gestetner.ingress.socket_listener import start_socket_listener
from gestetner.services.paste_store import PasteStore

logger = logging.getLogger(__name__)


class RateLimitSweeper(threading.Thread):
    """Periodically drops idle buckets so address rotation cannot grow state forever."""

    def __init__(self, limiter: AbstractRateLimiter, interval_seconds: float) -> None:
        super().__init__(name="gestetner-rate-limit-sweeper", daemon=True)
        self._limiter = limiter
        self._interval = interval_seconds
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self._interval):
            dropped = self._limiter.prune()
            if dropped:
                logger.debug("rate_limit.swept", extra={"dropped": dropped})

    def stop(self) -> None:
        self._stopped.set()


def serve(cfg: Settings) -> None:
    """Run both ingresses until the HTTP server exits.

    The raw-socket listener and the sweeper run on daemon threads; uvicorn
    owns the main thread and its signal handling.

    Raises:
        StorageAppError: If the storage directory cannot be created.
        OSError: If either listen address cannot be bound.
    """
    paste_store = PasteStore(cfg.app)
    paste_store.initialize()
    rate_limiter = build_rate_limiter(cfg.app)

    socket_server, _ = start_socket_listener(
        cfg.app,
        paste_store=paste_store,
        rate_limiter=rate_limiter,
    )

    sweeper: RateLimitSweeper | None = None
    if rate_limiter is not None and cfg.app.rate_limit_sweep_seconds > 0:
        sweeper = RateLimitSweeper(rate_limiter, cfg.app.rate_limit_sweep_seconds)
        sweeper.start()

    app = create_app(cfg, paste_store=paste_store, rate_limiter=rate_limiter)
    http_address = cfg.app.http_address
    logger.info("http.listening", extra={"listen_address": str(http_address)})

    try:
        uvicorn.run(
            app,
            host=http_address.host,
            port=http_address.port,
            log_config=None,
            access_log=False,
        )
    finally:
        if sweeper is not None:
            sweeper.stop()
        socket_server.shutdown()
        socket_server.server_close()
        logger.info("socket.stopped")
