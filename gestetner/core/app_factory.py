"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so the
CLI, the default ASGI entrypoint and the tests all build the same app around
explicitly owned collaborators.
"""

from __future__ import annotations

from fastapi import FastAPI

from gestetner.adapters.rate_limit.base import AbstractRateLimiter
from gestetner.api.routes import index_router, pastes_router
from gestetner.core.config import Settings
from gestetner.core.config import settings as default_settings
from gestetner.core.exception_handlers import setup_exception_handlers
from gestetner.core.middleware import request_id_middleware
from gestetner.core.rate_limit import build_rate_limiter
from gestetner.services.paste_store import PasteStore

_UNSET = object()


def create_app(
    app_settings: Settings | None = None,
    *,
    paste_store: PasteStore | None = None,
    rate_limiter: AbstractRateLimiter | None | object = _UNSET,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to serve with; the global settings by default.
        paste_store: Shared store; built (and its directory created) if omitted.
        rate_limiter: Shared limiter; built from settings if omitted. Pass
            None explicitly to disable rate limiting.

    Returns:
        Configured FastAPI app. Collaborators live on ``app.state``.
    """
    cfg = app_settings or default_settings

    if paste_store is None:
        paste_store = PasteStore(cfg.app)
        paste_store.initialize()
    if rate_limiter is _UNSET:
        rate_limiter = build_rate_limiter(cfg.app)

    app = FastAPI(
        title="gestetner",
        description="A netcat & HTTP pastebin.",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = cfg
    app.state.paste_store = paste_store
    app.state.rate_limiter = rate_limiter

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers; the index must be registered before the catch-all slug route
    app.include_router(index_router)
    app.include_router(pastes_router)

    return app
