from __future__ import annotations

from gestetner.api.routes.index import router as index_router
from gestetner.api.routes.pastes import router as pastes_router

__all__ = ["index_router", "pastes_router"]
