from __future__ import annotations

from app.api.routes.cache import router as cache_router
from app.api.routes.codes import router as codes_router
from app.api.routes.health import router as health_router

__all__ = ["cache_router", "codes_router", "health_router"]
