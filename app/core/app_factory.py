"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
shared limiter/cache state) so each call yields an isolated application.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from app.adapters.renderer.base import AbstractRenderer
from app.adapters.renderer.factory import create_renderer
from app.api.routes import cache_router, codes_router, health_router
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.render_service import RenderService
from app.utils.render_cache import RenderCache


def create_app(
    settings: Settings | None = None,
    *,
    renderer: AbstractRenderer | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
    cache: RenderCache | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    The rate limiter registry and the render cache are process-wide state for
    the returned app: built once here and stored on ``app.state``.

    Args:
        settings: Settings to use; defaults to the global settings.
        renderer: Renderer override (tests pass fakes).
        rate_limiter: Rate limiter override.
        cache: Render cache override.
        configure_logs: Whether to (re)configure root logging.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log)

    app = FastAPI(
        title="Code Image Service",
        description=(
            "Renders QR codes, Code 128 barcodes and gradient images as PNG or "
            "base64. Every render endpoint is rate limited per client with a "
            "token bucket, and code renders are cached by their parameters."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    if rate_limiter is None:
        rate_limiter = InMemoryTokenBucketRateLimiter(
            rate=cfg.app.rate_limit_rate,
            capacity=cfg.app.rate_limit_capacity,
        )
    if cache is None:
        cache = RenderCache(max_entries=cfg.app.cache_max_entries)
    if renderer is None:
        renderer = create_renderer(cfg.app)

    app.state.settings = cfg
    app.state.rate_limiter = rate_limiter
    app.state.render_cache = cache
    app.state.render_service = RenderService(
        renderer,
        cache,
        single_flight=cfg.app.cache_single_flight,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(codes_router)
    app.include_router(cache_router)
    app.include_router(health_router)

    # OpenAPI customizations (tags, 429 responses)
    apply_openapi_customizations(app)

    return app
