"""Render service composing the render cache with the renderer.

Admission control runs before this service is reached (see
``app.core.rate_limit``). For a validated request the service:
- Derives the fingerprint of every output-affecting parameter
- Serves a cached render when one exists
- Otherwise renders outside every lock and stores the result

Render failures propagate to the caller and leave nothing in the cache.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from starlette.concurrency import run_in_threadpool

from app.adapters.renderer.base import AbstractRenderer
from app.core.errors import RenderAppError
from app.schemas.codes import CodeRequest, GradientRequest
from app.utils.render_cache import RenderCache, build_fingerprint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderResult:
    """Encoded image plus where it came from."""

    data: bytes
    cached: bool
    fingerprint: str | None = None


def fingerprint_for(request: CodeRequest) -> str:
    """Fingerprint a validated code request."""
    return build_fingerprint(request.content, request.size, request.shape, request.kind.value)


class RenderService:
    """Serves code renders through the shared cache.

    Attributes:
        renderer: Backend that draws and encodes images.
        cache: Process-wide render cache.
        single_flight: Share one render between concurrent identical misses.
    """

    def __init__(
        self,
        renderer: AbstractRenderer,
        cache: RenderCache,
        *,
        single_flight: bool = True,
    ) -> None:
        self.renderer = renderer
        self.cache = cache
        self.single_flight = single_flight

    def _render_code(self, request: CodeRequest) -> bytes:
        start = time.perf_counter()
        try:
            data = self.renderer.render(
                request.kind, request.content, request.size, request.shape
            )
        except RenderAppError as exc:
            logger.warning(
                "render.failed",
                extra={"kind": request.kind.value, "error_code": exc.code},
            )
            raise
        logger.info(
            "render.completed",
            extra={
                "kind": request.kind.value,
                "size": request.size,
                "shape": request.shape,
                "bytes": len(data),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return data

    def render_sync(self, request: CodeRequest) -> RenderResult:
        """Blocking render-through-cache for a validated request.

        Args:
            request: Validated code parameters.

        Returns:
            RenderResult with the PNG bytes and whether they came from cache.

        Raises:
            RenderAppError: If rendering failed after a cache miss.
        """
        fingerprint = fingerprint_for(request)

        if self.single_flight:
            data, cached = self.cache.get_or_create(
                fingerprint, lambda: self._render_code(request)
            )
            return RenderResult(data=data, cached=cached, fingerprint=fingerprint)

        cached_data = self.cache.get(fingerprint)
        if cached_data is not None:
            return RenderResult(data=cached_data, cached=True, fingerprint=fingerprint)

        data = self._render_code(request)
        self.cache.put(fingerprint, data)
        return RenderResult(data=data, cached=False, fingerprint=fingerprint)

    async def render(self, request: CodeRequest) -> RenderResult:
        """Render-through-cache without blocking the event loop."""
        return await run_in_threadpool(self.render_sync, request)

    async def render_gradient(self, request: GradientRequest) -> RenderResult:
        """Render a gradient. Gradients are cheap and never cached."""
        data = await run_in_threadpool(
            self.renderer.render_gradient, request.size, request.start, request.end
        )
        return RenderResult(data=data, cached=False)
