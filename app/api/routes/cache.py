from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_render_cache
from app.schemas.codes import CacheStatsResponse
from app.utils.render_cache import RenderCache

router = APIRouter(tags=["Cache"])


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats(cache: RenderCache = Depends(get_render_cache)) -> CacheStatsResponse:
    """Return render cache counters (entries, hits, misses, in-flight renders)."""

    return CacheStatsResponse(**cache.stats())
