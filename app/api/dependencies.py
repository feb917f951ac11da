"""FastAPI Depends() providers.

State flows: create_app() builds -> app.state stores -> Depends() injects.
"""

from fastapi import Request

from app.services.render_service import RenderService
from app.utils.render_cache import RenderCache


def get_render_service(request: Request) -> RenderService:
    """Inject RenderService into endpoints via Depends()."""
    return request.app.state.render_service  # type: ignore[no-any-return]


def get_render_cache(request: Request) -> RenderCache:
    """Inject RenderCache into endpoints via Depends()."""
    return request.app.state.render_cache  # type: ignore[no-any-return]
