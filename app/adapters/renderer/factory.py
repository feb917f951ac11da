"""Factory pattern for creating renderer instances."""

from app.adapters.renderer.base import AbstractRenderer
from app.adapters.renderer.pillow_renderer import PillowRenderer
from app.core.config import AppSettings, settings
from app.core.errors import ValidationAppError


def create_renderer(app_settings: AppSettings | None = None) -> AbstractRenderer:
    """Instantiate the renderer backend named in configuration.

    Args:
        app_settings: Optional settings; defaults to the global settings.

    Returns:
        AbstractRenderer: Configured renderer instance.

    Raises:
        ValidationAppError: If the configured backend is unknown.
    """
    cfg = app_settings or settings.app
    backend = cfg.renderer.lower()

    if backend == "pillow":
        return PillowRenderer()

    raise ValidationAppError(
        code="unknown_renderer",
        message=f"Unknown renderer: '{backend}'. Supported renderers: pillow",
    )
