"""Renderer adapter layer - abstracts over image drawing backends."""

from app.adapters.renderer.base import AbstractRenderer
from app.adapters.renderer.factory import create_renderer
from app.adapters.renderer.pillow_renderer import PillowRenderer

__all__ = [
    "AbstractRenderer",
    "PillowRenderer",
    "create_renderer",
]
