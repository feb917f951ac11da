"""Domain errors raised by parameter parsing and rendering.

Each error carries a stable ``code`` that clients can branch on and an
optional ``details`` mapping that pinpoints the offending parameter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Which input was wrong and why; returned verbatim in error bodies."""

    parameter: str
    actual_value: str
    min_value: int
    max_value: int
    kind: str


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details about the failing input.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """A query parameter or the renderer setting is invalid (HTTP 400)."""


class RenderAppError(AppError):
    """The renderer could not draw or encode an image (HTTP 500)."""
