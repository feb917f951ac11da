"""Pydantic schemas for code and gradient render requests."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Shape = Literal["square", "rectangle"]
RGB = tuple[int, int, int]


class CodeKind(str, Enum):
    """Kinds of code the renderer can draw.

    The values are what the fingerprint and renderer see; the ``type`` query
    parameter uses the aliases "qr" and "barcode" (see ``from_query``).
    """

    CODE_IMAGE = "code-image"
    LINEAR_BARCODE = "linear-barcode"

    @classmethod
    def from_query(cls, value: str) -> "CodeKind":
        return _QUERY_TO_KIND[value]


_QUERY_TO_KIND = {
    "qr": CodeKind.CODE_IMAGE,
    "barcode": CodeKind.LINEAR_BARCODE,
}


class CodeRequest(BaseModel):
    """Validated parameters of a QR code or barcode render."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(..., min_length=1, description="Text to encode.")
    size: int = Field(..., ge=50, le=1000, description="Height (and square width) in pixels.")
    shape: Shape = Field("square", description="Square output or a 4:1 rectangle.")
    kind: CodeKind = Field(CodeKind.CODE_IMAGE, description="QR code or Code 128 barcode.")


class GradientRequest(BaseModel):
    """Validated parameters of a horizontal gradient render."""

    model_config = ConfigDict(frozen=True)

    size: int = Field(200, ge=10, le=2000, description="Width and height in pixels.")
    start: RGB = Field((0, 0, 255), description="Left edge color.")
    end: RGB = Field((255, 0, 0), description="Right edge color.")


class CacheStatsResponse(BaseModel):
    """Render cache counters."""

    max_entries: int | None = Field(None, description="LRU bound, null when unbounded.")
    entries: int = Field(..., description="Number of cached renders.")
    bytes: int = Field(..., description="Total size of cached renders.")
    hits: int
    misses: int
    evictions: int
    coalesced: int = Field(..., description="Requests that waited on an in-flight render.")
    in_flight: int = Field(..., description="Renders currently running.")
