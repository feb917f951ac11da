"""Query parameter parsing for render endpoints.

Code endpoints reject bad input with a ValidationAppError. The gradient
endpoint is lenient: unparseable values silently fall back to defaults.
"""

from __future__ import annotations

import re

from app.core.errors import ValidationAppError
from app.schemas.codes import RGB, CodeKind, CodeRequest, GradientRequest, Shape

DEFAULT_CODE_SIZE = 256
MIN_CODE_SIZE = 50
MAX_CODE_SIZE = 1000

DEFAULT_GRADIENT_SIZE = 200
MIN_GRADIENT_SIZE = 10
MAX_GRADIENT_SIZE = 2000

DEFAULT_GRADIENT_START: RGB = (0, 0, 255)
DEFAULT_GRADIENT_END: RGB = (255, 0, 0)

SHAPES: tuple[Shape, ...] = ("square", "rectangle")

_HEX_COLOR_RE = re.compile(r"[0-9a-fA-F]{6}")
# Bounded digit count keeps int() away from its huge-string conversion limit
_INTEGER_RE = re.compile(r"[+-]?[0-9]{1,18}")


def _parse_code_size(raw: str | None) -> int:
    if not raw:
        return DEFAULT_CODE_SIZE
    if not _INTEGER_RE.fullmatch(raw):
        raise ValidationAppError(
            code="invalid_size",
            message="Size must be a valid number",
            details={"parameter": "size", "actual_value": raw},
        )
    size = int(raw)
    if size < MIN_CODE_SIZE or size > MAX_CODE_SIZE:
        raise ValidationAppError(
            code="size_out_of_range",
            message=f"Size must be between {MIN_CODE_SIZE} and {MAX_CODE_SIZE} pixels",
            details={
                "parameter": "size",
                "min_value": MIN_CODE_SIZE,
                "max_value": MAX_CODE_SIZE,
                "actual_value": raw,
            },
        )
    return size


def _parse_shape(raw: str | None, default: Shape) -> Shape:
    shape = raw or default
    if shape not in SHAPES:
        raise ValidationAppError(
            code="invalid_shape",
            message="Shape must be 'square' or 'rectangle'",
            details={"parameter": "shape", "actual_value": shape},
        )
    return shape  # type: ignore[return-value]


def _parse_kind(raw: str | None) -> CodeKind:
    try:
        return CodeKind.from_query(raw or "qr")
    except KeyError:
        raise ValidationAppError(
            code="invalid_type",
            message="Type must be 'qr' or 'barcode'",
            details={"parameter": "type", "actual_value": raw or ""},
        ) from None


def parse_code_request(
    *,
    text: str | None,
    size: str | None,
    shape: str | None,
    code_type: str | None = None,
    default_shape: Shape = "square",
) -> CodeRequest:
    """Validate raw query values of a code render request.

    Args:
        text: Content to encode (required).
        size: Size in pixels as received, None or empty for the default.
        shape: "square" or "rectangle", None or empty for ``default_shape``.
        code_type: "qr" or "barcode", None or empty for "qr".
        default_shape: Shape used when none is given.

    Returns:
        A validated, immutable CodeRequest.

    Raises:
        ValidationAppError: On the first invalid parameter, checked in the
            order text, size, shape, type.
    """
    if not text:
        raise ValidationAppError(
            code="missing_text",
            message="Please provide a 'text' parameter",
            details={"parameter": "text"},
        )

    return CodeRequest(
        content=text,
        size=_parse_code_size(size),
        shape=_parse_shape(shape, default_shape),
        kind=_parse_kind(code_type),
    )


def parse_hex_color(raw: str | None) -> RGB | None:
    """Parse ``rrggbb`` or ``#rrggbb``; return None when malformed."""
    if not raw:
        return None
    value = raw[1:] if raw.startswith("#") else raw
    if not _HEX_COLOR_RE.fullmatch(value):
        return None
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def parse_gradient_request(
    *,
    size: str | None,
    color1: str | None,
    color2: str | None,
) -> GradientRequest:
    """Parse gradient parameters, falling back to defaults on bad input."""
    parsed_size = DEFAULT_GRADIENT_SIZE
    if size:
        candidate = int(size) if _INTEGER_RE.fullmatch(size) else None
        if candidate is not None and MIN_GRADIENT_SIZE <= candidate <= MAX_GRADIENT_SIZE:
            parsed_size = candidate

    return GradientRequest(
        size=parsed_size,
        start=parse_hex_color(color1) or DEFAULT_GRADIENT_START,
        end=parse_hex_color(color2) or DEFAULT_GRADIENT_END,
    )
