"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with tags metadata and documents the
429 response every rate limited operation can return. This keeps
documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

RATE_LIMITED_PATHS = ("/qr", "/barcode", "/image")

TAGS_METADATA = [
    {
        "name": "Codes",
        "description": "QR code, barcode and gradient rendering (rate limited).",
    },
    {
        "name": "Cache",
        "description": "Render cache statistics.",
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 responses."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path in RATE_LIMITED_PATHS:
            for method_obj in paths.get(path, {}).values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault(
                        "429",
                        {"description": "Rate limit exceeded; retry after Retry-After seconds."},
                    )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
