import base64

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response

from app.api.dependencies import get_render_service
from app.core.rate_limit import enforce_rate_limit
from app.services.params import parse_code_request, parse_gradient_request
from app.services.render_service import RenderResult, RenderService

router = APIRouter(tags=["Codes"])

PNG_MEDIA_TYPE = "image/png"


def _wants_base64(value: str | None) -> bool:
    return value == "true"


def _image_response(result: RenderResult, as_base64: bool) -> Response:
    """Build a PNG or base64 text response carrying the cache status."""
    headers = {"X-Cache": "HIT" if result.cached else "MISS"}
    if as_base64:
        return PlainTextResponse(
            base64.b64encode(result.data).decode("ascii"),
            headers=headers,
        )
    return Response(content=result.data, media_type=PNG_MEDIA_TYPE, headers=headers)


@router.get(
    "/qr",
    response_class=Response,
    dependencies=[Depends(enforce_rate_limit)],
)
async def qr_code(
    text: str | None = Query(None, description="Text to encode."),
    size: str | None = Query(None, description="Size in pixels (50-1000, default 256)."),
    shape: str | None = Query(None, description="'square' (default) or 'rectangle'."),
    code_type: str | None = Query(None, alias="type", description="'qr' (default) or 'barcode'."),
    as_base64: str | None = Query(None, alias="base64", description="'true' for base64 text output."),
    service: RenderService = Depends(get_render_service),
) -> Response:
    """Render a QR code (or a barcode with ``type=barcode``).

    Identical parameters are served from the render cache.

    Returns:
        Response: PNG image, or base64 text when ``base64=true``.

    Raises:
        ValidationAppError: 400 for missing text or invalid size/shape/type.
        RenderAppError: 500 if the code cannot be drawn.
    """
    request = parse_code_request(text=text, size=size, shape=shape, code_type=code_type)
    result = await service.render(request)
    return _image_response(result, _wants_base64(as_base64))


@router.get(
    "/barcode",
    response_class=Response,
    dependencies=[Depends(enforce_rate_limit)],
)
async def linear_barcode(
    text: str | None = Query(None, description="Text to encode as Code 128."),
    size: str | None = Query(None, description="Height in pixels (50-1000, default 256)."),
    shape: str | None = Query(None, description="'rectangle' (default) or 'square'."),
    as_base64: str | None = Query(None, alias="base64", description="'true' for base64 text output."),
    service: RenderService = Depends(get_render_service),
) -> Response:
    """Render a Code 128 barcode, 4:1 rectangle by default."""
    request = parse_code_request(
        text=text,
        size=size,
        shape=shape,
        code_type="barcode",
        default_shape="rectangle",
    )
    result = await service.render(request)
    return _image_response(result, _wants_base64(as_base64))


@router.get(
    "/image",
    response_class=Response,
    dependencies=[Depends(enforce_rate_limit)],
)
async def gradient_image(
    size: str | None = Query(None, description="Size in pixels (10-2000, default 200)."),
    color1: str | None = Query(None, description="Left color as hex, default 0000ff."),
    color2: str | None = Query(None, description="Right color as hex, default ff0000."),
    service: RenderService = Depends(get_render_service),
) -> Response:
    """Render a square horizontal gradient.

    Invalid values never fail the request; they fall back to the defaults.
    """
    request = parse_gradient_request(size=size, color1=color1, color2=color2)
    result = await service.render_gradient(request)
    return Response(content=result.data, media_type=PNG_MEDIA_TYPE)
