"""Pillow-based renderer for QR codes, Code 128 barcodes and gradients."""

import io

import barcode
import qrcode
from barcode.writer import ImageWriter
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M

from app.adapters.renderer.base import AbstractRenderer
from app.core.errors import RenderAppError
from app.schemas.codes import RGB, CodeKind, Shape

WHITE = (255, 255, 255)

# Rectangular output is four times as wide as it is tall
RECTANGLE_RATIO = 4

_BARCODE_WRITER_OPTIONS = {
    "write_text": False,
    "quiet_zone": 1.0,
    "module_height": 10.0,
}


def _encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class PillowRenderer(AbstractRenderer):
    """Draws codes with ``qrcode`` and ``python-barcode`` and encodes PNG with Pillow.

    Symbols are scaled with nearest-neighbour resampling so modules stay crisp.
    """

    def render(self, kind: CodeKind, content: str, size: int, shape: Shape) -> bytes:
        if kind is CodeKind.LINEAR_BARCODE:
            image = self._draw_barcode(content, size, shape)
        else:
            image = self._draw_qr(content, size, shape)

        try:
            return _encode_png(image)
        except (OSError, ValueError) as exc:
            raise RenderAppError(
                code="encode_failed",
                message="Failed to encode image",
                details={"kind": kind.value},
            ) from exc

    def render_gradient(self, size: int, start: RGB, end: RGB) -> bytes:
        # One row holds the whole gradient; stretching it vertically with
        # nearest-neighbour copies that row to every line.
        span = max(size - 1, 1)
        row = []
        for x in range(size):
            ratio = x / span
            row.append(
                tuple(int(a * (1 - ratio) + b * ratio) for a, b in zip(start, end))
            )

        line = Image.new("RGB", (size, 1))
        line.putdata(row)
        image = line.resize((size, size), Image.Resampling.NEAREST)
        return _encode_png(image)

    def _draw_qr(self, content: str, size: int, shape: Shape) -> Image.Image:
        try:
            qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=4)
            qr.add_data(content)
            qr.make(fit=True)
            symbol = qr.make_image(fill_color="black", back_color="white").get_image()
        except Exception as exc:
            raise RenderAppError(
                code="qr_encode_failed",
                message="Failed to generate QR code",
                details={"kind": CodeKind.CODE_IMAGE.value},
            ) from exc

        symbol = symbol.convert("RGB").resize((size, size), Image.Resampling.NEAREST)
        if shape == "square":
            return symbol

        canvas = Image.new("RGB", (size * RECTANGLE_RATIO, size), WHITE)
        offset_x = (canvas.width - size) // 2
        canvas.paste(symbol, (offset_x, 0))
        return canvas

    def _draw_barcode(self, content: str, size: int, shape: Shape) -> Image.Image:
        try:
            code = barcode.get("code128", content, writer=ImageWriter())
            symbol = code.render(writer_options=_BARCODE_WRITER_OPTIONS)
        except Exception as exc:
            raise RenderAppError(
                code="barcode_encode_failed",
                message="Failed to generate barcode",
                details={"kind": CodeKind.LINEAR_BARCODE.value},
            ) from exc

        width = size * RECTANGLE_RATIO if shape == "rectangle" else size
        return symbol.convert("RGB").resize((width, size), Image.Resampling.NEAREST)
