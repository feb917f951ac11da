"""Tests for the Pillow renderer backend and renderer factory."""

import io

import pytest
from PIL import Image

from app.adapters.renderer.factory import create_renderer
from app.adapters.renderer.pillow_renderer import PillowRenderer
from app.core.config import AppSettings
from app.core.errors import RenderAppError, ValidationAppError
from app.schemas.codes import CodeKind


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


@pytest.fixture(scope="module")
def renderer() -> PillowRenderer:
    return PillowRenderer()


class TestCodeImages:
    @pytest.mark.parametrize(
        "kind, size, shape, expected",
        [
            (CodeKind.CODE_IMAGE, 256, "square", (256, 256)),
            (CodeKind.CODE_IMAGE, 256, "rectangle", (1024, 256)),
            (CodeKind.LINEAR_BARCODE, 100, "rectangle", (400, 100)),
            (CodeKind.LINEAR_BARCODE, 120, "square", (120, 120)),
        ],
    )
    def test_output_dimensions(self, renderer, kind, size, shape, expected) -> None:
        data = renderer.render(kind, "1234567890", size, shape)
        image = _open(data)

        assert image.format == "PNG"
        assert image.size == expected

    def test_output_is_deterministic(self, renderer) -> None:
        first = renderer.render(CodeKind.CODE_IMAGE, "hello", 200, "square")
        second = renderer.render(CodeKind.CODE_IMAGE, "hello", 200, "square")

        assert first == second

    def test_content_changes_output(self, renderer) -> None:
        a = renderer.render(CodeKind.CODE_IMAGE, "hello", 200, "square")
        b = renderer.render(CodeKind.CODE_IMAGE, "world", 200, "square")

        assert a != b

    def test_rectangle_qr_has_white_margins(self, renderer) -> None:
        image = _open(renderer.render(CodeKind.CODE_IMAGE, "hello", 100, "rectangle")).convert("RGB")

        assert image.getpixel((0, 50)) == (255, 255, 255)
        assert image.getpixel((399, 50)) == (255, 255, 255)

    def test_oversized_qr_content_fails(self, renderer) -> None:
        with pytest.raises(RenderAppError) as exc_info:
            renderer.render(CodeKind.CODE_IMAGE, "x" * 5000, 256, "square")

        assert exc_info.value.code == "qr_encode_failed"
        assert exc_info.value.message == "Failed to generate QR code"


class TestGradient:
    def test_default_colors_at_edges(self, renderer) -> None:
        image = _open(renderer.render_gradient(200, (0, 0, 255), (255, 0, 0))).convert("RGB")

        assert image.size == (200, 200)
        assert image.getpixel((0, 0)) == (0, 0, 255)
        assert image.getpixel((199, 199)) == (255, 0, 0)

    def test_columns_are_uniform(self, renderer) -> None:
        image = _open(renderer.render_gradient(50, (0, 0, 0), (255, 255, 255))).convert("RGB")

        assert image.getpixel((25, 0)) == image.getpixel((25, 49))


class TestFactory:
    def test_creates_pillow_renderer(self) -> None:
        assert isinstance(create_renderer(AppSettings(renderer="pillow")), PillowRenderer)

    def test_backend_name_is_case_insensitive(self) -> None:
        assert isinstance(create_renderer(AppSettings(renderer="Pillow")), PillowRenderer)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_renderer(AppSettings(renderer="cairo"))

        assert exc_info.value.code == "unknown_renderer"
