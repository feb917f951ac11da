"""Unit tests for RenderService dispatch through the cache."""

import pytest

from app.core.errors import RenderAppError
from app.schemas.codes import CodeKind, CodeRequest, GradientRequest
from app.services.render_service import RenderService, fingerprint_for
from app.utils.render_cache import RenderCache, build_fingerprint


def _request(**overrides) -> CodeRequest:
    base = {
        "content": "hello",
        "size": 256,
        "shape": "square",
        "kind": CodeKind.CODE_IMAGE,
    }
    base.update(overrides)
    return CodeRequest(**base)


@pytest.fixture(params=[True, False], ids=["single-flight", "plain"])
def service(request, fake_renderer) -> RenderService:
    return RenderService(fake_renderer, RenderCache(), single_flight=request.param)


class TestRenderThroughCache:
    @pytest.mark.asyncio
    async def test_identical_requests_render_once(self, service, fake_renderer) -> None:
        first = await service.render(_request())
        second = await service.render(_request())

        assert first.data == second.data
        assert first.cached is False
        assert second.cached is True
        assert fake_renderer.call_count == 1

    @pytest.mark.asyncio
    async def test_different_sizes_cache_separately(self, service, fake_renderer) -> None:
        small = await service.render(_request(size=100))
        large = await service.render(_request(size=200))

        assert small.fingerprint != large.fingerprint
        assert small.data != large.data
        assert len(service.cache) == 2
        assert fake_renderer.call_count == 2

    @pytest.mark.asyncio
    async def test_renderer_receives_validated_parameters(self, service, fake_renderer) -> None:
        await service.render(
            _request(content="1234567890", size=80, shape="rectangle", kind=CodeKind.LINEAR_BARCODE)
        )

        assert fake_renderer.calls == [
            (CodeKind.LINEAR_BARCODE, "1234567890", 80, "rectangle")
        ]

    @pytest.mark.asyncio
    async def test_render_failure_propagates_and_is_not_cached(self, service, fake_renderer) -> None:
        fake_renderer.fail_with = RenderAppError(code="qr_encode_failed", message="Failed to generate QR code")

        with pytest.raises(RenderAppError):
            await service.render(_request())

        assert len(service.cache) == 0

        fake_renderer.fail_with = None
        result = await service.render(_request())
        assert result.cached is False
        assert fake_renderer.call_count == 2

    @pytest.mark.asyncio
    async def test_prefilled_cache_skips_renderer(self, service, fake_renderer) -> None:
        service.cache.put(fingerprint_for(_request()), b"precomputed")

        result = await service.render(_request())

        assert result.data == b"precomputed"
        assert result.cached is True
        assert fake_renderer.call_count == 0


def test_fingerprint_for_uses_kind_value() -> None:
    assert fingerprint_for(_request()) == build_fingerprint("hello", 256, "square", "code-image")


def test_render_sync_matches_async_contract(fake_renderer) -> None:
    service = RenderService(fake_renderer, RenderCache())

    first = service.render_sync(_request())
    second = service.render_sync(_request())

    assert (first.cached, second.cached) == (False, True)
    assert fake_renderer.call_count == 1


@pytest.mark.asyncio
async def test_gradients_are_never_cached(fake_renderer) -> None:
    service = RenderService(fake_renderer, RenderCache())
    request = GradientRequest(size=50, start=(0, 0, 0), end=(255, 255, 255))

    first = await service.render_gradient(request)
    second = await service.render_gradient(request)

    assert first.data == second.data
    assert first.cached is False and second.cached is False
    assert len(fake_renderer.gradient_calls) == 2
    assert len(service.cache) == 0
