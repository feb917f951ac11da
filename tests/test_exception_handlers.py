"""Tests for the JSON error responses of the render API.

Errors are provoked through the real routes: bad query parameters for the
400 path and a failing renderer for the 500 paths.
"""

import asyncio
import json
import logging
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.core.errors import AppError, RenderAppError, ValidationAppError
from app.core.exception_handlers import general_exception_handler, status_for


class TestValidationErrors:
    def test_out_of_range_size_reports_bounds(self, client: TestClient) -> None:
        response = client.get("/qr", params={"text": "hello", "size": "2000"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "size_out_of_range"
        assert error["message"] == "Size must be between 50 and 1000 pixels"
        assert error["details"] == {
            "parameter": "size",
            "min_value": 50,
            "max_value": 1000,
            "actual_value": "2000",
        }

    def test_missing_text_has_no_value_to_echo(self, client: TestClient) -> None:
        error = client.get("/barcode").json()["error"]

        assert error["code"] == "missing_text"
        assert error["details"] == {"parameter": "text"}

    def test_request_id_is_echoed_in_body(self, client: TestClient) -> None:
        response = client.get(
            "/qr",
            params={"text": "hello", "shape": "circle"},
            headers={"X-Request-ID": "trace-42"},
        )

        assert response.json()["error"]["request_id"] == "trace-42"

    def test_rejection_is_logged_without_payload(self, client: TestClient, caplog) -> None:
        caplog.set_level(logging.INFO, logger="app.core.exception_handlers")

        client.get("/qr", params={"text": "secret-payload", "type": "aztec"})

        records = [r for r in caplog.records if r.getMessage() == "request.rejected"]
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        assert records[0].error_code == "invalid_type"
        assert records[0].parameter == "type"
        assert "secret-payload" not in caplog.text


class TestRenderErrors:
    def test_render_failure_returns_500_with_code(self, client: TestClient, fake_renderer) -> None:
        fake_renderer.fail_with = RenderAppError(
            code="barcode_encode_failed",
            message="Failed to generate barcode",
            details={"kind": "linear-barcode"},
        )

        response = client.get("/barcode", params={"text": "1234567890"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "barcode_encode_failed"
        assert error["message"] == "Failed to generate barcode"
        assert error["details"] == {"kind": "linear-barcode"}

    def test_render_failure_is_logged_as_error(self, client: TestClient, fake_renderer, caplog) -> None:
        caplog.set_level(logging.INFO, logger="app.core.exception_handlers")
        fake_renderer.fail_with = RenderAppError(code="qr_encode_failed", message="Failed to generate QR code")

        client.get("/qr", params={"text": "hello"})

        records = [r for r in caplog.records if r.getMessage() == "request.render_failed"]
        assert [r.levelno for r in records] == [logging.ERROR]

    def test_unexpected_renderer_crash_is_generic(self, make_app, fake_renderer) -> None:
        fake_renderer.fail_with = RuntimeError("decoder table corrupted at 0xdeadbeef")
        client = TestClient(make_app(), raise_server_exceptions=False)

        response = client.get("/qr", params={"text": "hello"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "internal_server_error"
        assert "0xdeadbeef" not in response.text
        assert "RuntimeError" not in response.text


class TestStatusMapping:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (ValidationAppError(code="invalid_size", message="Size must be a valid number"), 400),
            (RenderAppError(code="encode_failed", message="Failed to encode image"), 500),
            (AppError(code="other", message="other"), 400),
        ],
    )
    def test_status_for(self, error: AppError, expected: int) -> None:
        assert status_for(error) == expected

    def test_general_handler_never_leaks_stack_trace(self) -> None:
        request = AsyncMock()
        request.url.path = "/qr"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("bad pixel buffer")))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "bad pixel buffer" not in data["error"]["message"]
        assert "Traceback" not in bytes(response.body).decode()
