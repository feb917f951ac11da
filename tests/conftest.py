"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV before any import loads settings, and provides a counting
fake renderer plus a factory for isolated app instances.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import json
import threading
from typing import Any, Callable
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from app.adapters.renderer.base import AbstractRenderer
from app.core.app_factory import create_app
from app.core.config import AppSettings, LogSettings, Settings
from app.schemas.codes import RGB, CodeKind, Shape


class FakeRenderer(AbstractRenderer):
    """Deterministic renderer that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[CodeKind, str, int, Shape]] = []
        self.gradient_calls: list[tuple[int, RGB, RGB]] = []
        self.fail_with: Exception | None = None
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def render(self, kind: CodeKind, content: str, size: int, shape: Shape) -> bytes:
        with self._lock:
            self.calls.append((kind, content, size, shape))
        if self.fail_with is not None:
            raise self.fail_with
        payload = json.dumps([kind.value, content, size, shape]).encode()
        return b"\x89PNG-fake:" + payload

    def render_gradient(self, size: int, start: RGB, end: RGB) -> bytes:
        with self._lock:
            self.gradient_calls.append((size, start, end))
        return b"\x89PNG-gradient:" + json.dumps([size, start, end]).encode()


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def frozen_clock() -> Mock:
    """Clock that only moves when a test sets ``return_value``."""
    return Mock(return_value=1000.0)


@pytest.fixture
def make_app(fake_renderer: FakeRenderer, frozen_clock: Mock) -> Callable[..., FastAPI]:
    """Build an isolated app with a fake renderer and a frozen limiter clock."""

    def _make(renderer: AbstractRenderer | None = None, **app_overrides: Any) -> FastAPI:
        app_settings = AppSettings(**app_overrides)
        settings = Settings(app=app_settings, log=LogSettings())
        limiter = InMemoryTokenBucketRateLimiter(
            rate=app_settings.rate_limit_rate,
            capacity=app_settings.rate_limit_capacity,
            clock=frozen_clock,
        )
        return create_app(
            settings,
            renderer=renderer or fake_renderer,
            rate_limiter=limiter,
            configure_logs=False,
        )

    return _make


@pytest.fixture
def client(make_app: Callable[..., FastAPI]) -> TestClient:
    """Test client for a default app (rate 10/s, capacity 20)."""
    return TestClient(make_app())
