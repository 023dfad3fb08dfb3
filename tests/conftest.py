"""Pytest configuration and fixtures."""

import logging

import pytest
import structlog

from tests.fakes import FakeClock


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration around each test."""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def render_env(monkeypatch):
    """Environment with an API key and no real waiting between polls."""
    monkeypatch.setenv("RENDER_API_KEY", "rnd_test_key")
    monkeypatch.setenv("RENDER_POLL_INTERVAL", "0")
    monkeypatch.delenv("RENDER_API_URL", raising=False)
    monkeypatch.delenv("RENDER_LOG_LEVEL", raising=False)
    monkeypatch.delenv("RENDER_LOG_FORMAT", raising=False)
