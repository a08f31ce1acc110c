"""Pytest configuration for tests."""

import pytest

from webprofiler.config import Settings
from webprofiler.main import create_application


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


@pytest.fixture
def make_app():
    """Factory building an app on memory storage with settings overrides."""

    def _make(**overrides):
        values = {
            "storage_dsn": "memory:",
            "session_secret_key": "test-secret",
            "log_level": "WARNING",
        }
        values.update(overrides)
        return create_application(Settings(**values))

    return _make


@pytest.fixture
def test_app(make_app):
    return make_app()
