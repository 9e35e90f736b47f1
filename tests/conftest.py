"""Pytest configuration and fixtures."""

import os

# Set DEBUG=true and a known app key for all tests BEFORE any app imports
# This must be done before app.core.config loads settings
os.environ["DEBUG"] = "true"
os.environ["SECRET_APP_KEY"] = "test-app-key"
os.environ["OTEL_SDK_DISABLED"] = "true"

from collections.abc import AsyncGenerator, Callable
from datetime import datetime
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest
from app.core.config import Settings, settings
from app.core.http_client import get_clock, get_transport_client
from app.main import app
from app.services.transport_client import TransportClient
from httpx import ASGITransport, AsyncClient

# Re-export OTEL fixtures so tests can request them
from tests.fixtures.otel import (  # noqa: F401
    in_memory_span_exporter,
    otel_enabled_provider,
    reset_tracer_provider,
)

TEST_APP_KEY = "test-app-key"

# 08:00 on a weekday, London time
FIXED_NOW = datetime(2025, 3, 10, 8, 0, tzinfo=ZoneInfo("Europe/London"))


@pytest.fixture
def test_settings() -> Settings:
    """Settings built from the test environment (independent of the global instance)."""
    return Settings()


@pytest.fixture
def fixed_now() -> datetime:
    """The instant every service under test believes it is."""
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now: datetime) -> Callable[[], datetime]:
    """Clock callable returning fixed_now."""
    return lambda: fixed_now


@pytest.fixture
def mock_transport_client() -> AsyncMock:
    """
    TransportClient double with every fetch method as an AsyncMock.

    Configure return values per test, e.g.
    ``mock_transport_client.fetch_tfl.return_value = [...]``.
    """
    client = AsyncMock(spec=TransportClient)
    client.settings = settings
    client.fetch_tfl.return_value = None
    client.fetch_transport_api.return_value = None
    client.fetch_transport_api_url.return_value = None
    return client


@pytest.fixture
async def async_client(
    mock_transport_client: AsyncMock,
    clock: Callable[[], datetime],
) -> AsyncGenerator[AsyncClient]:
    """
    Async HTTP client for the app with the upstream client replaced by a mock.

    Leg times are computed against the fixed test clock.

    Yields:
        AsyncClient bound to the ASGI app (no network)
    """
    app.dependency_overrides[get_transport_client] = lambda: mock_transport_client
    app.dependency_overrides[get_clock] = lambda: clock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_params() -> dict[str, str]:
    """Query parameters that authenticate a request."""
    return {"app_key": TEST_APP_KEY}
