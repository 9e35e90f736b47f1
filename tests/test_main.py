"""Tests for main API endpoints."""

from unittest.mock import Mock

import pytest
from app import __version__
from app.core import http_client as http_client_module
from app.core.config import settings
from app.core.http_client import get_transport_client
from app.main import app, lifespan
from httpx import ASGITransport, AsyncClient


@pytest.fixture(autouse=True)
def reset_http_client():
    """Reset the shared upstream client before and after each test."""
    http_client_module._http_client = None
    yield
    http_client_module._http_client = None


async def test_root_endpoint(async_client: AsyncClient) -> None:
    """Test root endpoint returns project name and version."""
    response = await async_client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == settings.PROJECT_NAME
    assert data["version"] == __version__


async def test_health_check(async_client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_readiness_check(async_client: AsyncClient) -> None:
    """Test readiness check endpoint."""
    response = await async_client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


async def test_health_check_does_not_need_app_key(async_client: AsyncClient) -> None:
    """Operational endpoints are outside the authenticated router."""
    response = await async_client.get("/health")
    assert response.status_code == 200


async def test_unknown_route_uses_envelope(async_client: AsyncClient) -> None:
    """Framework 404s are reported in the response envelope."""
    response = await async_client.get("/travel/nothing-here", params={"app_key": "test-app-key"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "data": None, "message": "Not Found"}


async def test_unhandled_error_returns_generic_envelope() -> None:
    """Unexpected exceptions become a 500 envelope without internals."""

    def broken_client() -> None:
        msg = "boom"
        raise RuntimeError(msg)

    app.dependency_overrides[get_transport_client] = broken_client
    try:
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/travel/tubestatus", params={"app_key": "test-app-key", "line": "northern"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    body = response.json()
    assert body == {"success": False, "data": None, "message": "There was a problem processing your request"}
    assert "boom" not in response.text


# Tests for lifespan


async def test_lifespan_opens_and_closes_http_client() -> None:
    """Lifespan creates the shared upstream client and closes it on shutdown."""
    mock_app = Mock()

    async with lifespan(mock_app):
        client = http_client_module._http_client
        assert client is not None
        assert not client.is_closed

    assert client.is_closed
    assert http_client_module._http_client is None
