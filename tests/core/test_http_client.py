"""Tests for the shared upstream client and transport dependencies."""

from zoneinfo import ZoneInfo

import httpx
import pytest
from app.core import http_client as http_client_module
from app.core.config import settings
from app.core.http_client import (
    close_http_client,
    get_clock,
    get_commute_plans,
    get_http_client,
    get_transport_client,
)
from app.services.transport_client import TransportClient


@pytest.fixture(autouse=True)
def reset_http_client_globals():
    """Reset module globals before and after each test for isolation."""
    http_client_module._http_client = None
    get_commute_plans.cache_clear()
    yield
    http_client_module._http_client = None
    get_commute_plans.cache_clear()


class TestLazyInitialization:
    """Tests for lazy creation of the shared httpx client."""

    def test_client_initially_none(self) -> None:
        """Nothing is created at import time."""
        assert http_client_module._http_client is None

    def test_client_created_on_first_use(self) -> None:
        """get_http_client() creates and stores the client."""
        client = get_http_client()

        assert isinstance(client, httpx.AsyncClient)
        assert http_client_module._http_client is client
        assert client.headers["Accept"] == "application/json"

    def test_client_singleton(self) -> None:
        """Repeated calls share one connection pool."""
        assert get_http_client() is get_http_client()

    async def test_close_resets_client(self) -> None:
        """Closing releases the client so the next call builds a fresh one."""
        first = get_http_client()
        await close_http_client()

        assert first.is_closed
        assert http_client_module._http_client is None
        assert get_http_client() is not first

    async def test_close_without_client_is_noop(self) -> None:
        """Closing before first use does nothing."""
        await close_http_client()
        assert http_client_module._http_client is None


class TestDependencies:
    """Tests for the request-scoped dependency providers."""

    def test_transport_client_uses_shared_http_client(self) -> None:
        """Every TransportClient wraps the same pool and the global settings."""
        transport_client = get_transport_client()

        assert isinstance(transport_client, TransportClient)
        assert transport_client.http_client is get_http_client()
        assert transport_client.settings is settings

    def test_commute_plans_loaded_once(self) -> None:
        """The plan table is cached for the life of the process."""
        plans = get_commute_plans()

        assert plans is get_commute_plans()
        assert plans.for_user("jp") is not None
        assert plans.for_user("fran") is not None

    def test_clock_uses_configured_timezone(self) -> None:
        """The clock reports aware times in the configured zone."""
        now = get_clock()()

        assert now.tzinfo == ZoneInfo(settings.TIMEZONE)
