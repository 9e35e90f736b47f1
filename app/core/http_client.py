"""Shared upstream HTTP client and request-scoped transport dependencies."""

import threading
from collections.abc import Callable
from datetime import datetime
from functools import lru_cache

import httpx

from app.core.commute_plans import load_commute_plans
from app.core.config import settings
from app.helpers.time_formatting import now_in
from app.schemas.commute import CommutePlans
from app.services.transport_client import TransportClient

# Module-level global for lazy initialization (fork-safety)
_http_client: httpx.AsyncClient | None = None
_http_client_lock = threading.Lock()


def get_http_client() -> httpx.AsyncClient:
    """
    Get or create the shared httpx client (lazy initialization).

    Created on first use so each forked uvicorn worker opens its own
    connection pool. Uses httpx's default timeout; upstream calls are never
    retried.

    Returns:
        httpx.AsyncClient: Client shared by every upstream request
    """
    global _http_client  # noqa: PLW0603
    if _http_client is None:
        with _http_client_lock:
            if _http_client is None:  # Double-checked locking
                _http_client = httpx.AsyncClient(
                    headers={"Accept": "application/json"},
                    follow_redirects=True,
                )
    return _http_client


async def close_http_client() -> None:
    """Close the shared client if it was created."""
    global _http_client  # noqa: PLW0603
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def get_transport_client() -> TransportClient:
    """Dependency for the upstream transport client."""
    return TransportClient(get_http_client(), settings)


@lru_cache(maxsize=1)
def get_commute_plans() -> CommutePlans:
    """
    Dependency for the commute plan table.

    Loaded once per process from COMMUTE_PLANS_PATH, or the built-in table.
    """
    return load_commute_plans(settings.COMMUTE_PLANS_PATH)


def get_clock() -> Callable[[], datetime]:
    """Dependency for the clock leg times are computed against."""
    return lambda: now_in(settings.TIMEZONE)
