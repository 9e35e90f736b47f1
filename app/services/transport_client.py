"""HTTP client for the upstream transport data providers."""

import json
from typing import Any

import httpx
import structlog
from opentelemetry.trace import SpanKind

from app.core.config import Settings
from app.core.telemetry import service_span
from app.helpers.errors import UpstreamFetchError

logger = structlog.get_logger(__name__)

TFL_PROVIDER = "TfL"
TRANSPORT_API_PROVIDER = "TransportAPI"


class TransportClient:
    """
    Thin JSON client for TfL and TransportAPI.

    Every call is a single GET with no retry and httpx's default timeout. An
    empty or unparseable body is "no data" and comes back as ``None``; only
    transport failures and non-2xx statuses raise ``UpstreamFetchError``.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        """
        Initialize the transport client.

        Args:
            http_client: Shared async HTTP client (connection pool)
            settings: Application settings holding base URLs and API keys
        """
        self.http_client = http_client
        self.settings = settings

    async def fetch(self, url: str, params: dict[str, Any] | None = None, *, provider: str) -> Any:  # noqa: ANN401
        """
        Fetch ``url`` and decode its JSON body.

        Args:
            url: Absolute URL
            params: Query parameters (credentials included)
            provider: Provider name for logs, spans and errors

        Returns:
            Decoded JSON, or None if the body was empty, malformed or an empty collection

        Raises:
            UpstreamFetchError: On network errors or non-success status codes
        """
        with service_span("transport.fetch", provider.lower(), kind=SpanKind.CLIENT, url=url) as span:
            try:
                response = await self.http_client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "upstream_fetch_failed",
                    provider=provider,
                    url=url,
                    status_code=e.response.status_code,
                )
                raise UpstreamFetchError(provider, f"HTTP {e.response.status_code}") from e
            except httpx.HTTPError as e:
                logger.error("upstream_fetch_failed", provider=provider, url=url, error=str(e))
                raise UpstreamFetchError(provider, str(e) or type(e).__name__) from e

            span.set_attribute("http.status_code", response.status_code)

            if not response.content.strip():
                logger.warning("upstream_empty_body", provider=provider, url=url)
                return None
            try:
                body = response.json()
            except json.JSONDecodeError:
                logger.warning("upstream_malformed_body", provider=provider, url=url)
                return None

            if body is None or body == {} or body == []:
                logger.debug("upstream_no_data", provider=provider, url=url)
                return None
            return body

    def _tfl_params(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.settings.TFL_API_KEY:
            return {**params, "app_key": self.settings.TFL_API_KEY}
        return params

    def _transport_api_params(self, params: dict[str, Any]) -> dict[str, Any]:
        credentials = {"app_id": self.settings.TRANSPORT_API_APP_ID, "app_key": self.settings.TRANSPORT_API_KEY}
        return {**params, **{key: value for key, value in credentials.items() if value}}

    async def fetch_tfl(self, path: str, **params: Any) -> Any:  # noqa: ANN401
        """Fetch a TfL Unified API path (e.g. "/Line/victoria/Disruption")."""
        url = f"{self.settings.TFL_BASE_URL.rstrip('/')}/{path.lstrip('/')}"
        return await self.fetch(url, self._tfl_params(params), provider=TFL_PROVIDER)

    async def fetch_transport_api(self, path: str, **params: Any) -> Any:  # noqa: ANN401
        """Fetch a TransportAPI path (e.g. "/train/station/CTN/live.json")."""
        url = f"{self.settings.TRANSPORT_API_BASE_URL.rstrip('/')}/{path.lstrip('/')}"
        return await self.fetch(url, self._transport_api_params(params), provider=TRANSPORT_API_PROVIDER)

    async def fetch_transport_api_url(self, url: str) -> Any:  # noqa: ANN401
        """
        Follow an absolute TransportAPI link, such as a service timetable reference.

        Credentials embedded in the link are replaced with ours.
        """
        base_url, _, _ = url.partition("?")
        params = {key: value for key, value in httpx.URL(url).params.items() if key not in ("app_id", "app_key")}
        return await self.fetch(
            base_url,
            self._transport_api_params(params),
            provider=TRANSPORT_API_PROVIDER,
        )
