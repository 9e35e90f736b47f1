"""Access logging middleware using structlog with OTEL trace correlation."""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

# Query parameters whose values never reach the logs
REDACTED_PARAMS = frozenset({"app_key", "lat", "long"})


def loggable_query(request: Request) -> dict[str, str]:
    """
    Query parameters of ``request`` with credentials and coordinates masked.

    Example:
        GET /travel/nextbus?route=486&app_key=abc -> {"route": "486", "app_key": "***"}
    """
    return {key: "***" if key in REDACTED_PARAMS else value for key, value in request.query_params.items()}


class AccessLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs HTTP requests with structured data.

    Log fields:
        - method, path and query (app_key and coordinates masked)
        - status_code and duration_ms
        - client_ip, plus forwarded_for when behind a proxy
        - trace_id/span_id: Added by the OTEL processor

    Server errors are logged at warning level.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and log access information."""
        start_time = time.perf_counter()

        # X-Forwarded-For can be spoofed; both values are logged
        client_ip = request.client.host if request.client else "unknown"
        forwarded_for = None
        if xff_header := request.headers.get("x-forwarded-for"):
            forwarded_for = xff_header.split(",")[0].strip()

        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        log_kwargs: dict[str, object] = {
            "method": request.method,
            "path": request.url.path,
            "query": loggable_query(request),
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": client_ip,
        }
        if forwarded_for:
            log_kwargs["forwarded_for"] = forwarded_for

        if response.status_code >= 500:  # noqa: PLR2004
            logger.warning("http_request", **log_kwargs)
        else:
            logger.info("http_request", **log_kwargs)

        return response
