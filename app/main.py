"""Main FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.api import travel
from app.core.config import settings
from app.core.http_client import close_http_client, get_http_client
from app.core.logging import configure_logging
from app.core.telemetry import get_tracer_provider, shutdown_tracer_provider
from app.helpers.errors import TravelError
from app.middleware import AccessLoggingMiddleware
from app.schemas.travel import TravelResponse

# Configure logging at module level so Uvicorn startup logs go through structlog pipeline
configure_logging(log_level=settings.LOG_LEVEL)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - initialize OTEL TracerProvider and the shared upstream client."""
    # TracerProvider is created here (after fork) so each worker gets its own BatchSpanProcessor
    if settings.OTEL_ENABLED and (provider := get_tracer_provider()):
        trace.set_tracer_provider(provider)
        logger.info("otel_tracer_provider_initialized")

    get_http_client()
    logger.info("startup_complete", debug=settings.DEBUG)

    yield

    logger.info("shutdown_starting")
    await close_http_client()
    if settings.OTEL_ENABLED:
        shutdown_tracer_provider()
    logger.info("shutdown_complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="UK tube, bus and train status and commute composition",
    version=__version__,
    lifespan=lifespan,
)

# Instrumentor wraps the ASGI application to create HTTP request spans
if settings.OTEL_ENABLED:
    FastAPIInstrumentor().instrument_app(
        app,
        excluded_urls=",".join(settings.OTEL_EXCLUDED_URLS),
    )
    logger.info("otel_fastapi_instrumented", excluded_urls=settings.OTEL_EXCLUDED_URLS)

# Access logging middleware (replaces uvicorn.access logs with structlog)
app.add_middleware(AccessLoggingMiddleware)

app.include_router(travel.router)


def _envelope(status_code: int, message: str) -> JSONResponse:
    body = TravelResponse[None](success=False, data=None, message=message)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.exception_handler(TravelError)
async def travel_error_handler(request: Request, exc: TravelError) -> JSONResponse:
    """Translate domain errors into the response envelope."""
    log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.info
    log("travel_request_failed", path=request.url.path, error=str(exc), status_code=exc.status_code)
    return _envelope(exc.status_code, exc.public_message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (401, unknown routes) in the response envelope."""
    return _envelope(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests in the response envelope."""
    logger.info("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return _envelope(status.HTTP_400_BAD_REQUEST, "Invalid request parameters")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all so callers never see internals."""
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "There was a problem processing your request")


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": settings.PROJECT_NAME, "version": __version__}


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/ready")
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint."""
    return {"status": "ready"}
