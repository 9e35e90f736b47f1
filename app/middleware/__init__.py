"""HTTP middleware."""

from app.middleware.access_logging import AccessLoggingMiddleware

__all__ = ["AccessLoggingMiddleware"]
