"""Authentication utilities."""

import secrets

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyQuery

from app.core.config import require_config, settings

# Validate required auth configuration on module load
require_config("APP_KEY")

logger = structlog.get_logger(__name__)

# Callers authenticate with a shared key in the app_key query parameter
app_key_scheme = APIKeyQuery(name="app_key", auto_error=False)


async def verify_app_key(app_key: str | None = Depends(app_key_scheme)) -> None:
    """
    Check the app_key query parameter against the configured key.

    Args:
        app_key: Value of the app_key query parameter

    Raises:
        HTTPException: 401 if the key is missing or does not match
    """
    expected = settings.APP_KEY or ""
    if not app_key or not secrets.compare_digest(app_key.encode(), expected.encode()):
        logger.warning("invalid_app_key", provided=bool(app_key))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="There was a problem authenticating you.",
        )
