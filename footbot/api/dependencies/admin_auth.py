"""
API key check for operator endpoints (manual poll).

    @router.post("/live-events/poll")
    async def poll(_: None = Depends(require_admin_api_key)):
        ...
"""
import hmac

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from footbot.core.config import settings
from footbot.core.logging import get_logger

logger = get_logger(__name__)

ADMIN_API_KEY_HEADER = "X-Admin-API-Key"

_api_key_header = APIKeyHeader(name=ADMIN_API_KEY_HEADER, auto_error=False)


async def require_admin_api_key(
    api_key: str | None = Depends(_api_key_header),
) -> None:
    """
    401 when the header is missing, 403 when it does not match.
    With ``ADMIN_API_KEY`` unset every request is refused.
    """
    if not settings.ADMIN_API_KEY:
        logger.warning("Admin endpoint refused, ADMIN_API_KEY is not set")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="ADMIN_API_KEY is not configured",
        )

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key, {ADMIN_API_KEY_HEADER} header required",
        )

    if not hmac.compare_digest(api_key, settings.ADMIN_API_KEY):
        logger.warning("Admin endpoint refused, invalid API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )
