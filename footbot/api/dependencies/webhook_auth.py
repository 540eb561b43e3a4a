"""
Verification of inbound Telegram webhook requests.

When ``secret_token`` is passed to ``setWebhook``, Telegram sends it back in
the ``X-Telegram-Bot-Api-Secret-Token`` header of every update.
"""
import hmac

from fastapi import Header, HTTPException, status

from footbot.core.config import settings
from footbot.core.logging import get_logger

logger = get_logger(__name__)


async def verify_telegram_webhook_token(
    x_telegram_bot_api_secret_token: str | None = Header(None),
) -> None:
    """
    - ``TELEGRAM_WEBHOOK_SECRET_TOKEN`` empty: no verification (warned at startup).
    - header missing or different: 403 Forbidden.
    """
    expected = settings.TELEGRAM_WEBHOOK_SECRET_TOKEN
    if not expected:
        return

    if not x_telegram_bot_api_secret_token:
        logger.warning("Webhook request without X-Telegram-Bot-Api-Secret-Token header")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing webhook secret token",
        )

    # השוואה בטוחה מפני timing attacks
    if not hmac.compare_digest(x_telegram_bot_api_secret_token, expected):
        logger.warning("Webhook request with invalid secret token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid webhook secret token",
        )
