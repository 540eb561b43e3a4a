"""
Telegram Bot API client for the live events channel.

Every call runs behind the shared Telegram circuit breaker. Text is always
sent in HTML parse mode, so callers must escape user-supplied values.
"""
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from footbot.core.circuit_breaker import CircuitBreaker, get_telegram_circuit_breaker
from footbot.core.exceptions import ServiceTimeoutError, TelegramError
from footbot.core.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_BASE_URL = "https://api.telegram.org"
REQUEST_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class InlineButton:
    """Inline keyboard button: either a callback action token or a URL"""

    label: str
    action: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> dict[str, str]:
        if self.url:
            return {"text": self.label, "url": self.url}
        return {"text": self.label, "callback_data": self.action or ""}


Keyboard = list[list[InlineButton]]


def reply_markup(keyboard: Optional[Keyboard]) -> dict[str, Any]:
    return {
        "inline_keyboard": [[button.to_dict() for button in row] for row in keyboard or []]
    }


class TelegramClient:
    def __init__(
        self,
        bot_token: str,
        *,
        circuit_breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bot_token = bot_token
        self._circuit_breaker = circuit_breaker or get_telegram_circuit_breaker()
        self._transport = transport

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        async def _send() -> dict[str, Any]:
            async with httpx.AsyncClient(
                base_url=f"{TELEGRAM_API_BASE_URL}/bot{self.bot_token}",
                timeout=REQUEST_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                try:
                    response = await client.post(f"/{method}", json=payload)
                except httpx.TimeoutException:
                    raise ServiceTimeoutError("telegram", REQUEST_TIMEOUT_SECONDS)
                except httpx.HTTPError as e:
                    raise TelegramError(f"{method} failed: {e}")
                if response.status_code != 200:
                    raise TelegramError.from_response(method, response)
                return response.json()

        return await self._circuit_breaker.execute(_send)

    async def send_message(
        self,
        chat_id: str,
        text: str,
        keyboard: Optional[Keyboard] = None,
    ) -> Optional[int]:
        """sendMessage; returns the new message_id"""
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if keyboard:
            payload["reply_markup"] = reply_markup(keyboard)

        data = await self._call("sendMessage", payload)
        return (data.get("result") or {}).get("message_id")

    async def edit_message_text(
        self,
        chat_id: str,
        message_id: int,
        text: str,
        keyboard: Optional[Keyboard] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
            "reply_markup": reply_markup(keyboard),
        }
        try:
            await self._call("editMessageText", payload)
        except TelegramError as e:
            # לחיצה חוזרת על אותו כפתור - טלגרם מחזיר 400 ואין מה לעדכן
            if "message is not modified" in e.details.get("response_text", ""):
                return
            raise

    async def answer_callback_query(self, callback_query_id: str, text: Optional[str] = None) -> bool:
        """Answer callback query to remove the loading state; failures are logged, not raised"""
        payload: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text

        try:
            await self._call("answerCallbackQuery", payload)
            return True
        except Exception as e:
            logger.error(
                "Answer callback failed",
                extra_data={"callback_query_id": callback_query_id, "error": str(e)},
                exc_info=True
            )
            return False
