"""
Telegram webhook - ingress for the inline button callbacks of live event
messages.

The update is acknowledged immediately; the callback itself is handled in a
background task so Telegram does not retry a slow search.
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, ConfigDict, Field

from footbot.api.dependencies.webhook_auth import verify_telegram_webhook_token
from footbot.core.logging import get_logger
from footbot.domain.services.live_events_runtime import get_live_events_runtime

logger = get_logger(__name__)

router = APIRouter()


class TelegramUser(BaseModel):
    id: int
    first_name: str = ""
    username: Optional[str] = None


class TelegramChat(BaseModel):
    id: int
    type: str = ""


class TelegramMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    chat: TelegramChat
    text: Optional[str] = None
    date: int = 0


class TelegramCallbackQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    message: Optional[TelegramMessage] = None
    data: Optional[str] = None


class TelegramUpdate(BaseModel):
    update_id: int
    message: Optional[TelegramMessage] = None
    callback_query: Optional[TelegramCallbackQuery] = None


@router.post(
    "/webhook",
    summary="Webhook - Telegram",
    description="Receives Telegram Bot API updates; only callback queries are handled.",
)
async def telegram_webhook(
    update: TelegramUpdate,
    background_tasks: BackgroundTasks,
    _: None = Depends(verify_telegram_webhook_token),
):
    callback = update.callback_query
    if callback is None:
        # הודעות טקסט לבוט אינן חלק מהזרימה
        return {"ok": True}

    chat_id = str(callback.message.chat.id) if callback.message else None
    message_id = callback.message.message_id if callback.message else None

    logger.info(
        "Telegram callback received",
        extra_data={
            "update_id": update.update_id,
            "data": callback.data,
            "from_user": callback.from_user.id if callback.from_user else None,
        },
    )

    controller = get_live_events_runtime().controller
    background_tasks.add_task(
        controller.handle_callback,
        callback.id,
        callback.data,
        chat_id,
        message_id,
    )
    return {"ok": True}
