"""
Interaction Controller - the callback-driven workflow of a live event message.

PENDING → (video / post browsing) → APPROVED | SKIPPED.
Browsing is not a stored status; it only exists in the message currently
shown to the operator. Every callback is answered exactly once, whatever
happens inside the handler.
"""
from typing import Optional, assert_never

from footbot.core.exceptions import (
    CircuitBreakerOpenError,
    EventNotFoundError,
    SearchConfigurationError,
    SearchProviderError,
    SearchResultNotFoundError,
    ServiceTimeoutError,
    TelegramError,
)
from footbot.core.logging import get_logger
from footbot.domain.models import (
    ApprovedMedia,
    EventStatus,
    MatchEvent,
    ProviderCache,
    SearchProvider,
    SearchResult,
)
from footbot.domain.services.event_store import EventStore
from footbot.domain.services.search_cache import SearchCacheManager
from footbot.domain.services.telegram_client import Keyboard, TelegramClient
from footbot.state_machine.actions import (
    REFRESH_ARG,
    ActionKind,
    CallbackAction,
    parse_callback_data,
)
from footbot.state_machine.rendering import (
    initial_keyboard,
    page_results,
    render_confirmation,
    render_nothing_found,
    render_results_page,
)

logger = get_logger(__name__)

# תשובות קצרות ל-answerCallbackQuery
ANSWER_UNKNOWN = "Unknown action"
ANSWER_EVENT_NOT_FOUND = "Event not found"
ANSWER_NOT_IN_CACHE = "Not found in cache"
ANSWER_NO_MORE = "No more results"
ANSWER_NOTHING_FOUND = "Nothing found"
ANSWER_NOT_CONFIGURED = "Not configured"
ANSWER_SEARCH_ERROR = "Search error"
ANSWER_TELEGRAM_ERROR = "Telegram error"
ANSWER_FAILED = "Something went wrong"


class InteractionController:
    def __init__(
        self,
        store: EventStore,
        cache_manager: SearchCacheManager,
        telegram: TelegramClient,
        chat_id: Optional[str] = None,
    ):
        self.store = store
        self.cache_manager = cache_manager
        self.telegram = telegram
        self.chat_id = chat_id

    async def handle_callback(
        self,
        callback_query_id: str,
        data: Optional[str],
        chat_id: Optional[str] = None,
        message_id: Optional[int] = None,
    ) -> str:
        """
        Handle one button press and answer the callback query.

        Never raises: failures are logged and turned into a short answer so the
        button does not keep spinning in the operator's client.

        Returns:
            The text the callback query was answered with.
        """
        action = parse_callback_data(data)
        try:
            answer = await self._dispatch(action, chat_id, message_id)
        except EventNotFoundError:
            answer = ANSWER_EVENT_NOT_FOUND
        except SearchResultNotFoundError as e:
            logger.info("Picked result no longer in cache", extra_data=e.details)
            answer = ANSWER_NOT_IN_CACHE
        except SearchConfigurationError as e:
            logger.warning("Search provider not configured", extra_data=e.details)
            answer = ANSWER_NOT_CONFIGURED
        except (SearchProviderError, ServiceTimeoutError, CircuitBreakerOpenError) as e:
            logger.warning(
                "Search failed",
                extra_data={"action": action.kind.value, "event_id": action.event_id, "error": str(e)},
            )
            answer = ANSWER_SEARCH_ERROR
        except TelegramError as e:
            logger.error(
                "Telegram call failed while handling callback",
                extra_data={"action": action.kind.value, "event_id": action.event_id, "error": str(e)},
            )
            answer = ANSWER_TELEGRAM_ERROR
        except Exception as e:
            logger.error(
                "Callback handler failed",
                extra_data={"action": action.kind.value, "event_id": action.event_id, "error": str(e)},
                exc_info=True,
            )
            answer = ANSWER_FAILED

        await self.telegram.answer_callback_query(callback_query_id, answer)
        return answer

    async def _dispatch(
        self,
        action: CallbackAction,
        chat_id: Optional[str],
        message_id: Optional[int],
    ) -> str:
        if action.kind is ActionKind.UNKNOWN:
            return ANSWER_UNKNOWN

        event = await self.store.get(action.event_id)
        if event is None:
            raise EventNotFoundError(action.event_id)
        if event.status is not EventStatus.PENDING:
            return f"Already {event.status.value.lower()}"

        target_chat = chat_id or event.chat_id or self.chat_id
        target_message = message_id or event.message_id

        match action.kind:
            case ActionKind.SEARCH_VIDEO | ActionKind.SEARCH_POST:
                return await self._search(
                    event, action.kind.provider, action.arg == REFRESH_ARG,
                    target_chat, target_message,
                )
            case ActionKind.MORE_VIDEO | ActionKind.MORE_POST:
                return await self._more(
                    event, action.kind.provider, action.page, target_chat, target_message,
                )
            case ActionKind.PICK_VIDEO | ActionKind.PICK_POST:
                return await self._pick(event, action.kind.provider, action.arg, target_chat)
            case ActionKind.BACK:
                await self._edit(target_chat, target_message, event.original_text, initial_keyboard(event.id))
                return "Back"
            case ActionKind.SKIP:
                await self.store.upsert({"dedupe_key": event.dedupe_key, "status": EventStatus.SKIPPED})
                logger.info("Live event skipped", extra_data={"event_id": event.id})
                return "Skipped"
            case ActionKind.UNKNOWN:
                return ANSWER_UNKNOWN
            case _:
                assert_never(action.kind)

    async def _edit(
        self,
        chat_id: Optional[str],
        message_id: Optional[int],
        text: str,
        keyboard: Keyboard,
    ) -> None:
        if not chat_id or message_id is None:
            raise TelegramError("no message to edit", details={"chat_id": chat_id})
        await self.telegram.edit_message_text(chat_id, message_id, text, keyboard)

    async def _show_page(
        self,
        event: MatchEvent,
        provider: SearchProvider,
        cache: ProviderCache,
        page: int,
        chat_id: Optional[str],
        message_id: Optional[int],
    ) -> None:
        text, keyboard = render_results_page(event, provider, cache, page)
        await self._edit(chat_id, message_id, text, keyboard)

    async def _search(
        self,
        event: MatchEvent,
        provider: SearchProvider,
        force: bool,
        chat_id: Optional[str],
        message_id: Optional[int],
    ) -> str:
        cache = await self.cache_manager.get_or_refresh(event, provider, force=force)
        if not cache.results:
            text, keyboard = render_nothing_found(event, provider)
            await self._edit(chat_id, message_id, text, keyboard)
            return ANSWER_NOTHING_FOUND

        await self._show_page(event, provider, cache, 0, chat_id, message_id)
        return f"{len(cache.results)} results"

    async def _more(
        self,
        event: MatchEvent,
        provider: SearchProvider,
        page: int,
        chat_id: Optional[str],
        message_id: Optional[int],
    ) -> str:
        cache = event.cache_for(provider)
        if cache is None:
            cache = await self.cache_manager.get_or_refresh(event, provider)

        if not page_results(cache, page):
            # הדף המבוקש עוד לא נטען - ממשיכים מה-token של השאילתה הראשונה
            extended = await self.cache_manager.extend(event, provider)
            if extended is None or not page_results(extended, page):
                return ANSWER_NO_MORE
            cache = extended

        await self._show_page(event, provider, cache, page, chat_id, message_id)
        return f"Page {page + 1}"

    async def _pick(
        self,
        event: MatchEvent,
        provider: SearchProvider,
        result_id: Optional[str],
        chat_id: Optional[str],
    ) -> str:
        cache = event.cache_for(provider)
        chosen: Optional[SearchResult] = None
        if cache is not None:
            chosen = next((r for r in cache.results if r.external_id == result_id), None)
        if chosen is None:
            raise SearchResultNotFoundError(event.id, result_id or "", provider.value)

        approved = ApprovedMedia(
            source=provider,
            external_id=chosen.external_id,
            url=chosen.url,
            title=chosen.title,
        )
        updated = await self.store.upsert({
            "dedupe_key": event.dedupe_key,
            "approved": approved,
            "status": EventStatus.APPROVED,
        })
        logger.info(
            "Live event media approved",
            extra_data={"event_id": event.id, "provider": provider.value, "external_id": chosen.external_id},
        )

        if chat_id:
            await self.telegram.send_message(chat_id, render_confirmation(updated, approved))
        return "Saved"
