"""
Builds the live events object graph from settings.

The web process keeps one runtime (get_live_events_runtime); Celery tasks
build their own with a task-local session factory.
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional

from footbot.core.config import Settings, settings as app_settings
from footbot.core.logging import get_logger
from footbot.db.database import AsyncSessionLocal
from footbot.domain.models import SearchProvider
from footbot.domain.services.competition_scope import league_id_matcher, parse_league_id_allowlist
from footbot.domain.services.event_store import EventStore, InMemoryEventStore, SqlEventStore
from footbot.domain.services.football_api import FootballApiClient
from footbot.domain.services.live_poller import LiveEventsTracker
from footbot.domain.services.notification_ledger import NotificationLedger
from footbot.domain.services.ranking import parse_spam_keywords
from footbot.domain.services.search import RedditSearchClient, YouTubeSearchClient
from footbot.domain.services.search_cache import ProviderOptions, SearchCacheManager
from footbot.domain.services.telegram_client import TelegramClient
from footbot.state_machine.interaction_controller import InteractionController

logger = get_logger(__name__)


@dataclass
class LiveEventsRuntime:
    tracker: LiveEventsTracker
    controller: InteractionController
    store: EventStore
    ledger: NotificationLedger
    cache_manager: SearchCacheManager
    disabled_reason: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.disabled_reason is None


def tracker_disabled_reason(config: Settings) -> Optional[str]:
    """None when the tracker can run; otherwise the first missing piece"""
    if not config.ENABLE_LIVE_EVENTS_TRACKER:
        return "ENABLE_LIVE_EVENTS_TRACKER is off"
    for name in ("API_FOOTBALL_KEY", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID"):
        if not getattr(config, name):
            return f"{name} is not set"
    if not parse_league_id_allowlist(config.LIVE_EVENTS_LEAGUE_IDS):
        return "LIVE_EVENTS_LEAGUE_IDS is empty"
    return None


def build_live_events_runtime(
    config: Settings,
    session_factory: Callable[[], Any] = AsyncSessionLocal,
    store: Optional[EventStore] = None,
) -> LiveEventsRuntime:
    if store is None:
        if config.LIVE_EVENTS_STORE == "database":
            store = SqlEventStore(session_factory)
        else:
            store = InMemoryEventStore()

    telegram = TelegramClient(config.TELEGRAM_BOT_TOKEN or "")
    ledger = NotificationLedger(session_factory)
    cache_manager = SearchCacheManager(
        store,
        clients={
            SearchProvider.VIDEO: YouTubeSearchClient(
                config.YOUTUBE_API_KEY,
                region_code=config.YT_REGION_CODE,
                relevance_language=config.YT_RELEVANCE_LANGUAGE,
            ),
            SearchProvider.POST: RedditSearchClient(config.REDDIT_USER_AGENT),
        },
        options={
            SearchProvider.VIDEO: ProviderOptions(
                lookback_hours=config.YT_LOOKBACK_HOURS,
                max_results=config.YT_MAX_RESULTS,
                cache_minutes=config.YT_CACHE_MINUTES,
            ),
            SearchProvider.POST: ProviderOptions(
                lookback_hours=config.REDDIT_LOOKBACK_HOURS,
                max_results=config.REDDIT_MAX_RESULTS,
                cache_minutes=config.REDDIT_CACHE_MINUTES,
            ),
        },
        spam_keywords=parse_spam_keywords(config.YT_SPAM_KEYWORDS),
    )

    disabled_reason = tracker_disabled_reason(config)
    if disabled_reason:
        logger.info(
            "Live events tracker disabled",
            extra_data={"reason": disabled_reason},
        )

    tracker = LiveEventsTracker(
        FootballApiClient(config.API_FOOTBALL_KEY, config.API_TIMEZONE),
        telegram,
        store,
        ledger,
        config.TELEGRAM_CHAT_ID or "",
        enabled=disabled_reason is None,
        interval_seconds=config.LIVE_EVENTS_INTERVAL_SECONDS,
        should_track_fixture=league_id_matcher(
            parse_league_id_allowlist(config.LIVE_EVENTS_LEAGUE_IDS)
        ),
    )
    controller = InteractionController(store, cache_manager, telegram, config.TELEGRAM_CHAT_ID)

    return LiveEventsRuntime(
        tracker=tracker,
        controller=controller,
        store=store,
        ledger=ledger,
        cache_manager=cache_manager,
        disabled_reason=disabled_reason,
    )


_runtime: Optional[LiveEventsRuntime] = None


def get_live_events_runtime() -> LiveEventsRuntime:
    """Runtime of the web process, built on first use"""
    global _runtime
    if _runtime is None:
        _runtime = build_live_events_runtime(app_settings)
    return _runtime


def reset_live_events_runtime() -> None:
    global _runtime
    _runtime = None
