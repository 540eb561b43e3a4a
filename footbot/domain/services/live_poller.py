"""
Live Poller - one polling cycle of the live events tracker.

live fixtures → tracked ids → competition scope → events per fixture →
relevance filter → ledger gate → event store → Telegram message.
"""
import asyncio
from contextlib import suppress
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable, Iterable, Optional

from footbot.core.logging import get_logger, set_correlation_id
from footbot.domain.fixtures import Fixture, FixtureEvent, build_dedupe_key
from footbot.domain.services.event_store import EventStore
from footbot.domain.services.football_api import FootballApiClient
from footbot.domain.services.notification_ledger import NotificationLedger
from footbot.domain.services.relevance import compute_minute, is_notable, minute_label
from footbot.domain.services.telegram_client import TelegramClient
from footbot.state_machine.rendering import format_event_message, initial_keyboard

logger = get_logger(__name__)


@dataclass
class PollSummary:
    """Fixtures seen at each filtering stage and events sent, for observability"""

    enabled: bool
    sent: int = 0
    live_fixtures: int = 0
    tracked_live_fixtures: int = 0
    scoped_live_fixtures: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def _normalize_fixture_ids(raw: Iterable[object]) -> set[int]:
    """"1001", 1001, " 7 " → ints; anything else is dropped"""
    ids = set()
    for value in raw or ():
        try:
            ids.add(int(str(value).strip()))
        except ValueError:
            continue
    return ids


def _event_fields(fixture: Fixture, event: FixtureEvent) -> dict:
    return {
        "fixture_id": fixture.fixture_id,
        "home": fixture.home_name,
        "away": fixture.away_name,
        "league": fixture.league_name,
        "country": fixture.country,
        "minute": compute_minute(event.time),
        "minute_label": minute_label(event.time),
        "team": event.team.name or "",
        "player": event.player.name or "",
        "event_type": event.type or "",
        "event_detail": event.detail or "",
    }


class LiveEventsTracker:
    def __init__(
        self,
        feed: FootballApiClient,
        telegram: TelegramClient,
        store: EventStore,
        ledger: NotificationLedger,
        chat_id: str,
        *,
        enabled: bool = True,
        interval_seconds: int = 60,
        get_tracked_fixture_ids: Optional[Callable[[], Awaitable[Iterable[int | str]]]] = None,
        should_track_fixture: Optional[Callable[[Fixture], bool]] = None,
    ):
        self.feed = feed
        self.telegram = telegram
        self.store = store
        self.ledger = ledger
        self.chat_id = chat_id
        self.enabled = enabled
        self.interval_seconds = interval_seconds
        self.get_tracked_fixture_ids = get_tracked_fixture_ids
        self.should_track_fixture = should_track_fixture

        self._polling = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> PollSummary:
        """
        Run one polling cycle.

        A cycle already in progress makes this return immediately with sent=0.
        A failure on one fixture is logged and the cycle moves on; a failure
        fetching the live list ends the cycle with ``error`` set.
        """
        if not self.enabled or self._polling:
            return PollSummary(enabled=self.enabled)

        self._polling = True
        set_correlation_id()
        summary = PollSummary(enabled=True)
        try:
            fixtures = await self.feed.fetch_live_fixtures()
            summary.live_fixtures = len(fixtures)

            tracked = fixtures
            if self.get_tracked_fixture_ids is not None:
                tracked_ids = _normalize_fixture_ids(await self.get_tracked_fixture_ids())
                tracked = [f for f in fixtures if f.fixture_id in tracked_ids]
            summary.tracked_live_fixtures = len(tracked)

            scoped = tracked
            if self.should_track_fixture is not None:
                scoped = [f for f in tracked if self.should_track_fixture(f)]
            summary.scoped_live_fixtures = len(scoped)

            for fixture in scoped:
                try:
                    summary.sent += await self._process_fixture(fixture)
                except Exception as e:
                    logger.warning(
                        "Live fixture processing failed",
                        extra_data={"fixture_id": fixture.fixture_id, "error": str(e)},
                        exc_info=True,
                    )
        except Exception as e:
            logger.error(
                "Live events poll failed",
                extra_data={"error": str(e)},
                exc_info=True,
            )
            summary.error = str(e)
        finally:
            self._polling = False

        if summary.sent:
            logger.info("Live events sent to Telegram", extra_data=summary.to_dict())
        return summary

    async def _process_fixture(self, fixture: Fixture) -> int:
        fixture_id = fixture.fixture_id
        if fixture_id is None:
            return 0

        sent = 0
        for event in await self.feed.fetch_fixture_events(fixture_id):
            if not is_notable(event):
                continue

            key = build_dedupe_key(fixture_id, event)
            if not await self.ledger.try_acquire(key, fixture_id):
                continue

            text = format_event_message(fixture, event)
            stored = await self.store.upsert({
                "dedupe_key": key,
                **_event_fields(fixture, event),
                "original_text": text,
                "chat_id": self.chat_id,
            })
            message_id = await self.telegram.send_message(
                self.chat_id, text, initial_keyboard(stored.id)
            )
            await self.store.upsert({"dedupe_key": key, "message_id": message_id})
            sent += 1

            logger.info(
                "Live event notified",
                extra_data={
                    "event_id": stored.id,
                    "fixture_id": fixture_id,
                    "type": event.type,
                    "detail": event.detail,
                },
            )
        return sent

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.poll_once()

    async def start(self) -> None:
        """First poll right away, then a fixed-interval loop"""
        if not self.enabled:
            logger.info("Live events tracker disabled")
            return
        if self.is_running:
            return

        await self.poll_once()
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Live events tracker started",
            extra_data={"interval_seconds": self.interval_seconds},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Live events tracker stopped")
