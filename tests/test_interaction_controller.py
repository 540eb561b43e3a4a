"""
Tests for the callback workflow (search, paging, pick, back, skip)
"""
from unittest.mock import AsyncMock

import pytest

from footbot.core.exceptions import SearchConfigurationError, SearchProviderError, TelegramError
from footbot.domain.models import EventStatus, ProviderCache, SearchProvider
from footbot.domain.services.event_store import InMemoryEventStore
from footbot.domain.services.search.base import SearchPage
from footbot.domain.services.search_cache import ProviderOptions, SearchCacheManager
from footbot.state_machine.actions import ActionKind, build_callback_data, parse_callback_data
from footbot.state_machine.interaction_controller import (
    ANSWER_EVENT_NOT_FOUND,
    ANSWER_FAILED,
    ANSWER_NO_MORE,
    ANSWER_NOT_CONFIGURED,
    ANSWER_NOT_IN_CACHE,
    ANSWER_NOTHING_FOUND,
    ANSWER_SEARCH_ERROR,
    ANSWER_TELEGRAM_ERROR,
    ANSWER_UNKNOWN,
    InteractionController,
)
from tests.factories import NOW, FakeSearchClient, make_result

KEY = "1001|60||Card|Red Card|42|7||"
CHAT_ID = "-1001"
MESSAGE_ID = 4242
ORIGINAL_TEXT = "<b>🟥 Live Match Event</b>\nArsenal 1:0 Chelsea"


@pytest.fixture
def store():
    return InMemoryEventStore(clock=lambda: NOW)


@pytest.fixture
def video():
    return FakeSearchClient()


@pytest.fixture
def post():
    return FakeSearchClient()


@pytest.fixture
def controller(store, video, post, mock_telegram):
    options = ProviderOptions(lookback_hours=6, max_results=10, cache_minutes=10)
    manager = SearchCacheManager(
        store,
        clients={SearchProvider.VIDEO: video, SearchProvider.POST: post},
        options={SearchProvider.VIDEO: options, SearchProvider.POST: options},
        clock=lambda: NOW,
    )
    return InteractionController(store, manager, mock_telegram, chat_id=CHAT_ID)


@pytest.fixture
async def event(store):
    return await store.upsert({
        "dedupe_key": KEY,
        "fixture_id": 1001,
        "home": "Arsenal",
        "away": "Chelsea",
        "league": "Premier League",
        "event_type": "Card",
        "event_detail": "Red Card",
        "player": "Cole Palmer",
        "minute_label": "60'",
        "original_text": ORIGINAL_TEXT,
        "chat_id": CHAT_ID,
        "message_id": MESSAGE_ID,
    })


def _edited(mock_telegram):
    """(text, keyboard) of the last editMessageText call"""
    args = mock_telegram.edit_message_text.await_args.args
    assert args[0] == CHAT_ID
    assert args[1] == MESSAGE_ID
    return args[2], args[3]


def _keyboard_actions(keyboard):
    return [parse_callback_data(b.action) for row in keyboard for b in row if b.action]


async def _press(controller, kind, event_id, arg=None):
    return await controller.handle_callback("cbq-1", build_callback_data(kind, event_id, arg))


class TestSearch:
    @pytest.mark.unit
    async def test_renders_first_page(self, controller, event, video, mock_telegram):
        video.pages = [SearchPage(items=[make_result(f"v{i}") for i in range(7)], next_token="T1")]

        answer = await _press(controller, ActionKind.SEARCH_VIDEO, event.id)

        assert answer == "7 results"
        mock_telegram.answer_callback_query.assert_awaited_once_with("cbq-1", "7 results")
        text, keyboard = _edited(mock_telegram)
        assert "YouTube results" in text
        kinds = [a.kind for a in _keyboard_actions(keyboard)]
        assert kinds.count(ActionKind.PICK_VIDEO) == 5
        assert ActionKind.MORE_VIDEO in kinds

    @pytest.mark.unit
    async def test_nothing_found_offers_retry(self, controller, event, post, mock_telegram):
        answer = await _press(controller, ActionKind.SEARCH_POST, event.id)

        assert answer == ANSWER_NOTHING_FOUND
        _, keyboard = _edited(mock_telegram)
        retry = _keyboard_actions(keyboard)[0]
        assert (retry.kind, retry.arg) == (ActionKind.SEARCH_POST, "refresh")

    @pytest.mark.unit
    async def test_refresh_forces_a_new_search(self, controller, event, store, video):
        await store.upsert({
            "dedupe_key": KEY,
            "video_cache": ProviderCache(results=[], cached_at=NOW, queries=["q"]),
        })

        await _press(controller, ActionKind.SEARCH_VIDEO, event.id)
        assert video.calls == []

        await _press(controller, ActionKind.SEARCH_VIDEO, event.id, "refresh")
        assert len(video.calls) == 2

    @pytest.mark.unit
    async def test_provider_error_is_answered(self, controller, event, video, mock_telegram):
        video.search = AsyncMock(side_effect=SearchProviderError("youtube", "quota exceeded"))

        answer = await _press(controller, ActionKind.SEARCH_VIDEO, event.id)

        assert answer == ANSWER_SEARCH_ERROR
        mock_telegram.answer_callback_query.assert_awaited_once_with("cbq-1", ANSWER_SEARCH_ERROR)
        mock_telegram.edit_message_text.assert_not_awaited()

    @pytest.mark.unit
    async def test_missing_credentials_are_answered(self, controller, event, video):
        video.search = AsyncMock(side_effect=SearchConfigurationError("YouTube", "YOUTUBE_API_KEY"))

        assert await _press(controller, ActionKind.SEARCH_VIDEO, event.id) == ANSWER_NOT_CONFIGURED

    @pytest.mark.unit
    async def test_edit_failure_is_answered(self, controller, event, video, mock_telegram):
        video.pages = [SearchPage(items=[make_result("v1")])]
        mock_telegram.edit_message_text.side_effect = TelegramError("boom")

        assert await _press(controller, ActionKind.SEARCH_VIDEO, event.id) == ANSWER_TELEGRAM_ERROR
        mock_telegram.answer_callback_query.assert_awaited_once()


class TestMore:
    @pytest.mark.unit
    async def test_shows_loaded_page(self, controller, event, store, video, mock_telegram):
        await store.upsert({
            "dedupe_key": KEY,
            "video_cache": ProviderCache(
                results=[make_result(f"v{i}") for i in range(7)], cached_at=NOW, queries=["q"]
            ),
        })

        answer = await _press(controller, ActionKind.MORE_VIDEO, event.id, "1")

        assert answer == "Page 2"
        assert video.calls == []
        text, _ = _edited(mock_telegram)
        assert "(page 2)" in text

    @pytest.mark.unit
    async def test_extends_cache_with_page_token(self, controller, event, store, video, mock_telegram):
        await store.upsert({
            "dedupe_key": KEY,
            "video_cache": ProviderCache(
                results=[make_result(f"v{i}") for i in range(5)],
                next_token="T1",
                cached_at=NOW,
                queries=["q1", "q2"],
            ),
        })
        video.pages = [SearchPage(items=[make_result("v5"), make_result("v6")])]

        answer = await _press(controller, ActionKind.MORE_VIDEO, event.id, "1")

        assert answer == "Page 2"
        assert video.calls[0]["query"] == "q1"
        assert video.calls[0]["page_token"] == "T1"
        assert len((await store.get(event.id)).video_cache.results) == 7

    @pytest.mark.unit
    async def test_no_token_means_no_more(self, controller, event, store, mock_telegram):
        await store.upsert({
            "dedupe_key": KEY,
            "video_cache": ProviderCache(
                results=[make_result(f"v{i}") for i in range(5)], cached_at=NOW, queries=["q"]
            ),
        })

        assert await _press(controller, ActionKind.MORE_VIDEO, event.id, "1") == ANSWER_NO_MORE
        mock_telegram.edit_message_text.assert_not_awaited()


class TestPick:
    @pytest.mark.unit
    async def test_pick_approves_and_confirms(self, controller, event, store, mock_telegram):
        await store.upsert({
            "dedupe_key": KEY,
            "video_cache": ProviderCache(
                results=[make_result("v1", title="Palmer red card")], cached_at=NOW, queries=["q"]
            ),
        })

        answer = await _press(controller, ActionKind.PICK_VIDEO, event.id, "v1")

        assert answer == "Saved"
        stored = await store.get(event.id)
        assert stored.status is EventStatus.APPROVED
        assert stored.approved.external_id == "v1"
        assert stored.approved.source is SearchProvider.VIDEO
        assert stored.approved.url == "https://example.com/v1"
        chat_id, text = mock_telegram.send_message.await_args.args[:2]
        assert chat_id == CHAT_ID
        assert "Palmer red card" in text

    @pytest.mark.unit
    async def test_pick_of_result_not_in_cache(self, controller, event, store, mock_telegram):
        await store.upsert({
            "dedupe_key": KEY,
            "post_cache": ProviderCache(
                results=[make_result("p1", provider=SearchProvider.POST)], cached_at=NOW
            ),
        })

        answer = await _press(controller, ActionKind.PICK_POST, event.id, "gone")

        assert answer == ANSWER_NOT_IN_CACHE
        assert (await store.get(event.id)).status is EventStatus.PENDING
        mock_telegram.send_message.assert_not_awaited()

    @pytest.mark.unit
    async def test_pick_without_cache(self, controller, event):
        assert await _press(controller, ActionKind.PICK_VIDEO, event.id, "v1") == ANSWER_NOT_IN_CACHE


class TestBackAndSkip:
    @pytest.mark.unit
    async def test_back_restores_original_message(self, controller, event, mock_telegram):
        assert await _press(controller, ActionKind.BACK, event.id) == "Back"

        text, keyboard = _edited(mock_telegram)
        assert text == ORIGINAL_TEXT
        assert [a.kind for a in _keyboard_actions(keyboard)] == [
            ActionKind.SEARCH_VIDEO, ActionKind.SEARCH_POST, ActionKind.SKIP,
        ]

    @pytest.mark.unit
    async def test_skip(self, controller, event, store):
        assert await _press(controller, ActionKind.SKIP, event.id) == "Skipped"
        assert (await store.get(event.id)).status is EventStatus.SKIPPED

    @pytest.mark.unit
    async def test_resolved_event_ignores_actions(self, controller, event, store, video, mock_telegram):
        await _press(controller, ActionKind.SKIP, event.id)

        answer = await _press(controller, ActionKind.SEARCH_VIDEO, event.id)

        assert answer == "Already skipped"
        assert video.calls == []
        mock_telegram.edit_message_text.assert_not_awaited()


class TestDispatchErrors:
    @pytest.mark.unit
    @pytest.mark.parametrize("data", [None, "", "garbage", "yt", "foo:0123456789ab"])
    async def test_unknown_data(self, controller, mock_telegram, data):
        assert await controller.handle_callback("cbq-9", data) == ANSWER_UNKNOWN
        mock_telegram.answer_callback_query.assert_awaited_once_with("cbq-9", ANSWER_UNKNOWN)

    @pytest.mark.unit
    async def test_event_not_found(self, controller, mock_telegram):
        assert await _press(controller, ActionKind.SKIP, "ffffffffffff") == ANSWER_EVENT_NOT_FOUND

    @pytest.mark.unit
    async def test_unexpected_error_is_still_answered(self, controller, event, store, mock_telegram):
        store.get = AsyncMock(side_effect=RuntimeError("db down"))

        assert await _press(controller, ActionKind.SKIP, event.id) == ANSWER_FAILED
        mock_telegram.answer_callback_query.assert_awaited_once_with("cbq-1", ANSWER_FAILED)

    @pytest.mark.unit
    async def test_message_ids_from_callback_take_precedence(self, controller, event, mock_telegram):
        data = build_callback_data(ActionKind.BACK, event.id)

        await controller.handle_callback("cbq-2", data, chat_id="-2002", message_id=77)

        args = mock_telegram.edit_message_text.await_args.args
        assert args[:2] == ("-2002", 77)
