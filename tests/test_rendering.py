"""
Tests for message texts and keyboards
"""
import pytest

from footbot.domain.models import ApprovedMedia, ProviderCache, SearchProvider
from footbot.state_machine.actions import parse_callback_data, ActionKind
from footbot.state_machine.rendering import (
    PAGE_SIZE,
    escape,
    format_event_message,
    has_next_page,
    initial_keyboard,
    render_confirmation,
    render_nothing_found,
    render_results_page,
)
from tests.factories import NOW, make_event, make_feed_event, make_fixture, make_result


def _actions(keyboard):
    return [parse_callback_data(b.action) for row in keyboard for b in row if b.action]


class TestEscape:
    @pytest.mark.unit
    def test_html_is_escaped(self):
        assert escape("<b>Brighton & Hove</b>") == "&lt;b&gt;Brighton &amp; Hove&lt;/b&gt;"

    @pytest.mark.unit
    def test_quotes_are_kept(self):
        assert escape("Newell's \"Old Boys\"") == "Newell's \"Old Boys\""

    @pytest.mark.unit
    def test_none_is_empty(self):
        assert escape(None) == ""


class TestEventMessage:
    @pytest.mark.unit
    def test_lines(self):
        fixture = make_fixture()
        event = make_feed_event(type="Card", detail="Red Card", elapsed=90, extra=2, comments="Violent conduct")

        text = format_event_message(fixture, event)

        assert text.splitlines() == [
            "<b>🟥 Live Match Event</b>",
            "<b>Premier League</b> (England)",
            "Arsenal 1:0 Chelsea",
            "Minute: <b>90+2'</b>",
            "Event: <b>Red Card</b>",
            "Team: Chelsea",
            "Status: 2H",
            "Player: Cole Palmer",
            "Note: Violent conduct",
        ]

    @pytest.mark.unit
    def test_team_names_are_escaped(self):
        fixture = make_fixture(teams={"home": {"name": "A&B <U21>"}, "away": {"name": "C"}})
        text = format_event_message(fixture, make_feed_event())

        assert "A&amp;B &lt;U21&gt; 1:0 C" in text

    @pytest.mark.unit
    def test_initial_keyboard(self):
        keyboard = initial_keyboard("0123456789ab")

        assert [a.kind for a in _actions(keyboard)] == [
            ActionKind.SEARCH_VIDEO, ActionKind.SEARCH_POST, ActionKind.SKIP,
        ]
        assert all(a.event_id == "0123456789ab" for a in _actions(keyboard))


class TestResultsPage:
    @pytest.fixture
    def cache(self):
        return ProviderCache(
            results=[make_result(f"v{i}", title=f"Clip <{i}>", published_at=NOW) for i in range(7)],
            cached_at=NOW,
            queries=["q"],
        )

    @pytest.mark.unit
    def test_first_page(self, cache):
        event = make_event()
        text, keyboard = render_results_page(event, SearchProvider.VIDEO, cache, 0)

        assert "YouTube results</b> (page 1)" in text
        assert "Arsenal vs Chelsea: Red Card 60'" in text
        assert "1. <b>Clip &lt;0&gt;</b>" in text
        assert "Clip &lt;5&gt;" not in text

        # PAGE_SIZE result rows + nav row
        assert len(keyboard) == PAGE_SIZE + 1
        assert keyboard[0][0].url == "https://example.com/v0"
        pick = parse_callback_data(keyboard[0][1].action)
        assert (pick.kind, pick.arg) == (ActionKind.PICK_VIDEO, "v0")

        nav = [parse_callback_data(b.action) for b in keyboard[-1]]
        assert [(a.kind, a.arg) for a in nav] == [(ActionKind.MORE_VIDEO, "1"), (ActionKind.BACK, None)]

    @pytest.mark.unit
    def test_last_page_has_no_more_without_token(self, cache):
        text, keyboard = render_results_page(make_event(), SearchProvider.VIDEO, cache, 1)

        assert "6. <b>Clip &lt;5&gt;</b>" in text
        assert len(keyboard) == 3
        assert [parse_callback_data(b.action).kind for b in keyboard[-1]] == [ActionKind.BACK]

    @pytest.mark.unit
    def test_token_enables_more_on_last_loaded_page(self, cache):
        cache = cache.model_copy(update={"next_token": "T"})
        assert has_next_page(cache, 1)

    @pytest.mark.unit
    def test_post_results_show_author(self):
        post = make_result("p1", provider=SearchProvider.POST, title="Palmer red").model_copy(
            update={"author": "soccerfan"}
        )
        cache = ProviderCache(results=[post], cached_at=NOW)

        text, keyboard = render_results_page(make_event(), SearchProvider.POST, cache)

        assert "Reddit results" in text
        assert "r/soccer · u/soccerfan" in text
        assert parse_callback_data(keyboard[0][1].action).kind is ActionKind.PICK_POST


class TestOtherScreens:
    @pytest.mark.unit
    def test_nothing_found_has_retry_and_back(self):
        text, keyboard = render_nothing_found(make_event(), SearchProvider.POST)

        assert "No Reddit results yet" in text
        assert [(a.kind, a.arg) for a in _actions(keyboard)] == [
            (ActionKind.SEARCH_POST, "refresh"),
            (ActionKind.BACK, None),
        ]

    @pytest.mark.unit
    def test_confirmation(self):
        approved = ApprovedMedia(
            source=SearchProvider.VIDEO,
            external_id="v1",
            url="https://www.youtube.com/watch?v=v1&t=5",
            title="Red card <HD>",
        )
        text = render_confirmation(make_event(), approved)

        assert "YouTube pick saved" in text
        assert "Red card &lt;HD&gt;" in text
        assert "watch?v=v1&amp;t=5" in text
