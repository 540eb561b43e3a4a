"""
Message texts and inline keyboards of the live event workflow.

All user-supplied values pass through ``escape`` because messages are sent
in HTML parse mode.
"""
import html

from footbot.domain.fixtures import Fixture, FixtureEvent
from footbot.domain.models import ApprovedMedia, MatchEvent, ProviderCache, SearchProvider, SearchResult
from footbot.domain.services.relevance import event_emoji, minute_label
from footbot.domain.services.telegram_client import InlineButton, Keyboard
from footbot.state_machine.actions import (
    REFRESH_ARG,
    ActionKind,
    build_callback_data,
    more_action,
    pick_action,
    search_action,
)

PAGE_SIZE = 5

_PROVIDER_ICONS = {SearchProvider.VIDEO: "🎬", SearchProvider.POST: "💬"}


def escape(value: object) -> str:
    return html.escape(str(value if value is not None else ""), quote=False)


def format_event_message(fixture: Fixture, event: FixtureEvent) -> str:
    """Initial notification text; stored as original_text for "back" """
    score_home, score_away = fixture.score
    detail = event.detail or event.type or "Match event"
    lines = [
        f"<b>{event_emoji(event)} Live Match Event</b>",
        f"<b>{escape(fixture.league_name)}</b> ({escape(fixture.country)})",
        f"{escape(fixture.home_name)} {score_home}:{score_away} {escape(fixture.away_name)}",
        f"Minute: <b>{escape(minute_label(event.time))}</b>",
        f"Event: <b>{escape(detail)}</b>",
        f"Team: {escape(event.team.name or 'Unknown team')}",
        f"Status: {escape(fixture.status_short)}",
    ]
    if event.player.name:
        lines.append(f"Player: {escape(event.player.name)}")
    if event.assist.name:
        lines.append(f"Assist: {escape(event.assist.name)}")
    if event.comments:
        lines.append(f"Note: {escape(event.comments)}")
    return "\n".join(lines)


def initial_keyboard(event_id: str) -> Keyboard:
    return [
        [
            InlineButton("🎬 Find video", build_callback_data(ActionKind.SEARCH_VIDEO, event_id)),
            InlineButton("💬 Find posts", build_callback_data(ActionKind.SEARCH_POST, event_id)),
        ],
        [InlineButton("⏭ Skip", build_callback_data(ActionKind.SKIP, event_id))],
    ]


def _event_title(event: MatchEvent) -> str:
    detail = event.event_detail or event.event_type or "Match event"
    minute = f" {event.minute_label}" if event.minute_label and event.minute_label != "N/A" else ""
    return f"{escape(event.home)} vs {escape(event.away)}: {escape(detail)}{escape(minute)}"


def _result_line(number: int, result: SearchResult) -> str:
    meta = [escape(result.channel)] if result.channel else []
    if result.author and result.provider is SearchProvider.POST:
        meta.append(f"u/{escape(result.author)}")
    if result.published_at is not None:
        meta.append(result.published_at.strftime("%d.%m %H:%M"))
    line = f"{number}. <b>{escape(result.title)}</b>"
    if meta:
        line += f"\n    {' · '.join(meta)}"
    return line


def page_results(cache: ProviderCache, page: int) -> list[SearchResult]:
    start = page * PAGE_SIZE
    return cache.results[start:start + PAGE_SIZE]


def has_next_page(cache: ProviderCache, page: int) -> bool:
    return len(cache.results) > (page + 1) * PAGE_SIZE or bool(cache.next_token)


def render_results_page(
    event: MatchEvent,
    provider: SearchProvider,
    cache: ProviderCache,
    page: int = 0,
) -> tuple[str, Keyboard]:
    results = page_results(cache, page)
    first_number = page * PAGE_SIZE + 1

    lines = [
        f"<b>{_PROVIDER_ICONS[provider]} {provider.label} results</b> (page {page + 1})",
        _event_title(event),
        "",
    ]
    lines.extend(
        _result_line(first_number + offset, result)
        for offset, result in enumerate(results)
    )

    keyboard: Keyboard = []
    for offset, result in enumerate(results):
        number = first_number + offset
        keyboard.append([
            InlineButton(f"▶️ Open {number}", url=result.url),
            InlineButton(
                f"✅ Pick {number}",
                build_callback_data(pick_action(provider), event.id, result.external_id),
            ),
        ])

    nav_row = []
    if has_next_page(cache, page):
        nav_row.append(InlineButton(
            "➡️ More", build_callback_data(more_action(provider), event.id, str(page + 1))
        ))
    nav_row.append(InlineButton("↩️ Back", build_callback_data(ActionKind.BACK, event.id)))
    keyboard.append(nav_row)
    return "\n".join(lines), keyboard


def render_nothing_found(event: MatchEvent, provider: SearchProvider) -> tuple[str, Keyboard]:
    text = "\n".join([
        f"<b>{_PROVIDER_ICONS[provider]} No {provider.label} results yet</b>",
        _event_title(event),
        "",
        "Highlights usually appear a few minutes after the moment. Try again later.",
    ])
    keyboard = [
        [InlineButton(
            "🔄 Retry", build_callback_data(search_action(provider), event.id, REFRESH_ARG)
        )],
        [InlineButton("↩️ Back", build_callback_data(ActionKind.BACK, event.id))],
    ]
    return text, keyboard


def render_confirmation(event: MatchEvent, approved: ApprovedMedia) -> str:
    return "\n".join([
        f"<b>✅ {approved.source.label} pick saved</b>",
        _event_title(event),
        f"<b>{escape(approved.title)}</b>",
        escape(approved.url),
    ])
