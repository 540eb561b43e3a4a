"""
Relevance filter - which raw feed events are worth a Telegram notification.

A live match emits many low-value events (routine substitutions, early goals,
plain yellow cards). Only injuries, sendings-off, VAR reviews and late goals
pass.
"""
from typing import Optional

from footbot.domain.fixtures import EventTime, FixtureEvent

LATE_GOAL_MINUTE = 85

_ALWAYS_NOTABLE = ("injury", "red card", "second yellow", "2nd yellow", "var")


def compute_minute(time: EventTime) -> Optional[int]:
    """elapsed + max(extra, 0); None if elapsed is unknown"""
    if time.elapsed is None:
        return None
    return time.elapsed + max(time.extra or 0, 0)


def minute_label(time: EventTime) -> str:
    if time.elapsed is None:
        return "N/A"
    if time.extra is None or time.extra <= 0:
        return f"{time.elapsed}'"
    return f"{time.elapsed}+{time.extra}'"


def event_text(event: FixtureEvent) -> str:
    return f"{event.type or ''} {event.detail or ''}".lower()


def is_notable(event: FixtureEvent) -> bool:
    text = event_text(event)
    if any(marker in text for marker in _ALWAYS_NOTABLE):
        return True

    if (event.type or "").strip().lower() != "goal":
        return False
    minute = compute_minute(event.time)
    return minute is not None and minute >= LATE_GOAL_MINUTE


def event_emoji(event: FixtureEvent) -> str:
    text = event_text(event)
    if "red card" in text:
        return "🟥"
    if "card" in text:
        return "🟨"
    if "goal" in text:
        return "⚽"
    if "penalty" in text:
        return "🎯"
    if "substitution" in text:
        return "🔁"
    if "var" in text:
        return "🖥️"
    if "injury" in text:
        return "🚑"
    return "📣"
