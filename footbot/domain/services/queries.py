"""
Search query builders for the video and post providers.

Each builder returns at most two queries: the first is the most specific
(player and minute included), the second a broader fallback.
"""
import re

from footbot.domain.models import MatchEvent

MAX_QUERIES = 2

_VIDEO_NEGATIVE_TERMS = "-fifa -efootball -fc24 -pes -betting -tips"
_POST_SUBREDDITS = "(subreddit:soccer OR subreddit:footballhighlights)"

_WHITESPACE_RE = re.compile(r"\s+")


def _clean(value: object) -> str:
    return str(value or "").strip()


def _compact(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def _quoted(value: str) -> str:
    return f'"{value}"' if value else ""


def _compose(*parts: str) -> str:
    return _compact(" ".join(part for part in parts if part))


def _detail(event: MatchEvent) -> str:
    return _clean(event.event_detail) or _clean(event.event_type)


def _minute(event: MatchEvent) -> str:
    label = _clean(event.minute_label)
    return "" if label == "N/A" else label


def _finalize(queries: list[str]) -> list[str]:
    return [q for q in queries if q][:MAX_QUERIES]


def build_video_queries(event: MatchEvent) -> list[str]:
    home = _quoted(_clean(event.home))
    away = _quoted(_clean(event.away))
    detail = _detail(event)

    q1 = _compose(
        home, away, _clean(event.league), detail, _clean(event.player),
        _minute(event), "highlights", _VIDEO_NEGATIVE_TERMS,
    )
    q2 = _compose(home, away, detail, "official highlights", _VIDEO_NEGATIVE_TERMS)
    return _finalize([q1, q2])


def build_post_queries(event: MatchEvent) -> list[str]:
    home = _quoted(_clean(event.home))
    away = _quoted(_clean(event.away))

    q1 = _compose(home, away, _detail(event), _clean(event.player), _POST_SUBREDDITS)
    q2 = _compose(home, away, _clean(event.league), "highlights", _POST_SUBREDDITS)
    return _finalize([q1, q2])
