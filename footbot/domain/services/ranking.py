"""
Ranking Engine - orders video hits by how likely they are footage of this match.

Raw YouTube relevance surfaces game simulations and betting channels for plain
team-name queries. The score below is a cheap proxy for "this is the match".
"""
import re
from datetime import datetime, timedelta
from typing import Iterable, Optional

from footbot.domain.models import MatchEvent, SearchResult, utcnow

BOTH_TEAMS_BONUS = 40
ONE_TEAM_BONUS = 18
LEAGUE_TOKEN_BONUS = 4
DETAIL_TOKEN_BONUS = 3
GENERIC_TOKEN_BONUS = 2
SHORT_TITLE_PENALTY = 8
LONG_TITLE_PENALTY = 5
SPAM_KEYWORD_PENALTY = 25
RECENT_DAY_BONUS = 8
RECENT_THREE_DAYS_BONUS = 4

SHORT_TITLE_CHARS = 12
LONG_TITLE_CHARS = 140

GENERIC_TOKENS = frozenset({"highlights", "goal", "red", "card", "injury", "var"})

DEFAULT_SPAM_KEYWORDS: tuple[str, ...] = (
    "fifa",
    "efootball",
    "fc24",
    "fc25",
    "pes",
    "gameplay",
    "simulation",
    "prediction",
    "betting",
    "tips",
    "odds",
    "dream league",
)

# קיצורים שמופיעים בשמות קבוצות ואינם מזהים את הקבוצה
_TEAM_STOPWORDS = frozenset({"fc", "cf", "afc", "sc", "ac", "cd", "fk", "sk", "the", "de", "club"})

_TOKEN_RE = re.compile(r"[\w']+")


def tokenize(text: Optional[str]) -> list[str]:
    return _TOKEN_RE.findall((text or "").lower())


def _significant(tokens: Iterable[str], stopwords: frozenset = frozenset()) -> set[str]:
    return {token for token in tokens if len(token) >= 3 and token not in stopwords}


def parse_spam_keywords(raw: Optional[str]) -> tuple[str, ...]:
    """"a, b ,c" → ("a", "b", "c"); empty value → the default list"""
    keywords = tuple(
        keyword.strip().lower()
        for keyword in (raw or "").split(",")
        if keyword.strip()
    )
    return keywords or DEFAULT_SPAM_KEYWORDS


def _contains_phrase(title: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", title) is not None


def _team_matches(title: str, title_tokens: set[str], team_name: str, opponent_name: str) -> bool:
    """
    Only tokens the opponent does not share identify a team: "real" says
    nothing in Real Madrid v Real Sociedad. With no such token left the whole
    name has to appear as a phrase.
    """
    team_tokens = _significant(tokenize(team_name), _TEAM_STOPWORDS)
    distinct = team_tokens - _significant(tokenize(opponent_name), _TEAM_STOPWORDS)
    if distinct:
        return bool(distinct & title_tokens)
    phrase = " ".join(tokenize(team_name))
    return bool(phrase) and _contains_phrase(" ".join(tokenize(title)), phrase)


def score_video(
    result: SearchResult,
    event: MatchEvent,
    spam_keywords: Iterable[str] = DEFAULT_SPAM_KEYWORDS,
    now: Optional[datetime] = None,
) -> float:
    now = now or utcnow()
    title = (result.title or "").lower()
    title_tokens = set(tokenize(title))
    score = 0.0

    home = _team_matches(title, title_tokens, event.home, event.away)
    away = _team_matches(title, title_tokens, event.away, event.home)
    if home and away:
        score += BOTH_TEAMS_BONUS
    elif home or away:
        score += ONE_TEAM_BONUS

    score += LEAGUE_TOKEN_BONUS * len(_significant(tokenize(event.league)) & title_tokens)
    detail_tokens = _significant(tokenize(f"{event.event_detail} {event.event_type}"))
    score += DETAIL_TOKEN_BONUS * len(detail_tokens & title_tokens)
    score += GENERIC_TOKEN_BONUS * len(GENERIC_TOKENS & title_tokens)

    if len(title) < SHORT_TITLE_CHARS:
        score -= SHORT_TITLE_PENALTY
    if len(title) > LONG_TITLE_CHARS:
        score -= LONG_TITLE_PENALTY

    for keyword in spam_keywords:
        if keyword and _contains_phrase(title, keyword.lower()):
            score -= SPAM_KEYWORD_PENALTY

    if result.published_at is not None:
        age = now - result.published_at
        if timedelta(0) <= age <= timedelta(hours=24):
            score += RECENT_DAY_BONUS
        elif timedelta(0) <= age <= timedelta(hours=72):
            score += RECENT_THREE_DAYS_BONUS

    return score


def _sort_key(result: SearchResult) -> tuple:
    published = result.published_at
    # פרסום לא ידוע - אחרון בין שווי ציון
    return (
        -(result.score or 0.0),
        published is None,
        -published.timestamp() if published is not None else 0.0,
    )


def rank_videos(
    results: Iterable[SearchResult],
    event: MatchEvent,
    spam_keywords: Iterable[str] = DEFAULT_SPAM_KEYWORDS,
    now: Optional[datetime] = None,
) -> list[SearchResult]:
    """Score every hit and sort: score desc, then newest first"""
    now = now or utcnow()
    keywords = tuple(spam_keywords)
    scored = [
        result.model_copy(update={"score": score_video(result, event, keywords, now)})
        for result in results
    ]
    return sorted(scored, key=_sort_key)
