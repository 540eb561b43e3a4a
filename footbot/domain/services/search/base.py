"""
Shared shape of a search provider response.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from footbot.domain.models import SearchResult


@dataclass
class SearchPage:
    items: list[SearchResult] = field(default_factory=list)
    # YouTube nextPageToken / Reddit after; None = no further pages
    next_token: Optional[str] = None


class SearchClient(Protocol):
    """
    ממשק אחיד לספק חיפוש.

    ה-Cache Manager תלוי רק בממשק הזה, כך שאפשר להחליף ספק (או fake בטסטים)
    בלי לגעת בלוגיקה.
    """

    async def search(
        self,
        query: str,
        *,
        published_after: datetime,
        max_results: int,
        page_token: Optional[str] = None,
    ) -> SearchPage:
        ...


def rfc3339(value: datetime) -> str:
    """2024-05-01T12:00:00Z"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")
