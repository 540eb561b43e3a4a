"""
Live event records: the stored event, its per-provider search caches and the
operator's final pick.
"""
import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def event_id_for(dedupe_key: str) -> str:
    """מזהה קצר ויציב - נגזר רק מה-dedupe key, גם בין הפעלות"""
    return hashlib.sha1(dedupe_key.encode("utf-8")).hexdigest()[:12]


class EventStatus(str, Enum):
    """Operator workflow state of a live event"""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    SKIPPED = "SKIPPED"


class SearchProvider(str, Enum):
    VIDEO = "video"
    POST = "post"

    @property
    def cache_field(self) -> str:
        return "video_cache" if self is SearchProvider.VIDEO else "post_cache"

    @property
    def label(self) -> str:
        return "YouTube" if self is SearchProvider.VIDEO else "Reddit"


class SearchResult(BaseModel):
    """Normalized hit from either provider"""

    model_config = ConfigDict(frozen=True)

    provider: SearchProvider
    external_id: str
    title: str = "Untitled"
    # channel title (video) / subreddit label (post)
    channel: str = ""
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    thumbnail: Optional[str] = None
    url: str
    permalink: Optional[str] = None
    score: Optional[float] = None


class ProviderCache(BaseModel):
    """Search results cached on the event for one provider"""

    results: list[SearchResult] = Field(default_factory=list)
    # YouTube nextPageToken / Reddit after
    next_token: Optional[str] = None
    cached_at: datetime
    queries: list[str] = Field(default_factory=list)


class ApprovedMedia(BaseModel):
    source: SearchProvider
    external_id: str
    url: str
    title: str
    approved_at: datetime = Field(default_factory=utcnow)


class MatchEvent(BaseModel):
    """A notable live-match event and its operator workflow state"""

    id: str
    dedupe_key: str
    fixture_id: Optional[int] = None

    home: str = ""
    away: str = ""
    league: str = ""
    country: str = ""
    minute: Optional[int] = None
    minute_label: str = ""
    team: str = ""
    player: str = ""
    event_type: str = ""
    event_detail: str = ""

    status: EventStatus = EventStatus.PENDING
    original_text: str = ""
    chat_id: Optional[str] = None
    message_id: Optional[int] = None

    video_cache: Optional[ProviderCache] = None
    post_cache: Optional[ProviderCache] = None
    approved: Optional[ApprovedMedia] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def cache_for(self, provider: SearchProvider) -> Optional[ProviderCache]:
        return self.video_cache if provider is SearchProvider.VIDEO else self.post_cache
