"""
YouTube Data API v3 search adapter.

Returns embeddable, syndicated videos ordered by YouTube relevance. Ranking
for this match happens later, in ranking.py.
"""
from datetime import datetime
from typing import Any, Optional

import httpx

from footbot.core.circuit_breaker import CircuitBreaker, get_youtube_circuit_breaker
from footbot.core.exceptions import (
    SearchConfigurationError,
    SearchProviderError,
    ServiceTimeoutError,
)
from footbot.core.logging import get_logger
from footbot.domain.models import SearchProvider, SearchResult
from footbot.domain.services.search.base import SearchPage, rfc3339

logger = get_logger(__name__)

YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
REQUEST_TIMEOUT_SECONDS = 15.0


def _parse_published(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def normalize_video(item: dict) -> Optional[SearchResult]:
    """פריט גולמי מ-/search → SearchResult; None אם אין videoId"""
    video_id = (item.get("id") or {}).get("videoId")
    if not video_id:
        return None

    snippet = item.get("snippet") or {}
    thumbnails = snippet.get("thumbnails") or {}
    thumbnail = (
        (thumbnails.get("medium") or {}).get("url")
        or (thumbnails.get("default") or {}).get("url")
    )
    return SearchResult(
        provider=SearchProvider.VIDEO,
        external_id=video_id,
        title=snippet.get("title") or "Untitled",
        channel=snippet.get("channelTitle") or "Unknown channel",
        published_at=_parse_published(snippet.get("publishedAt")),
        thumbnail=thumbnail,
        url=f"https://www.youtube.com/watch?v={video_id}",
    )


class YouTubeSearchClient:
    """Search adapter for the video provider"""

    def __init__(
        self,
        api_key: str,
        *,
        region_code: str = "",
        relevance_language: str = "",
        circuit_breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.region_code = region_code
        self.relevance_language = relevance_language
        self._circuit_breaker = circuit_breaker or get_youtube_circuit_breaker()
        self._transport = transport

    async def search(
        self,
        query: str,
        *,
        published_after: datetime,
        max_results: int,
        page_token: Optional[str] = None,
    ) -> SearchPage:
        if not self.api_key:
            # שגיאת קונפיגורציה - לא עוברת דרך ה-circuit breaker ולא נספרת ככשל
            raise SearchConfigurationError("YouTube", "YOUTUBE_API_KEY")

        params: dict[str, Any] = {
            "key": self.api_key,
            "part": "snippet",
            "type": "video",
            "order": "relevance",
            "q": query,
            "maxResults": max_results,
            "publishedAfter": rfc3339(published_after),
            "videoEmbeddable": "true",
            "videoSyndicated": "true",
        }
        if page_token:
            params["pageToken"] = page_token
        if self.region_code:
            params["regionCode"] = self.region_code
        if self.relevance_language:
            params["relevanceLanguage"] = self.relevance_language

        async def _search() -> dict:
            async with httpx.AsyncClient(
                base_url=YOUTUBE_API_BASE_URL,
                timeout=REQUEST_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                try:
                    response = await client.get("/search", params=params)
                except httpx.TimeoutException:
                    raise ServiceTimeoutError("youtube", REQUEST_TIMEOUT_SECONDS)
                except httpx.HTTPError as e:
                    raise SearchProviderError("youtube", str(e))
                if response.status_code != 200:
                    raise SearchProviderError.from_response("youtube", response)
                return response.json()

        data = await self._circuit_breaker.execute(_search)

        if not isinstance(data, dict):
            data = {}
        raw_items = data.get("items") or []
        items = []
        for item in raw_items:
            result = normalize_video(item) if isinstance(item, dict) else None
            if result is not None:
                items.append(result)
        logger.debug(
            "YouTube search completed",
            extra_data={"query": query, "items": len(items), "paged": bool(page_token)},
        )
        return SearchPage(items=items, next_token=data.get("nextPageToken") or None)
