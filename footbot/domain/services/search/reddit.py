"""
Reddit public search adapter (link posts, newest first).

Reddit has no "published after" filter, so posts older than the lookback
window are dropped here after the fetch.
"""
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from footbot.core.circuit_breaker import CircuitBreaker, get_reddit_circuit_breaker
from footbot.core.exceptions import SearchProviderError, ServiceTimeoutError
from footbot.core.logging import get_logger
from footbot.domain.models import SearchProvider, SearchResult
from footbot.domain.services.search.base import SearchPage

logger = get_logger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"
REQUEST_TIMEOUT_SECONDS = 15.0


def _created_at(post: dict) -> Optional[datetime]:
    created = post.get("created_utc")
    if isinstance(created, bool) or not isinstance(created, (int, float)) or not created:
        return None
    return datetime.fromtimestamp(created, tz=timezone.utc)


def normalize_post(post: dict) -> Optional[SearchResult]:
    permalink = post.get("permalink")
    permalink = f"{REDDIT_BASE_URL}{permalink}" if permalink else None
    url = post.get("url_overridden_by_dest") or post.get("url") or permalink
    post_id = post.get("id")
    if not post_id or not url:
        return None

    thumbnail = post.get("thumbnail")
    return SearchResult(
        provider=SearchProvider.POST,
        external_id=str(post_id),
        title=post.get("title") or "Untitled",
        channel=post.get("subreddit_name_prefixed") or "r/unknown",
        author=post.get("author") or "unknown",
        published_at=_created_at(post),
        thumbnail=thumbnail if isinstance(thumbnail, str) and thumbnail.startswith("http") else None,
        url=url,
        permalink=permalink,
    )


class RedditSearchClient:
    """Search adapter for the discussion-post provider"""

    def __init__(
        self,
        user_agent: str,
        *,
        circuit_breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self._circuit_breaker = circuit_breaker or get_reddit_circuit_breaker()
        self._transport = transport

    async def search(
        self,
        query: str,
        *,
        published_after: datetime,
        max_results: int,
        page_token: Optional[str] = None,
    ) -> SearchPage:
        params: dict[str, Any] = {
            "q": query,
            "sort": "new",
            "type": "link",
            "limit": max_results,
            "restrict_sr": "false",
        }
        if page_token:
            params["after"] = page_token

        async def _search() -> dict:
            async with httpx.AsyncClient(
                base_url=REDDIT_BASE_URL,
                timeout=REQUEST_TIMEOUT_SECONDS,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            ) as client:
                try:
                    response = await client.get("/search.json", params=params)
                except httpx.TimeoutException:
                    raise ServiceTimeoutError("reddit", REQUEST_TIMEOUT_SECONDS)
                except httpx.HTTPError as e:
                    raise SearchProviderError("reddit", str(e))
                if response.status_code != 200:
                    raise SearchProviderError.from_response("reddit", response)
                return response.json()

        data = await self._circuit_breaker.execute(_search)
        if not isinstance(data, dict):
            data = {}
        listing = data.get("data") or {}
        children = listing.get("children") or []

        items: list[SearchResult] = []
        for child in children:
            post = child.get("data") if isinstance(child, dict) else None
            if not isinstance(post, dict):
                continue
            result = normalize_post(post)
            if result is None:
                continue
            # פוסט בלי זמן יצירה נשמר; פוסט ישן מחלון ה-lookback נזרק
            if result.published_at is not None and result.published_at < published_after:
                continue
            items.append(result)

        logger.debug(
            "Reddit search completed",
            extra_data={"query": query, "items": len(items), "paged": bool(page_token)},
        )
        return SearchPage(items=items, next_token=listing.get("after") or None)
