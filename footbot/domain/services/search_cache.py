"""
Cache Manager - per-event, per-provider search results with TTL freshness and
page-token continuation.

Every write replaces the whole ProviderCache on the event through the event
store; cached objects are never mutated in place.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from footbot.core.logging import get_logger
from footbot.domain.models import MatchEvent, ProviderCache, SearchProvider, SearchResult, utcnow
from footbot.domain.services.event_store import EventStore
from footbot.domain.services.queries import build_post_queries, build_video_queries
from footbot.domain.services.ranking import DEFAULT_SPAM_KEYWORDS, rank_videos
from footbot.domain.services.search.base import SearchClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderOptions:
    lookback_hours: int
    max_results: int
    cache_minutes: int

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self.cache_minutes)


def is_fresh(cached_at: datetime, ttl: timedelta, now: datetime) -> bool:
    """age in [0, ttl); negative age (clock moved back) counts as stale"""
    age = now - cached_at
    return timedelta(0) <= age < ttl


def merge_results(*result_lists: Iterable[SearchResult]) -> list[SearchResult]:
    """De-duplicate by external id; the first occurrence keeps its position"""
    seen: set[str] = set()
    merged: list[SearchResult] = []
    for results in result_lists:
        for result in results:
            if result.external_id in seen:
                continue
            seen.add(result.external_id)
            merged.append(result)
    return merged


class SearchCacheManager:
    def __init__(
        self,
        store: EventStore,
        clients: dict[SearchProvider, SearchClient],
        options: dict[SearchProvider, ProviderOptions],
        spam_keywords: Iterable[str] = DEFAULT_SPAM_KEYWORDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.clients = clients
        self.options = options
        self.spam_keywords = tuple(spam_keywords)
        self.clock = clock

    def _queries(self, event: MatchEvent, provider: SearchProvider) -> list[str]:
        if provider is SearchProvider.VIDEO:
            return build_video_queries(event)
        return build_post_queries(event)

    def _order(
        self,
        results: list[SearchResult],
        event: MatchEvent,
        provider: SearchProvider,
        now: datetime,
    ) -> list[SearchResult]:
        # רק וידאו מדורג; פוסטים נשארים לפי סדר Reddit (החדש ראשון)
        if provider is SearchProvider.VIDEO:
            return rank_videos(results, event, self.spam_keywords, now)
        return results

    async def _save(
        self,
        event: MatchEvent,
        provider: SearchProvider,
        cache: ProviderCache,
    ) -> ProviderCache:
        updated = await self.store.upsert({
            "dedupe_key": event.dedupe_key,
            provider.cache_field: cache,
        })
        return updated.cache_for(provider)

    async def get_or_refresh(
        self,
        event: MatchEvent,
        provider: SearchProvider,
        force: bool = False,
    ) -> ProviderCache:
        """
        Return the cached results when fresh, otherwise run a new search.

        A new search runs at most two queries, merges them, ranks video hits and
        keeps the continuation token of the first query only.
        """
        now = self.clock()
        options = self.options[provider]
        current = event.cache_for(provider)
        if not force and current is not None and is_fresh(current.cached_at, options.ttl, now):
            return current

        client = self.clients[provider]
        queries = self._queries(event, provider)
        published_after = now - timedelta(hours=options.lookback_hours)

        pages = []
        for query in queries:
            pages.append(await client.search(
                query,
                published_after=published_after,
                max_results=options.max_results,
            ))

        results = merge_results(*(page.items for page in pages))
        cache = ProviderCache(
            results=self._order(results, event, provider, now),
            next_token=pages[0].next_token if pages else None,
            cached_at=now,
            queries=queries,
        )
        logger.info(
            "Search cache refreshed",
            extra_data={
                "event_id": event.id,
                "provider": provider.value,
                "queries": len(queries),
                "results": len(cache.results),
                "forced": force,
            },
        )
        return await self._save(event, provider, cache)

    async def extend(
        self,
        event: MatchEvent,
        provider: SearchProvider,
    ) -> Optional[ProviderCache]:
        """
        Fetch the next page of the first query and merge it into the cache.

        Returns None when there is nothing to continue from. cached_at is kept,
        so paging does not extend the freshness window.
        """
        current = event.cache_for(provider)
        if current is None or not current.next_token or not current.queries:
            return None

        options = self.options[provider]
        now = self.clock()
        page = await self.clients[provider].search(
            current.queries[0],
            published_after=now - timedelta(hours=options.lookback_hours),
            max_results=options.max_results,
            page_token=current.next_token,
        )

        results = merge_results(current.results, page.items)
        cache = ProviderCache(
            results=self._order(results, event, provider, now),
            next_token=page.next_token,
            cached_at=current.cached_at,
            queries=current.queries,
        )
        logger.info(
            "Search cache extended",
            extra_data={
                "event_id": event.id,
                "provider": provider.value,
                "new_results": len(cache.results) - len(current.results),
                "has_more": bool(page.next_token),
            },
        )
        return await self._save(event, provider, cache)
