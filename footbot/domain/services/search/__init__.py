from footbot.domain.services.search.base import SearchClient, SearchPage
from footbot.domain.services.search.reddit import RedditSearchClient
from footbot.domain.services.search.youtube import YouTubeSearchClient

__all__ = [
    "SearchClient",
    "SearchPage",
    "RedditSearchClient",
    "YouTubeSearchClient",
]
