"""
Redis Client - async singleton, used for the cross-worker poll lock.

משתמש ב-REDIS_URL מהקונפיגורציה (ברירת מחדל: redis://localhost:6379/0).
"""
import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator
from urllib.parse import urlparse

import redis.asyncio as aioredis

from footbot.core.config import settings
from footbot.core.logging import get_logger

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None
_init_lock = asyncio.Lock()


def _mask_redis_url(url: str) -> str:
    """מסתיר סיסמה מ-REDIS_URL ללוגים (redis://:****@host:6379)."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            return url.replace(f":{parsed.password}@", ":****@")
        return url
    except ValueError:
        return "redis://****"


async def get_redis() -> aioredis.Redis:
    """מחזיר Redis client singleton (async, connection pool)."""
    global _redis_client
    if _redis_client is not None:
        return _redis_client

    async with _init_lock:
        if _redis_client is not None:
            return _redis_client

        client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        await client.ping()
        _redis_client = client
        logger.info("Redis client initialized", extra_data={
            "url": _mask_redis_url(settings.REDIS_URL),
        })
    return _redis_client


async def close_redis() -> None:
    """סגירת חיבור Redis - לקרוא ב-shutdown ובסיום task."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")


@asynccontextmanager
async def redis_lock(name: str, ttl_seconds: int) -> AsyncIterator[bool]:
    """
    נעילה מבוזרת פשוטה (SET NX EX).

    מחזיר True אם הנעילה נרכשה. השחרור מוחק את המפתח רק אם הוא עדיין שלנו,
    כדי לא לשחרר נעילה של worker אחר אחרי שה-TTL פג.
    """
    client = await get_redis()
    key = f"lock:{name}"
    token = uuid.uuid4().hex
    acquired = bool(await client.set(key, token, nx=True, ex=ttl_seconds))
    try:
        yield acquired
    finally:
        if acquired and await client.get(key) == token:
            await client.delete(key)
