import json
import logging
from typing import Iterable

import redis.asyncio as redis

from articlehub.config import settings

logger = logging.getLogger(__name__)

LIST_PATTERN = "articles:list:*"


def list_key(page: int, page_size: int, sort_by: str, sort_order: str) -> str:
    return f"articles:list:{page}:{page_size}:{sort_by}:{sort_order}"


def detail_key(article_id: int) -> str:
    return f"articles:detail:{article_id}"


class ArticleCache:
    """
    Cache-aside store for article read models, backed by Redis.

    Every method is a no-op when Redis is not connected or misbehaves:
    reads report a miss and writes are dropped, so a cache outage only
    costs latency and never fails a request.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, article cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> dict | None:
        if not self._redis:
            return None
        try:
            data = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            return None
        return json.loads(data) if data is not None else None

    async def set(self, key: str, value: dict, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN (avoids blocking KEYS)."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    async def invalidate_articles(self, article_ids: Iterable[int] = ()) -> None:
        """
        Drop every cached list page plus the detail entry of each id in
        *article_ids*.  Called after any write that can change what an
        article view shows (article, notice or sticker writes).
        """
        await self.delete_pattern(LIST_PATTERN)
        for article_id in article_ids:
            await self.delete_pattern(detail_key(article_id))


# Module-level singleton shared across all request handlers.
cache = ArticleCache()
