"""
Redis-backed cache for article reads.

Two kinds of entry exist:

- ``articles:detail:<id>``: one serialized article.
- ``articles:list:<feed>:<page>:<per_page>``: one page of a public feed
  (``latest`` or ``selected``) together with its ``has_more`` flag.

Any article write drops every feed page and the touched detail entry.
The database stays the source of truth: with Redis down or unreachable
every lookup is a miss and every store is skipped.
"""
import json
import logging
from typing import Awaitable, Callable

import redis.asyncio as redis

from blogapi.config import settings

logger = logging.getLogger(__name__)

DETAIL_PREFIX = "articles:detail"
FEED_PREFIX = "articles:list"


def article_detail_key(article_id: str | None) -> str:
    return f"{DETAIL_PREFIX}:{article_id}"


def feed_page_key(feed: str, page: int, per_page: int) -> str:
    return f"{FEED_PREFIX}:{feed}:{page}:{per_page}"


class ArticleCache:
    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    async def connect(self) -> None:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis unavailable, article cache disabled: %s", exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Article cache connected: %s", settings.REDIS_URL)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # -- article-shaped lookups ---------------------------------------------

    async def article(self, article_id: str, load: Callable[[], Awaitable[dict]]) -> dict:
        """Return the cached article, calling *load* and storing its result on a miss."""
        key = article_detail_key(article_id)
        cached = await self._read(key)
        if cached is not None:
            return cached
        data = await load()
        await self._write(key, data, settings.CACHE_TTL_DETAIL)
        return data

    async def feed_page(
        self,
        feed: str,
        page: int,
        per_page: int,
        load: Callable[[], Awaitable[tuple[list[dict], bool]]],
    ) -> tuple[list[dict], bool]:
        """Return ``(items, has_more)`` for one feed page, loading it on a miss."""
        key = feed_page_key(feed, page, per_page)
        cached = await self._read(key)
        if cached is not None:
            return cached["items"], cached["has_more"]
        items, has_more = await load()
        await self._write(key, {"items": items, "has_more": has_more}, settings.CACHE_TTL_LIST)
        return items, has_more

    async def invalidate_article(self, article_id: str | None = None) -> None:
        """
        Drop every cached feed page, plus the detail entry of *article_id*
        when given.  Called after any article write (create, edit, vote,
        new comment).
        """
        keys = [key async for key in self._scan(f"{FEED_PREFIX}:*")]
        if article_id is not None:
            keys.append(article_detail_key(article_id))
        await self._drop(keys)

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "connected": self._redis is not None,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    # -- raw Redis access ----------------------------------------------------

    async def _read(self, key: str):
        data = None
        if self._redis:
            try:
                data = await self._redis.get(key)
            except Exception as exc:
                logger.debug("Article cache read failed for %r: %s", key, exc)
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def _write(self, key: str, value, ttl: int) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Article cache write failed for %r: %s", key, exc)

    async def _scan(self, pattern: str):
        # SCAN, not KEYS: feed pages are invalidated on every write.
        if not self._redis:
            return
        try:
            async for key in self._redis.scan_iter(match=pattern):
                yield key
        except Exception as exc:
            logger.debug("Article cache scan failed for %r: %s", pattern, exc)

    async def _drop(self, keys: list[str]) -> None:
        if not self._redis or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:
            logger.debug("Article cache delete failed for %d key(s): %s", len(keys), exc)


cache = ArticleCache()
