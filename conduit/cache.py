"""
Redis cache-aside layer for the two read models that can be invalidated
precisely: article detail views and user profiles.

The feed is never cached; it depends on the reader's follow graph as well
as on every followed author's writes.  When Redis is unreachable the
manager behaves as a permanent miss and writes become no-ops.
"""
import json
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as redis

from conduit.config import settings

logger = logging.getLogger(__name__)

ARTICLE_KEY = "articles:detail:{}"
PROFILE_KEY = "users:profile:{}"


class CacheManager:
    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._redis is not None

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
            logger.warning("Redis unavailable at %s, caching off: %s", settings.REDIS_URL, exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Cache connected to %s", settings.REDIS_URL)

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Raw operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | None:
        raw = None
        if self._redis is not None:
            try:
                raw = await self._redis.get(key)
            except Exception as exc:
                logger.debug("Cache read failed for %s: %s", key, exc)
        if raw is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(raw)

    async def set(self, key: str, value: dict, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache write failed for %s: %s", key, exc)

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:
            logger.debug("Cache delete failed for %s: %s", keys, exc)

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[dict | None]],
        ttl: int,
    ) -> dict | None:
        """
        Return the cached value for *key*, or await *loader* and cache its
        result.  A ``None`` result (missing row) is not cached.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        if value is not None:
            await self.set(key, value, ttl=ttl)
        return value

    # ------------------------------------------------------------------
    # Domain keys
    # ------------------------------------------------------------------

    @staticmethod
    def article_key(article_id: int) -> str:
        return ARTICLE_KEY.format(article_id)

    @staticmethod
    def profile_key(user_id: int) -> str:
        return PROFILE_KEY.format(user_id)

    async def invalidate_article(self, article_id: int) -> None:
        await self.delete(self.article_key(article_id))

    async def invalidate_articles(self, *article_ids: int) -> None:
        await self.delete(*(self.article_key(aid) for aid in article_ids))

    async def invalidate_profiles(self, *user_ids: int) -> None:
        # A follow edge changes one user's follower count and the other's
        # following count, so callers pass both ends.
        await self.delete(*(self.profile_key(uid) for uid in user_ids))

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "enabled": self.enabled,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total else 0.0,
        }


cache = CacheManager()
