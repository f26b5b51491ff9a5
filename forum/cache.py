import json
import logging
from typing import Awaitable, Callable

import redis.asyncio as redis

from forum.config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Cache-aside store for read-mostly data (the category catalogue).

    Redis is optional: with no connection, or on any Redis error, reads
    count as misses and writes are skipped, so callers fall through to
    the database.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except (redis.RedisError, OSError) as exc:
            logger.warning("Redis unreachable, caching disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the decoded value for *key*, or None on a miss or error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
        except redis.RedisError as exc:
            logger.debug("Cache GET failed for %r: %s", key, exc)
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except (redis.RedisError, TypeError) as exc:
            logger.debug("Cache SET failed for %r: %s", key, exc)

    async def get_or_load(
        self, key: str, loader: Callable[[], Awaitable[dict | list]], ttl: int | None = None
    ) -> dict | list:
        """Serve *key* from the cache, or await *loader* and store its result."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        await self.set(key, value, ttl=ttl)
        return value

    async def delete_pattern(self, pattern: str) -> None:
        """Delete every key matching *pattern*, walking the keyspace with SCAN."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache dropped %d key(s) matching %r", len(keys), pattern)
        except redis.RedisError as exc:
            logger.debug("Cache DELETE failed for %r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    async def invalidate_categories(self, category_id: int | None = None) -> None:
        """Drop every cached category page, plus one detail entry when given."""
        await self.delete_pattern("categories:list:*")
        if category_id is not None:
            await self.delete_pattern(f"categories:detail:{category_id}")

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "enabled": self._redis is not None,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Shared by every request handler.
cache = CacheManager()
