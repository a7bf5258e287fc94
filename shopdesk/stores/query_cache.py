"""
Query Cache

Redis-backed cache of query results addressed by tuple keys such as
``("sales",)`` or ``("sale", "<id>")``. Invalidating a key also drops every
cached key that extends it by whole segments, so ``("sales",)`` removes
``("sales", "page-2")`` but never ``("salesItems",)``.
"""

from typing import Any, Awaitable, Callable, Optional, Sequence, Set, Tuple

from redis.exceptions import RedisError

from shopdesk.core.config import settings
from shopdesk.core.exceptions import RedisException
from shopdesk.core.logger import get_logger
from shopdesk.stores.redis_client import RedisClient, get_redis_client

logger = get_logger(__name__)

QueryKey = Tuple[Any, ...]
Fetcher = Callable[[], Awaitable[Any]]

_CACHE_ERRORS = (RedisError, RedisException, OSError)


def _escape_glob(value: str) -> str:
    return "".join(f"\\{ch}" if ch in "*?[]\\" else ch for ch in value)


class QueryCache:
    """Read-through cache with segment-prefix invalidation."""

    def __init__(
        self,
        redis_client: RedisClient,
        key_prefix: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self._redis = redis_client
        self._prefix = key_prefix or settings.query_cache__key_prefix
        self._ttl = ttl_seconds or settings.query_cache__ttl_seconds

    def render_key(self, key: Sequence[Any]) -> str:
        """Render a query key tuple as a Redis key (``query:sale:<id>``)."""
        if not key:
            raise ValueError("Query key must have at least one segment")
        return ":".join([self._prefix, *(str(part) for part in key)])

    async def get_or_fetch(
        self, key: Sequence[Any], fetcher: Fetcher, ttl: Optional[int] = None
    ) -> Any:
        """
        Return the cached value for ``key`` or the result of ``fetcher``.

        A fetched value is cached for ``ttl`` seconds. Redis failures degrade
        to calling the fetcher; fetcher errors propagate unchanged.
        """
        redis_key = self.render_key(key)
        try:
            cached = await self._redis.get_json(redis_key)
        except _CACHE_ERRORS as exc:
            logger.warning("Query cache read failed for %s: %s", redis_key, exc)
            return await fetcher()

        if cached is not None:
            logger.debug("Query cache hit: %s", redis_key)
            return cached

        value = await fetcher()
        try:
            await self._redis.set_json(redis_key, value, ex=ttl or self._ttl)
        except _CACHE_ERRORS as exc:
            logger.warning("Query cache write failed for %s: %s", redis_key, exc)
        return value

    async def invalidate(self, *keys: Sequence[Any]) -> int:
        """
        Mark the given query keys, and every key extending them, stale.

        Returns:
            Number of Redis keys removed (0 when Redis is unavailable)
        """
        try:
            targets: Set[str] = set()
            for key in keys:
                redis_key = self.render_key(key)
                targets.add(redis_key)
                targets.update(
                    await self._redis.scan_keys(f"{_escape_glob(redis_key)}:*")
                )
            removed = await self._redis.delete(*sorted(targets))
        except _CACHE_ERRORS as exc:
            logger.error(
                "Query cache invalidation failed for %s: %s", list(keys), exc
            )
            return 0

        logger.debug("Invalidated %d cached queries for %s", removed, list(keys))
        return removed


_default_cache: Optional[QueryCache] = None


def get_query_cache() -> QueryCache:
    """Return the process-wide cache bound to the shared Redis client."""
    global _default_cache
    if _default_cache is None:
        _default_cache = QueryCache(get_redis_client())
    return _default_cache


__all__ = ["QueryCache", "QueryKey", "get_query_cache"]
