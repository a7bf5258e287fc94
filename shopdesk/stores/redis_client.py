"""
Redis Client Manager

Redis connection management and the operations shopdesk uses: cached query
values, notice history lists, and pub/sub channels.
"""

import asyncio
import json
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import redis.asyncio as redis
from redis.asyncio import ConnectionPool
from redis.asyncio.client import PubSub

from shopdesk.core.config import settings
from shopdesk.core.error_codes import RedisErrorCode
from shopdesk.core.exceptions import RedisException
from shopdesk.core.logger import get_logger

logger = get_logger(__name__)


class RedisClient:
    """
    Redis client wrapper with connection pooling and common operations.
    """

    def __init__(self) -> None:
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._lock = asyncio.Lock()

    async def _ensure_connection(self) -> redis.Redis:
        """
        Ensure Redis connection is established.

        Raises:
            RedisException: If connection fails
        """
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is not None:
                return self._client  # type: ignore[unreachable]

            try:
                scheme = "rediss" if settings.redis__ssl else "redis"
                auth = (
                    f":{quote(settings.redis__password)}@"
                    if settings.redis__password
                    else ""
                )
                redis_url = (
                    f"{scheme}://{auth}{settings.redis__host}:"
                    f"{settings.redis__port}/{settings.redis__db}"
                )

                pool_kwargs: Dict[str, Any] = {
                    "encoding": "utf-8",
                    "decode_responses": True,
                    "retry_on_timeout": True,
                    "socket_connect_timeout": settings.redis__connect_timeout,
                    "socket_timeout": settings.redis__socket_timeout,
                }
                if settings.redis__ssl:
                    pool_kwargs["connection_class"] = redis.SSLConnection
                    pool_kwargs["ssl_check_hostname"] = False
                    pool_kwargs["ssl_cert_reqs"] = None

                self._pool = ConnectionPool.from_url(redis_url, **pool_kwargs)
                client = redis.Redis(connection_pool=self._pool)
                await client.ping()
                self._client = client
                logger.info("Redis connection established successfully")

                return client

            except Exception as e:
                logger.error("Failed to connect to Redis: %s", e)
                raise RedisException(
                    f"Redis connection failed: {e}",
                    RedisErrorCode.CONNECTION_FAILED,
                ) from e

    async def close(self) -> None:
        """Close Redis connection and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None
        logger.info("Redis connection closed")

    # Key-value operations
    async def get(self, key: str) -> Optional[str]:
        client = await self._ensure_connection()
        result = await client.get(key)
        return str(result) if result is not None else None

    async def set(
        self, key: str, value: str, ex: Optional[int] = None, nx: bool = False
    ) -> bool:
        client = await self._ensure_connection()
        return bool(await client.set(key, value, ex=ex, nx=nx))

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        if not keys:
            return 0
        client = await self._ensure_connection()
        return int(await client.delete(*keys))

    async def scan_keys(self, pattern: str, count: int = 500) -> List[str]:
        """
        Collect the keys matching a glob pattern with SCAN (never KEYS).

        Args:
            pattern: Redis glob pattern, e.g. ``query:sales:*``
            count: Hint for the number of keys examined per SCAN step
        """
        client = await self._ensure_connection()
        return [str(key) async for key in client.scan_iter(match=pattern, count=count)]

    # JSON operations
    async def set_json(self, key: str, data: Any, ex: Optional[int] = None) -> bool:
        """Serialize ``data`` and store it; unserializable data is logged and skipped."""
        try:
            json_str = json.dumps(data, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as e:
            logger.error("Failed to serialize data for key %s: %s", key, e)
            return False
        return await self.set(key, json_str, ex=ex)

    async def get_json(self, key: str) -> Optional[Any]:
        json_str = await self.get(key)
        if json_str is None:
            return None

        try:
            return json.loads(json_str)
        except (TypeError, ValueError) as e:
            logger.error("Failed to deserialize data for key %s: %s", key, e)
            return None

    # List operations
    async def lpush(self, name: str, *values: str) -> int:
        client = await self._ensure_connection()
        return int(await client.lpush(name, *values))  # type: ignore[misc]

    async def ltrim(self, name: str, start: int, end: int) -> bool:
        client = await self._ensure_connection()
        return bool(await client.ltrim(name, start, end))  # type: ignore[misc]

    async def lrange(self, name: str, start: int = 0, end: int = -1) -> List[str]:
        client = await self._ensure_connection()
        result = await client.lrange(name, start, end)  # type: ignore[misc]
        return [str(item) for item in result]

    # Pub/sub operations
    async def publish(self, channel: str, message: str) -> int:
        """Publish a message, returning the number of receiving subscribers."""
        client = await self._ensure_connection()
        return int(await client.publish(channel, message))

    async def pubsub(self) -> PubSub:
        """Return a new PubSub object bound to the shared connection pool."""
        client = await self._ensure_connection()
        return client.pubsub(ignore_subscribe_messages=True)

    async def health_check(self) -> Dict[str, Any]:
        """Ping Redis and report server and configuration details."""
        try:
            client = await self._ensure_connection()

            start_time = time.time()
            await client.ping()
            ping_time = time.time() - start_time

            info = await client.info("server")

            return {
                "status": "healthy",
                "ping_time_ms": round(ping_time * 1000, 2),
                "redis_version": info.get("redis_version"),
                "uptime_in_seconds": info.get("uptime_in_seconds"),
                "config": {
                    "ssl_enabled": settings.redis__ssl,
                    "database": settings.redis__db,
                    "host": settings.redis__host,
                    "port": settings.redis__port,
                },
            }
        except (RedisException, redis.RedisError) as e:
            return {"status": "unhealthy", "error": str(e)}


class _RedisClientManager:
    """Lazily created process-wide Redis client."""

    def __init__(self) -> None:
        self._client: Optional[RedisClient] = None
        self._lock = asyncio.Lock()

    def get_client_sync(self) -> RedisClient:
        """Return the client; the connection itself is opened on first use."""
        if self._client is None:
            self._client = RedisClient()
        return self._client

    async def close_client(self) -> None:
        async with self._lock:
            if self._client:
                await self._client.close()
                self._client = None


_client_manager = _RedisClientManager()


def get_redis_client() -> RedisClient:
    """
    Get Redis client instance.

    Note:
        The returned client may not be connected yet; the connection is
        established lazily when first used.
    """
    return _client_manager.get_client_sync()


async def close_redis_client() -> None:
    """Close Redis client and cleanup resources."""
    await _client_manager.close_client()


async def test_redis_connection() -> Dict[str, Any]:
    """Test Redis connection and return status."""
    result = await get_redis_client().health_check()

    if result.get("status") == "healthy":
        logger.info("Redis connection test successful")
    else:
        logger.warning("Redis connection test failed: %s", result.get("error"))

    return result
