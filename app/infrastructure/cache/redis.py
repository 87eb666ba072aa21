"""
Redis connection pool and a small JSON cache wrapper.
"""
import json
from typing import Any, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Redis connection pool
redis_pool: Optional[redis.ConnectionPool] = None


async def get_redis_pool() -> redis.ConnectionPool:
    """
    Get or create Redis connection pool.

    Returns:
        Redis connection pool
    """
    global redis_pool

    if redis_pool is None:
        redis_pool = redis.ConnectionPool.from_url(
            str(settings.REDIS_URL),
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
        )

    return redis_pool


async def get_redis() -> redis.Redis:
    """
    Get Redis client instance.

    Returns:
        Redis client
    """
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis() -> None:
    """Disconnect the shared pool, if one was opened."""
    global redis_pool

    if redis_pool is not None:
        await redis_pool.disconnect()
        redis_pool = None


class RedisCache:
    """
    Prefixed JSON key/value store with set-based secondary indexes.

    Failures are logged and reported as misses so callers fall back to the database.
    """

    def __init__(self, prefix: str = "xentro", client: Optional[redis.Redis] = None):
        self.prefix = prefix
        self._client = client

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = await get_redis()
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        try:
            client = await self._get_client()
            value = await client.get(self._make_key(key))
            if value:
                return json.loads(value)
            return None
        except (RedisError, json.JSONDecodeError) as e:
            logger.error("redis_get_failed", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: JSON-serializable value
            expire: Expiration time in seconds

        Returns:
            Success status
        """
        try:
            client = await self._get_client()
            serialized = json.dumps(value)
            if expire:
                await client.setex(self._make_key(key), expire, serialized)
            else:
                await client.set(self._make_key(key), serialized)
            return True
        except (RedisError, TypeError) as e:
            logger.error("redis_set_failed", key=key, error=str(e))
            return False

    async def delete(self, *keys: str) -> int:
        """Delete keys; returns how many existed."""
        if not keys:
            return 0
        try:
            client = await self._get_client()
            return await client.delete(*(self._make_key(k) for k in keys))
        except RedisError as e:
            logger.error("redis_delete_failed", keys=list(keys), error=str(e))
            return 0

    async def add_to_set(self, key: str, member: str, expire: Optional[int] = None) -> bool:
        """Add a member to an index set, optionally refreshing its expiry."""
        try:
            client = await self._get_client()
            async with client.pipeline() as pipe:
                pipe.sadd(self._make_key(key), member)
                if expire:
                    pipe.expire(self._make_key(key), expire)
                await pipe.execute()
            return True
        except RedisError as e:
            logger.error("redis_sadd_failed", key=key, error=str(e))
            return False

    async def pop_set(self, key: str) -> Set[str]:
        """Read and remove an index set."""
        try:
            client = await self._get_client()
            async with client.pipeline() as pipe:
                pipe.smembers(self._make_key(key))
                pipe.delete(self._make_key(key))
                members, _ = await pipe.execute()
            return set(members or ())
        except RedisError as e:
            logger.error("redis_pop_set_failed", key=key, error=str(e))
            return set()

    async def clear_pattern(self, pattern: str) -> int:
        """
        Clear all keys matching pattern.

        Args:
            pattern: Key pattern (e.g., "session:*")

        Returns:
            Number of keys deleted
        """
        try:
            client = await self._get_client()
            keys = [key async for key in client.scan_iter(match=self._make_key(pattern))]
            if keys:
                return await client.delete(*keys)
            return 0
        except RedisError as e:
            logger.error("redis_clear_pattern_failed", pattern=pattern, error=str(e))
            return 0
