"""
Redis cache client for public event reads.

Every operation degrades to a miss (or a no-op) when Redis is unreachable,
so the API keeps serving straight from the database.
"""
import json
from typing import Optional, Any
import redis
from redis.connection import ConnectionPool
from gowra.core.config import settings
from gowra.core.logging import logger


class RedisCache:
    """Redis cache client with connection pooling."""

    def __init__(self, url: str):
        self._url = url
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._pool = redis.ConnectionPool.from_url(
                self._url,
                decode_responses=True,
                max_connections=20,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            logger.info("Redis connection pool created")
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value stored under ``key`` or None on a miss."""
        try:
            value = self._get_client().get(key)
        except redis.RedisError as e:
            logger.warning(f"Redis GET error for key {key}: {e}")
            return None
        return json.loads(value) if value else None

    async def set(self, key: str, value: Any, expire: int = 300) -> bool:
        """
        Store ``value`` as JSON with a TTL.

        Args:
            key: Cache key
            value: JSON-serialisable value (datetimes and UUIDs become strings)
            expire: Expiration time in seconds

        Returns:
            True if the value was written
        """
        try:
            self._get_client().setex(key, expire, json.dumps(value, default=str))
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis SET error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            self._get_client().delete(key)
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis DELETE error for key {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching ``pattern``; returns how many went."""
        try:
            client = self._get_client()
            keys = list(client.scan_iter(match=pattern))
            if keys:
                return client.delete(*keys)
            return 0
        except redis.RedisError as e:
            logger.warning(f"Redis DELETE_PATTERN error for pattern {pattern}: {e}")
            return 0

    def close(self):
        if self._client:
            self._client.close()
            logger.info("Redis connection pool closed")


cache = RedisCache(settings.REDIS_URL)
