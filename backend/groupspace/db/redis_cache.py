"""
Redis-based shared storage for multi-replica deployments

Architecture (Single DB + Key Prefix Pattern):
- 所有数据使用同一个 db，通过 Key 前缀实现 scope 隔离
- 统一连接管理，客户端由 redis_factory 按配置创建 (FakeRedis 或真实 Redis)

Usage:
    from groupspace.db.redis_cache import get_redis_cache
    from groupspace.db.redis_db import RedisKeyPrefix

    cache = get_redis_cache()
    key = RedisKeyPrefix.snapshot_key("default")

    cache.set(key, {"revision": 0})
    data = cache.get(key)

    with cache.lock(RedisKeyPrefix.lock_key("default"), timeout=10):
        ...
"""

import json
import logging
from typing import Any

import redis

from groupspace.db.redis_factory import create_redis_client
from groupspace.settings import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Redis-backed JSON store (Single DB + Key Prefix Pattern)

    Reads and writes of persisted records propagate ``redis.RedisError`` so
    callers can tell "absent" from "unavailable"; housekeeping operations
    (delete, exists, ping) log and degrade instead.
    """

    def __init__(self, client: redis.Redis | None = None):
        """
        Initialize Redis cache

        Args:
            client: Optional pre-configured Redis client (for testing with fakeredis)
        """
        self._client: redis.Redis | None = client

    @property
    def client(self) -> redis.Redis:
        """Lazy initialization of the Redis client."""
        if self._client is None:
            self._client = create_redis_client(db=settings.redis_index)
            logger.info(f"RedisCache initialized: db={settings.redis_index}")
        return self._client

    # ==================== String Operations ====================

    def get(self, key: str) -> Any | None:
        """
        Get a stored JSON value

        Returns:
            Deserialized value, or None if the key is missing or not valid JSON

        Raises:
            redis.RedisError: If Redis cannot be reached
        """
        try:
            data = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis get error for key {key}: {e}")
            raise
        if data is None:
            logger.debug(f"Cache miss: {key}")
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode error for key {key}: {e}")
            return None

    def set(self, key: str, value: Any) -> bool:
        """
        Store a JSON value

        Raises:
            redis.RedisError: If Redis cannot be reached
        """
        serialized = json.dumps(value, default=str)
        try:
            result = self.client.set(key, serialized)
        except redis.RedisError as e:
            logger.error(f"Redis set error for key {key}: {e}")
            raise

        logger.debug(f"Cache set: {key}")
        return bool(result)

    def delete(self, key: str) -> bool:
        """
        Delete a stored value

        Returns:
            True if key was deleted, False if key didn't exist or error occurred
        """
        try:
            result = self.client.delete(key)
            if result:
                logger.debug(f"Cache deleted: {key}")
            return bool(result)
        except redis.RedisError as e:
            logger.error(f"Redis delete error for key {key}: {e}")
            return False

    def exists(self, key: str) -> bool:
        """Check if key exists"""
        try:
            return bool(self.client.exists(key))
        except redis.RedisError as e:
            logger.error(f"Redis exists error for key {key}: {e}")
            return False

    # ==================== Locking ====================

    def lock(self, name: str, timeout: float, blocking_timeout: float | None = None):
        """Return a redis-py Lock usable as a context manager.

        ``timeout`` bounds how long a crashed holder can keep the lock.
        """
        return self.client.lock(name, timeout=timeout, blocking_timeout=blocking_timeout)

    # ==================== Utility Methods ====================

    def close(self) -> None:
        """Close Redis connection"""
        if self._client:
            self._client.close()
            self._client = None
            logger.info("RedisCache closed")


# ==================== Singleton Instance ====================

_redis_cache: RedisCache | None = None


def get_redis_cache() -> RedisCache:
    """Get singleton Redis cache instance."""
    global _redis_cache
    if _redis_cache is None:
        _redis_cache = RedisCache()
    return _redis_cache


def reset_redis_cache() -> None:
    """Close and drop the singleton (for testing)."""
    global _redis_cache
    if _redis_cache is not None:
        _redis_cache.close()
    _redis_cache = None
