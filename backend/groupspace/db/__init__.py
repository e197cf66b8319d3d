"""Database module for the groupspace backend.

Components:
- Redis: shared snapshot storage and per-scope write locks
"""

from groupspace.db.redis_cache import RedisCache, get_redis_cache, reset_redis_cache
from groupspace.db.redis_db import SNAPSHOT_STORAGE_KEY, RedisKeyPrefix
from groupspace.db.redis_factory import create_redis_client

__all__ = [
    "RedisCache",
    "RedisKeyPrefix",
    "SNAPSHOT_STORAGE_KEY",
    "create_redis_client",
    "get_redis_cache",
    "reset_redis_cache",
]
