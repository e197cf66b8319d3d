"""Redis-backed snapshot storage.

Provides shared storage for multi-instance deployments:
- One JSON record per scope at groupspace:scope:{scope}:workspace-snapshot
- A per-scope redis lock so that one write at a time runs per scope,
  across every backend instance
- A set of initialized scopes for listing and cleanup
"""

import logging
from contextlib import contextmanager
from typing import Any

import redis

from groupspace.components.workspace.errors import StorageUnavailableError
from groupspace.db.redis_cache import RedisCache, get_redis_cache
from groupspace.db.redis_db import RedisKeyPrefix
from groupspace.settings import settings

logger = logging.getLogger(__name__)


class RedisSnapshotStorage:
    """Redis-backed storage for snapshot records.

    Snapshot records never expire; a scope lives until it is deleted.
    """

    def __init__(self, cache: RedisCache | None = None, lock_timeout: float | None = None):
        """Initialize with optional cache instance (for testing)."""
        self._cache = cache
        self._lock_timeout = lock_timeout

    @property
    def cache(self) -> RedisCache:
        """Lazy initialization of Redis cache."""
        if self._cache is None:
            self._cache = get_redis_cache()
        return self._cache

    @property
    def lock_timeout(self) -> float:
        return self._lock_timeout if self._lock_timeout is not None else settings.scope_lock_timeout

    # ==================== Snapshot Operations ====================

    def load(self, scope: str) -> Any | None:
        """Get the raw record for a scope, or None if missing or undecodable."""
        try:
            return self.cache.get(RedisKeyPrefix.snapshot_key(scope))
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Cannot read snapshot for scope {scope!r}") from e

    def save(self, scope: str, record: dict[str, Any]) -> None:
        """Replace the record for a scope."""
        try:
            self.cache.set(RedisKeyPrefix.snapshot_key(scope), record)
            self.cache.client.sadd(RedisKeyPrefix.scope_index_key(), scope)
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Cannot write snapshot for scope {scope!r}") from e
        logger.debug(f"Saved snapshot: scope={scope}, revision={record.get('revision')}")

    def delete(self, scope: str) -> bool:
        """Delete a scope's record. Returns True if deleted, False if not found."""
        deleted = self.cache.delete(RedisKeyPrefix.snapshot_key(scope))
        if deleted:
            self.cache.client.srem(RedisKeyPrefix.scope_index_key(), scope)
            logger.debug(f"Deleted snapshot: scope={scope}")
        return deleted

    def list_scopes(self) -> list[str]:
        scopes = []
        for scope in self.cache.client.smembers(RedisKeyPrefix.scope_index_key()):
            if self.cache.exists(RedisKeyPrefix.snapshot_key(scope)):
                scopes.append(scope)
            else:
                # Clean up stale index entry
                self.cache.client.srem(RedisKeyPrefix.scope_index_key(), scope)
        return sorted(scopes)

    @contextmanager
    def lock(self, scope: str):
        """Hold the scope's redis lock for the duration of the block."""
        try:
            scope_lock = self.cache.lock(
                RedisKeyPrefix.lock_key(scope),
                timeout=self.lock_timeout,
                blocking_timeout=self.lock_timeout,
            )
            acquired = scope_lock.acquire()
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Cannot lock scope {scope!r}") from e
        if not acquired:
            raise StorageUnavailableError(f"Timed out waiting for scope lock {scope!r}")

        try:
            yield
        finally:
            try:
                scope_lock.release()
            except redis.exceptions.LockError:
                logger.warning(f"Scope lock for {scope!r} expired before release")

    # ==================== Utility ====================

    def clear_all(self) -> None:
        """Clear all snapshot data (useful for testing)."""
        index_key = RedisKeyPrefix.scope_index_key()
        for scope in self.cache.client.smembers(index_key):
            self.cache.delete(RedisKeyPrefix.snapshot_key(scope))
        self.cache.client.delete(index_key)
        logger.warning("Cleared all snapshot data from Redis")


# Singleton instance (lazy initialized)
_snapshot_redis_storage: RedisSnapshotStorage | None = None


def get_snapshot_redis_storage() -> RedisSnapshotStorage:
    """Get singleton instance of RedisSnapshotStorage."""
    global _snapshot_redis_storage
    if _snapshot_redis_storage is None:
        _snapshot_redis_storage = RedisSnapshotStorage()
    return _snapshot_redis_storage
