"""Unified storage provider for snapshot records.

Automatically selects between in-memory storage (single instance)
and Redis storage (multi-instance).

Usage:
    from groupspace.components.workspace.storage_provider import get_snapshot_storage

    storage = get_snapshot_storage()
    with storage.lock(scope):
        record = storage.load(scope)
        storage.save(scope, record)
"""

import logging
from contextlib import AbstractContextManager
from typing import Any, Protocol

from groupspace.settings import settings

logger = logging.getLogger(__name__)


class SnapshotStorageProtocol(Protocol):
    """Protocol defining the snapshot storage interface."""

    def load(self, scope: str) -> Any | None: ...
    def save(self, scope: str, record: dict[str, Any]) -> None: ...
    def delete(self, scope: str) -> bool: ...
    def list_scopes(self) -> list[str]: ...
    def lock(self, scope: str) -> AbstractContextManager: ...
    def clear_all(self) -> None: ...


# Singleton storage instance
_snapshot_storage: SnapshotStorageProtocol | None = None
_storage_type: str | None = None


def get_snapshot_storage() -> SnapshotStorageProtocol:
    """Get the appropriate snapshot storage based on configuration.

    The storage type is determined by settings.use_memory_store:
        - True: In-memory storage (NOT safe for multi-instance)
        - False: Redis storage (safe for multi-instance)
    """
    global _snapshot_storage, _storage_type

    if _snapshot_storage is not None:
        return _snapshot_storage

    if settings.use_memory_store:
        from groupspace.components.workspace.storage import MemorySnapshotStorage

        _storage_type = "memory"
        _snapshot_storage = MemorySnapshotStorage()
        logger.info("SnapshotStorage: Using in-memory storage (single instance only)")
    else:
        from groupspace.components.workspace.redis_storage import get_snapshot_redis_storage

        _storage_type = "redis"
        _snapshot_storage = get_snapshot_redis_storage()
        logger.info("SnapshotStorage: Using Redis storage (multi-instance safe)")

    return _snapshot_storage


def get_storage_type() -> str:
    """Get the current storage type ('memory' or 'redis')."""
    if _storage_type is None:
        get_snapshot_storage()
    return _storage_type or "unknown"


def reset_snapshot_storage() -> None:
    """Reset the storage singleton (for testing)."""
    global _snapshot_storage, _storage_type
    _snapshot_storage = None
    _storage_type = None
