"""Thread-safe in-memory snapshot storage.

Holds one persisted snapshot record per scope, under the fixed record name
SNAPSHOT_STORAGE_KEY inside that scope. Records are stored as plain JSON
data and copied on the way in and out.
"""

import copy
import threading
from contextlib import contextmanager
from typing import Any

from groupspace.components.workspace.errors import StorageUnavailableError
from groupspace.db.redis_db import SNAPSHOT_STORAGE_KEY
from groupspace.settings import settings


class MemorySnapshotStorage:
    """In-memory storage for snapshot records (single instance only).

    A reentrant lock guards the record map; each scope additionally has its
    own lock that serializes read-modify-write sequences for that scope.
    Scope locks are dropped once no caller holds or waits on them.
    """

    def __init__(self, lock_timeout: float | None = None):
        self._lock = threading.RLock()
        self._scopes: dict[str, dict[str, Any]] = {}
        # scope -> [lock, number of callers holding or waiting on it]
        self._scope_locks: dict[str, list] = {}
        self._lock_timeout = lock_timeout

    @property
    def lock_timeout(self) -> float:
        return self._lock_timeout if self._lock_timeout is not None else settings.scope_lock_timeout

    def load(self, scope: str) -> Any | None:
        """Get the raw record for a scope, or None if never written."""
        with self._lock:
            record = self._scopes.get(scope, {}).get(SNAPSHOT_STORAGE_KEY)
            return copy.deepcopy(record)

    def save(self, scope: str, record: dict[str, Any]) -> None:
        """Replace the record for a scope."""
        with self._lock:
            self._scopes.setdefault(scope, {})[SNAPSHOT_STORAGE_KEY] = copy.deepcopy(record)

    def delete(self, scope: str) -> bool:
        """Delete a scope's record. Returns True if deleted, False if not found."""
        with self._lock:
            return self._scopes.pop(scope, None) is not None

    def list_scopes(self) -> list[str]:
        with self._lock:
            return sorted(self._scopes)

    def active_lock_count(self) -> int:
        """Number of scopes with a lock currently held or awaited."""
        with self._lock:
            return len(self._scope_locks)

    def _checkout(self, scope: str) -> threading.Lock:
        with self._lock:
            entry = self._scope_locks.setdefault(scope, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _checkin(self, scope: str) -> None:
        with self._lock:
            entry = self._scope_locks[scope]
            entry[1] -= 1
            if entry[1] == 0:
                del self._scope_locks[scope]

    @contextmanager
    def lock(self, scope: str):
        """Serialize work on one scope; other scopes are unaffected.

        Raises:
            StorageUnavailableError: If the lock is not acquired within lock_timeout
        """
        scope_lock = self._checkout(scope)
        try:
            if not scope_lock.acquire(timeout=self.lock_timeout):
                raise StorageUnavailableError(f"Timed out waiting for scope lock {scope!r}")
            try:
                yield
            finally:
                scope_lock.release()
        finally:
            self._checkin(scope)

    def clear_all(self) -> None:
        """Clear all data (useful for testing)."""
        with self._lock:
            self._scopes.clear()
