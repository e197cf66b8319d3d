"""Local persistent cache for the client reconciler.

A synchronous string key-value store scoped to one client, plus a typed
wrapper that keeps the workspace and the reading list under two versioned
keys. Loads always normalize; an absent or unreadable entry falls back to
the default workspace or an empty reading list.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from groupspace.components.workspace.models import Reading, WorkspaceState
from groupspace.components.workspace.normalizer import normalize_readings, normalize_workspace
from groupspace.components.workspace.topology import DEFAULT_TOPOLOGY, WorkspaceTopology, default_workspace
from groupspace.settings import settings
from groupspace.utils import get_timestamp_ms

logger = logging.getLogger(__name__)

WORKSPACE_CACHE_KEY = "groupspace.workspace.v1"
READINGS_CACHE_KEY = "groupspace.readings.v1"


class LocalCacheProtocol(Protocol):
    """Key-value capability backing the client's local copy."""

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> bool: ...
    def remove_item(self, key: str) -> None: ...


class MemoryLocalCache:
    """Process-local cache; contents vanish with the process."""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> bool:
        self._items[key] = value
        return True

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileLocalCache:
    """One file per key under a directory, replaced atomically on write."""

    def __init__(self, directory: str | Path | None = None):
        self.directory = Path(directory) if directory is not None else settings.get_local_cache_root()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cannot read local cache entry {path}: {e}")
            return None

    def set_item(self, key: str, value: str) -> bool:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
            return True
        except OSError as e:
            logger.error(f"Cannot write local cache entry {path}: {e}")
            return False

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class WorkspaceCache:
    """Typed access to the cached workspace and readings."""

    def __init__(self, backend: LocalCacheProtocol, topology: WorkspaceTopology = DEFAULT_TOPOLOGY):
        self.backend = backend
        self.topology = topology

    def _load_json(self, key: str):
        raw = self.backend.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding corrupt local cache entry {key}: {e}")
            return None

    def load_workspace(self) -> WorkspaceState:
        data = self._load_json(WORKSPACE_CACHE_KEY)
        if data is None:
            return default_workspace(get_timestamp_ms(), self.topology)
        return normalize_workspace(data, self.topology)

    def save_workspace(self, workspace: WorkspaceState) -> bool:
        normalized = normalize_workspace(workspace, self.topology)
        return self.backend.set_item(WORKSPACE_CACHE_KEY, json.dumps(normalized.model_dump(mode="json")))

    def load_readings(self) -> list[Reading]:
        return normalize_readings(self._load_json(READINGS_CACHE_KEY))

    def save_readings(self, readings: list[Reading]) -> bool:
        normalized = normalize_readings(readings)
        return self.backend.set_item(READINGS_CACHE_KEY, json.dumps([r.model_dump(mode="json") for r in normalized]))

    def clear(self) -> None:
        self.backend.remove_item(WORKSPACE_CACHE_KEY)
        self.backend.remove_item(READINGS_CACHE_KEY)
