"""Workspace State Module.

Keeps a group's shared workspace (folder/file tree plus readings)
consistent between an authoritative store and many clients.

Components:
- models.py: Folder, WorkspaceFile, Reading, WorkspaceState, Snapshot
- topology.py: Default folders and files every workspace carries
- normalizer.py: Coercion of untrusted input into canonical state
- reading_links.py: One companion file per reading
- merge.py: Id-keyed merges and state fingerprints
- service.py: Authoritative per-scope store with revisions
- client.py / local_cache.py / reconciler.py: Client-side synchronization

Usage:
    from groupspace.components.workspace import (
        WorkspaceStore,
        normalize_workspace,
        ensure_reading_files,
    )
"""

from groupspace.components.workspace.errors import (
    InvalidPayloadError,
    RevisionConflictError,
    StorageUnavailableError,
    WorkspaceError,
)
from groupspace.components.workspace.merge import (
    merge_readings,
    merge_workspaces,
    normalize_snapshot,
    snapshot_fingerprint,
)
from groupspace.components.workspace.models import (
    Folder,
    Reading,
    Snapshot,
    WorkspaceFile,
    WorkspaceState,
)
from groupspace.components.workspace.normalizer import (
    MAX_READING_CHARS,
    normalize_readings,
    normalize_workspace,
)
from groupspace.components.workspace.reading_links import ensure_reading_files
from groupspace.components.workspace.service import (
    WorkspaceStore,
    get_workspace_store,
    reset_workspace_store,
)
from groupspace.components.workspace.topology import (
    DEFAULT_TOPOLOGY,
    WorkspaceTopology,
    default_workspace,
)

__all__ = [
    # Models
    "Folder",
    "WorkspaceFile",
    "Reading",
    "WorkspaceState",
    "Snapshot",
    # Errors
    "WorkspaceError",
    "RevisionConflictError",
    "InvalidPayloadError",
    "StorageUnavailableError",
    # Topology
    "WorkspaceTopology",
    "DEFAULT_TOPOLOGY",
    "default_workspace",
    # Normalization
    "MAX_READING_CHARS",
    "normalize_workspace",
    "normalize_readings",
    "ensure_reading_files",
    "normalize_snapshot",
    # Merge
    "merge_workspaces",
    "merge_readings",
    "snapshot_fingerprint",
    # Store
    "WorkspaceStore",
    "get_workspace_store",
    "reset_workspace_store",
]
