"""Authoritative workspace store.

One snapshot per scope. Reads seed a default snapshot on first access and
otherwise return the stored record re-normalized (without writing the
normalized form back). Writes replace the snapshot wholesale and bump the
revision by exactly one.

All work on a scope runs under that scope's storage lock, so the
load-then-save inside write() is atomic with respect to other writes for
the same scope. Different scopes never contend.
"""

from collections.abc import Callable
from typing import Any

from groupspace.components.workspace.errors import InvalidPayloadError, RevisionConflictError
from groupspace.components.workspace.merge import normalize_snapshot
from groupspace.components.workspace.models import Snapshot, Timestamp
from groupspace.components.workspace.normalizer import is_finite_number, normalize_readings, normalize_workspace
from groupspace.components.workspace.reading_links import ensure_reading_files
from groupspace.components.workspace.storage_provider import SnapshotStorageProtocol, get_snapshot_storage
from groupspace.components.workspace.topology import DEFAULT_TOPOLOGY, WorkspaceTopology, default_workspace
from groupspace.settings import settings
from groupspace.utils import get_logger, get_timestamp_ms

logger = get_logger(__name__)


def parse_known_revision(value: Any) -> int | float | None:
    """Only a finite JSON number counts as a known revision."""
    if is_finite_number(value):
        return value
    return None


def parse_write_payload(payload: Any) -> tuple[Any, Any, int | float | None]:
    """Split a decoded PUT body into (workspace, readings, known_revision).

    Raises:
        InvalidPayloadError: If the body is not a JSON object
    """
    if not isinstance(payload, dict):
        raise InvalidPayloadError(f"Expected a JSON object, got {type(payload).__name__}")
    return (
        payload.get("workspace"),
        payload.get("readings"),
        parse_known_revision(payload.get("knownRevision")),
    )


def default_snapshot(timestamp: Timestamp, topology: WorkspaceTopology = DEFAULT_TOPOLOGY) -> Snapshot:
    return Snapshot(
        workspace=default_workspace(timestamp, topology),
        readings=[],
        revision=0,
        updatedAt=timestamp,
    )


class WorkspaceStore:
    """Authoritative store for scope snapshots.

    With ``strict_revisions`` off (the default) a write is rejected only when
    its knownRevision is ahead of the stored revision; a stale knownRevision
    is accepted and the write replaces the snapshot (last writer wins). With
    it on, any knownRevision other than the current one is rejected.
    """

    def __init__(
        self,
        storage: SnapshotStorageProtocol | None = None,
        topology: WorkspaceTopology = DEFAULT_TOPOLOGY,
        strict_revisions: bool | None = None,
        clock: Callable[[], Timestamp] = get_timestamp_ms,
    ):
        self._storage = storage
        self.topology = topology
        self.strict_revisions = settings.strict_revisions if strict_revisions is None else strict_revisions
        self._clock = clock

    @property
    def storage(self) -> SnapshotStorageProtocol:
        if self._storage is None:
            self._storage = get_snapshot_storage()
        return self._storage

    def _load_or_seed(self, scope: str) -> Snapshot:
        """Load and normalize the scope's snapshot; seed and persist a default if absent.

        Caller must hold the scope lock.
        """
        snapshot = normalize_snapshot(self.storage.load(scope), self.topology)
        if snapshot is not None:
            return snapshot

        seeded = default_snapshot(self._clock(), self.topology)
        self.storage.save(scope, seeded.model_dump(mode="json"))
        logger.info(f"Seeded default snapshot for scope: {scope}")
        return seeded

    def read(self, scope: str) -> Snapshot:
        """Return the current snapshot for ``scope``, creating it on first access."""
        with self.storage.lock(scope):
            return self._load_or_seed(scope)

    def write(
        self,
        scope: str,
        workspace: Any = None,
        readings: Any = None,
        known_revision: int | float | None = None,
    ) -> Snapshot:
        """Replace the scope's snapshot with the normalized candidate.

        Args:
            scope: Scope name
            workspace: Candidate workspace (untrusted); None keeps the current one
            readings: Candidate readings (untrusted); None keeps the current ones
            known_revision: Revision the writer last saw, if any

        Returns:
            The new snapshot, revision = previous revision + 1

        Raises:
            RevisionConflictError: If known_revision is not acceptable
        """
        with self.storage.lock(scope):
            current = self._load_or_seed(scope)

            if known_revision is not None and self._rejects(known_revision, current.revision):
                logger.warning(
                    f"Revision conflict for scope {scope}: known={known_revision}, current={current.revision}"
                )
                raise RevisionConflictError(scope, known_revision, current.revision)

            candidate_workspace = current.workspace if workspace is None else workspace
            candidate_readings = current.readings if readings is None else readings

            next_readings = normalize_readings(candidate_readings)
            next_workspace = ensure_reading_files(
                normalize_workspace(candidate_workspace, self.topology),
                next_readings,
                self.topology,
            )
            snapshot = Snapshot(
                workspace=next_workspace,
                readings=next_readings,
                revision=current.revision + 1,
                updatedAt=self._clock(),
            )
            self.storage.save(scope, snapshot.model_dump(mode="json"))

        logger.info(
            f"Accepted write for scope {scope}: revision {snapshot.revision} "
            f"({len(next_workspace.folders)} folders, {len(next_workspace.files)} files, {len(next_readings)} readings)"
        )
        return snapshot

    def _rejects(self, known_revision: int | float, current_revision: int) -> bool:
        if known_revision > current_revision:
            return True
        if self.strict_revisions:
            return known_revision != current_revision
        return False

    def reset(self, scope: str) -> bool:
        """Drop a scope's snapshot; the next access seeds a fresh one."""
        with self.storage.lock(scope):
            deleted = self.storage.delete(scope)
        if deleted:
            logger.warning(f"Reset snapshot for scope: {scope}")
        return deleted


# Singleton store (lazy initialized)
_workspace_store: WorkspaceStore | None = None


def get_workspace_store() -> WorkspaceStore:
    """Get the process-wide WorkspaceStore (FastAPI dependency)."""
    global _workspace_store
    if _workspace_store is None:
        _workspace_store = WorkspaceStore()
    return _workspace_store


def reset_workspace_store() -> None:
    """Reset the store singleton (for testing)."""
    global _workspace_store
    _workspace_store = None
