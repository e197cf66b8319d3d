"""Workspace state errors."""


class WorkspaceError(Exception):
    """Base class for workspace state errors."""


class RevisionConflictError(WorkspaceError):
    """A write named a knownRevision the store does not accept."""

    def __init__(self, scope: str, known_revision: int | float, current_revision: int):
        self.scope = scope
        self.known_revision = known_revision
        self.current_revision = current_revision
        super().__init__(
            f"Revision mismatch for scope {scope!r}: known={known_revision}, current={current_revision}"
        )


class InvalidPayloadError(WorkspaceError):
    """A write body was not a JSON object."""


class StorageUnavailableError(WorkspaceError):
    """The snapshot backend could not be read, written or locked."""
