"""Default workspace topology.

The fixed folders and files every workspace must contain. The topology is
a value passed into normalization and reading-link maintenance so tests
(or another deployment) can swap in a different set of defaults.
"""

from dataclasses import dataclass, field

from groupspace.components.workspace.models import Folder, Timestamp, WorkspaceFile, WorkspaceState

DEFAULT_CORE_FOLDER_ID = "core-workspaces"
DEFAULT_READINGS_FOLDER_ID = "readings"
DEFAULT_SKETCHES_FOLDER_ID = "sketches"
DEFAULT_CANVAS_KEY_PREFIX = "groupspace"


@dataclass(frozen=True)
class DefaultFolder:
    id: str
    name: str
    parent_id: str | None = None


@dataclass(frozen=True)
class DefaultFile:
    id: str
    name: str
    parent_id: str | None
    canvas_key: str


@dataclass(frozen=True)
class WorkspaceTopology:
    """Well-known folders/files plus the readings folder and canvas key prefix."""

    folders: tuple[DefaultFolder, ...]
    files: tuple[DefaultFile, ...]
    readings_folder_id: str
    canvas_key_prefix: str = DEFAULT_CANVAS_KEY_PREFIX
    # ids for quick membership checks
    folder_ids: frozenset[str] = field(init=False)
    file_ids: frozenset[str] = field(init=False)

    def __post_init__(self):
        if self.readings_folder_id not in {f.id for f in self.folders}:
            raise ValueError(f"readings folder {self.readings_folder_id!r} is not a default folder")
        object.__setattr__(self, "folder_ids", frozenset(f.id for f in self.folders))
        object.__setattr__(self, "file_ids", frozenset(f.id for f in self.files))

    def build_folder(self, entry: DefaultFolder, timestamp: Timestamp) -> Folder:
        return Folder(id=entry.id, name=entry.name, parentId=entry.parent_id, createdAt=timestamp)

    def build_file(self, entry: DefaultFile, timestamp: Timestamp) -> WorkspaceFile:
        return WorkspaceFile(
            id=entry.id,
            name=entry.name,
            parentId=entry.parent_id,
            type="canvas",
            createdAt=timestamp,
            canvasKey=entry.canvas_key,
        )

    def missing_defaults(
        self,
        folder_ids: set[str],
        file_ids: set[str],
        timestamp: Timestamp,
    ) -> tuple[list[Folder], list[WorkspaceFile]]:
        """Build the default entries whose ids are absent, in topology order."""
        folders = [self.build_folder(entry, timestamp) for entry in self.folders if entry.id not in folder_ids]
        files = [self.build_file(entry, timestamp) for entry in self.files if entry.id not in file_ids]
        return folders, files


DEFAULT_TOPOLOGY = WorkspaceTopology(
    folders=(
        DefaultFolder(id=DEFAULT_CORE_FOLDER_ID, name="Core Workspaces"),
        DefaultFolder(id=DEFAULT_READINGS_FOLDER_ID, name="Readings"),
        DefaultFolder(id=DEFAULT_SKETCHES_FOLDER_ID, name="Sketches"),
    ),
    files=(
        DefaultFile(
            id="weekly-prep",
            name="Weekly Prep",
            parent_id=DEFAULT_CORE_FOLDER_ID,
            canvas_key=f"{DEFAULT_CANVAS_KEY_PREFIX}-weekly-prep",
        ),
        DefaultFile(
            id="question-space",
            name="Question Space",
            parent_id=DEFAULT_CORE_FOLDER_ID,
            canvas_key=f"{DEFAULT_CANVAS_KEY_PREFIX}-question-space",
        ),
    ),
    readings_folder_id=DEFAULT_READINGS_FOLDER_ID,
)


def default_workspace(timestamp: Timestamp, topology: WorkspaceTopology = DEFAULT_TOPOLOGY) -> WorkspaceState:
    """Return the default folders and files, all created at ``timestamp``,
    ordered by (createdAt, name) like any normalized workspace."""
    folders, files = topology.missing_defaults(set(), set(), timestamp)
    return WorkspaceState(
        folders=sorted(folders, key=lambda f: (f.createdAt, f.name)),
        files=sorted(files, key=lambda f: (f.createdAt, f.name)),
    )
