"""Constructors for user-created workspace entries."""

from groupspace.components.workspace.models import Folder, Reading, WorkspaceFile
from groupspace.components.workspace.normalizer import collapse_content
from groupspace.components.workspace.topology import DEFAULT_TOPOLOGY, WorkspaceTopology
from groupspace.utils import generate_id, get_timestamp_ms


def create_folder(name: str, parent_id: str | None = None) -> Folder:
    return Folder(
        id=generate_id("folder"),
        name=name.strip(),
        parentId=parent_id,
        createdAt=get_timestamp_ms(),
    )


def create_canvas_file(
    name: str,
    parent_id: str | None = None,
    topology: WorkspaceTopology = DEFAULT_TOPOLOGY,
) -> WorkspaceFile:
    file_id = generate_id("canvas")
    return WorkspaceFile(
        id=file_id,
        name=name.strip(),
        parentId=parent_id,
        type="canvas",
        createdAt=get_timestamp_ms(),
        canvasKey=f"{topology.canvas_key_prefix}-canvas-{file_id}",
    )


def create_reading(title: str, content: str) -> Reading:
    """Build a reading from uploaded text; content is collapsed and capped."""
    return Reading(
        id=generate_id(),
        title=title.strip(),
        content=collapse_content(content),
        createdAt=get_timestamp_ms(),
    )
