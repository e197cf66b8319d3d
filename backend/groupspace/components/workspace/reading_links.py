"""Reading-link maintenance.

Every reading has exactly one companion file in the workspace tree:
id ``reading-<reading id>``, type ``reading``, parented under the readings
folder and named after the reading title. ensure_reading_files adds missing
companions and realigns drifted ones; running it on its own output is a
no-op.
"""

from typing import Any

from groupspace.components.workspace.models import Reading, WorkspaceFile, WorkspaceState
from groupspace.components.workspace.normalizer import normalize_readings, normalize_workspace
from groupspace.components.workspace.topology import DEFAULT_TOPOLOGY, WorkspaceTopology

READING_FILE_PREFIX = "reading-"


def reading_file_id(reading_id: str) -> str:
    return f"{READING_FILE_PREFIX}{reading_id}"


def reading_canvas_key(reading_id: str, topology: WorkspaceTopology = DEFAULT_TOPOLOGY) -> str:
    """Content document key for a reading; unique per reading id."""
    return f"{topology.canvas_key_prefix}-sketch-{reading_id}"


def reading_file_for(reading: Reading, topology: WorkspaceTopology = DEFAULT_TOPOLOGY) -> WorkspaceFile:
    """Build the companion file for ``reading``."""
    return WorkspaceFile(
        id=reading_file_id(reading.id),
        name=reading.title,
        parentId=topology.readings_folder_id,
        type="reading",
        readingId=reading.id,
        createdAt=reading.createdAt,
        canvasKey=reading_canvas_key(reading.id, topology),
    )


def _is_linked(file: WorkspaceFile, reading: Reading, topology: WorkspaceTopology) -> bool:
    return (
        file.type == "reading"
        and file.readingId == reading.id
        and file.parentId == topology.readings_folder_id
        and file.name == reading.title
    )


def ensure_reading_files(
    workspace: Any,
    readings: Any,
    topology: WorkspaceTopology = DEFAULT_TOPOLOGY,
) -> WorkspaceState:
    """Return a normalized copy of ``workspace`` with one companion file per reading.

    Existing companions that drifted (wrong type, parent, name or reading
    reference) are realigned in place, keeping their createdAt and canvasKey
    so the content document behind them is preserved. Inputs are not mutated.
    """
    normalized = normalize_workspace(workspace, topology)
    files = {f.id: f for f in normalized.files}
    changed = False

    for reading in normalize_readings(readings):
        file_id = reading_file_id(reading.id)
        existing = files.get(file_id)
        if existing is None:
            files[file_id] = reading_file_for(reading, topology)
            changed = True
        elif not _is_linked(existing, reading, topology):
            files[file_id] = existing.model_copy(
                update={
                    "name": reading.title,
                    "parentId": topology.readings_folder_id,
                    "type": "reading",
                    "readingId": reading.id,
                }
            )
            changed = True

    if not changed:
        return normalized
    return normalize_workspace({"folders": normalized.folders, "files": list(files.values())}, topology)
