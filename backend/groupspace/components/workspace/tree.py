"""Folder hierarchy helpers.

Folders reference their parent by id, so nothing in the data itself stops a
folder from naming itself or a descendant as parent. Every traversal here
is bounded by a visited set, and normalization detaches cycles before the
hierarchy is handed to anything that renders it.
"""

from dataclasses import dataclass, field

from groupspace.components.workspace.models import Folder, WorkspaceFile, WorkspaceState


@dataclass
class TreeLevel:
    """Folders and files sharing one parent id."""

    folders: list[Folder] = field(default_factory=list)
    files: list[WorkspaceFile] = field(default_factory=list)


def _closes_cycle(folder_id: str, parents: dict[str, str | None]) -> bool:
    """True if walking parent links from ``folder_id`` comes back to it."""
    seen: set[str] = set()
    current = parents.get(folder_id)
    while current is not None and current not in seen:
        if current == folder_id:
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def break_folder_cycles(folders: list[Folder]) -> list[Folder]:
    """Detach (re-root) the first folder of every parent cycle.

    ``folders`` must already be in display order; the first folder found on
    a cycle in that order gets parentId None. Parent ids naming a folder
    that does not exist are left alone.
    """
    parents = {f.id: f.parentId for f in folders}
    result = []
    for folder in folders:
        if folder.parentId is not None and _closes_cycle(folder.id, parents):
            parents[folder.id] = None
            folder = folder.model_copy(update={"parentId": None})
        result.append(folder)
    return result


def find_cycle_folder_ids(folders: list[Folder]) -> set[str]:
    """Ids of folders that sit on a parent cycle."""
    parents = {f.id: f.parentId for f in folders}
    return {f.id for f in folders if _closes_cycle(f.id, parents)}


def children_by_parent(workspace: WorkspaceState) -> dict[str | None, TreeLevel]:
    """Group folders and files by parent id, keeping display order.

    Entries whose parent folder does not exist are grouped under None so
    they stay reachable from the root.
    """
    folder_ids = {f.id for f in workspace.folders}
    levels: dict[str | None, TreeLevel] = {}

    for folder in workspace.folders:
        parent = folder.parentId if folder.parentId in folder_ids else None
        levels.setdefault(parent, TreeLevel()).folders.append(folder)
    for file in workspace.files:
        parent = file.parentId if file.parentId in folder_ids else None
        levels.setdefault(parent, TreeLevel()).files.append(file)

    return levels


def folder_path(workspace: WorkspaceState, folder_id: str) -> list[Folder]:
    """Return the chain of folders from the root down to ``folder_id``.

    Returns an empty list for an unknown id. Stops at a missing parent or a
    repeated folder.
    """
    by_id = {f.id: f for f in workspace.folders}
    path: list[Folder] = []
    seen: set[str] = set()
    current = by_id.get(folder_id)
    while current is not None and current.id not in seen:
        seen.add(current.id)
        path.append(current)
        current = by_id.get(current.parentId) if current.parentId is not None else None
    path.reverse()
    return path
