"""Workspace data models.

Defines the entities of a group's shared workspace:
- Folder: Navigable container, forms a forest via parentId
- WorkspaceFile: Navigable entry pointing at a content document (canvasKey)
- Reading: Uploaded source text, capped and whitespace-collapsed
- WorkspaceState: The navigable tree (folders + files)
- Snapshot: Authoritative state of one scope at one revision

Field names match the JSON wire format.
"""

from typing import Literal

from pydantic import BaseModel, Field, model_serializer

# Epoch milliseconds; floats are accepted as-is from clients
Timestamp = int | float

FileType = Literal["canvas", "reading"]


class Folder(BaseModel):
    """Folder in the workspace tree. parentId None means root."""

    id: str
    name: str
    parentId: str | None = None
    createdAt: Timestamp


class WorkspaceFile(BaseModel):
    """File entry in the workspace tree.

    A reading file always carries readingId; readingId is omitted from
    the serialized form when absent.
    """

    id: str
    name: str
    parentId: str | None = None
    type: FileType = "canvas"
    createdAt: Timestamp
    canvasKey: str
    readingId: str | None = None

    @model_serializer(mode="wrap")
    def _omit_missing_reading_id(self, handler):
        data = handler(self)
        if data.get("readingId") is None:
            data.pop("readingId", None)
        return data


class Reading(BaseModel):
    """Reading document with inline text content."""

    id: str
    title: str
    content: str = ""
    createdAt: Timestamp


class WorkspaceState(BaseModel):
    """Navigable workspace tree, always stored in display order."""

    folders: list[Folder] = Field(default_factory=list)
    files: list[WorkspaceFile] = Field(default_factory=list)

    def has_file(self, file_id: str | None) -> bool:
        return file_id is not None and any(f.id == file_id for f in self.files)


class Snapshot(BaseModel):
    """Complete authoritative state for one scope."""

    workspace: WorkspaceState
    readings: list[Reading] = Field(default_factory=list)
    revision: int = 0
    updatedAt: Timestamp = 0
