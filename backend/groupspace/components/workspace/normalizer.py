"""Untrusted-input normalization.

Turns arbitrary values (decoded JSON, cached data, model instances) into a
well-formed WorkspaceState or reading list. Every function here is total:
a malformed or wrong-typed field degrades to "absent" for that field and an
entry missing an identity field is dropped. Nothing raises.

Rules applied by normalize_workspace:
- default folders/files from the topology are appended when missing
- duplicate ids collapse, the later entry wins
- folders and files are sorted by (createdAt, name)
- folder parent cycles are detached at the first folder in sorted order

normalize_readings collapses duplicates and sorts by (createdAt, title).
"""

import math
import re
import sys
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from groupspace.components.workspace.models import Folder, Reading, Timestamp, WorkspaceFile, WorkspaceState
from groupspace.components.workspace.topology import DEFAULT_TOPOLOGY, WorkspaceTopology, default_workspace
from groupspace.components.workspace.tree import break_folder_cycles
from groupspace.utils.time_utils import get_timestamp_ms

MAX_READING_CHARS = 18000

_WHITESPACE_RUN = re.compile(r"\s+")


# ==================== Field coercion ====================


def as_record(value: Any) -> Mapping[str, Any] | None:
    """Mapping view of ``value``, or None if it is not record-like."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return value
    return None


def as_sequence(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def as_string(value: Any) -> str | None:
    """Trimmed non-empty string, else None."""
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def as_optional_id(value: Any) -> str | None:
    if value is None:
        return None
    return as_string(value)


def is_finite_number(value: Any) -> bool:
    """True for finite floats and for ints that fit in a float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, int):
        return abs(value) <= sys.float_info.max
    return math.isfinite(value)


def as_timestamp(value: Any, now: Timestamp) -> Timestamp:
    """Keep positive finite numbers, replace anything else with ``now``."""
    if not is_finite_number(value) or value <= 0:
        return now
    return value


def collapse_content(value: Any) -> str:
    """Collapse whitespace runs, trim, and cap at MAX_READING_CHARS."""
    text = value if isinstance(value, str) else ""
    return _WHITESPACE_RUN.sub(" ", text).strip()[:MAX_READING_CHARS]


# ==================== Entry normalization ====================


def normalize_folder(raw: Any, now: Timestamp) -> Folder | None:
    record = as_record(raw)
    if record is None:
        return None
    folder_id = as_string(record.get("id"))
    name = as_string(record.get("name"))
    if not folder_id or not name:
        return None
    return Folder(
        id=folder_id,
        name=name,
        parentId=as_optional_id(record.get("parentId")),
        createdAt=as_timestamp(record.get("createdAt"), now),
    )


def normalize_file(raw: Any, now: Timestamp) -> WorkspaceFile | None:
    record = as_record(raw)
    if record is None:
        return None
    file_id = as_string(record.get("id"))
    name = as_string(record.get("name"))
    canvas_key = as_string(record.get("canvasKey"))
    if not file_id or not name or not canvas_key:
        return None

    reading_id = None
    file_type = "canvas"
    if record.get("type") == "reading":
        reading_id = as_string(record.get("readingId"))
        # a reading file without a reading reference is only usable as a canvas
        if reading_id:
            file_type = "reading"

    return WorkspaceFile(
        id=file_id,
        name=name,
        parentId=as_optional_id(record.get("parentId")),
        type=file_type,
        createdAt=as_timestamp(record.get("createdAt"), now),
        canvasKey=canvas_key,
        readingId=reading_id,
    )


def normalize_reading(raw: Any, now: Timestamp) -> Reading | None:
    record = as_record(raw)
    if record is None:
        return None
    reading_id = as_string(record.get("id"))
    title = as_string(record.get("title"))
    if not reading_id or not title:
        return None
    return Reading(
        id=reading_id,
        title=title,
        content=collapse_content(record.get("content")),
        createdAt=as_timestamp(record.get("createdAt"), now),
    )


# ==================== Collection normalization ====================


def normalize_workspace(
    raw: Any,
    topology: WorkspaceTopology = DEFAULT_TOPOLOGY,
    now: Timestamp | None = None,
) -> WorkspaceState:
    """Coerce ``raw`` into a WorkspaceState that satisfies the default-topology,
    unique-id and ordering invariants. A non-record input yields the default
    workspace."""
    now = get_timestamp_ms() if now is None else now
    record = as_record(raw)
    if record is None:
        return default_workspace(now, topology)

    folders: dict[str, Folder] = {}
    for item in as_sequence(record.get("folders")):
        folder = normalize_folder(item, now)
        if folder is not None:
            folders[folder.id] = folder

    files: dict[str, WorkspaceFile] = {}
    for item in as_sequence(record.get("files")):
        file = normalize_file(item, now)
        if file is not None:
            files[file.id] = file

    missing_folders, missing_files = topology.missing_defaults(set(folders), set(files), now)
    all_folders = sorted([*folders.values(), *missing_folders], key=lambda f: (f.createdAt, f.name))
    all_files = sorted([*files.values(), *missing_files], key=lambda f: (f.createdAt, f.name))

    return WorkspaceState(folders=break_folder_cycles(all_folders), files=all_files)


def normalize_readings(raw: Any, now: Timestamp | None = None) -> list[Reading]:
    """Coerce ``raw`` into a de-duplicated reading list sorted by (createdAt, title)."""
    now = get_timestamp_ms() if now is None else now
    readings: dict[str, Reading] = {}
    for item in as_sequence(raw):
        reading = normalize_reading(item, now)
        if reading is not None:
            readings[reading.id] = reading
    return sorted(readings.values(), key=lambda r: (r.createdAt, r.title))
