"""Snapshot merging and fingerprinting.

Merges are a union keyed by id in which the ``override`` side wins on
collision, followed by re-normalization. The fingerprint is a canonical
JSON serialization of the normalized (workspace, readings) pair: two states
are the same for reconciliation purposes exactly when their fingerprints
are equal.
"""

import json
from typing import Any

from groupspace.components.workspace.models import Reading, Snapshot, WorkspaceState
from groupspace.components.workspace.normalizer import (
    as_record,
    is_finite_number,
    normalize_readings,
    normalize_workspace,
)
from groupspace.components.workspace.reading_links import ensure_reading_files
from groupspace.components.workspace.topology import DEFAULT_TOPOLOGY, WorkspaceTopology


def merge_workspaces(
    base: Any,
    override: Any,
    topology: WorkspaceTopology = DEFAULT_TOPOLOGY,
) -> WorkspaceState:
    """Union of both trees by id; entries from ``override`` win."""
    base_state = normalize_workspace(base, topology)
    override_state = normalize_workspace(override, topology)

    folders = {f.id: f for f in base_state.folders}
    folders.update((f.id, f) for f in override_state.folders)
    files = {f.id: f for f in base_state.files}
    files.update((f.id, f) for f in override_state.files)

    return normalize_workspace({"folders": list(folders.values()), "files": list(files.values())}, topology)


def merge_readings(base: Any, override: Any) -> list[Reading]:
    """Union of both reading lists by id; entries from ``override`` win."""
    readings = {r.id: r for r in normalize_readings(base)}
    readings.update((r.id, r) for r in normalize_readings(override))
    return normalize_readings(list(readings.values()))


def snapshot_fingerprint(
    workspace: Any,
    readings: Any,
    topology: WorkspaceTopology = DEFAULT_TOPOLOGY,
) -> str:
    normalized_readings = normalize_readings(readings)
    normalized_workspace = ensure_reading_files(workspace, normalized_readings, topology)
    payload = {
        "workspace": normalized_workspace.model_dump(mode="json"),
        "readings": [r.model_dump(mode="json") for r in normalized_readings],
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _as_revision(value: Any) -> int:
    if is_finite_number(value) and value >= 0:
        return int(value)
    return 0


def normalize_snapshot(raw: Any, topology: WorkspaceTopology = DEFAULT_TOPOLOGY) -> Snapshot | None:
    """Normalize a stored or received snapshot; None if ``raw`` is not a record."""
    record = as_record(raw)
    if record is None:
        return None
    readings = normalize_readings(record.get("readings"))
    workspace = ensure_reading_files(record.get("workspace"), readings, topology)
    updated_at = record.get("updatedAt")
    return Snapshot(
        workspace=workspace,
        readings=readings,
        revision=_as_revision(record.get("revision")),
        updatedAt=updated_at if is_finite_number(updated_at) else 0,
    )
