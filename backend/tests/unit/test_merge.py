"""Tests for snapshot merging and fingerprints.

Test cases:
- Id-keyed union with override precedence
- Fingerprint equality on semantically equal states
- Snapshot normalization of stored/received records
"""

from groupspace.components.workspace.merge import (
    merge_readings,
    merge_workspaces,
    normalize_snapshot,
    snapshot_fingerprint,
)
from groupspace.components.workspace.normalizer import normalize_workspace
from groupspace.components.workspace.reading_links import ensure_reading_files

NOW = 1_700_000_000_000


def workspace_with(*folders):
    return normalize_workspace(
        {"folders": [{"id": fid, "name": name, "createdAt": 5} for fid, name in folders]},
        now=NOW,
    )


class TestMergeWorkspaces:
    """Union by id, override side wins."""

    def test_disjoint_ids_union_is_symmetric(self):
        a = workspace_with(("fa", "From A"))
        b = workspace_with(("fb", "From B"))
        ab = merge_workspaces(a, b)
        ba = merge_workspaces(b, a)
        assert {f.id for f in ab.folders} == {f.id for f in ba.folders}
        assert {"fa", "fb"} <= {f.id for f in ab.folders}

    def test_colliding_id_override_wins(self):
        remote = workspace_with(("shared", "Remote Name"))
        local = workspace_with(("shared", "Local Name"))
        merged = merge_workspaces(remote, local)
        assert next(f for f in merged.folders if f.id == "shared").name == "Local Name"
        merged_other_way = merge_workspaces(local, remote)
        assert next(f for f in merged_other_way.folders if f.id == "shared").name == "Remote Name"

    def test_merge_result_is_normalized(self):
        merged = merge_workspaces(None, {"folders": [{"id": "x", "name": "X", "parentId": "x", "createdAt": 1}]})
        x = next(f for f in merged.folders if f.id == "x")
        assert x.parentId is None
        assert len([f for f in merged.folders if f.id == "readings"]) == 1


class TestMergeReadings:
    """Reading list union."""

    def test_union_and_override(self):
        remote = [{"id": "r1", "title": "Remote", "createdAt": 1}, {"id": "r2", "title": "Only Remote", "createdAt": 2}]
        local = [{"id": "r1", "title": "Local", "createdAt": 1}, {"id": "r3", "title": "Only Local", "createdAt": 3}]
        merged = merge_readings(remote, local)
        assert [r.id for r in merged] == ["r1", "r2", "r3"]
        assert merged[0].title == "Local"


class TestFingerprint:
    """Canonical serialization."""

    def test_equal_for_reordered_input(self):
        folders = [
            {"id": "a", "name": "A", "createdAt": 1},
            {"id": "b", "name": "B", "createdAt": 2},
        ]
        ws1 = normalize_workspace({"folders": folders}, now=NOW)
        ws2 = normalize_workspace({"folders": list(reversed(folders))}, now=NOW)
        assert snapshot_fingerprint(ws1, []) == snapshot_fingerprint(ws2, [])

    def test_differs_on_content_change(self):
        ws = normalize_workspace(None, now=NOW)
        readings = [{"id": "r1", "title": "Intro", "content": "a", "createdAt": 1}]
        changed = [{"id": "r1", "title": "Intro", "content": "b", "createdAt": 1}]
        assert snapshot_fingerprint(ws, readings) != snapshot_fingerprint(ws, changed)

    def test_includes_reading_links(self):
        """A workspace missing a companion file fingerprints like one that has it."""
        ws = normalize_workspace(None, now=NOW)
        readings = [{"id": "r1", "title": "Intro", "createdAt": 1}]
        linked = ensure_reading_files(ws, readings)
        assert snapshot_fingerprint(ws, readings) == snapshot_fingerprint(linked, readings)


class TestNormalizeSnapshot:
    """Stored or received snapshot records."""

    def test_non_record_is_none(self):
        assert normalize_snapshot(None) is None
        assert normalize_snapshot([1, 2]) is None
        assert normalize_snapshot("snapshot") is None

    def test_bad_revision_and_timestamp(self):
        snapshot = normalize_snapshot({"revision": "7", "updatedAt": "later"})
        assert snapshot.revision == 0
        assert snapshot.updatedAt == 0
        assert normalize_snapshot({"revision": -3}).revision == 0
        assert normalize_snapshot({"revision": 4.0}).revision == 4
        assert normalize_snapshot({"revision": 10**400, "updatedAt": 10**400}).revision == 0

    def test_readings_get_companion_files(self):
        snapshot = normalize_snapshot({"readings": [{"id": "r1", "title": "Intro"}], "revision": 2})
        assert snapshot.revision == 2
        assert "reading-r1" in {f.id for f in snapshot.workspace.files}
