"""Tests for the authoritative WorkspaceStore.

Test cases:
- Seeding on first read
- Revision monotonicity and conflict rejection
- Last-writer-wins vs strict revision policy
- Serialized concurrent writes
- Storage failures
"""

import threading

import fakeredis
import pytest

from groupspace.components.workspace.errors import (
    InvalidPayloadError,
    RevisionConflictError,
    StorageUnavailableError,
)
from groupspace.components.workspace.redis_storage import RedisSnapshotStorage
from groupspace.components.workspace.service import (
    WorkspaceStore,
    get_workspace_store,
    parse_known_revision,
    parse_write_payload,
)
from groupspace.db.redis_cache import RedisCache

INTRO = {"id": "r1", "title": "Intro"}


def folder_ids(snapshot):
    return {f.id for f in snapshot.workspace.folders}


class TestRead:
    """First access seeds, later reads normalize."""

    def test_fresh_scope_is_default(self, store):
        snapshot = store.read("fresh")
        assert snapshot.revision == 0
        assert len(snapshot.workspace.folders) == 3
        assert len(snapshot.workspace.files) == 2
        assert snapshot.readings == []

    def test_seed_is_persisted(self, store):
        first = store.read("fresh")
        assert store.storage.load("fresh") is not None
        assert store.read("fresh") == first

    def test_scopes_are_independent(self, store):
        store.write("a", readings=[INTRO])
        assert store.read("a").revision == 1
        assert store.read("b").revision == 0
        assert store.read("b").readings == []

    def test_read_normalizes_without_persisting(self, store):
        raw = {"workspace": {"folders": [], "files": []}, "readings": [INTRO], "revision": 4, "updatedAt": 9}
        store.storage.save("legacy", raw)

        snapshot = store.read("legacy")
        assert snapshot.revision == 4
        assert "reading-r1" in {f.id for f in snapshot.workspace.files}
        assert len(snapshot.workspace.folders) == 3
        assert store.storage.load("legacy")["workspace"] == {"folders": [], "files": []}

    def test_corrupt_record_reads_as_default_fields(self, store):
        store.storage.save("odd", {"workspace": "garbage", "readings": "garbage", "revision": "x"})
        snapshot = store.read("odd")
        assert snapshot.revision == 0
        assert len(snapshot.workspace.files) == 2


class TestWrite:
    """Accepted writes and revision checks."""

    def test_readings_scenario(self, store):
        store.read("class")
        snapshot = store.write("class", readings=[INTRO], known_revision=0)
        assert snapshot.revision == 1
        assert len(snapshot.workspace.folders) == 3
        assert len(snapshot.workspace.files) == 3
        assert len(snapshot.readings) == 1
        companion = next(f for f in snapshot.workspace.files if f.id == "reading-r1")
        assert companion.parentId == "readings"

    def test_revisions_are_sequential(self, store):
        revisions = [store.write("seq", workspace=None, readings=[]).revision for _ in range(5)]
        assert revisions == [1, 2, 3, 4, 5]

    def test_future_known_revision_is_rejected(self, store):
        store.write("guard", readings=[INTRO])
        before = store.read("guard")

        with pytest.raises(RevisionConflictError) as exc_info:
            store.write("guard", readings=[], known_revision=before.revision + 1)

        assert exc_info.value.current_revision == 1
        after = store.read("guard")
        assert after.revision == 1
        assert after.readings == before.readings

    def test_stale_known_revision_overwrites(self, store):
        """Last writer wins: a stale knownRevision is accepted."""
        store.write("lww", readings=[INTRO])
        store.write("lww", readings=[INTRO, {"id": "r2", "title": "Second"}])
        snapshot = store.write("lww", readings=[], known_revision=1)
        assert snapshot.revision == 3
        assert snapshot.readings == []

    def test_concurrent_pushes_at_same_known_revision(self, store):
        """Both pushes land; the second silently drops the first's additions."""
        base = store.write("race", readings=[])
        assert base.revision == 1

        folders = [f.model_dump() for f in base.workspace.folders]
        push_a = {"folders": [*folders, {"id": "from-a", "name": "From A", "createdAt": 1}], "files": []}
        push_b = {"folders": [*folders, {"id": "from-b", "name": "From B", "createdAt": 1}], "files": []}

        first = store.write("race", workspace=push_a, readings=[], known_revision=1)
        second = store.write("race", workspace=push_b, readings=[], known_revision=1)

        assert first.revision == 2
        assert second.revision == 3
        final = store.read("race")
        assert "from-b" in folder_ids(final)
        assert "from-a" not in folder_ids(final)

    def test_omitted_fields_keep_current_values(self, store):
        store.write("partial", readings=[INTRO])
        snapshot = store.write("partial", workspace={"folders": [{"id": "x", "name": "X", "createdAt": 1}]})
        assert [r.id for r in snapshot.readings] == ["r1"]
        assert "x" in folder_ids(snapshot)
        assert "reading-r1" in {f.id for f in snapshot.workspace.files}

    def test_candidate_is_normalized(self, store):
        snapshot = store.write(
            "norm",
            workspace={"folders": [{"id": "loop", "name": "Loop", "parentId": "loop", "createdAt": 1}]},
            readings=[{"id": "r1", "title": " Padded ", "content": "a   b"}],
        )
        loop = next(f for f in snapshot.workspace.folders if f.id == "loop")
        assert loop.parentId is None
        assert snapshot.readings[0].title == "Padded"
        assert snapshot.readings[0].content == "a b"

    def test_threaded_writes_are_serialized(self, store):
        results: list[int] = []
        lock = threading.Lock()

        def push():
            snapshot = store.write("threads", readings=[])
            with lock:
                results.append(snapshot.revision)

        threads = [threading.Thread(target=push) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == list(range(1, 11))
        assert store.read("threads").revision == 10

    def test_reset_reseeds(self, store):
        store.write("gone", readings=[INTRO])
        assert store.reset("gone") is True
        assert store.read("gone").revision == 0
        assert store.reset("never") is False


class TestStrictRevisions:
    """Optional optimistic concurrency."""

    def test_stale_write_is_rejected(self, memory_storage):
        store = WorkspaceStore(storage=memory_storage, strict_revisions=True)
        store.write("strict", readings=[], known_revision=0)
        store.write("strict", readings=[], known_revision=1)

        with pytest.raises(RevisionConflictError):
            store.write("strict", readings=[INTRO], known_revision=1)
        assert store.read("strict").revision == 2

    def test_write_without_known_revision_is_accepted(self, memory_storage):
        store = WorkspaceStore(storage=memory_storage, strict_revisions=True)
        store.write("strict", readings=[])
        assert store.write("strict", readings=[]).revision == 2


class TestStorageFailure:
    """Backend errors surface as StorageUnavailableError."""

    def test_disconnected_redis(self):
        server = fakeredis.FakeServer()
        client = fakeredis.FakeRedis(server=server, decode_responses=True)
        store = WorkspaceStore(storage=RedisSnapshotStorage(cache=RedisCache(client=client), lock_timeout=1))
        store.read("s")

        server.connected = False
        with pytest.raises(StorageUnavailableError):
            store.read("s")
        with pytest.raises(StorageUnavailableError):
            store.write("s", readings=[])


class TestPayloadParsing:
    """PUT body parsing helpers."""

    def test_known_revision_must_be_a_number(self):
        assert parse_known_revision(3) == 3
        assert parse_known_revision(2.5) == 2.5
        assert parse_known_revision("3") is None
        assert parse_known_revision(True) is None
        assert parse_known_revision(None) is None
        assert parse_known_revision(float("inf")) is None
        assert parse_known_revision(10**400) is None

    def test_write_payload_split(self):
        workspace, readings, known = parse_write_payload({"readings": [INTRO], "knownRevision": 0})
        assert workspace is None
        assert readings == [INTRO]
        assert known == 0

    def test_non_object_payload_is_rejected(self):
        for payload in ([], "text", 3, None):
            with pytest.raises(InvalidPayloadError):
                parse_write_payload(payload)


class TestSingleton:
    """Process-wide store."""

    def test_get_workspace_store_is_cached(self):
        assert get_workspace_store() is get_workspace_store()
