"""Integration tests for the Workspace state API.

Test cases for:
- First-access seeding
- Accepted writes and revision bumps
- Conflict and bad-payload rejections
- Response headers and health endpoints
"""

from groupspace.components.workspace.errors import StorageUnavailableError
from groupspace.components.workspace.service import get_workspace_store
from groupspace.main import app

API = "/api/v1/workspace"


class TestWorkspaceRead:
    """GET /workspace/{scope}."""

    def test_fresh_scope(self, api_client):
        response = api_client.get(f"{API}/fresh")

        assert response.status_code == 200
        data = response.json()
        assert data["revision"] == 0
        assert len(data["workspace"]["folders"]) == 3
        assert len(data["workspace"]["files"]) == 2
        assert data["readings"] == []
        assert response.headers["cache-control"] == "no-store"

    def test_canvas_files_omit_reading_id(self, api_client):
        data = api_client.get(f"{API}/fresh").json()
        assert all("readingId" not in f for f in data["workspace"]["files"])

    def test_repeated_reads_are_stable(self, api_client):
        first = api_client.get(f"{API}/stable").json()
        second = api_client.get(f"{API}/stable").json()
        assert first == second

    def test_seeded_workspace_is_ordered(self, api_client):
        data = api_client.get(f"{API}/ordered").json()
        files = data["workspace"]["files"]
        assert [f["id"] for f in files] == ["question-space", "weekly-prep"]
        assert files == sorted(files, key=lambda f: (f["createdAt"], f["name"]))


class TestWorkspaceWrite:
    """PUT /workspace/{scope}."""

    def test_add_reading_scenario(self, api_client):
        api_client.get(f"{API}/class")
        response = api_client.put(
            f"{API}/class",
            json={"readings": [{"id": "r1", "title": "Intro"}], "knownRevision": 0},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["revision"] == 1
        assert len(data["workspace"]["folders"]) == 3
        assert len(data["workspace"]["files"]) == 3
        assert len(data["readings"]) == 1
        companion = next(f for f in data["workspace"]["files"] if f["id"] == "reading-r1")
        assert companion["parentId"] == "readings"
        assert companion["type"] == "reading"
        assert companion["readingId"] == "r1"
        assert response.headers["cache-control"] == "no-store"

    def test_future_revision_conflict(self, api_client):
        api_client.put(f"{API}/guard", json={"readings": [{"id": "r1", "title": "Intro"}]})

        response = api_client.put(f"{API}/guard", json={"readings": [], "knownRevision": 2})

        assert response.status_code == 409
        assert response.json()["detail"] == "Revision mismatch"
        data = api_client.get(f"{API}/guard").json()
        assert data["revision"] == 1
        assert len(data["readings"]) == 1

    def test_stale_revision_is_accepted(self, api_client):
        api_client.put(f"{API}/lww", json={"readings": []})
        api_client.put(f"{API}/lww", json={"readings": []})
        response = api_client.put(f"{API}/lww", json={"readings": [], "knownRevision": 0})
        assert response.status_code == 200
        assert response.json()["revision"] == 3

    def test_non_numeric_known_revision_is_ignored(self, api_client):
        response = api_client.put(f"{API}/loose", json={"readings": [], "knownRevision": "99"})
        assert response.status_code == 200
        assert response.json()["revision"] == 1

    def test_non_object_body(self, api_client):
        response = api_client.put(f"{API}/bad", json=[1, 2, 3])
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid payload"

    def test_malformed_json(self, api_client):
        response = api_client.put(
            f"{API}/bad",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert api_client.get(f"{API}/bad").json()["revision"] == 0

    def test_malformed_fields_are_normalized(self, api_client):
        response = api_client.put(
            f"{API}/messy",
            json={
                "workspace": {"folders": "nope", "files": [{"id": "x"}]},
                "readings": [{"id": "r1", "title": "  Spaced  ", "content": "a \n b"}, {"title": "no id"}],
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert [r["title"] for r in data["readings"]] == ["Spaced"]
        assert data["readings"][0]["content"] == "a b"
        assert len(data["workspace"]["folders"]) == 3

    def test_oversized_numbers_are_normalized(self, api_client):
        huge = 10**400
        body = f'{{"readings": [{{"id": "r1", "title": "Intro", "createdAt": {huge}}}], "knownRevision": {huge}}}'
        response = api_client.put(
            f"{API}/huge",
            content=body.encode(),
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["revision"] == 1
        assert 0 < data["readings"][0]["createdAt"] < huge

    def test_storage_unavailable(self, api_client):
        class BrokenStore:
            def read(self, scope):
                raise StorageUnavailableError("down")

            def write(self, scope, workspace=None, readings=None, known_revision=None):
                raise StorageUnavailableError("down")

        app.dependency_overrides[get_workspace_store] = lambda: BrokenStore()
        assert api_client.get(f"{API}/any").status_code == 503
        assert api_client.put(f"{API}/any", json={}).status_code == 503


class TestHealth:
    """Health endpoints."""

    def test_root(self, api_client):
        data = api_client.get("/").json()
        assert data["status"] == "ok"
        assert data["service"] == "GroupSpace API"

    def test_health(self, api_client):
        for path in ("/health", "/api/v1/health"):
            response = api_client.get(path)
            assert response.status_code == 200
            assert response.json()["status"] == "healthy"
            assert response.json()["storage"] in {"memory", "redis"}
