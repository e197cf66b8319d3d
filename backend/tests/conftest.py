#!/usr/bin/env python
"""
pytest configuration file

This file contains shared fixtures for all tests.
"""

import fakeredis
import pytest
from fastapi.testclient import TestClient

from groupspace.components.workspace.redis_storage import RedisSnapshotStorage
from groupspace.components.workspace.service import WorkspaceStore, get_workspace_store, reset_workspace_store
from groupspace.components.workspace.storage import MemorySnapshotStorage
from groupspace.components.workspace.storage_provider import reset_snapshot_storage
from groupspace.db.redis_cache import RedisCache
from groupspace.main import app

API_PREFIX = "/api/v1"


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop process-wide store and storage singletons after each test."""
    yield
    reset_workspace_store()
    reset_snapshot_storage()
    app.dependency_overrides.clear()


@pytest.fixture
def fake_redis_client():
    """
    Create a fakeredis client for unit tests.

    This provides an in-memory Redis implementation that allows
    unit tests to run without a real Redis server.
    """
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.close()


@pytest.fixture
def redis_cache(fake_redis_client) -> RedisCache:
    """RedisCache bound to an isolated fakeredis server."""
    return RedisCache(client=fake_redis_client)


@pytest.fixture
def memory_storage() -> MemorySnapshotStorage:
    return MemorySnapshotStorage()


@pytest.fixture
def redis_storage(redis_cache) -> RedisSnapshotStorage:
    return RedisSnapshotStorage(cache=redis_cache, lock_timeout=5)


@pytest.fixture(params=["memory", "redis"])
def store(request, memory_storage, redis_storage) -> WorkspaceStore:
    """WorkspaceStore over each storage backend, last-writer-wins policy."""
    storage = memory_storage if request.param == "memory" else redis_storage
    return WorkspaceStore(storage=storage, strict_revisions=False)


@pytest.fixture
def memory_store(memory_storage) -> WorkspaceStore:
    return WorkspaceStore(storage=memory_storage, strict_revisions=False)


@pytest.fixture
def api_client(memory_store) -> TestClient:
    """TestClient whose workspace endpoints use an isolated in-memory store."""
    app.dependency_overrides[get_workspace_store] = lambda: memory_store
    return TestClient(app)
