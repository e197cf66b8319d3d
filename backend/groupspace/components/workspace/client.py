"""HTTP client for the shared workspace state API.

API:
- GET  {base}/workspace/{scope} -> Snapshot
- PUT  {base}/workspace/{scope} body {workspace, readings, knownRevision?} -> Snapshot

Every failure (network error, non-2xx status, undecodable or non-object
body) is logged and reported as None, meaning "no update available".
Snapshots that do come back are normalized before they are returned.
"""

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from groupspace.components.workspace.merge import normalize_snapshot
from groupspace.components.workspace.models import Snapshot
from groupspace.components.workspace.normalizer import normalize_readings
from groupspace.components.workspace.reading_links import ensure_reading_files
from groupspace.components.workspace.topology import DEFAULT_TOPOLOGY, WorkspaceTopology
from groupspace.settings import settings

logger = logging.getLogger(__name__)


class WorkspaceApiClient:
    """Async client for one workspace state API.

    ``transport`` lets tests route requests to an in-process app
    (httpx.ASGITransport) or a stub (httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        topology: WorkspaceTopology = DEFAULT_TOPOLOGY,
    ):
        self.base_url = (base_url or settings.workspace_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.topology = topology
        self._transport = transport

    def state_url(self, scope: str) -> str:
        return f"{self.base_url}/workspace/{quote(scope, safe='')}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self.timeout)

    def _parse_snapshot(self, resp: httpx.Response, scope: str) -> Snapshot | None:
        try:
            data = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Undecodable workspace response for scope {scope}: {e}")
            return None
        snapshot = normalize_snapshot(data, self.topology)
        if snapshot is None:
            logger.warning(f"Workspace response for scope {scope} is not an object")
        return snapshot

    async def load_snapshot(self, scope: str) -> Snapshot | None:
        """Fetch the authoritative snapshot, or None on any failure."""
        try:
            async with self._client() as client:
                resp = await client.get(self.state_url(scope), headers={"Accept": "application/json"})
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to load workspace snapshot for scope {scope}: {e}")
            return None
        return self._parse_snapshot(resp, scope)

    async def save_snapshot(
        self,
        scope: str,
        workspace: Any,
        readings: Any,
        known_revision: int | None = None,
    ) -> Snapshot | None:
        """Push a whole-state candidate, or None on rejection or failure.

        The candidate is normalized and reading-linked before sending.
        """
        normalized_readings = normalize_readings(readings)
        normalized_workspace = ensure_reading_files(workspace, normalized_readings, self.topology)
        payload: dict[str, Any] = {
            "workspace": normalized_workspace.model_dump(mode="json"),
            "readings": [r.model_dump(mode="json") for r in normalized_readings],
        }
        if known_revision is not None:
            payload["knownRevision"] = known_revision

        try:
            async with self._client() as client:
                resp = await client.put(self.state_url(scope), json=payload)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 409:
                logger.info(f"Workspace push rejected for scope {scope}: revision conflict (known={known_revision})")
            else:
                logger.warning(f"Workspace push failed for scope {scope}: {e}")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Workspace push failed for scope {scope}: {e}")
            return None
        return self._parse_snapshot(resp, scope)
