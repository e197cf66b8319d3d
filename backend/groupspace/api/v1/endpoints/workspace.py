"""Workspace state API endpoints.

One authoritative snapshot per scope:
- GET  /workspace/{scope}  current snapshot (seeded with the default tree on first access)
- PUT  /workspace/{scope}  replace the snapshot, optionally guarded by knownRevision

Responses are never cacheable.
"""

import json

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from groupspace.components.workspace.errors import (
    InvalidPayloadError,
    RevisionConflictError,
    StorageUnavailableError,
)
from groupspace.components.workspace.models import Snapshot
from groupspace.components.workspace.service import WorkspaceStore, get_workspace_store, parse_write_payload
from groupspace.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()

NO_STORE_HEADERS = {"Cache-Control": "no-store"}


def snapshot_response(snapshot: Snapshot) -> JSONResponse:
    return JSONResponse(content=snapshot.model_dump(mode="json"), headers=NO_STORE_HEADERS)


@router.get("/{scope}")
async def get_workspace(scope: str, store: WorkspaceStore = Depends(get_workspace_store)) -> JSONResponse:
    """Get the current snapshot for a scope.

    Raises:
        HTTPException: 503 if the snapshot backend is unavailable
    """
    try:
        snapshot = await run_in_threadpool(store.read, scope)
    except StorageUnavailableError as e:
        logger.error(f"Workspace read failed for scope {scope}: {e}")
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return snapshot_response(snapshot)


@router.put("/{scope}")
async def put_workspace(
    scope: str,
    request: Request,
    store: WorkspaceStore = Depends(get_workspace_store),
) -> JSONResponse:
    """Replace the snapshot for a scope.

    Body: {"workspace": ..., "readings": [...], "knownRevision": n}. Every
    field is optional; an omitted workspace or readings keeps the stored one.

    Returns:
        The new snapshot, with revision bumped by one

    Raises:
        HTTPException: 400 if the body is not a JSON object, 409 on a
            revision mismatch, 503 if the snapshot backend is unavailable
    """
    try:
        workspace, readings, known_revision = parse_write_payload(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, InvalidPayloadError):
        raise HTTPException(status_code=400, detail="Invalid payload")

    try:
        snapshot = await run_in_threadpool(store.write, scope, workspace, readings, known_revision)
    except RevisionConflictError:
        raise HTTPException(status_code=409, detail="Revision mismatch")
    except StorageUnavailableError as e:
        logger.error(f"Workspace write failed for scope {scope}: {e}")
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return snapshot_response(snapshot)
