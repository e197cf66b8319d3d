"""Client-side workspace reconciler.

Keeps a local copy of one scope's workspace and readings in step with the
authoritative store:

- boot(): load the local cache, fetch the remote snapshot, merge (local
  entries win on id collision) and push the merge back if it differs.
- poll_once() / run(): adopt remote snapshots whose revision is newer than
  the one last seen.
- create_folder / create_file / add_reading: apply locally at once, then
  push in the background.

Pushes carry the last-known revision. A rejected or failed push is logged
and the local state is kept; the next newer remote snapshot replaces it.
Until the remote has been reached once, polls and pushes run the boot merge
instead, so state built offline is never discarded wholesale.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from groupspace.components.workspace.client import WorkspaceApiClient
from groupspace.components.workspace.factory import create_canvas_file, create_folder, create_reading
from groupspace.components.workspace.local_cache import WorkspaceCache
from groupspace.components.workspace.merge import merge_readings, merge_workspaces, snapshot_fingerprint
from groupspace.components.workspace.models import Folder, Reading, Snapshot, WorkspaceFile, WorkspaceState
from groupspace.components.workspace.normalizer import normalize_readings
from groupspace.components.workspace.reading_links import ensure_reading_files, reading_file_id
from groupspace.components.workspace.topology import DEFAULT_TOPOLOGY, WorkspaceTopology
from groupspace.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcilerState:
    """What a listener sees after each change."""

    workspace: WorkspaceState
    readings: list[Reading]
    last_known_revision: int | None
    active_file_id: str | None


Listener = Callable[[ReconcilerState], None]


class WorkspaceReconciler:
    def __init__(
        self,
        api: WorkspaceApiClient,
        cache: WorkspaceCache,
        scope: str | None = None,
        poll_interval: float | None = None,
        topology: WorkspaceTopology = DEFAULT_TOPOLOGY,
    ):
        self.api = api
        self.cache = cache
        self.scope = scope or settings.workspace_scope
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
        self.topology = topology

        self.workspace: WorkspaceState = WorkspaceState()
        self.readings: list[Reading] = []
        self.last_known_revision: int | None = None
        self.active_file_id: str | None = None
        self.booted = False
        # set once local state has been merged against a remote snapshot
        self.synced = False

        self._fingerprint: str | None = None
        # fingerprint of the last snapshot taken from the remote
        self._adopted_fingerprint: str | None = None
        self._listeners: list[Listener] = []
        self._pending: set[asyncio.Task] = set()
        # pushes go out one at a time, in mutation order
        self._push_lock = asyncio.Lock()
        self._poll_task: asyncio.Task | None = None

    # ==================== State ====================

    @property
    def state(self) -> ReconcilerState:
        return ReconcilerState(
            workspace=self.workspace,
            readings=list(self.readings),
            last_known_revision=self.last_known_revision,
            active_file_id=self.active_file_id,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Workspace listener failed")

    def _set_state(self, workspace: WorkspaceState, readings: list[Reading]) -> None:
        self.readings = normalize_readings(readings)
        self.workspace = ensure_reading_files(workspace, self.readings, self.topology)
        self._fingerprint = snapshot_fingerprint(self.workspace, self.readings, self.topology)

    def _adopt(self, snapshot: Snapshot) -> None:
        self._set_state(snapshot.workspace, snapshot.readings)
        self.last_known_revision = snapshot.revision
        self._adopted_fingerprint = self._fingerprint

    def _ensure_active_file(self) -> None:
        """Keep the active file pointing at an existing file, else the first one."""
        if self.workspace.has_file(self.active_file_id):
            return
        self.active_file_id = self.workspace.files[0].id if self.workspace.files else None

    def _persist(self) -> None:
        self.cache.save_workspace(self.workspace)
        self.cache.save_readings(self.readings)

    # ==================== Boot ====================

    async def boot(self) -> ReconcilerState:
        """Load the local copy and reconcile it with the remote snapshot once."""
        local_workspace = self.cache.load_workspace()
        local_readings = self.cache.load_readings()
        self._set_state(local_workspace, local_readings)

        await self._reconcile(await self.api.load_snapshot(self.scope))

        self.active_file_id = self.workspace.files[0].id if self.workspace.files else None
        self._persist()
        self.booted = True
        logger.info(
            f"Workspace reconciler booted: scope={self.scope}, revision={self.last_known_revision}, "
            f"files={len(self.workspace.files)}, readings={len(self.readings)}"
        )
        self._notify()
        return self.state

    async def _reconcile(self, remote: Snapshot | None) -> None:
        """Merge local state with ``remote`` (local wins) and push the result if it differs."""
        if remote is None:
            # Nothing reachable; publish the local copy as a fresh write
            sent_fingerprint = self._fingerprint
            saved = await self.api.save_snapshot(self.scope, self.workspace, self.readings)
            if saved is not None:
                self._accept_push(saved, sent_fingerprint)
                self.synced = True
            return

        merged_readings = merge_readings(remote.readings, self.readings)
        merged_workspace = merge_workspaces(remote.workspace, self.workspace, self.topology)
        self._set_state(merged_workspace, merged_readings)
        self.last_known_revision = remote.revision
        self.synced = True

        remote_fingerprint = snapshot_fingerprint(remote.workspace, remote.readings, self.topology)
        if self._fingerprint == remote_fingerprint:
            self._adopt(remote)
            return

        sent_fingerprint = self._fingerprint
        saved = await self.api.save_snapshot(self.scope, self.workspace, self.readings, known_revision=remote.revision)
        if saved is not None:
            self._accept_push(saved, sent_fingerprint)
        else:
            logger.warning(f"Merge push for scope {self.scope} failed; keeping merged local state")

    def _accept_push(self, saved: Snapshot, sent_fingerprint: str | None) -> None:
        self.last_known_revision = saved.revision
        # Local state changed while in flight; the queued push will carry it
        if self._fingerprint == sent_fingerprint:
            self._adopt(saved)

    async def _catch_up(self, remote: Snapshot | None) -> bool:
        """Run the boot merge if the remote was never reached; True if local state changed."""
        async with self._push_lock:
            if self.synced:
                return False
            before = self._fingerprint
            await self._reconcile(remote)
        if not self.synced or self._fingerprint == before:
            return False
        self._ensure_active_file()
        self._persist()
        logger.info(f"Caught up with scope {self.scope} at revision {self.last_known_revision}")
        self._notify()
        return True

    # ==================== Polling ====================

    async def poll_once(self) -> bool:
        """Fetch the remote snapshot once; returns True if local state changed."""
        remote = await self.api.load_snapshot(self.scope)
        if remote is None:
            return False
        if not self.synced:
            return await self._catch_up(remote)
        if self.last_known_revision is not None and remote.revision <= self.last_known_revision:
            return False

        self.last_known_revision = remote.revision
        remote_fingerprint = snapshot_fingerprint(remote.workspace, remote.readings, self.topology)
        if remote_fingerprint == self._fingerprint:
            return False

        self._adopt(remote)
        self._ensure_active_file()
        self._persist()
        logger.debug(f"Adopted remote revision {remote.revision} for scope {self.scope}")
        self._notify()
        return True

    async def run(self) -> None:
        """Poll forever at the configured interval."""
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.poll_once()
            except Exception:
                logger.exception(f"Workspace poll failed for scope {self.scope}")

    def start(self) -> asyncio.Task:
        """Start the polling loop on the running event loop."""
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(self.run())
        return self._poll_task

    async def stop(self) -> None:
        """Stop polling and wait for in-flight pushes."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await self.flush()

    # ==================== Local mutations ====================

    def create_folder(self, name: str, parent_id: str | None = None) -> Folder:
        folder = create_folder(name, parent_id)
        workspace = WorkspaceState(folders=[*self.workspace.folders, folder], files=self.workspace.files)
        self._apply_local(workspace, self.readings)
        return folder

    def create_file(self, name: str, parent_id: str | None = None) -> WorkspaceFile:
        """Create a canvas file and make it the active file."""
        file = create_canvas_file(name, parent_id, self.topology)
        workspace = WorkspaceState(folders=self.workspace.folders, files=[*self.workspace.files, file])
        self.active_file_id = file.id
        self._apply_local(workspace, self.readings)
        return file

    def add_reading(self, title: str, content: str) -> Reading:
        """Add a reading; its companion file becomes the active file."""
        reading = create_reading(title, content)
        self.active_file_id = reading_file_id(reading.id)
        self._apply_local(self.workspace, [*self.readings, reading])
        return reading

    def _apply_local(self, workspace: WorkspaceState, readings: list[Reading]) -> None:
        self._set_state(workspace, readings)
        self._ensure_active_file()
        self._persist()
        self._notify()
        self._schedule_push()

    def _schedule_push(self) -> None:
        task = asyncio.get_running_loop().create_task(self._push())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _push(self) -> None:
        """Send the current local state with the last-known revision."""
        if not self.synced:
            await self._catch_up(await self.api.load_snapshot(self.scope))
            if not self.synced or self._fingerprint == self._adopted_fingerprint:
                return
        async with self._push_lock:
            sent_fingerprint = self._fingerprint
            saved = await self.api.save_snapshot(
                self.scope, self.workspace, self.readings, known_revision=self.last_known_revision
            )
        if saved is None:
            return
        # A poll already moved past this result
        if self.last_known_revision is not None and saved.revision < self.last_known_revision:
            return

        self.last_known_revision = saved.revision
        # Local state changed while in flight; the queued push will carry it
        if self._fingerprint != sent_fingerprint:
            return
        if snapshot_fingerprint(saved.workspace, saved.readings, self.topology) == self._fingerprint:
            return

        self._adopt(saved)
        self._ensure_active_file()
        self._persist()
        self._notify()

    async def flush(self) -> None:
        """Wait for every pending background push to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
