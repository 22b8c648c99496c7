"""Local-first persistence and remote sync for the segment store.

Flow:
1. start(): hydrate from the local snapshot (not autosaved), read the outbox,
   fetch the remote snapshot and surface a conflict if the remote is newer
2. Every user change to the store is coalesced by the AutosaveQueue
3. A flush writes the local snapshot, replaces the single-entry outbox and
   tries a conditional remote write against the cursor
4. A rejected write opens a SyncConflict; remote writes stay blocked until
   accept_remote() or keep_local() resolves it

Only one conflict exists at a time; a new divergence never replaces it.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

from backend.tracker.db.repositories import LocalSnapshotStorage, RemoteSnapshotStore
from backend.tracker.exceptions import RemoteStoreError
from backend.tracker.models.persistence import PersistenceState, PersistenceStatus
from backend.tracker.models.snapshot import OutboxEntry, PersistedSnapshot, SyncConflict
from backend.tracker.persistence.autosave import AutosaveQueue, AutosaveStatus
from backend.tracker.persistence.conflicts import describe_conflict_differences
from backend.tracker.persistence.connectivity import ConnectivityMonitor
from backend.tracker.segments.store import ChangeOrigin, SegmentsChanged, SegmentStore
from backend.tracker.utils.logging import StructuredSyncLogger
from backend.tracker.utils.metrics import PrometheusSyncMetrics
from backend.tracker.utils.time import parse_iso, utc_now_iso

logger = logging.getLogger(__name__)

StateListener = Callable[[PersistenceState], None]

# User-facing sync_error messages
MSG_LOCAL_WRITE_FAILED = "Unable to write to local storage."
MSG_PERSIST_FAILED = "Failed to persist the latest changes."
MSG_REMOTE_UNREACHABLE = "Unable to reach the cloud store."
MSG_REMOTE_NEWER = "Newer data is available from the cloud."
MSG_REMOTE_CHANGED = "Cloud changes detected while you were offline."
MSG_INIT_FAILED = "Failed to initialise autosave."


def is_newer(candidate: str, reference: str) -> bool:
    """True if timestamp `candidate` is strictly later than `reference`."""
    candidate_dt = parse_iso(candidate)
    reference_dt = parse_iso(reference)
    if candidate_dt is not None and reference_dt is not None:
        return candidate_dt > reference_dt
    return candidate > reference


class SegmentsSyncPipeline:
    """Persistence state machine, one per running session."""

    def __init__(
        self,
        store: SegmentStore,
        local: LocalSnapshotStorage,
        remote: RemoteSnapshotStore,
        connectivity: ConnectivityMonitor,
        *,
        delay: float = 0.3,
        conflict_summary_limit: int = 5,
        clock: Callable[[], str] = utc_now_iso,
        metrics: PrometheusSyncMetrics | None = None,
        sync_logger: StructuredSyncLogger | None = None,
    ) -> None:
        """Initialize pipeline.

        Args:
            store: Segment store to persist
            local: Local durable snapshot/outbox storage
            remote: Remote snapshot store
            connectivity: Online/offline signal
            delay: Autosave debounce in seconds
            conflict_summary_limit: Default line limit of describe_conflict()
            clock: Returns the current instant as an ISO string
            metrics: Metrics sink (Prometheus by default)
            sync_logger: Structured logger for sync attempts
        """
        self._store = store
        self._local = local
        self._remote = remote
        self._connectivity = connectivity
        self._conflict_summary_limit = conflict_summary_limit
        self._clock = clock
        self._metrics = metrics or PrometheusSyncMetrics()
        self._sync_logger = sync_logger or StructuredSyncLogger()

        self._queue: AutosaveQueue[PersistedSnapshot] = AutosaveQueue(
            self._flush, delay=delay, on_status_change=self._on_queue_status
        )
        self._state = PersistenceState()
        self._state_listeners: list[StateListener] = []
        self._cursor: str | None = None
        self._ready = False
        self._force_next_sync = False
        # Held across every read-outbox / remote write / cursor update sequence
        self._sync_lock = asyncio.Lock()
        self._unsubscribers: list[Callable[[], None]] = []
        self._background: set[asyncio.Task[Any]] = set()

    # State

    @property
    def state(self) -> PersistenceState:
        return self._state

    @property
    def cursor(self) -> str | None:
        """updated_at of the last remote snapshot known to be in sync."""
        return self._cursor

    @property
    def ready(self) -> bool:
        return self._ready

    def subscribe_state(self, listener: StateListener) -> Callable[[], None]:
        """Register a persistence state listener.

        Returns:
            Callable that removes the listener
        """
        self._state_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)

        return unsubscribe

    def _set_state(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._state_listeners):
            listener(self._state)

    def describe_conflict(self, limit: int | None = None) -> list[str]:
        """Summary lines for the open conflict (empty when none)."""
        if self._state.conflict is None:
            return []
        if limit is None:
            limit = self._conflict_summary_limit
        return describe_conflict_differences(self._state.conflict, limit)

    # Lifecycle

    async def start(self) -> None:
        """Hydrate local and remote state, then begin autosaving changes."""
        outbox: list[OutboxEntry] = []
        try:
            local_snapshot = await self._hydrate_from_local()

            outbox = await self._local.read_outbox()
            self._set_state(outbox_size=len(outbox))

            await self._hydrate_from_remote(local_snapshot)
        except Exception:
            logger.exception("Persistence startup failed")
            self._set_state(status=PersistenceStatus.error, sync_error=MSG_INIT_FAILED)

        self._unsubscribers.append(self._store.subscribe(self._on_segments_changed))
        self._unsubscribers.append(self._connectivity.subscribe(self._on_connectivity_change))
        self._ready = True

        if outbox:
            await self.sync_outbox()

    async def close(self) -> None:
        """Stop reacting to changes; in-flight I/O is left to finish."""
        self._ready = False
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._queue.cancel()

    async def flush_now(self) -> None:
        """Flush any scheduled autosave immediately and wait for it."""
        await self._queue.flush_now()

    async def _hydrate_from_local(self) -> PersistedSnapshot | None:
        snapshot = await self._local.read_snapshot()
        if snapshot is None:
            return None

        self._store.apply_snapshot(snapshot.segments, origin=ChangeOrigin.hydration)
        self._set_state(last_saved_at=snapshot.updated_at, status=PersistenceStatus.saved)
        return snapshot

    async def _hydrate_from_remote(self, local_snapshot: PersistedSnapshot | None) -> None:
        if not self._connectivity.is_online:
            if self._state.outbox_size > 0:
                self._set_state(status=PersistenceStatus.offline)
            return

        try:
            remote = await self._remote.fetch_snapshot()
        except RemoteStoreError as e:
            logger.warning("Remote hydration failed: %s", e)
            self._set_state(status=PersistenceStatus.error, sync_error=MSG_REMOTE_UNREACHABLE)
            return

        if remote is None:
            return

        self._cursor = remote.updated_at

        if local_snapshot is not None and not is_newer(
            remote.updated_at, local_snapshot.updated_at
        ):
            return

        opened = self._open_conflict(
            SyncConflict(
                remote_segments=remote.segments,
                remote_updated_at=remote.updated_at,
                local_segments=self._store.segments,
                local_updated_at=local_snapshot.updated_at if local_snapshot else None,
            ),
            source="startup",
        )
        if opened:
            self._set_state(status=PersistenceStatus.error, sync_error=MSG_REMOTE_NEWER)

    # Change detection and flushing

    def _on_segments_changed(self, event: SegmentsChanged) -> None:
        if not self._ready or event.origin != ChangeOrigin.user:
            return
        payload = PersistedSnapshot(segments=list(event.segments), updated_at=self._clock())
        self._queue.schedule(payload)

    def _on_queue_status(self, status: AutosaveStatus, error: BaseException | None) -> None:
        if status == AutosaveStatus.scheduled:
            self._set_state(status=PersistenceStatus.queued)
        elif status == AutosaveStatus.saving:
            self._set_state(status=PersistenceStatus.saving, sync_error=None)
        elif status == AutosaveStatus.idle:
            # sync_outbox already settled the status when an outbox remains
            if self._state.outbox_size == 0 and self._state.conflict is None:
                self._set_state(status=PersistenceStatus.saved)
        elif status == AutosaveStatus.error:
            self._set_state(
                status=PersistenceStatus.error,
                sync_error=self._state.sync_error or MSG_PERSIST_FAILED,
            )

    async def _flush(self, payload: PersistedSnapshot) -> None:
        started = time.monotonic()
        try:
            await self._local.write_snapshot(payload)
            entry = OutboxEntry(
                segments=payload.segments,
                updated_at=payload.updated_at,
                queued_at=payload.updated_at,
            )
            await self._local.write_outbox([entry])
        except Exception:
            self._set_state(status=PersistenceStatus.error, sync_error=MSG_LOCAL_WRITE_FAILED)
            self._metrics.record_flush("error", (time.monotonic() - started) * 1000)
            raise

        self._set_state(last_saved_at=payload.updated_at, outbox_size=1, sync_error=None)
        await self.sync_outbox()
        self._metrics.record_flush("ok", (time.monotonic() - started) * 1000)

    # Remote sync

    async def sync_outbox(self, force: bool = False) -> None:
        """Push outbox entries to the remote store.

        Stops with status `offline` when disconnected, and with `error` while
        a conflict is open or when the remote rejects or cannot be reached.
        The outbox is only cleared after every entry was accepted. Concurrent
        calls run one after another, so each sees the cursor left by the
        previous one.

        Args:
            force: Skip the remote cursor check
        """
        async with self._sync_lock:
            await self._sync_outbox(force)

    async def _sync_outbox(self, force: bool) -> None:
        force = force or self._force_next_sync

        outbox = await self._local.read_outbox()
        self._set_state(outbox_size=len(outbox))

        if not outbox:
            if self._state.conflict is None:
                self._set_state(status=PersistenceStatus.saved)
            return

        if self._state.conflict is not None:
            # Blocked until the user resolves the open conflict
            self._set_state(status=PersistenceStatus.error)
            return

        if not self._connectivity.is_online:
            self._set_state(status=PersistenceStatus.offline)
            self._metrics.inc_sync("offline")
            self._sync_logger.log_attempt(
                "offline", 0.0, entries=len(outbox), cursor=self._cursor, forced=force
            )
            return

        started = time.monotonic()
        latest: PersistedSnapshot | None = None

        try:
            for entry in outbox:
                snapshot = PersistedSnapshot(segments=entry.segments, updated_at=entry.updated_at)
                result = await self._remote.save_snapshot(
                    snapshot, base_updated_at=self._cursor, force=force
                )

                if not result.ok:
                    if result.conflict is None:
                        raise RemoteStoreError("write rejected without a conflict snapshot")
                    self._open_conflict(
                        SyncConflict(
                            remote_segments=result.conflict.segments,
                            remote_updated_at=result.conflict.updated_at,
                            local_segments=self._store.segments,
                            local_updated_at=entry.updated_at,
                        ),
                        source="sync",
                    )
                    self._set_state(
                        status=PersistenceStatus.error, sync_error=MSG_REMOTE_CHANGED
                    )
                    self._metrics.inc_sync("conflict")
                    self._sync_logger.log_attempt(
                        "conflict",
                        (time.monotonic() - started) * 1000,
                        entries=len(outbox),
                        cursor=self._cursor,
                        forced=force,
                    )
                    return

                latest = result.snapshot or snapshot
                self._cursor = latest.updated_at
        except RemoteStoreError as e:
            self._set_state(status=PersistenceStatus.error, sync_error=MSG_REMOTE_UNREACHABLE)
            self._metrics.inc_sync("error")
            self._sync_logger.log_attempt(
                "error",
                (time.monotonic() - started) * 1000,
                entries=len(outbox),
                cursor=self._cursor,
                forced=force,
                error_reason=str(e),
            )
            return

        await self._local.write_outbox([])
        self._force_next_sync = False
        self._metrics.inc_sync("saved")
        self._sync_logger.log_attempt(
            "saved",
            (time.monotonic() - started) * 1000,
            entries=len(outbox),
            cursor=self._cursor,
            forced=force,
        )
        self._set_state(
            last_saved_at=latest.updated_at if latest else self._state.last_saved_at,
            status=PersistenceStatus.saved,
            outbox_size=0,
            sync_error=None,
        )

    def _open_conflict(self, conflict: SyncConflict, *, source: str) -> bool:
        if self._state.conflict is not None:
            logger.info("Conflict already open; keeping it (new one from %s dropped)", source)
            return False

        logger.info(
            "Sync conflict from %s: remote=%s local=%s",
            source,
            conflict.remote_updated_at,
            conflict.local_updated_at,
        )
        self._metrics.inc_conflict(source)
        self._set_state(conflict=conflict)
        return True

    # Conflict resolution

    async def _settle_autosave(self) -> None:
        # A flush already in its local write must land before the resolution
        # overwrites the snapshot and outbox; its remote push stays blocked
        # by the still-open conflict.
        self._queue.cancel()
        await self._queue.wait_idle()
        self._queue.cancel()

    async def accept_remote(self) -> None:
        """Resolve the open conflict by adopting the remote snapshot."""
        if self._state.conflict is None:
            return

        await self._settle_autosave()
        async with self._sync_lock:
            await self._accept_remote()

    async def _accept_remote(self) -> None:
        conflict = self._state.conflict
        if conflict is None:
            return

        snapshot = PersistedSnapshot(
            segments=conflict.remote_segments, updated_at=conflict.remote_updated_at
        )
        self._store.apply_snapshot(snapshot.segments, origin=ChangeOrigin.remote)

        await self._local.write_snapshot(snapshot)
        await self._local.write_outbox([])
        self._cursor = snapshot.updated_at
        self._force_next_sync = False

        self._set_state(
            conflict=None,
            last_saved_at=snapshot.updated_at,
            status=PersistenceStatus.saved,
            outbox_size=0,
            sync_error=None,
        )

    async def keep_local(self) -> None:
        """Resolve the open conflict by force-writing the local segments."""
        if self._state.conflict is None:
            return

        await self._settle_autosave()
        async with self._sync_lock:
            await self._keep_local()

    async def _keep_local(self) -> None:
        if self._state.conflict is None:
            return

        self._set_state(conflict=None, status=PersistenceStatus.saving, sync_error=None)

        snapshot = PersistedSnapshot(segments=self._store.segments, updated_at=self._clock())
        await self._local.write_snapshot(snapshot)
        await self._local.write_outbox(
            [
                OutboxEntry(
                    segments=snapshot.segments,
                    updated_at=snapshot.updated_at,
                    queued_at=snapshot.updated_at,
                )
            ]
        )
        self._set_state(last_saved_at=snapshot.updated_at, outbox_size=1)

        if not self._connectivity.is_online:
            # Pushed with force once connectivity returns
            self._force_next_sync = True
            self._set_state(status=PersistenceStatus.offline)
            return

        try:
            result = await self._remote.save_snapshot(snapshot, force=True)
        except RemoteStoreError as e:
            logger.warning("Forced remote write failed: %s", e)
            self._force_next_sync = True
            self._set_state(status=PersistenceStatus.error, sync_error=MSG_REMOTE_UNREACHABLE)
            return

        stored = result.snapshot or snapshot
        self._cursor = stored.updated_at
        self._force_next_sync = False
        await self._local.write_outbox([])

        self._set_state(
            last_saved_at=stored.updated_at,
            status=PersistenceStatus.saved,
            outbox_size=0,
            sync_error=None,
        )

    # Connectivity

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            self._spawn(self.sync_outbox())
        elif self._state.outbox_size > 0:
            self._set_state(status=PersistenceStatus.offline)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Background sync failed: %s", task.exception())

    async def wait_background(self) -> None:
        """Wait for reconnect-triggered syncs to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
