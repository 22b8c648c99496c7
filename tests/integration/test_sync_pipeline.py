"""Integration tests for the local-first sync pipeline.

Uses in-memory local and remote stores with a deterministic clock; autosave
flushes are driven with flush_now() instead of waiting for the debounce.
"""

import asyncio
import itertools
from collections.abc import Callable

import pytest

from backend.tracker.db.inmemory import InMemoryKeyValueStore, InMemoryRemoteStore
from backend.tracker.db.local_storage import LocalSegmentsStorage
from backend.tracker.db.repositories import RemoteSnapshotStore
from backend.tracker.exceptions import RemoteStoreError, StorageUnavailableError
from backend.tracker.models import (
    OutboxEntry,
    PersistedSnapshot,
    PersistenceState,
    PersistenceStatus,
    SaveSnapshotResult,
    Segment,
    SegmentInput,
)
from backend.tracker.persistence.connectivity import ConnectivityMonitor
from backend.tracker.persistence.pipeline import (
    MSG_LOCAL_WRITE_FAILED,
    MSG_REMOTE_CHANGED,
    MSG_REMOTE_NEWER,
    MSG_REMOTE_UNREACHABLE,
    SegmentsSyncPipeline,
    is_newer,
)
from backend.tracker.segments.store import ChangeOrigin, SegmentStore

T10 = "2025-10-27T10:00:00Z"
T11 = "2025-10-27T11:00:00Z"
T12 = "2025-10-27T12:00:00Z"


class UnreachableRemote:
    """Remote store that never answers."""

    async def fetch_snapshot(self) -> PersistedSnapshot | None:
        raise RemoteStoreError("connect timeout")

    async def save_snapshot(
        self,
        snapshot: PersistedSnapshot,
        *,
        base_updated_at: str | None = None,
        force: bool = False,
    ) -> SaveSnapshotResult:
        raise RemoteStoreError("connect timeout")


class ReadOnlyLocalStorage(LocalSegmentsStorage):
    """Local storage whose writes always fail."""

    async def write_snapshot(self, snapshot: PersistedSnapshot) -> None:
        raise StorageUnavailableError("disk full")


class YieldingRemote(InMemoryRemoteStore):
    """Remote store that hands control back to the loop before each write."""

    async def save_snapshot(
        self,
        snapshot: PersistedSnapshot,
        *,
        base_updated_at: str | None = None,
        force: bool = False,
    ) -> SaveSnapshotResult:
        await asyncio.sleep(0)
        return await super().save_snapshot(
            snapshot, base_updated_at=base_updated_at, force=force
        )


class SlowKeyValueStore(InMemoryKeyValueStore):
    """Key-value store whose writes take a few loop iterations."""

    async def put(self, key: str, value: str) -> None:
        await asyncio.sleep(0.01)
        await super().put(key, value)


def make_clock() -> Callable[[], str]:
    ticks = itertools.count(1)
    return lambda: f"2025-10-28T00:00:{next(ticks):02d}Z"


def new_input(**overrides) -> SegmentInput:
    data = {
        "team_id": "A",
        "leg_no": 1,
        "type": "train",
        "from_city": "Coimbra",
        "to_city": "Porto",
        "dep_time": "2025-10-27T14:00:00Z",
        "arr_time": "2025-10-27T15:00:00Z",
    }
    data.update(overrides)
    return SegmentInput(**data)


def ids(segments: list[Segment]) -> list[str]:
    return sorted(s.id for s in segments)


@pytest.fixture
def store() -> SegmentStore:
    return SegmentStore()


@pytest.fixture
def build_pipeline(
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    connectivity: ConnectivityMonitor,
) -> Callable[..., SegmentsSyncPipeline]:
    def build(
        *,
        local: LocalSegmentsStorage | None = None,
        remote: RemoteSnapshotStore | None = None,
    ) -> SegmentsSyncPipeline:
        return SegmentsSyncPipeline(
            store,
            local or local_storage,
            remote or remote_store,
            connectivity,
            delay=0.01,
            clock=make_clock(),
        )

    return build


@pytest.fixture
def seed_snapshot(make_segment: Callable[..., Segment]) -> Callable[[str, list[str]], PersistedSnapshot]:
    def build(updated_at: str, segment_ids: list[str]) -> PersistedSnapshot:
        segments = [
            make_segment(
                id=segment_id,
                order_idx=i,
                dep_time=f"2025-10-27T0{i}:00:00Z",
                arr_time=f"2025-10-27T0{i}:30:00Z",
            )
            for i, segment_id in enumerate(segment_ids)
        ]
        return PersistedSnapshot(segments=segments, updated_at=updated_at)

    return build


def test_is_newer_compares_instants() -> None:
    assert is_newer(T11, T10)
    assert not is_newer(T10, T10)
    assert is_newer("2025-10-27T12:00:00+01:00", "2025-10-27T10:30:00Z")


@pytest.mark.asyncio
async def test_fresh_start_then_edit_is_saved_and_synced(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
) -> None:
    pipeline = build_pipeline()
    await pipeline.start()

    assert pipeline.ready
    assert pipeline.state.status == PersistenceStatus.idle
    assert pipeline.state.conflict is None

    added = store.add_segment(new_input())
    assert pipeline.state.status == PersistenceStatus.queued

    await pipeline.flush_now()

    state = pipeline.state
    assert state.status == PersistenceStatus.saved
    assert state.outbox_size == 0
    assert state.sync_error is None

    local_snapshot = await local_storage.read_snapshot()
    remote_snapshot = await remote_store.fetch_snapshot()
    assert local_snapshot is not None and remote_snapshot is not None
    assert ids(remote_snapshot.segments) == [added.id]
    assert remote_snapshot.updated_at == local_snapshot.updated_at == state.last_saved_at
    assert pipeline.cursor == remote_snapshot.updated_at
    assert await local_storage.read_outbox() == []


@pytest.mark.asyncio
async def test_edits_are_debounced_into_one_write(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    remote_store: InMemoryRemoteStore,
) -> None:
    pipeline = build_pipeline()
    await pipeline.start()

    first = store.add_segment(new_input())
    store.update_segment(first.id, {"notes": "bought tickets"})

    await asyncio.sleep(0.1)
    await pipeline.flush_now()

    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None
    assert remote_snapshot.segments[0].notes == "bought tickets"
    # Clock ticked once per change; only the latest payload was written
    assert remote_snapshot.updated_at == "2025-10-28T00:00:02Z"


@pytest.mark.asyncio
async def test_hydration_is_not_autosaved(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await local_storage.write_snapshot(seed_snapshot(T10, ["a", "b"]))
    pipeline = build_pipeline()

    await pipeline.start()
    await pipeline.flush_now()

    assert ids(store.segments) == ["a", "b"]
    assert pipeline.state.status == PersistenceStatus.saved
    assert pipeline.state.last_saved_at == T10
    assert await remote_store.fetch_snapshot() is None


@pytest.mark.asyncio
async def test_startup_conflict_when_remote_is_newer(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await local_storage.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T12, ["a", "cloud"]))
    pipeline = build_pipeline()

    await pipeline.start()

    state = pipeline.state
    assert state.status == PersistenceStatus.error
    assert state.sync_error == MSG_REMOTE_NEWER
    assert state.conflict is not None
    assert state.conflict.remote_updated_at == T12
    assert state.conflict.local_updated_at == T10
    assert pipeline.cursor == T12
    # Local data stays on screen until the user decides
    assert ids(store.segments) == ["a"]
    assert pipeline.describe_conflict()[0].startswith("Cloud added bus Porto → Coimbra")


@pytest.mark.asyncio
async def test_describe_conflict_honours_explicit_limit(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await remote_store.save_snapshot(seed_snapshot(T12, ["c1", "c2", "c3"]))
    pipeline = build_pipeline()
    await pipeline.start()

    assert len(pipeline.describe_conflict()) == 3
    assert len(pipeline.describe_conflict(limit=1)) == 1
    assert pipeline.describe_conflict(limit=0) == []


@pytest.mark.asyncio
async def test_startup_conflict_without_local_snapshot(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await remote_store.save_snapshot(seed_snapshot(T10, ["cloud"]))
    pipeline = build_pipeline()

    await pipeline.start()

    assert pipeline.state.conflict is not None
    assert pipeline.state.conflict.local_updated_at is None


@pytest.mark.asyncio
async def test_no_conflict_when_local_is_current(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await local_storage.write_snapshot(seed_snapshot(T11, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T10, ["a"]))
    pipeline = build_pipeline()

    await pipeline.start()

    assert pipeline.state.conflict is None
    assert pipeline.state.status == PersistenceStatus.saved
    assert pipeline.cursor == T10


@pytest.mark.asyncio
async def test_open_conflict_blocks_remote_writes(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await local_storage.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T12, ["cloud"]))
    pipeline = build_pipeline()
    await pipeline.start()

    store.add_segment(new_input())
    await pipeline.flush_now()

    assert pipeline.state.status == PersistenceStatus.error
    assert pipeline.state.outbox_size == 1
    assert len(await local_storage.read_outbox()) == 1
    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None and remote_snapshot.updated_at == T12


@pytest.mark.asyncio
async def test_accept_remote_adopts_cloud_copy(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await local_storage.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T12, ["cloud-1", "cloud-2"]))
    pipeline = build_pipeline()
    await pipeline.start()
    store.add_segment(new_input())
    await pipeline.flush_now()

    await pipeline.accept_remote()
    await pipeline.flush_now()

    state = pipeline.state
    assert state.conflict is None
    assert state.status == PersistenceStatus.saved
    assert state.outbox_size == 0
    assert state.last_saved_at == T12
    assert ids(store.segments) == ["cloud-1", "cloud-2"]
    local_snapshot = await local_storage.read_snapshot()
    assert local_snapshot is not None and local_snapshot.updated_at == T12
    assert await local_storage.read_outbox() == []
    # Adopting the cloud copy does not write it back
    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None and remote_snapshot.updated_at == T12


@pytest.mark.asyncio
async def test_keep_local_force_writes_local_segments(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await local_storage.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T12, ["cloud"]))
    pipeline = build_pipeline()
    await pipeline.start()

    await pipeline.keep_local()

    state = pipeline.state
    assert state.conflict is None
    assert state.status == PersistenceStatus.saved
    assert state.outbox_size == 0
    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None
    assert ids(remote_snapshot.segments) == ["a"]
    assert pipeline.cursor == remote_snapshot.updated_at == state.last_saved_at
    assert ids(store.segments) == ["a"]


@pytest.mark.asyncio
async def test_resolution_without_conflict_is_a_no_op(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    remote_store: InMemoryRemoteStore,
) -> None:
    pipeline = build_pipeline()
    await pipeline.start()

    await pipeline.accept_remote()
    await pipeline.keep_local()

    assert pipeline.state.status == PersistenceStatus.idle
    assert await remote_store.fetch_snapshot() is None


@pytest.mark.asyncio
async def test_concurrent_remote_write_opens_single_conflict(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await local_storage.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T10, ["a"]))
    pipeline = build_pipeline()
    await pipeline.start()
    assert pipeline.cursor == T10

    # Another device writes first
    await remote_store.save_snapshot(seed_snapshot(T11, ["a", "other"]), base_updated_at=T10)

    store.add_segment(new_input())
    await pipeline.flush_now()

    state = pipeline.state
    assert state.status == PersistenceStatus.error
    assert state.sync_error == MSG_REMOTE_CHANGED
    assert state.conflict is not None
    assert state.conflict.remote_updated_at == T11
    assert state.outbox_size == 1

    # A later divergence does not replace the open conflict
    await remote_store.save_snapshot(seed_snapshot(T12, ["newest"]), force=True)
    await pipeline.sync_outbox()
    store.add_segment(new_input(dep_time="2025-10-27T16:00:00Z", arr_time="2025-10-27T17:00:00Z"))
    await pipeline.flush_now()

    assert pipeline.state.conflict is not None
    assert pipeline.state.conflict.remote_updated_at == T11


@pytest.mark.asyncio
async def test_offline_edits_sync_when_back_online(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    connectivity: ConnectivityMonitor,
) -> None:
    pipeline = build_pipeline()
    await pipeline.start()
    connectivity.set_online(False)

    added = store.add_segment(new_input())
    await pipeline.flush_now()

    assert pipeline.state.status == PersistenceStatus.offline
    assert pipeline.state.outbox_size == 1
    assert await remote_store.fetch_snapshot() is None

    connectivity.set_online(True)
    await pipeline.wait_background()

    state = pipeline.state
    assert state.status == PersistenceStatus.saved
    assert state.outbox_size == 0
    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None and ids(remote_snapshot.segments) == [added.id]
    assert await local_storage.read_outbox() == []


@pytest.mark.asyncio
async def test_flapping_connectivity_syncs_outbox_once(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    connectivity: ConnectivityMonitor,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    remote = YieldingRemote()
    await local_storage.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote.save_snapshot(seed_snapshot(T10, ["a"]))
    pipeline = build_pipeline(remote=remote)
    await pipeline.start()
    assert pipeline.cursor == T10

    connectivity.set_online(False)
    added = store.add_segment(new_input())
    await pipeline.flush_now()
    assert pipeline.state.outbox_size == 1

    # Two reconnect syncs are spawned back to back
    connectivity.set_online(True)
    connectivity.set_online(False)
    connectivity.set_online(True)
    await pipeline.wait_background()

    state = pipeline.state
    assert state.conflict is None
    assert state.status == PersistenceStatus.saved
    assert state.outbox_size == 0
    remote_snapshot = await remote.fetch_snapshot()
    assert remote_snapshot is not None
    assert ids(remote_snapshot.segments) == sorted(["a", added.id])
    assert pipeline.cursor == remote_snapshot.updated_at
    assert await local_storage.read_outbox() == []


@pytest.mark.asyncio
async def test_accept_remote_waits_for_in_flight_flush(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    local = LocalSegmentsStorage(SlowKeyValueStore())
    await local.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T12, ["cloud"]))
    pipeline = build_pipeline(local=local)
    await pipeline.start()
    assert pipeline.state.conflict is not None

    store.add_segment(new_input())
    flush = asyncio.create_task(pipeline.flush_now())
    await asyncio.sleep(0)
    await pipeline.accept_remote()
    await flush

    state = pipeline.state
    assert state.conflict is None
    assert state.status == PersistenceStatus.saved
    assert state.outbox_size == 0
    assert ids(store.segments) == ["cloud"]
    local_snapshot = await local.read_snapshot()
    assert local_snapshot is not None and ids(local_snapshot.segments) == ["cloud"]
    assert await local.read_outbox() == []
    # The discarded edit never reaches the cloud
    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None and remote_snapshot.updated_at == T12
    assert ids(remote_snapshot.segments) == ["cloud"]


@pytest.mark.asyncio
async def test_keep_local_waits_for_in_flight_flush(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    local = LocalSegmentsStorage(SlowKeyValueStore())
    await local.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T12, ["cloud"]))
    pipeline = build_pipeline(local=local)
    await pipeline.start()

    added = store.add_segment(new_input())
    flush = asyncio.create_task(pipeline.flush_now())
    await asyncio.sleep(0)
    await pipeline.keep_local()
    await flush

    state = pipeline.state
    assert state.conflict is None
    assert state.status == PersistenceStatus.saved
    assert state.outbox_size == 0
    remote_snapshot = await remote_store.fetch_snapshot()
    local_snapshot = await local.read_snapshot()
    assert remote_snapshot is not None and local_snapshot is not None
    assert ids(remote_snapshot.segments) == ids(local_snapshot.segments) == sorted(["a", added.id])
    assert remote_snapshot.updated_at == local_snapshot.updated_at == pipeline.cursor
    assert await local.read_outbox() == []


@pytest.mark.asyncio
async def test_going_offline_with_outbox_reports_offline(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    local_storage: LocalSegmentsStorage,
    connectivity: ConnectivityMonitor,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    snapshot = seed_snapshot(T10, ["a"])
    await local_storage.write_outbox(
        [OutboxEntry(segments=snapshot.segments, updated_at=T10, queued_at=T10)]
    )
    connectivity.set_online(False)
    pipeline = build_pipeline()

    await pipeline.start()

    assert pipeline.state.status == PersistenceStatus.offline
    assert pipeline.state.outbox_size == 1


@pytest.mark.asyncio
async def test_keep_local_while_offline_forces_next_sync(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    connectivity: ConnectivityMonitor,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    await local_storage.write_snapshot(seed_snapshot(T10, ["a"]))
    await remote_store.save_snapshot(seed_snapshot(T10, ["a"]))
    pipeline = build_pipeline()
    await pipeline.start()
    await remote_store.save_snapshot(seed_snapshot(T11, ["other"]), base_updated_at=T10)
    store.add_segment(new_input())
    await pipeline.flush_now()
    assert pipeline.state.conflict is not None

    connectivity.set_online(False)
    await pipeline.keep_local()

    assert pipeline.state.conflict is None
    assert pipeline.state.status == PersistenceStatus.offline
    assert pipeline.state.outbox_size == 1

    connectivity.set_online(True)
    await pipeline.wait_background()

    assert pipeline.state.status == PersistenceStatus.saved
    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None
    assert ids(remote_snapshot.segments) == ids(store.segments)


@pytest.mark.asyncio
async def test_outbox_is_replayed_on_startup(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    local_storage: LocalSegmentsStorage,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    snapshot = seed_snapshot(T10, ["queued"])
    await local_storage.write_snapshot(snapshot)
    await local_storage.write_outbox(
        [OutboxEntry(segments=snapshot.segments, updated_at=T10, queued_at=T10)]
    )
    pipeline = build_pipeline()

    await pipeline.start()

    assert pipeline.state.status == PersistenceStatus.saved
    assert pipeline.state.outbox_size == 0
    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None and remote_snapshot.updated_at == T10


@pytest.mark.asyncio
async def test_unreachable_remote_at_startup(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
) -> None:
    pipeline = build_pipeline(remote=UnreachableRemote())

    await pipeline.start()

    assert pipeline.ready
    assert pipeline.state.status == PersistenceStatus.error
    assert pipeline.state.sync_error == MSG_REMOTE_UNREACHABLE

    # Edits still reach local storage and wait in the outbox
    store.add_segment(new_input())
    await pipeline.flush_now()

    assert pipeline.state.status == PersistenceStatus.error
    assert pipeline.state.sync_error == MSG_REMOTE_UNREACHABLE
    assert pipeline.state.outbox_size == 1


@pytest.mark.asyncio
async def test_local_write_failure_is_reported(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    local_kv: InMemoryKeyValueStore,
) -> None:
    pipeline = build_pipeline(local=ReadOnlyLocalStorage(local_kv))
    await pipeline.start()

    store.add_segment(new_input())
    with pytest.raises(StorageUnavailableError):
        await pipeline.flush_now()

    assert pipeline.state.status == PersistenceStatus.error
    assert pipeline.state.sync_error == MSG_LOCAL_WRITE_FAILED


@pytest.mark.asyncio
async def test_remote_origin_changes_are_not_autosaved(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    remote_store: InMemoryRemoteStore,
    seed_snapshot: Callable[[str, list[str]], PersistedSnapshot],
) -> None:
    pipeline = build_pipeline()
    await pipeline.start()

    store.apply_snapshot(seed_snapshot(T10, ["x"]).segments, origin=ChangeOrigin.remote)
    await pipeline.flush_now()

    assert pipeline.state.status == PersistenceStatus.idle
    assert await remote_store.fetch_snapshot() is None


@pytest.mark.asyncio
async def test_state_listeners_and_close(
    build_pipeline: Callable[..., SegmentsSyncPipeline],
    store: SegmentStore,
    remote_store: InMemoryRemoteStore,
) -> None:
    pipeline = build_pipeline()
    seen: list[PersistenceState] = []
    unsubscribe = pipeline.subscribe_state(seen.append)
    await pipeline.start()

    store.add_segment(new_input())
    await pipeline.flush_now()

    statuses = [state.status for state in seen]
    assert PersistenceStatus.queued in statuses
    assert PersistenceStatus.saving in statuses
    assert statuses[-1] == PersistenceStatus.saved

    unsubscribe()
    await pipeline.close()
    count = len(seen)
    store.add_segment(new_input(dep_time="2025-10-27T18:00:00Z", arr_time="2025-10-27T19:00:00Z"))
    await pipeline.flush_now()

    assert len(seen) == count
    assert not pipeline.ready
    remote_snapshot = await remote_store.fetch_snapshot()
    assert remote_snapshot is not None and len(remote_snapshot.segments) == 1
