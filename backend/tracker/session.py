"""Composition root - wires store, storages, connectivity and sync pipeline."""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.tracker.adapters.remote_http import HttpRemoteStore
from backend.tracker.config import Settings, get_settings
from backend.tracker.db.engine import create_async_engine_from_settings, init_schema
from backend.tracker.db.inmemory import InMemoryKeyValueStore, InMemoryRemoteStore
from backend.tracker.db.local_storage import LocalSegmentsStorage
from backend.tracker.db.repositories import KeyValueStore, RemoteSnapshotStore
from backend.tracker.db.sql_repositories import SqlKeyValueStore
from backend.tracker.persistence.connectivity import ConnectivityMonitor
from backend.tracker.persistence.pipeline import SegmentsSyncPipeline
from backend.tracker.segments.sample_data import SAMPLE_SEGMENTS
from backend.tracker.segments.store import SegmentStore

logger = logging.getLogger(__name__)


@dataclass
class TrackerSession:
    """Objects owned by one running session."""

    settings: Settings
    store: SegmentStore
    local: LocalSegmentsStorage
    remote: RemoteSnapshotStore
    connectivity: ConnectivityMonitor
    pipeline: SegmentsSyncPipeline
    engine: AsyncEngine | None = None

    async def close(self) -> None:
        """Tear down; in-flight writes are allowed to finish."""
        await self.pipeline.close()
        if self.engine is not None:
            await self.engine.dispose()


async def _open_local_kv(settings: Settings) -> tuple[KeyValueStore, AsyncEngine | None]:
    if not settings.database_url:
        return InMemoryKeyValueStore(), None

    engine = create_async_engine_from_settings(settings)
    try:
        await init_schema(engine)
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Local database unavailable, using memory: %s", type(e).__name__)
        await engine.dispose()
        return InMemoryKeyValueStore(), None

    return SqlKeyValueStore(engine), engine


async def create_session(
    settings: Settings | None = None,
    *,
    local_kv: KeyValueStore | None = None,
    remote: RemoteSnapshotStore | None = None,
    connectivity: ConnectivityMonitor | None = None,
    start: bool = True,
) -> TrackerSession:
    """Build a session from settings, optionally overriding collaborators.

    Args:
        settings: Settings (cached settings by default)
        local_kv: Local key-value store (from DATABASE_URL by default)
        remote: Remote snapshot store (from REMOTE_STORE_URL by default)
        connectivity: Connectivity signal (starts online by default)
        start: Run pipeline startup (hydration) before returning

    Returns:
        Wired TrackerSession
    """
    settings = settings or get_settings()

    engine: AsyncEngine | None = None
    if local_kv is None:
        local_kv, engine = await _open_local_kv(settings)

    local = LocalSegmentsStorage(
        local_kv,
        snapshot_key=settings.snapshot_key,
        outbox_key=settings.outbox_key,
    )

    if remote is None:
        if settings.remote_store_url:
            remote = HttpRemoteStore(
                settings.remote_store_url, timeout=settings.remote_timeout_seconds
            )
        else:
            remote = InMemoryRemoteStore(key=settings.remote_snapshot_key)

    connectivity = connectivity or ConnectivityMonitor()

    store = SegmentStore(
        SAMPLE_SEGMENTS if settings.seed_sample_segments else (),
        default_currency=settings.default_currency,
    )

    pipeline = SegmentsSyncPipeline(
        store,
        local,
        remote,
        connectivity,
        delay=settings.autosave_delay_ms / 1000,
        conflict_summary_limit=settings.conflict_summary_limit,
    )

    session = TrackerSession(
        settings=settings,
        store=store,
        local=local,
        remote=remote,
        connectivity=connectivity,
        pipeline=pipeline,
        engine=engine,
    )

    if start:
        await pipeline.start()

    return session
