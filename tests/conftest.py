"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from backend.tracker.db.inmemory import InMemoryKeyValueStore, InMemoryRemoteStore
from backend.tracker.db.local_storage import LocalSegmentsStorage
from backend.tracker.db.models import Base
from backend.tracker.models import Segment
from backend.tracker.persistence.connectivity import ConnectivityMonitor


def build_segment(**overrides: Any) -> Segment:
    """Build a team A / leg 1 bus segment with overrides."""
    data: dict[str, Any] = {
        "id": "segment",
        "team_id": "A",
        "leg_no": 1,
        "type": "bus",
        "from_city": "Porto",
        "to_city": "Coimbra",
        "dep_time": "2025-10-27T08:00:00Z",
        "arr_time": "2025-10-27T09:00:00Z",
        "order_idx": 0,
    }
    data.update(overrides)
    return Segment(**data)


@pytest.fixture
def make_segment() -> Callable[..., Segment]:
    """Segment factory."""
    return build_segment


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with the kv_entry table created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}",
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def local_kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def local_storage(local_kv: InMemoryKeyValueStore) -> LocalSegmentsStorage:
    return LocalSegmentsStorage(local_kv)


@pytest.fixture
def remote_store() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def connectivity() -> ConnectivityMonitor:
    return ConnectivityMonitor(online=True)
