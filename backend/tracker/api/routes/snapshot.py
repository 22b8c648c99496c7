"""Remote snapshot service endpoints - GET/PUT /snapshot."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from backend.tracker.config import get_settings
from backend.tracker.db.inmemory import InMemoryRemoteStore
from backend.tracker.db.repositories import RemoteSnapshotStore
from backend.tracker.models.snapshot import PersistedSnapshot, SaveSnapshotRequest

router = APIRouter(prefix="/snapshot", tags=["snapshot"])

# Process-wide store; replaced at startup when a database is configured
_remote_store: RemoteSnapshotStore | None = None


def get_remote_store() -> RemoteSnapshotStore:
    """FastAPI dependency for the backing snapshot store."""
    global _remote_store
    if _remote_store is None:
        _remote_store = InMemoryRemoteStore(key=get_settings().remote_snapshot_key)
    return _remote_store


def set_remote_store(store: RemoteSnapshotStore | None) -> None:
    """Install the backing store (None resets to the in-memory default)."""
    global _remote_store
    _remote_store = store


@router.get("", response_model=PersistedSnapshot | None, response_model_by_alias=True)
async def fetch_snapshot(
    store: Annotated[RemoteSnapshotStore, Depends(get_remote_store)],
) -> PersistedSnapshot | None:
    """Return the stored snapshot, or null when nothing is stored."""
    return await store.fetch_snapshot()


@router.put("", response_model=None)
async def save_snapshot(
    request: SaveSnapshotRequest,
    store: Annotated[RemoteSnapshotStore, Depends(get_remote_store)],
) -> JSONResponse:
    """Conditionally store a snapshot.

    Returns:
        200 with `{ok: true, snapshot}` when stored
        409 with `{ok: false, conflict}` when `baseUpdatedAt` is stale
    """
    result = await store.save_snapshot(
        request.snapshot,
        base_updated_at=request.base_updated_at,
        force=request.force,
    )

    status_code = status.HTTP_200_OK if result.ok else status.HTTP_409_CONFLICT
    return JSONResponse(
        content=result.model_dump(mode="json", by_alias=True),
        status_code=status_code,
    )
