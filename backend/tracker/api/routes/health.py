"""Health check endpoint for the snapshot service."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backend.tracker.api.routes.snapshot import get_remote_store
from backend.tracker.db.repositories import RemoteSnapshotStore
from backend.tracker.exceptions import RemoteStoreError, StorageUnavailableError

router = APIRouter()


async def check_store(store: RemoteSnapshotStore) -> tuple[bool, str]:
    """Check the backing store can be read.

    Returns:
        (is_ok, status_message)
    """
    try:
        await store.fetch_snapshot()
        return (True, "ok")
    except (StorageUnavailableError, RemoteStoreError) as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple liveness check.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    store: Annotated[RemoteSnapshotStore, Depends(get_remote_store)],
) -> dict[str, Any] | JSONResponse:
    """Readiness check including the snapshot store.

    Returns:
        200 with component status if the store is readable
        503 otherwise
    """
    store_ok, store_status = await check_store(store)

    response_body = {
        "status": "ok" if store_ok else "degraded",
        "components": {"store": store_status},
    }

    if not store_ok:
        return JSONResponse(content=response_body, status_code=503)

    return response_body
