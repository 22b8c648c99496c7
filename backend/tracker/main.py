"""FastAPI application - remote snapshot service."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.tracker.api.routes.health import router as health_router
from backend.tracker.api.routes.metrics import router as metrics_router
from backend.tracker.api.routes.snapshot import router as snapshot_router
from backend.tracker.api.routes.snapshot import set_remote_store
from backend.tracker.config import get_settings
from backend.tracker.db.engine import create_async_engine_from_settings, init_schema
from backend.tracker.db.remote_store import KeyValueRemoteStore
from backend.tracker.db.sql_repositories import SqlKeyValueStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Back the snapshot store with the database when one is configured."""
    settings = get_settings()
    engine = None

    if settings.database_url:
        engine = create_async_engine_from_settings(settings)
        await init_schema(engine)
        set_remote_store(
            KeyValueRemoteStore(SqlKeyValueStore(engine), key=settings.remote_snapshot_key)
        )
        logger.info("Snapshot store backed by %s", engine.url.drivername)

    yield

    if engine is not None:
        set_remote_store(None)
        await engine.dispose()


app = FastAPI(title="Route Tracker Snapshot API", version="0.1.0", lifespan=lifespan)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(snapshot_router, tags=["snapshot"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Route Tracker Snapshot API", "version": "0.1.0"}
