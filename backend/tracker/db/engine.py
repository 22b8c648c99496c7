"""Database engine for the local durable store."""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from backend.tracker.config import Settings
from backend.tracker.db.models import Base


def create_async_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create async SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    database_url = settings.database_url

    if not database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string. "
            "Please configure the database_url setting."
        )

    # Plain sqlite URLs need the async driver
    if database_url.startswith("sqlite:///"):
        database_url = database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

    return create_async_engine(database_url, poolclass=NullPool, echo=False)


async def init_schema(engine: AsyncEngine) -> None:
    """Create the key-value table if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
