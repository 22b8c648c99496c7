"""SQLAlchemy implementation of the key-value store."""

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from backend.tracker.db.models import KeyValueEntry
from backend.tracker.exceptions import StorageUnavailableError


class SqlKeyValueStore:
    """SQL-backed implementation of KeyValueStore.

    Any database error is reported as StorageUnavailableError so callers can
    degrade to another store.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        """Initialize store.

        Args:
            engine: Async engine with the kv_entry table created
        """
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async def get(self, key: str) -> str | None:
        """Get a stored value."""
        try:
            async with self._session_factory() as session:
                entry = await session.get(KeyValueEntry, key)
                return entry.value if entry is not None else None
        except (SQLAlchemyError, OSError) as e:
            raise StorageUnavailableError(f"read {key!r} failed: {type(e).__name__}") from e

    async def put(self, key: str, value: str) -> None:
        """Insert or replace a value."""
        try:
            async with self._session_factory() as session:
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StorageUnavailableError(f"write {key!r} failed: {type(e).__name__}") from e

    async def delete(self, key: str) -> None:
        """Remove a key."""
        try:
            async with self._session_factory() as session:
                await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            raise StorageUnavailableError(f"delete {key!r} failed: {type(e).__name__}") from e
