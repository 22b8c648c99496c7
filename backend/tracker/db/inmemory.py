"""In-memory implementations of storage interfaces."""

from backend.tracker.db.remote_store import KeyValueRemoteStore


class InMemoryKeyValueStore:
    """In-memory implementation of KeyValueStore."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        """Get a stored value."""
        return self._values.get(key)

    async def put(self, key: str, value: str) -> None:
        """Store a value."""
        self._values[key] = value

    async def delete(self, key: str) -> None:
        """Remove a key."""
        self._values.pop(key, None)


class InMemoryRemoteStore(KeyValueRemoteStore):
    """Remote snapshot store kept in process memory."""

    def __init__(self, key: str = "cloud:segments") -> None:
        super().__init__(InMemoryKeyValueStore(), key=key)
