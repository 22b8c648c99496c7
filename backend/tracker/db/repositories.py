"""Storage protocol interfaces for the sync pipeline."""

from typing import Protocol

from backend.tracker.models.snapshot import OutboxEntry, PersistedSnapshot, SaveSnapshotResult


class KeyValueStore(Protocol):
    """Async string key-value store."""

    async def get(self, key: str) -> str | None:
        """Get a stored value.

        Args:
            key: Storage key

        Returns:
            Stored value or None if absent

        Raises:
            StorageUnavailableError: If the backend cannot be reached
        """
        ...

    async def put(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one.

        Raises:
            StorageUnavailableError: If the backend cannot be reached
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove a key; absent keys are ignored.

        Raises:
            StorageUnavailableError: If the backend cannot be reached
        """
        ...


class LocalSnapshotStorage(Protocol):
    """Local durable store holding one snapshot and one outbox."""

    async def read_snapshot(self) -> PersistedSnapshot | None:
        """Read the last locally saved snapshot (None if absent or malformed)."""
        ...

    async def write_snapshot(self, snapshot: PersistedSnapshot) -> None:
        """Persist the snapshot."""
        ...

    async def read_outbox(self) -> list[OutboxEntry]:
        """Read unsynced writes (empty if absent or malformed)."""
        ...

    async def write_outbox(self, entries: list[OutboxEntry]) -> None:
        """Replace the outbox; an empty list removes it."""
        ...


class RemoteSnapshotStore(Protocol):
    """Remote snapshot store with optimistic concurrency on `updated_at`."""

    async def fetch_snapshot(self) -> PersistedSnapshot | None:
        """Fetch the stored snapshot.

        Returns:
            Snapshot or None if nothing is stored

        Raises:
            RemoteStoreError: If the store cannot be reached
        """
        ...

    async def save_snapshot(
        self,
        snapshot: PersistedSnapshot,
        *,
        base_updated_at: str | None = None,
        force: bool = False,
    ) -> SaveSnapshotResult:
        """Conditionally write a snapshot.

        Rejected as a conflict when a snapshot is stored, `force` is not set,
        `base_updated_at` is given and differs from the stored `updated_at`.

        Args:
            snapshot: Snapshot to store
            base_updated_at: Cursor the write is based on
            force: Skip the cursor check

        Returns:
            Result with the stored snapshot, or the conflicting one

        Raises:
            RemoteStoreError: If the store cannot be reached
        """
        ...
