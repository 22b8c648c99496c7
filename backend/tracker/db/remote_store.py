"""Remote snapshot store backed by any key-value store."""

import asyncio
import logging

from pydantic import ValidationError

from backend.tracker.db.repositories import KeyValueStore
from backend.tracker.models.snapshot import PersistedSnapshot, SaveSnapshotResult

logger = logging.getLogger(__name__)


class KeyValueRemoteStore:
    """RemoteSnapshotStore implementation holding one snapshot under one key.

    Conditional writes are serialized so the cursor check and the write
    happen atomically.
    """

    def __init__(self, kv: KeyValueStore, key: str = "cloud:segments") -> None:
        """Initialize store.

        Args:
            kv: Backing key-value store
            key: Key holding the serialized snapshot
        """
        self._kv = kv
        self._key = key
        self._lock = asyncio.Lock()

    async def fetch_snapshot(self) -> PersistedSnapshot | None:
        """Fetch the stored snapshot; malformed data reads as absent."""
        raw = await self._kv.get(self._key)
        if not raw:
            return None
        try:
            return PersistedSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Failed to parse cloud snapshot: %s", e.error_count())
            return None

    async def save_snapshot(
        self,
        snapshot: PersistedSnapshot,
        *,
        base_updated_at: str | None = None,
        force: bool = False,
    ) -> SaveSnapshotResult:
        """Store `snapshot` unless the stored one moved past `base_updated_at`."""
        async with self._lock:
            existing = await self.fetch_snapshot()

            if (
                not force
                and existing is not None
                and base_updated_at
                and existing.updated_at != base_updated_at
            ):
                logger.info(
                    "Rejected stale write (base=%s, stored=%s)",
                    base_updated_at,
                    existing.updated_at,
                )
                return SaveSnapshotResult(ok=False, conflict=existing)

            await self._kv.put(self._key, snapshot.model_dump_json(by_alias=True))
            return SaveSnapshotResult(ok=True, snapshot=snapshot)
