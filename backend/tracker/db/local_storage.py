"""Local durable snapshot and outbox storage with in-memory fallback."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from backend.tracker.db.inmemory import InMemoryKeyValueStore
from backend.tracker.db.repositories import KeyValueStore
from backend.tracker.exceptions import StorageUnavailableError
from backend.tracker.models.snapshot import OutboxEntry, PersistedSnapshot

logger = logging.getLogger(__name__)

R = TypeVar("R")

_outbox_adapter = TypeAdapter(list[OutboxEntry])


class LocalSegmentsStorage:
    """LocalSnapshotStorage over a key-value store.

    When the primary store is unavailable the storage switches to an
    in-memory store for the rest of the session instead of failing.
    """

    def __init__(
        self,
        primary: KeyValueStore,
        *,
        snapshot_key: str = "segments:snapshot",
        outbox_key: str = "segments:outbox",
        fallback: KeyValueStore | None = None,
    ) -> None:
        """Initialize storage.

        Args:
            primary: Durable key-value store
            snapshot_key: Key of the snapshot value
            outbox_key: Key of the outbox value
            fallback: Store used once the primary fails (in-memory by default)
        """
        self._active: KeyValueStore = primary
        self._fallback: KeyValueStore = fallback or InMemoryKeyValueStore()
        self._degraded = False
        self._snapshot_key = snapshot_key
        self._outbox_key = outbox_key

    @property
    def degraded(self) -> bool:
        """True once the storage runs on the fallback store."""
        return self._degraded

    async def _call(self, op: Callable[[KeyValueStore], Awaitable[R]]) -> R:
        if self._degraded:
            return await op(self._active)
        try:
            return await op(self._active)
        except StorageUnavailableError as e:
            logger.warning("Local store unavailable, falling back to memory: %s", e)
            self._active = self._fallback
            self._degraded = True
            return await op(self._active)

    async def read_snapshot(self) -> PersistedSnapshot | None:
        """Read the snapshot; malformed data reads as absent."""
        raw = await self._call(lambda kv: kv.get(self._snapshot_key))
        if not raw:
            return None
        try:
            return PersistedSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Failed to parse stored snapshot: %s", e.error_count())
            return None

    async def write_snapshot(self, snapshot: PersistedSnapshot) -> None:
        """Persist the snapshot."""
        payload = snapshot.model_dump_json(by_alias=True)
        await self._call(lambda kv: kv.put(self._snapshot_key, payload))

    async def read_outbox(self) -> list[OutboxEntry]:
        """Read the outbox; malformed data reads as empty."""
        raw = await self._call(lambda kv: kv.get(self._outbox_key))
        if not raw:
            return []
        try:
            return _outbox_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Failed to parse stored outbox: %s", e.error_count())
            return []

    async def write_outbox(self, entries: list[OutboxEntry]) -> None:
        """Replace the outbox; an empty list removes the key."""
        if not entries:
            await self._call(lambda kv: kv.delete(self._outbox_key))
            return

        payload = json.dumps([entry.model_dump(mode="json", by_alias=True) for entry in entries])
        await self._call(lambda kv: kv.put(self._outbox_key, payload))
