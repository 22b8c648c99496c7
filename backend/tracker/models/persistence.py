"""Persistence status models exposed for display."""

from enum import Enum

from backend.tracker.models.common import CamelModel
from backend.tracker.models.snapshot import SyncConflict


class PersistenceStatus(str, Enum):
    """Sync pipeline state."""

    idle = "idle"
    queued = "queued"
    saving = "saving"
    saved = "saved"
    offline = "offline"
    error = "error"


class PersistenceState(CamelModel):
    """Status tuple rendered by the status badge and conflict dialog."""

    status: PersistenceStatus = PersistenceStatus.idle
    last_saved_at: str | None = None
    outbox_size: int = 0
    sync_error: str | None = None
    conflict: SyncConflict | None = None
