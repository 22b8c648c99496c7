"""Snapshot models - units of durable storage and remote sync."""

from backend.tracker.models.common import CamelModel
from backend.tracker.models.segment import Segment


class PersistedSnapshot(CamelModel):
    """Full segment collection stamped with its update time."""

    segments: list[Segment]
    updated_at: str


class OutboxEntry(PersistedSnapshot):
    """Local write not yet confirmed by the remote store."""

    queued_at: str


class SyncConflict(CamelModel):
    """Divergence between local and remote state awaiting a user decision."""

    remote_segments: list[Segment]
    remote_updated_at: str
    local_segments: list[Segment]
    local_updated_at: str | None


class SaveSnapshotResult(CamelModel):
    """Outcome of a conditional remote write.

    Exactly one of `snapshot` (accepted) or `conflict` (stored snapshot that
    caused the rejection) is set.
    """

    ok: bool
    snapshot: PersistedSnapshot | None = None
    conflict: PersistedSnapshot | None = None


class SaveSnapshotRequest(CamelModel):
    """Body of a conditional remote write."""

    snapshot: PersistedSnapshot
    base_updated_at: str | None = None
    force: bool = False
