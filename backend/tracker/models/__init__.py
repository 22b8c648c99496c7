"""Models package - re-exports for convenience."""

from backend.tracker.models.common import (
    LEG_NUMBERS,
    MOVEMENT_TYPES,
    TEAM_IDS,
    TEAMS,
    CamelModel,
    LegNumber,
    SegmentType,
    Team,
    TeamId,
)
from backend.tracker.models.persistence import PersistenceState, PersistenceStatus
from backend.tracker.models.segment import Segment, SegmentInput
from backend.tracker.models.snapshot import (
    OutboxEntry,
    PersistedSnapshot,
    SaveSnapshotRequest,
    SaveSnapshotResult,
    SyncConflict,
)
from backend.tracker.models.validation import SegmentValidationCode, SegmentValidationIssue

__all__ = [
    # Common
    "CamelModel",
    "TeamId",
    "LegNumber",
    "TEAM_IDS",
    "LEG_NUMBERS",
    "Team",
    "TEAMS",
    "SegmentType",
    "MOVEMENT_TYPES",
    # Segment
    "Segment",
    "SegmentInput",
    # Snapshot
    "PersistedSnapshot",
    "OutboxEntry",
    "SyncConflict",
    "SaveSnapshotRequest",
    "SaveSnapshotResult",
    # Persistence
    "PersistenceStatus",
    "PersistenceState",
    # Validation
    "SegmentValidationCode",
    "SegmentValidationIssue",
]
