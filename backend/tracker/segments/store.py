"""Ordering engine - authoritative in-memory segment collection.

Segments are partitioned by (team_id, leg_no). Every committed mutation
renumbers the affected group(s) so order_idx is dense and zero-based, then
emits one SegmentsChanged event carrying the full collection.

Renumbering sorts by the existing order_idx first and falls back to
(dep_time, arr_time, id) only to break ties, so an explicit reorder survives
later mutations. Timing invariants are not enforced here; callers validate
with `validate_segment_timing` before mutating.
"""

import logging
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from backend.tracker.models.common import LegNumber, TeamId
from backend.tracker.models.segment import Segment, SegmentInput
from backend.tracker.utils.time import parse_iso

logger = logging.getLogger(__name__)

GroupKey = tuple[str, int]


class ChangeOrigin(str, Enum):
    """Where a change to the collection came from."""

    user = "user"
    hydration = "hydration"
    remote = "remote"


@dataclass(frozen=True)
class SegmentsChanged:
    """Event emitted after every committed mutation."""

    segments: tuple[Segment, ...]
    origin: ChangeOrigin


SegmentsListener = Callable[[SegmentsChanged], None]


def create_segment_id(team_id: TeamId, leg_no: LegNumber) -> str:
    """Generate an id like `A-LEG1-3F9C2B`."""
    suffix = uuid.uuid4().hex[:6].upper()
    return f"{team_id}-LEG{leg_no}-{suffix}"


def _time_key(value: str) -> tuple[int, datetime | str]:
    # Unparseable timestamps sort after valid ones
    parsed = parse_iso(value)
    if parsed is None:
        return (1, value)
    return (0, parsed)


def segment_sort_key(segment: Segment) -> tuple[Any, ...]:
    """Tie-break chain: order_idx, dep_time, arr_time, id."""
    return (
        segment.order_idx,
        _time_key(segment.dep_time),
        _time_key(segment.arr_time),
        segment.id,
    )


def resequence(segments: Sequence[Segment], groups: Iterable[GroupKey]) -> list[Segment]:
    """Renumber order_idx densely within each of the given groups.

    Segments outside `groups` are returned untouched; collection order is kept.
    """
    positions: dict[str, int] = {}
    for key in set(groups):
        members = sorted((s for s in segments if s.group_key == key), key=segment_sort_key)
        for index, segment in enumerate(members):
            positions[segment.id] = index

    return [
        segment.model_copy(update={"order_idx": positions[segment.id]})
        if segment.id in positions and positions[segment.id] != segment.order_idx
        else segment
        for segment in segments
    ]


class SegmentStore:
    """Explicit state container for all teams' segments.

    Owned by the composition root and shared with the sync pipeline.
    """

    def __init__(
        self,
        initial: Sequence[Segment] = (),
        *,
        default_currency: str | None = "EUR",
    ) -> None:
        """Initialize the store.

        Args:
            initial: Seed collection, also restored by `reset()`
            default_currency: Currency applied when an input omits one
        """
        self._seed: tuple[Segment, ...] = tuple(initial)
        self._default_currency = default_currency
        self._segments: list[Segment] = self._resequence_all(self._seed)
        self._listeners: list[SegmentsListener] = []

    # Queries

    @property
    def segments(self) -> list[Segment]:
        """Full collection (copy)."""
        return list(self._segments)

    def get(self, segment_id: str) -> Segment | None:
        return next((s for s in self._segments if s.id == segment_id), None)

    def group(self, team_id: TeamId, leg_no: LegNumber) -> list[Segment]:
        """Segments of one group ordered by order_idx."""
        key = (team_id, leg_no)
        return sorted((s for s in self._segments if s.group_key == key), key=segment_sort_key)

    def last_segment(self, team_id: TeamId, leg_no: LegNumber) -> Segment | None:
        members = self.group(team_id, leg_no)
        return members[-1] if members else None

    # Subscription

    def subscribe(self, listener: SegmentsListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, segments: list[Segment], origin: ChangeOrigin) -> None:
        self._segments = segments
        event = SegmentsChanged(segments=tuple(segments), origin=origin)
        for listener in list(self._listeners):
            listener(event)

    # Mutations

    def add_segment(self, segment_input: SegmentInput) -> Segment:
        """Append a new segment to the end of its group.

        Args:
            segment_input: Validated segment fields

        Returns:
            The committed segment with its final order_idx
        """
        key = segment_input.group_key
        group_size = sum(1 for s in self._segments if s.group_key == key)

        fields = segment_input.model_dump()
        if fields.get("currency") is None:
            fields["currency"] = self._default_currency

        segment = Segment(
            **fields,
            id=create_segment_id(segment_input.team_id, segment_input.leg_no),
            order_idx=group_size,
        )

        updated = resequence([*self._segments, segment], [key])
        self._commit(updated, ChangeOrigin.user)
        return next(s for s in updated if s.id == segment.id)

    def update_segment(self, segment_id: str, changes: dict[str, Any]) -> None:
        """Merge `changes` into an existing segment; unknown ids are ignored.

        The id cannot be changed. Moving a segment to another team or leg
        renumbers both groups.
        """
        target = self.get(segment_id)
        if target is None:
            logger.debug("update_segment: unknown id %s", segment_id)
            return

        changes = {k: v for k, v in changes.items() if k != "id"}
        # Re-validate merged fields so enum and literal fields stay typed
        merged = Segment.model_validate({**target.model_dump(), **changes})

        updated = [merged if s.id == segment_id else s for s in self._segments]
        self._commit(resequence(updated, {target.group_key, merged.group_key}), ChangeOrigin.user)

    def delete_segment(self, segment_id: str) -> None:
        """Remove a segment and compact its group; unknown ids are ignored."""
        target = self.get(segment_id)
        if target is None:
            logger.debug("delete_segment: unknown id %s", segment_id)
            return

        remaining = [s for s in self._segments if s.id != segment_id]
        self._commit(resequence(remaining, [target.group_key]), ChangeOrigin.user)

    def insert_segment(self, segment: Segment, index: int) -> None:
        """Reinstate a captured segment at a position within its group.

        Used by undo-delete. The index is clamped to [0, group size]; other
        groups are untouched.
        """
        others = [s for s in self._segments if s.id != segment.id]
        key = segment.group_key
        members = sorted((s for s in others if s.group_key == key), key=segment_sort_key)

        position = max(0, min(index, len(members)))
        members.insert(position, segment)
        positions = {s.id: i for i, s in enumerate(members)}

        updated = [
            s.model_copy(update={"order_idx": positions[s.id]}) if s.group_key == key else s
            for s in others
        ]
        updated.append(segment.model_copy(update={"order_idx": positions[segment.id]}))
        self._commit(updated, ChangeOrigin.user)

    def reorder_segments(
        self, team_id: TeamId, leg_no: LegNumber, ordered_ids: Sequence[str]
    ) -> None:
        """Apply an explicit order (drag-and-drop) to one group.

        Ids outside the group are ignored. Group members missing from
        `ordered_ids` keep their relative order after the listed ones.
        """
        key = (team_id, leg_no)
        members = self.group(team_id, leg_no)
        member_ids = {s.id for s in members}

        explicit = [sid for sid in dict.fromkeys(ordered_ids) if sid in member_ids]
        listed = set(explicit)
        final_order = explicit + [s.id for s in members if s.id not in listed]
        positions = {sid: i for i, sid in enumerate(final_order)}

        updated = [
            s.model_copy(update={"order_idx": positions[s.id]}) if s.group_key == key else s
            for s in self._segments
        ]
        self._commit(updated, ChangeOrigin.user)

    def replace_segments(self, segments: Sequence[Segment]) -> None:
        """Replace the whole collection as a user change."""
        self.apply_snapshot(segments, origin=ChangeOrigin.user)

    def apply_snapshot(
        self, segments: Sequence[Segment], *, origin: ChangeOrigin = ChangeOrigin.user
    ) -> None:
        """Replace the whole collection and renumber every group.

        Args:
            segments: New collection
            origin: `hydration` and `remote` changes are not autosaved
        """
        self._commit(self._resequence_all(segments), origin)

    def reset(self) -> None:
        """Restore the seed collection."""
        self._commit(self._resequence_all(self._seed), ChangeOrigin.user)

    @staticmethod
    def _resequence_all(segments: Iterable[Segment]) -> list[Segment]:
        collection = list(segments)
        return resequence(collection, {s.group_key for s in collection})
