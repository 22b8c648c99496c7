"""Elapsed time and checkpoint ETA derived from a leg's segments."""

from collections.abc import Sequence

from pydantic import BaseModel

from backend.tracker.models.common import MOVEMENT_TYPES
from backend.tracker.models.segment import Segment
from backend.tracker.segments.store import segment_sort_key
from backend.tracker.utils.time import duration_ms


class ElapsedDurations(BaseModel):
    """Summed segment durations in milliseconds."""

    movement_ms: int
    total_ms: int


class LegMetrics(BaseModel):
    """Display metrics for one team's leg."""

    elapsed_movement_ms: int
    elapsed_total_ms: int
    eta_iso: str | None
    last_city: str | None


def _ordered(segments: Sequence[Segment]) -> list[Segment]:
    # Derivation only; never written back
    return sorted(segments, key=segment_sort_key)


def calculate_elapsed_durations(segments: Sequence[Segment]) -> ElapsedDurations:
    """Sum positive durations, overall and for movement kinds only."""
    movement_ms = 0
    total_ms = 0

    for segment in segments:
        duration = duration_ms(segment.dep_time, segment.arr_time)
        if duration is None or duration <= 0:
            continue
        total_ms += duration
        if segment.type in MOVEMENT_TYPES:
            movement_ms += duration

    return ElapsedDurations(movement_ms=movement_ms, total_ms=total_ms)


def calculate_eta(segments: Sequence[Segment], checkpoint_city: str | None = None) -> str | None:
    """Arrival at the checkpoint city, else arrival of the last segment.

    Matching is case-insensitive on trimmed `to_city`; the last match wins.
    """
    ordered = _ordered(segments)
    if not ordered:
        return None

    if checkpoint_city and checkpoint_city.strip():
        target = checkpoint_city.strip().casefold()
        matches = [s for s in ordered if s.to_city.strip().casefold() == target]
        if matches:
            return matches[-1].arr_time

    return ordered[-1].arr_time


def calculate_leg_metrics(
    segments: Sequence[Segment], *, checkpoint_city: str | None = None
) -> LegMetrics:
    """Derive elapsed time, ETA and last known city for a leg.

    Args:
        segments: Segments of one (team_id, leg_no) group, in any order
        checkpoint_city: Optional checkpoint to compute the ETA against

    Returns:
        LegMetrics; all zero/None for an empty leg
    """
    durations = calculate_elapsed_durations(segments)
    ordered = _ordered(segments)

    last_city = next(
        (s.to_city.strip() for s in reversed(ordered) if s.to_city.strip()),
        None,
    )

    return LegMetrics(
        elapsed_movement_ms=durations.movement_ms,
        elapsed_total_ms=durations.total_ms,
        eta_iso=calculate_eta(ordered, checkpoint_city),
        last_city=last_city,
    )
