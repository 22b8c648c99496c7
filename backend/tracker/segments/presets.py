"""Rule-derived segments anchored to the end of a group's last segment."""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from pydantic import BaseModel

from backend.tracker.models.common import LegNumber, SegmentType, TeamId
from backend.tracker.models.segment import Segment, SegmentInput
from backend.tracker.utils.time import increment_utc_days, normalise_iso, parse_iso, set_utc_time

OVERNIGHT_START_HOUR_UTC = 20
OVERNIGHT_DURATION = timedelta(hours=10)


class SegmentPresetId(str, Enum):
    """Available presets."""

    break_ = "break"
    overnight = "overnight"
    waiting = "waiting"
    job = "job"


@dataclass(frozen=True)
class SegmentPresetDefinition:
    """How a preset derives its segment."""

    id: SegmentPresetId
    label: str
    description: str
    type: SegmentType
    note: str
    duration_minutes: int | None = None


PRESET_DEFINITIONS: dict[SegmentPresetId, SegmentPresetDefinition] = {
    SegmentPresetId.break_: SegmentPresetDefinition(
        id=SegmentPresetId.break_,
        label="Break · 60m",
        description="Mandatory rest window to reset fatigue timers.",
        type=SegmentType.break_,
        note="Mandatory break",
        duration_minutes=60,
    ),
    SegmentPresetId.overnight: SegmentPresetDefinition(
        id=SegmentPresetId.overnight,
        label="Overnight · 20:00→06:00",
        description="Mandatory overnight stop from 20:00 UTC to 06:00 UTC.",
        type=SegmentType.overnight,
        note="Overnight rest block",
    ),
    SegmentPresetId.waiting: SegmentPresetDefinition(
        id=SegmentPresetId.waiting,
        label="Waiting · 30m",
        description="Buffer time when teams are waiting for a connection.",
        type=SegmentType.waiting,
        note="Waiting for transport",
        duration_minutes=30,
    ),
    SegmentPresetId.job: SegmentPresetDefinition(
        id=SegmentPresetId.job,
        label="Job · 2h",
        description="Production or challenge job that pauses travel.",
        type=SegmentType.job,
        note="Job / task requirement",
        duration_minutes=120,
    ),
}


class SegmentPresetMeta(BaseModel):
    """Preset entry shown in the preset picker."""

    id: SegmentPresetId
    label: str
    description: str


SEGMENT_PRESETS: list[SegmentPresetMeta] = [
    SegmentPresetMeta(id=preset.id, label=preset.label, description=preset.description)
    for preset in PRESET_DEFINITIONS.values()
]


@dataclass(frozen=True)
class PresetBuildResult:
    """Either a derived segment or the reason it could not be built."""

    success: bool
    segment: SegmentInput | None = None
    preset: SegmentPresetDefinition | None = None
    reason: str | None = None


def _failure(reason: str) -> PresetBuildResult:
    return PresetBuildResult(success=False, reason=reason)


def build_preset_segment(
    preset_id: SegmentPresetId | str,
    *,
    team_id: TeamId,
    leg_no: LegNumber,
    last_segment: Segment | None,
) -> PresetBuildResult:
    """Derive a preset segment starting where `last_segment` ends.

    Duration presets start exactly at the anchor's arrival. The overnight
    preset starts at 20:00 UTC on the anchor's day, or the next day when the
    anchor arrives after 20:00, and lasts ten hours.

    The result is not validated; callers run it through
    `validate_segment_timing` before committing.

    Args:
        preset_id: Preset to apply
        team_id: Target team
        leg_no: Target leg
        last_segment: Last segment of the (team_id, leg_no) group

    Returns:
        PresetBuildResult with the segment on success, or a reason on failure
    """
    try:
        preset = PRESET_DEFINITIONS[SegmentPresetId(preset_id)]
    except ValueError:
        return _failure("Unknown preset selected.")

    if last_segment is None:
        return _failure("Add at least one segment before applying a preset.")

    base_city = last_segment.to_city.strip()
    if not base_city:
        return _failure(
            "The previous segment must have a destination city to anchor the preset."
        )

    anchor = parse_iso(last_segment.arr_time)
    if anchor is None:
        return _failure("The previous segment has an invalid arrival time.")

    if preset.id == SegmentPresetId.overnight:
        same_day_start = set_utc_time(anchor, OVERNIGHT_START_HOUR_UTC)
        start = same_day_start if anchor <= same_day_start else increment_utc_days(same_day_start, 1)
        end = start + OVERNIGHT_DURATION
    elif preset.duration_minutes:
        start = anchor
        end = anchor + timedelta(minutes=preset.duration_minutes)
    else:
        return _failure("Preset missing duration configuration.")

    segment = SegmentInput(
        team_id=team_id,
        leg_no=leg_no,
        type=preset.type,
        from_city=base_city,
        to_city=base_city,
        dep_time=normalise_iso(start),
        arr_time=normalise_iso(end),
        notes=preset.note,
    )
    return PresetBuildResult(success=True, segment=segment, preset=preset)
