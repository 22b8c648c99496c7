"""Timing validation for a candidate segment against its group siblings."""

from collections.abc import Sequence

from backend.tracker.models.segment import Segment, SegmentInput
from backend.tracker.models.validation import SegmentValidationCode, SegmentValidationIssue
from backend.tracker.utils.time import parse_iso


def validate_segment_timing(
    candidate: SegmentInput,
    siblings: Sequence[Segment],
    *,
    ignore_id: str | None = None,
) -> list[SegmentValidationIssue]:
    """Check a candidate's time window before it is committed.

    Checks:
    1. Departure and arrival parse as ISO 8601
    2. Arrival is strictly later than departure
    3. The half-open window [dep, arr) does not intersect any sibling window

    Siblings must already be filtered to the candidate's (team_id, leg_no)
    group. Only the first overlapping sibling is reported.

    Args:
        candidate: Segment being added or edited
        siblings: Committed segments of the same group
        ignore_id: Sibling to skip (the segment being edited)

    Returns:
        List of issues (empty if the candidate may be committed)
    """
    issues: list[SegmentValidationIssue] = []

    dep = parse_iso(candidate.dep_time)
    arr = parse_iso(candidate.arr_time)

    if dep is None:
        issues.append(
            SegmentValidationIssue(
                code=SegmentValidationCode.INVALID_DEPARTURE,
                message="Departure time must be a valid ISO 8601 string.",
            )
        )

    if arr is None:
        issues.append(
            SegmentValidationIssue(
                code=SegmentValidationCode.INVALID_ARRIVAL,
                message="Arrival time must be a valid ISO 8601 string.",
            )
        )

    # Overlap needs both endpoints
    if dep is None or arr is None:
        return issues

    if arr <= dep:
        issues.append(
            SegmentValidationIssue(
                code=SegmentValidationCode.TIME_ORDER,
                message="Arrival must be later than departure.",
            )
        )

    for sibling in siblings:
        if ignore_id is not None and sibling.id == ignore_id:
            continue

        other_dep = parse_iso(sibling.dep_time)
        other_arr = parse_iso(sibling.arr_time)
        if other_dep is None or other_arr is None:
            continue

        # Touching endpoints do not overlap
        if dep < other_arr and arr > other_dep:
            issues.append(
                SegmentValidationIssue(
                    code=SegmentValidationCode.OVERLAP,
                    message=f"Overlaps with {sibling.from_city} → {sibling.to_city}.",
                    related_segment_id=sibling.id,
                )
            )
            break

    return issues
