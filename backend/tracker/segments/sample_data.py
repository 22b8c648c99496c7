"""Seed segments loaded on first start and restored by reset()."""

from backend.tracker.models.common import SegmentType
from backend.tracker.models.segment import Segment


def _segment(
    segment_id: str,
    team_id: str,
    order_idx: int,
    segment_type: SegmentType,
    from_city: str,
    to_city: str,
    dep_time: str,
    arr_time: str,
    *,
    cost: float | None = None,
    notes: str | None = None,
) -> Segment:
    return Segment(
        id=segment_id,
        team_id=team_id,
        leg_no=1,
        type=segment_type,
        from_city=from_city,
        to_city=to_city,
        dep_time=dep_time,
        arr_time=arr_time,
        cost=cost,
        currency="EUR" if cost is not None else None,
        notes=notes,
        order_idx=order_idx,
    )


SAMPLE_SEGMENTS: list[Segment] = [
    # Team A: three-stop morning into Santarém
    _segment(
        "A-LEG1-SEED01", "A", 0, SegmentType.bus, "Lisbon", "Vila Franca de Xira",
        "2025-10-27T08:00:00Z", "2025-10-27T09:10:00Z", cost=6.5,
    ),
    _segment(
        "A-LEG1-SEED02", "A", 1, SegmentType.private_lift, "Vila Franca de Xira", "Cartaxo",
        "2025-10-27T09:40:00Z", "2025-10-27T10:30:00Z", notes="Lift from a farmer",
    ),
    _segment(
        "A-LEG1-SEED03", "A", 2, SegmentType.walk, "Cartaxo", "Santarém",
        "2025-10-27T10:45:00Z", "2025-10-27T13:15:00Z",
    ),
    # Team B
    _segment(
        "B-LEG1-SEED01", "B", 0, SegmentType.train, "Lisbon", "Coimbra",
        "2025-10-27T07:30:00Z", "2025-10-27T09:20:00Z", cost=24.0,
    ),
    _segment(
        "B-LEG1-SEED02", "B", 1, SegmentType.taxi, "Coimbra", "Leiria",
        "2025-10-27T10:00:00Z", "2025-10-27T11:05:00Z", cost=58.0,
    ),
    # Team C
    _segment(
        "C-LEG1-SEED01", "C", 0, SegmentType.bus, "Lisbon", "Setúbal",
        "2025-10-27T08:15:00Z", "2025-10-27T09:05:00Z", cost=4.8,
    ),
    _segment(
        "C-LEG1-SEED02", "C", 1, SegmentType.boat, "Setúbal", "Tróia",
        "2025-10-27T09:30:00Z", "2025-10-27T10:00:00Z", cost=7.2,
    ),
    # Team D
    _segment(
        "D-LEG1-SEED01", "D", 0, SegmentType.walk, "Lisbon", "Cais do Sodré",
        "2025-10-27T08:00:00Z", "2025-10-27T08:30:00Z",
    ),
    _segment(
        "D-LEG1-SEED02", "D", 1, SegmentType.train, "Cais do Sodré", "Cascais",
        "2025-10-27T08:45:00Z", "2025-10-27T09:25:00Z", cost=2.3,
    ),
    _segment(
        "D-LEG1-SEED03", "D", 2, SegmentType.job, "Cascais", "Cascais",
        "2025-10-27T09:30:00Z", "2025-10-27T11:30:00Z", notes="Sell 20 postcards",
    ),
    # Team E
    _segment(
        "E-LEG1-SEED01", "E", 0, SegmentType.private_lift, "Lisbon", "Évora",
        "2025-10-27T09:00:00Z", "2025-10-27T10:40:00Z",
    ),
    _segment(
        "E-LEG1-SEED02", "E", 1, SegmentType.break_, "Évora", "Évora",
        "2025-10-27T10:40:00Z", "2025-10-27T11:40:00Z", notes="Mandatory break",
    ),
]
