"""Segment models - the atomic unit of a team's route."""

from pydantic import ConfigDict, Field

from backend.tracker.models.common import CamelModel, LegNumber, SegmentType, TeamId


class SegmentInput(CamelModel):
    """Segment fields supplied by a caller before id and position are assigned."""

    team_id: TeamId
    leg_no: LegNumber
    type: SegmentType
    from_city: str
    to_city: str
    dep_time: str  # ISO 8601, UTC semantics
    arr_time: str  # ISO 8601, UTC semantics
    cost: float | None = Field(None, ge=0)
    currency: str | None = None
    notes: str | None = None

    @property
    def group_key(self) -> tuple[str, int]:
        """(team_id, leg_no) grouping key."""
        return (self.team_id, self.leg_no)


class Segment(SegmentInput):
    """Committed segment with identity and position within its group."""

    model_config = ConfigDict(frozen=True)

    id: str
    order_idx: int = Field(..., ge=0)
