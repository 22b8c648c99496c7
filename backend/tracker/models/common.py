"""Common types and enums shared across all models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

TeamId = Literal["A", "B", "C", "D", "E"]
LegNumber = Literal[1, 2, 3, 4, 5, 6]

TEAM_IDS: tuple[TeamId, ...] = ("A", "B", "C", "D", "E")
LEG_NUMBERS: tuple[LegNumber, ...] = (1, 2, 3, 4, 5, 6)


class CamelModel(BaseModel):
    """Base model persisted and exchanged with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Team(BaseModel):
    """Competing team."""

    id: TeamId
    name: str


TEAMS: list[Team] = [Team(id=team_id, name=f"Team {team_id}") for team_id in TEAM_IDS]


class SegmentType(str, Enum):
    """Kind of itinerary segment."""

    bus = "bus"
    taxi = "taxi"
    private_lift = "privateLift"
    train = "train"
    boat = "boat"
    walk = "walk"
    break_ = "break"
    overnight = "overnight"
    waiting = "waiting"
    job = "job"


# Segment kinds that count as time spent moving
MOVEMENT_TYPES: frozenset[SegmentType] = frozenset(
    {
        SegmentType.bus,
        SegmentType.taxi,
        SegmentType.private_lift,
        SegmentType.train,
        SegmentType.boat,
        SegmentType.walk,
    }
)
