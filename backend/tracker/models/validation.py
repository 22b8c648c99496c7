"""Validation issue models - timing problems found before a mutation is committed."""

from enum import Enum

from backend.tracker.models.common import CamelModel


class SegmentValidationCode(str, Enum):
    """Categories of segment timing problems."""

    INVALID_DEPARTURE = "invalid-departure"
    INVALID_ARRIVAL = "invalid-arrival"
    TIME_ORDER = "time-order"
    OVERLAP = "overlap"


class SegmentValidationIssue(CamelModel):
    """A timing problem that must block the mutation."""

    code: SegmentValidationCode
    message: str  # Human-readable, one sentence
    related_segment_id: str | None = None
