"""Human-readable summary of a sync conflict."""

from backend.tracker.models.segment import Segment
from backend.tracker.models.snapshot import SyncConflict
from backend.tracker.utils.time import format_utc_datetime


def _route(segment: Segment) -> str:
    return f"{segment.type.value} {segment.from_city} → {segment.to_city}"


def _window(segment: Segment) -> str:
    return f"{format_utc_datetime(segment.dep_time)} → {format_utc_datetime(segment.arr_time)}"


def describe_conflict_differences(conflict: SyncConflict, limit: int = 5) -> list[str]:
    """Summarise what the cloud copy adds, updates and removes.

    Remote segments are walked first (additions and updates, in remote order),
    then local-only segments (removals).

    Args:
        conflict: Conflict to describe
        limit: Maximum number of lines

    Returns:
        Up to `limit` lines such as
        "Cloud updated bus Lisbon → Porto (time 27-10 @ 08:00→27-10 @ 09:00 / ...)"
    """
    local_by_id = {segment.id: segment for segment in conflict.local_segments}
    remote_ids = {segment.id for segment in conflict.remote_segments}
    summaries: list[str] = []

    for remote in conflict.remote_segments:
        local = local_by_id.get(remote.id)
        if local is None:
            summaries.append(f"Cloud added {_route(remote)} ({_window(remote)})")
            continue

        changes: list[str] = []
        if remote.dep_time != local.dep_time or remote.arr_time != local.arr_time:
            changes.append(
                f"time {format_utc_datetime(local.dep_time)}→{format_utc_datetime(remote.dep_time)}"
                f" / {format_utc_datetime(local.arr_time)}→{format_utc_datetime(remote.arr_time)}"
            )
        if remote.order_idx != local.order_idx:
            changes.append(f"position {local.order_idx + 1}→{remote.order_idx + 1}")
        if remote.type != local.type:
            changes.append(f"type {local.type.value}→{remote.type.value}")

        if changes:
            summaries.append(f"Cloud updated {_route(remote)} ({'; '.join(changes)})")

    for local in conflict.local_segments:
        if local.id not in remote_ids:
            summaries.append(f"Cloud removed {_route(local)} ({_window(local)})")

    return summaries[:limit]
