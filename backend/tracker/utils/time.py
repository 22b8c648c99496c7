"""ISO 8601 and UTC time helpers."""

from datetime import UTC, datetime, timedelta


def utc_now_iso() -> str:
    """Current instant as a normalised ISO string."""
    return normalise_iso(datetime.now(UTC))


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 string into an aware UTC datetime.

    Naive values are read as UTC. Returns None for empty or unparseable input.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def normalise_iso(moment: datetime) -> str:
    """Format a datetime as `YYYY-MM-DDTHH:MM:SSZ` in UTC.

    Milliseconds are kept only when non-zero; finer precision is dropped.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    millis = moment.microsecond // 1000
    if millis:
        return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{millis:03d}Z"
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def set_utc_time(moment: datetime, hour: int, minute: int = 0) -> datetime:
    """Same UTC day as `moment`, at the given wall-clock time."""
    return moment.astimezone(UTC).replace(hour=hour, minute=minute, second=0, microsecond=0)


def increment_utc_days(moment: datetime, days: int) -> datetime:
    return moment + timedelta(days=days)


def duration_ms(dep_time: str, arr_time: str) -> int | None:
    """Milliseconds between two ISO strings, or None if either is unparseable."""
    dep = parse_iso(dep_time)
    arr = parse_iso(arr_time)
    if dep is None or arr is None:
        return None
    return (arr - dep) // timedelta(milliseconds=1)


def format_duration(ms: int) -> str:
    """Render a duration as `"5h 30m"`, `"16h"` or `"45m"`."""
    total_minutes = max(0, ms) // 60_000
    hours, minutes = divmod(total_minutes, 60)
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


def format_utc_datetime(value: str) -> str:
    """Short `DD-MM @ HH:MM` UTC label; unparseable input is returned as-is."""
    parsed = parse_iso(value)
    if parsed is None:
        return value
    return parsed.strftime("%d-%m @ %H:%M")
