"""Sortable timestamp strings used as the `time` column."""
from datetime import datetime, timedelta, timezone

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def tz_from_offset(hours: int) -> timezone:
    return timezone(timedelta(hours=hours))


def now_str(tz: timezone) -> str:
    """Current time as "YYYY-MM-DD HH:MM:SS" in the given zone."""
    return datetime.now(tz).strftime(TIME_FORMAT)


def from_unix(timestamp: int, tz: timezone) -> str:
    """Convert a unix timestamp to the sortable format.

    Raises ValueError for timestamps before the epoch or out of range.
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp before 1970: {timestamp}")
    try:
        return datetime.fromtimestamp(timestamp, tz=tz).strftime(TIME_FORMAT)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Timestamp out of range: {timestamp}") from e
