"""Timestamp parsing and duration normalization for the timeline engine.

All engine times are integer epoch milliseconds in UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from tourplan.models import TimestampValue

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS

# Floor applied to zero/negative/missing durations so items stay visible
MIN_DURATION_MS = 2 * HOUR_MS

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


# Timestamps outside [1000-01-01, 9000-01-01) UTC are treated as unparsable
MIN_TIMESTAMP_MS = to_epoch_ms(datetime(1000, 1, 1, tzinfo=timezone.utc))
MAX_TIMESTAMP_MS = to_epoch_ms(datetime(9000, 1, 1, tzinfo=timezone.utc))


def from_epoch_ms(ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=ms)


def parse_timestamp(value: TimestampValue) -> int | None:
    """Parse an ISO-like timestamp to epoch milliseconds.

    Accepts ISO 8601 strings (a trailing "Z" is allowed), datetime objects and
    date objects. Dates and date-only strings resolve to UTC midnight.

    Returns:
        Epoch milliseconds, or None when the value is absent, unparsable or
        outside the supported year range
    """
    ms = _parse_ms(value)
    if ms is None or not MIN_TIMESTAMP_MS <= ms < MAX_TIMESTAMP_MS:
        return None
    return ms


def _parse_ms(value: TimestampValue) -> int | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_epoch_ms(value)
    if isinstance(value, date):
        return to_epoch_ms(datetime(value.year, value.month, value.day))
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    try:
        return to_epoch_ms(datetime.fromisoformat(text))
    except ValueError:
        return None


def resolve_end(start: int, raw_end: int | None, min_duration_ms: int = MIN_DURATION_MS) -> int:
    """Resolve an item's end, enforcing the minimum-duration floor.

    A missing end, or one at or before the start, becomes start + min_duration_ms.
    """
    if raw_end is None or raw_end <= start:
        return start + min_duration_ms
    return raw_end


def start_of_day(ms: int) -> int:
    """Floor a timestamp to UTC midnight."""
    return ms - ms % DAY_MS


def start_of_hour(ms: int) -> int:
    """Floor a timestamp to the top of the hour."""
    return ms - ms % HOUR_MS


def start_of_week(ms: int) -> int:
    """Floor a timestamp to Monday 00:00 UTC."""
    day = start_of_day(ms)
    return day - from_epoch_ms(day).weekday() * DAY_MS


def start_of_month(ms: int) -> int:
    """Floor a timestamp to the first of its month, 00:00 UTC."""
    moment = from_epoch_ms(ms)
    return to_epoch_ms(datetime(moment.year, moment.month, 1, tzinfo=timezone.utc))


def add_months(ms: int, months: int) -> int:
    """Move a first-of-month timestamp forward by whole months."""
    moment = from_epoch_ms(ms)
    index = moment.year * 12 + moment.month - 1 + months
    return to_epoch_ms(datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc))


def iso_week_number(ms: int) -> int:
    """ISO 8601 week number of the UTC day containing ms."""
    return from_epoch_ms(ms).isocalendar()[1]


def format_iso(ms: int) -> str:
    """Format epoch milliseconds as an ISO 8601 UTC string with a Z suffix."""
    return from_epoch_ms(ms).strftime("%Y-%m-%dT%H:%M:%SZ")
