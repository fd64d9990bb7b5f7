"""Service hours of the support team.

All functions take the instant explicitly; none of them reads the clock.
"""

from datetime import datetime, timezone, tzinfo
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "Asia/Bangkok"

# weekday() -> (open hour, close hour); close is exclusive, 24 means midnight
BUSINESS_HOURS = {
    0: (9, 24),  # Monday
    1: (9, 24),
    2: (9, 24),
    3: (9, 24),
    4: (9, 24),
    5: (9, 24),  # Saturday
    6: (9, 18),  # Sunday
}

TimeZoneLike = Union[str, tzinfo]


def resolve_timezone(tz: TimeZoneLike) -> tzinfo:
    if isinstance(tz, tzinfo):
        return tz
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone: {tz}") from e


def to_local_time(now: datetime, tz: TimeZoneLike = DEFAULT_TIMEZONE) -> datetime:
    """Convert an instant to the business time zone. Naive datetimes are treated as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_timezone(tz))


def from_epoch_ms(value_ms: int) -> datetime:
    return datetime.fromtimestamp(value_ms / 1000, tz=timezone.utc)


def format_local_time(local: datetime) -> str:
    return local.strftime("%Y-%m-%d %H:%M:%S")


def is_within_business_hours(now: datetime, tz: TimeZoneLike = DEFAULT_TIMEZONE) -> bool:
    """True if the support team is on duty at `now` in the given time zone."""
    local = to_local_time(now, tz)
    open_hour, close_hour = BUSINESS_HOURS[local.weekday()]
    current_time = local.hour + local.minute / 60
    return open_hour <= current_time < close_hour
