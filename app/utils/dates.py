"""Timestamp helpers shared by the store adapters, filters and analytics."""
from datetime import date, datetime, timezone, tzinfo
from typing import Union
from zoneinfo import ZoneInfo

# Fixed width so that lexical order of stored strings equals chronological order
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

DateLike = Union[str, datetime, date]


def get_zone(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_date_only(value: DateLike) -> bool:
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    return len(value.strip()) == 10


def to_datetime(value: DateLike, tz: tzinfo = timezone.utc) -> datetime:
    """
    Coerce an ISO string, date or datetime into an aware datetime.
    Naive values are interpreted in ``tz``. Raises ValueError when unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f"Invalid date value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
