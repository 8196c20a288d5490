"""Wall-clock helpers for the fixed UTC+9 local time used by deadlines and reminders."""

from datetime import UTC, date, datetime, timedelta, timezone
from typing import NamedTuple

from src.core.config import Constants


LOCAL_TZ = timezone(timedelta(hours=Constants.LOCAL_UTC_OFFSET_HOURS))


class LocalTime(NamedTuple):
    """Projection of an instant into local wall-clock terms."""

    date_str: str  # YYYY-MM-DD
    hour: int


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def to_local(instant: datetime) -> datetime:
    """Convert an aware instant into the local offset.

    Naive datetimes are taken to be UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(LOCAL_TZ)


def local_time(instant: datetime) -> LocalTime:
    """Return the local (date string, hour) pair for an instant."""
    local = to_local(instant)
    return LocalTime(date_str=local.strftime("%Y-%m-%d"), hour=local.hour)


def local_today(instant: datetime) -> date:
    """Return the local calendar date for an instant."""
    return to_local(instant).date()
