"""Deadline parsing utilities for task reminders."""

import re
from datetime import datetime, timedelta

from pydantic import ValidationError

from src.core.clock import LOCAL_TZ, local_today, to_local, utc_now
from src.core.config import Constants
from src.domain.task import Deadline


# X月X日 / X月X日X時 / X月X日X時X分 (X is a 1-2 digit numeral)
_ABSOLUTE_PATTERN = re.compile(r"^(\d{1,2})月(\d{1,2})日(?:\s*(\d{1,2})時)?(?:\s*(\d{1,2})分)?$")

_RELATIVE_JA_PATTERN = re.compile(
    r"^(?:(今日|きょう|明日|あした|明後日|あさって)|(\d{1,3})日後)"
    r"(?:\s*(\d{1,2})時)?(?:\s*(\d{1,2})分)?$"
)

_RELATIVE_EN_PATTERN = re.compile(
    r"^(?:(today|tomorrow|day after tomorrow|day-after-tomorrow)"
    r"|(\d{1,3})\s+days?\s+from\s+now|in\s+(\d{1,3})\s+days?)"
    r"(?:\s+(?:at\s+)?(\d{1,2})(?::(\d{2}))?)?$",
    re.IGNORECASE,
)

_RELATIVE_DAY_WORDS: dict[str, int] = {
    "今日": 0,
    "きょう": 0,
    "明日": 1,
    "あした": 1,
    "明後日": 2,
    "あさって": 2,
    "today": 0,
    "tomorrow": 1,
    "day after tomorrow": 2,
    "day-after-tomorrow": 2,
}


def _to_int(value: str | None) -> int | None:
    return int(value) if value is not None else None


def _build_deadline(month: int, day: int, hour: int | None, minute: int | None) -> Deadline | None:
    try:
        return Deadline(month=month, day=day, hour=hour, minute=minute)
    except ValidationError:
        return None


def _parse_relative(text: str, now: datetime) -> Deadline | None:
    """Parse 'tomorrow 18時', '3日後', 'in 2 days at 9:30' style input."""
    ja_match = _RELATIVE_JA_PATTERN.match(text)
    if ja_match:
        word, count, hour, minute = ja_match.groups()
    else:
        en_match = _RELATIVE_EN_PATTERN.match(text)
        if not en_match:
            return None
        word, count_from_now, count_in, hour, minute = en_match.groups()
        count = count_from_now or count_in

    days_ahead = _RELATIVE_DAY_WORDS[word.lower()] if word else int(count)
    target = local_today(now) + timedelta(days=days_ahead)
    return _build_deadline(target.month, target.day, _to_int(hour), _to_int(minute))


def _parse_absolute(text: str) -> Deadline | None:
    """Parse '12月25日', '12月25日14時' and '12月25日14時30分'."""
    match = _ABSOLUTE_PATTERN.match(text)
    if not match:
        return None
    month, day, hour, minute = match.groups()
    return _build_deadline(int(month), int(day), _to_int(hour), _to_int(minute))


def parse_deadline(text: str, now: datetime | None = None) -> Deadline | None:
    """Parse free-text deadline input.

    Tries the relative grammar first, then the absolute one. Relative input is
    resolved against today's local date and projected forward; the year is
    discarded, it is re-derived whenever the deadline is resolved to an instant.

    Args:
        text: User input
        now: Current instant (defaults to the current time)

    Returns:
        Normalized Deadline, or None if the input matches neither grammar or
        fails range validation
    """
    trimmed = text.strip()
    if not trimmed:
        return None
    return _parse_relative(trimmed, now or utc_now()) or _parse_absolute(trimmed)


def _at_year(deadline: Deadline, year: int) -> datetime:
    if deadline.hour is None:
        hour, minute = Constants.DEADLINE_DEFAULT_HOUR, Constants.DEADLINE_DEFAULT_MINUTE
    else:
        hour, minute = deadline.hour, deadline.minute or 0
    # Days past the end of the month roll into the next month (2月31日 -> 3月3日)
    first_of_month = datetime(year, deadline.month, 1, hour, minute, tzinfo=LOCAL_TZ)
    return first_of_month + timedelta(days=deadline.day - 1)


def resolve_to_instant(deadline_text: str, now: datetime) -> datetime | None:
    """Convert a stored deadline string into a concrete instant.

    The year is the current local year unless that instant has already
    passed, in which case it is next year. A deadline without a time means the
    end of that local day.

    Args:
        deadline_text: Normalized deadline text as stored on the task
        now: Current instant

    Returns:
        Aware datetime in local time, or None if the text is not a deadline
    """
    deadline = _parse_absolute(deadline_text.strip())
    if deadline is None:
        return None

    local_now = to_local(now)
    candidate = _at_year(deadline, local_now.year)
    if candidate < local_now:
        candidate = _at_year(deadline, local_now.year + 1)
    return candidate
