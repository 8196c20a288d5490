"""Cadence-based reminder slot selection.

Given a task and the current instant, decide which reminder slots are due and
have not been sent yet. Every slot carries a label that is identical for all
polls hitting the same wall-clock trigger (date based, day-count based, or a
fixed relative tag), so a slot recorded in ``task.sent_slots`` is never
emitted again no matter how often or how irregularly the dispatcher runs.

Cadence per priority:

    priority  far (>= 7 days left)                 near (< 7 days left)
    1         09:00 daily                          08:00, 12:00, 18:00
    2         12:00 when days left % 3 == 0        10:00, 22:00
    3         14:00 when days left % 5 == 0        17:00
    4         -                                    1 hour before

Every priority also gets a final reminder 30 minutes before the deadline.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple

from src.core.clock import LocalTime, local_time
from src.core.config import Constants
from src.core.deadline_parser import resolve_to_instant
from src.domain.task import Task


MINUTES_PER_DAY = 24 * 60

HOUR_BEFORE_LABEL = "1h"
FINAL_LABEL = "30m"


class DueSlot(NamedTuple):
    """A reminder that should be sent now."""

    label: str
    message_suffix: str


@dataclass(frozen=True)
class Cadence:
    """Reminder cadence for one priority."""

    far_hour: int | None = None
    far_every_days: int | None = None  # None means every day, labelled by date
    near_hours: tuple[int, ...] = ()
    hour_before: bool = False


CADENCES: dict[int, Cadence] = {
    1: Cadence(far_hour=9, near_hours=(8, 12, 18)),
    2: Cadence(far_hour=12, far_every_days=3, near_hours=(10, 22)),
    3: Cadence(far_hour=14, far_every_days=5, near_hours=(17,)),
    4: Cadence(hour_before=True),
}


def in_window(remaining_minutes: float, target_minutes: int) -> bool:
    """True when remaining time falls in (target - W, target]."""
    return target_minutes - Constants.REMINDER_TOLERANCE_MINUTES < remaining_minutes <= target_minutes


def _time_left(remaining_minutes: float) -> str:
    if remaining_minutes >= MINUTES_PER_DAY:
        days = math.floor(remaining_minutes / MINUTES_PER_DAY)
        return f"{days} day left" if days == 1 else f"{days} days left"
    if remaining_minutes >= 60:  # noqa: PLR2004
        hours = math.floor(remaining_minutes / 60)
        return f"{hours} hour left" if hours == 1 else f"{hours} hours left"
    return f"{math.floor(remaining_minutes)} minutes left"


def _cadence_slot(
    cadence: Cadence,
    *,
    local: LocalTime,
    remaining_minutes: float,
    remaining_days: float,
) -> DueSlot | None:
    """Return the single slot of a priority's cadence that is due now, if any."""
    if remaining_days >= Constants.FAR_MODE_DAYS:
        if cadence.far_hour is None or local.hour != cadence.far_hour:
            return None

        if cadence.far_every_days is None:
            return DueSlot(f"{local.date_str}-{cadence.far_hour}", _time_left(remaining_minutes))

        days_left = math.floor(remaining_days)
        if days_left > 0 and days_left % cadence.far_every_days == 0:
            return DueSlot(f"{days_left}-{cadence.far_hour}", _time_left(remaining_minutes))
        return None

    if local.hour in cadence.near_hours:
        return DueSlot(f"{local.date_str}-{local.hour}", _time_left(remaining_minutes))

    if cadence.hour_before and in_window(remaining_minutes, Constants.HOUR_BEFORE_REMINDER_MINUTES):
        return DueSlot(HOUR_BEFORE_LABEL, "Due in 1 hour")

    return None


def due_slots(task: Task, now: datetime) -> list[DueSlot]:
    """Return the reminder slots due for a task that have not been sent.

    Pure: the caller sends each slot and records its label as sent.

    Args:
        task: Task to evaluate
        now: Current instant (aware)

    Returns:
        Due slots, possibly empty. Expired tasks and tasks whose deadline
        cannot be resolved never have due slots.
    """
    deadline_at = resolve_to_instant(task.deadline, now)
    if deadline_at is None:
        return []

    remaining_minutes = (deadline_at - now).total_seconds() / 60
    if remaining_minutes < 0:
        return []
    remaining_days = remaining_minutes / MINUTES_PER_DAY

    slots: list[DueSlot] = []

    cadence = CADENCES.get(task.priority)
    if cadence is not None:
        slot = _cadence_slot(
            cadence,
            local=local_time(now),
            remaining_minutes=remaining_minutes,
            remaining_days=remaining_days,
        )
        if slot is not None:
            slots.append(slot)

    if in_window(remaining_minutes, Constants.FINAL_REMINDER_MINUTES):
        slots.append(DueSlot(FINAL_LABEL, "Due in 30 minutes"))

    sent = set(task.sent_slots)
    return [slot for slot in slots if slot.label not in sent]
