"""Reminder dispatch loop: sends due cadence reminders for one user."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from pydantic import BaseModel, Field

from src.core import message_templates
from src.core.cache_client import get_store
from src.core.clock import utc_now
from src.core.config import settings
from src.core.errors import classify_error
from src.core.logging import span
from src.domain.task import Task
from src.interface import line_sender
from src.interface.line_sender import SendMessageResult
from src.services.reminder_scheduler import DueSlot, due_slots
from src.services.task_repository import TaskRepository


logger = logging.getLogger(__name__)

PushTransport = Callable[..., Awaitable[SendMessageResult]]


class SentReminder(BaseModel):
    """A reminder slot that was delivered and recorded."""

    task_id: str = Field(..., description="Task the reminder was about")
    label: str = Field(..., description="Slot label appended to the task's sentSlots")


class FailedReminder(BaseModel):
    """A reminder slot that could not be delivered (left unmarked)."""

    task_id: str = Field(..., description="Task the reminder was about")
    label: str = Field(..., description="Slot label that stays eligible for the next run")
    error: str = Field(..., description="Transport error or exception text")


class DispatchReport(BaseModel):
    """Outcome of one dispatcher run."""

    tasks_checked: int = Field(default=0, description="Number of tasks evaluated")
    sent: list[SentReminder] = Field(default_factory=list, description="Delivered reminders")
    failed: list[FailedReminder] = Field(default_factory=list, description="Reminders that failed to send")
    skipped_reason: str | None = Field(default=None, description="Why the run did nothing, if it was skipped")


def _mark_sent(label: str) -> Callable[[Task], None]:
    def mutator(task: Task) -> None:
        if label not in task.sent_slots:
            task.sent_slots.append(label)

    return mutator


async def _send_slot(
    *,
    transport: PushTransport,
    user_id: str,
    task: Task,
    slot: DueSlot,
) -> str | None:
    """Push one reminder.

    Returns:
        None on success, otherwise the error text
    """
    text = message_templates.reminder(task=task, suffix=slot.message_suffix)
    try:
        result = await transport(to_user_id=user_id, text=text)
    except Exception as e:
        logger.error(
            "Reminder push raised",
            extra={
                "user_id": user_id,
                "task_id": task.id,
                "slot": slot.label,
                "error": str(e),
                "error_category": classify_error(e).value,
            },
        )
        return str(e)

    if not result.success:
        logger.warning(
            "Reminder push failed",
            extra={"user_id": user_id, "task_id": task.id, "slot": slot.label, "error": result.error},
        )
        return result.error or "Unknown error"

    return None


async def run_reminders(
    *,
    repository: TaskRepository,
    user_id: str,
    now: datetime | None = None,
    transport: PushTransport | None = None,
) -> DispatchReport:
    """Send every due, not-yet-sent reminder slot for the user's tasks.

    ``now`` is fixed for the whole batch. A slot is recorded as sent only
    after its push succeeded; failed pushes are logged and left for the next
    run. Store errors propagate to the caller.

    Args:
        repository: Task repository
        user_id: LINE user ID to remind
        now: Current instant (defaults to the current time)
        transport: Push sender (defaults to the LINE push API)

    Returns:
        DispatchReport with the sent and failed slots
    """
    with span("reminder_service.run_reminders"):
        now = now or utc_now()
        transport = transport or line_sender.push_message
        report = DispatchReport()

        tasks = await repository.get_tasks(user_id)
        report.tasks_checked = len(tasks)

        for task in tasks:
            for slot in due_slots(task, now):
                error = await _send_slot(transport=transport, user_id=user_id, task=task, slot=slot)
                if error is not None:
                    report.failed.append(FailedReminder(task_id=task.id, label=slot.label, error=error))
                    continue

                updated = await repository.update_task(user_id, task.id, _mark_sent(slot.label))
                if updated is None:
                    logger.warning(
                        "Task vanished before its reminder was recorded",
                        extra={"user_id": user_id, "task_id": task.id, "slot": slot.label},
                    )
                report.sent.append(SentReminder(task_id=task.id, label=slot.label))

        logger.info(
            "Reminder run completed",
            extra={
                "user_id": user_id,
                "tasks_checked": report.tasks_checked,
                "sent": len(report.sent),
                "failed": len(report.failed),
            },
        )
        return report


async def dispatch_for_allowed_user(
    *,
    require_durable: bool = True,
    now: datetime | None = None,
) -> DispatchReport:
    """Run reminders for the allow-listed user against the configured store.

    Reminders need a store that outlives the process unless the caller runs
    in the same process as the webhook (the internal scheduler).

    Args:
        require_durable: Skip the run when only the in-memory store is available
        now: Current instant (defaults to the current time)

    Returns:
        DispatchReport, with skipped_reason set when nothing was attempted
    """
    if not settings.allowed_line_user_id:
        logger.info("Reminder run skipped", extra={"reason": "no allowed user"})
        return DispatchReport(skipped_reason="No allowed user configured")

    repository = TaskRepository(get_store())
    if require_durable and not repository.is_durable:
        logger.info("Reminder run skipped", extra={"reason": "no durable store"})
        return DispatchReport(skipped_reason="No durable store configured")

    return await run_reminders(repository=repository, user_id=settings.allowed_line_user_id, now=now)
