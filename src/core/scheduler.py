"""In-process reminder trigger for deployments without an external cron."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.core.config import settings
from src.core.scheduler_tracker import retry_job_with_backoff
from src.services import reminder_service


logger = logging.getLogger(__name__)

REMINDER_JOB_NAME = "reminder_dispatch"

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def run_reminder_dispatch() -> int:
    """Run one reminder pass for the allow-listed user.

    The in-process trigger shares memory with the webhook, so the in-memory
    store is good enough here.

    Returns:
        Number of reminders sent
    """
    report = await reminder_service.dispatch_for_allowed_user(require_durable=False)
    return len(report.sent)


def start_scheduler() -> None:
    """Start the scheduler and register the reminder job.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    scheduler.add_job(
        retry_job_with_backoff,
        args=[run_reminder_dispatch, REMINDER_JOB_NAME],
        # One attempt per interval: rerunning a batch after a store error would
        # resend reminders whose label was not recorded yet
        kwargs={"max_retries": 1},
        trigger=IntervalTrigger(minutes=settings.reminder_interval_minutes),
        id=REMINDER_JOB_NAME,
        name="Send Cadence Reminders",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Scheduled reminder job: every {settings.reminder_interval_minutes} minutes")

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    if not scheduler.running:
        return
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
