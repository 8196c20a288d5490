"""Reminder trigger endpoint, polled by an external cron."""

import logging

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from src.core.config import Constants, settings
from src.core.errors import StoreError
from src.interface import webhook_security
from src.services import reminder_service


router = APIRouter(prefix="/api", tags=["reminders"])
logger = logging.getLogger(__name__)


@router.get("/reminders")
async def trigger_reminders(secret: str | None = Query(default=None)) -> JSONResponse:
    """Send all reminder slots due right now.

    Safe to call at any cadence: slots already recorded as sent are never
    sent again. Does nothing (but still succeeds) when there is no durable
    store or no allow-listed user.

    Args:
        secret: Shared trigger secret (required when one is configured)

    Returns:
        Counts of checked tasks and sent/failed reminders

    Raises:
        HTTPException: 401/403 on a missing or wrong secret, 500 when the store fails
    """
    security_result = webhook_security.validate_webhook_secret(secret, settings.reminder_secret)
    if not security_result.is_valid:
        raise HTTPException(
            status_code=security_result.http_status_code or Constants.HTTP_UNAUTHORIZED,
            detail=security_result.error_message,
        )

    try:
        report = await reminder_service.dispatch_for_allowed_user()
    except StoreError as e:
        logger.error("Reminder run failed", extra={"error": str(e)})
        raise HTTPException(status_code=Constants.HTTP_SERVER_ERROR, detail="Store unavailable") from e

    if report.skipped_reason:
        return JSONResponse(
            content={"status": "skipped", "reason": report.skipped_reason},
            status_code=Constants.HTTP_OK,
        )

    return JSONResponse(
        content={
            "status": "ok",
            "tasks_checked": report.tasks_checked,
            "sent": len(report.sent),
            "failed": len(report.failed),
        },
        status_code=Constants.HTTP_OK,
    )
