"""cadence - priority task tracker with cadence reminders, living in LINE."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.cache_client import get_store
from src.core.config import settings
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.redis_client import redis_client
from src.core.scheduler import REMINDER_JOB_NAME, start_scheduler, stop_scheduler
from src.core.scheduler_tracker import job_tracker
from src.interface.reminder_router import router as reminder_router
from src.interface.webhook import router as webhook_router


logger = logging.getLogger(__name__)


async def check_redis_connectivity() -> None:
    """Verify Redis connectivity (optional service).

    Only checks if Redis is configured. Logs warning if unavailable but doesn't fail.
    """
    if not redis_client.is_available:
        logger.info("startup_validation", extra={"service": "redis", "status": "disabled"})
        return

    if await redis_client.ping():
        logger.info("startup_validation", extra={"service": "redis", "status": "ok"})
    else:
        logger.warning("startup_validation", extra={"service": "redis", "status": "unavailable"})


def validate_startup_configuration() -> None:
    """Log which optional pieces of configuration are missing.

    Nothing here is fatal: without an allowed user the bot only answers
    "my id", and without a channel secret signatures are not checked.
    """
    if not settings.allowed_line_user_id:
        logger.warning("startup_validation", extra={"setting": "ALLOWED_LINE_USER_ID", "status": "missing"})
    if not settings.line_channel_secret:
        logger.warning("startup_validation", extra={"setting": "CHANNEL_SECRET", "status": "missing"})
    if not settings.line_channel_access_token:
        logger.warning("startup_validation", extra={"setting": "CHANNEL_ACCESS_TOKEN", "status": "missing"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()

    validate_startup_configuration()
    await check_redis_connectivity()

    if settings.enable_internal_scheduler:
        start_scheduler()
    yield
    stop_scheduler()
    await redis_client.close()


app = FastAPI(
    title="cadence",
    description="Priority task tracker with cadence reminders, living in LINE",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(webhook_router)
app.include_router(reminder_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Liveness probe used by LINE's webhook verification."""
    return {"message": "success"}


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    store = get_store()
    return JSONResponse(
        content={
            "status": "healthy",
            "store": {"durable": store.is_durable, **store.get_health_status()},
        },
        status_code=200,
    )


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job status."""
    if not settings.enable_internal_scheduler:
        return JSONResponse(content={"status": "disabled"}, status_code=200)

    job_status = job_tracker.get_job_status(REMINDER_JOB_NAME)
    dlq = job_tracker.get_dead_letter_queue()

    overall_status = "degraded" if job_status["consecutive_failures"] > 0 else "healthy"
    if len(dlq) > 0:
        overall_status = "critical"

    return JSONResponse(
        content={
            "status": overall_status,
            "jobs": {REMINDER_JOB_NAME: job_status},
            "dead_letter_queue_size": len(dlq),
            "dead_letter_queue": dlq,
        },
        status_code=200 if overall_status == "healthy" else 503,
    )
