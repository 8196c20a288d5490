"""Logfire setup for the app.

Modules log through ``logging.getLogger(__name__)`` with structured fields in
``extra``; once ``configure_logfire`` has run those records are forwarded to
Logfire.
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


def configure_logfire() -> None:
    """Configure Logfire and route standard logging records through it."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="cadence",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(level=logging.INFO, handlers=[logfire.LogfireLoggingHandler()])
    logging.getLogger(__name__).info("Logfire configured")


def instrument_fastapi(app: FastAPI) -> None:
    logfire.instrument_fastapi(app)


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span named after the service call it wraps."""
    return logfire.span(name)
