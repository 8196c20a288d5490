"""LINE webhook endpoints."""

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from src.core import message_templates
from src.core.cache_client import get_store
from src.core.config import Constants, settings
from src.core.errors import TransportError, classify_error
from src.interface import line_parser, line_sender, webhook_security
from src.interface.line_parser import ParsedEvent
from src.services import task_service
from src.services.task_repository import TaskRepository


router = APIRouter(prefix="/webhook", tags=["webhook"])
logger = logging.getLogger(__name__)

# Answered for any sender so the owner can discover the ID to allow-list
MY_ID_COMMANDS = frozenset({"my id", "自分のid"})


def is_my_id_request(text: str) -> bool:
    """Check for the user-ID lookup command (case-insensitive)."""
    return text.strip().lower() in MY_ID_COMMANDS


def is_allowed_user(user_id: str | None) -> bool:
    """Only the configured user may manage tasks; nobody may when none is configured."""
    return bool(settings.allowed_line_user_id) and user_id == settings.allowed_line_user_id


async def _reply(*, event: ParsedEvent, text: str) -> None:
    """Reply to an event, raising TransportError if LINE rejects it."""
    if not event.reply_token:
        logger.warning("Event has no reply token, dropping reply", extra={"user_id": event.user_id})
        return

    result = await line_sender.reply_message(reply_token=event.reply_token, text=text)
    if not result.success:
        raise TransportError(f"Reply failed: {result.error}")


async def process_event(event: ParsedEvent) -> None:
    """Handle one webhook event.

    Non-text events and senders other than the allow-listed user are ignored
    without a reply.

    Args:
        event: Parsed LINE event
    """
    if not event.is_text_message or event.text is None:
        return

    text = event.text.strip()

    if is_my_id_request(text):
        await _reply(event=event, text=message_templates.your_user_id(user_id=event.user_id))
        return

    if not is_allowed_user(event.user_id):
        logger.debug("Ignoring message from non-allow-listed sender", extra={"user_id": event.user_id})
        return

    user_id = event.user_id or ""
    repository = TaskRepository(get_store())
    reply = await task_service.handle_message(repository=repository, user_id=user_id, text=text)
    if not reply:
        # Idle echo of a blank message; LINE rejects empty text
        logger.debug("Nothing to reply", extra={"user_id": user_id})
        return
    await _reply(event=event, text=reply)


async def _process_event_safely(event: ParsedEvent) -> bool:
    """Run process_event, logging any failure.

    Returns:
        True if the event was handled without error
    """
    try:
        await process_event(event)
    except Exception as e:
        logger.error(
            "Error processing webhook event",
            extra={
                "user_id": event.user_id,
                "webhook_event_id": event.webhook_event_id,
                "error": str(e),
                "error_category": classify_error(e).value,
            },
        )
        return False
    return True


async def _process_user_events(events: list[ParsedEvent]) -> list[bool]:
    """Process one sender's events one after another, in delivery order."""
    return [await _process_event_safely(event) for event in events]


async def process_events(events: list[ParsedEvent]) -> list[bool]:
    """Process a webhook batch.

    Different senders are handled concurrently; events from the same sender
    run sequentially so each turn sees the state left by the previous one.

    Returns:
        One success flag per event, grouped by sender
    """
    by_user: dict[str | None, list[ParsedEvent]] = {}
    for event in events:
        by_user.setdefault(event.user_id, []).append(event)

    results = await asyncio.gather(*(_process_user_events(group) for group in by_user.values()))
    return [ok for group_results in results for ok in group_results]


@router.post("")
async def receive_webhook(request: Request) -> PlainTextResponse:
    """Receive LINE webhook POST requests.

    This endpoint:
    1. Verifies the x-line-signature against the raw body
    2. Parses the events
    3. Processes the events, concurrently across senders and in order per sender
    4. Returns 500 if any event failed, 200 otherwise

    Args:
        request: FastAPI request object

    Returns:
        Plain-text "OK", or "Internal Server Error" when any event failed

    Raises:
        HTTPException: If the signature is missing or invalid, or the body is not JSON
    """
    body = await request.body()

    security_result = webhook_security.validate_line_signature(
        body,
        request.headers.get("x-line-signature"),
        settings.line_channel_secret,
    )
    if not security_result.is_valid:
        raise HTTPException(
            status_code=security_result.http_status_code or Constants.HTTP_BAD_REQUEST,
            detail=security_result.error_message,
        )

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise HTTPException(status_code=Constants.HTTP_BAD_REQUEST, detail="Invalid JSON payload") from e

    if not isinstance(payload, dict):
        raise HTTPException(status_code=Constants.HTTP_BAD_REQUEST, detail="Invalid JSON payload")

    events = line_parser.parse_line_webhook(payload)
    results = await process_events(events)

    if not all(results):
        return PlainTextResponse("Internal Server Error", status_code=Constants.HTTP_SERVER_ERROR)
    return PlainTextResponse("OK", status_code=Constants.HTTP_OK)
