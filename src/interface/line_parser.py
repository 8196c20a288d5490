"""LINE webhook payload parser."""

import logging
from typing import Any

from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


class ParsedEvent(BaseModel):
    """Parsed LINE webhook event data."""

    event_type: str = Field(..., description="Event type (message, follow, postback, ...)")
    message_type: str | None = Field(None, description="Message type for message events (text, image, ...)")
    text: str | None = Field(None, description="Text content (only for text messages)")
    user_id: str | None = Field(None, description="Sender's LINE user ID, if present in the source")
    source_type: str | None = Field(None, description="Source type (user, group, room)")
    reply_token: str | None = Field(None, description="Single-use token for replying to this event")
    webhook_event_id: str | None = Field(None, description="Unique webhook event ID")

    @property
    def is_text_message(self) -> bool:
        """True for message events carrying text."""
        return self.event_type == "message" and self.message_type == "text" and self.text is not None


def _parse_event(event: dict[str, Any]) -> ParsedEvent | None:
    event_type = event.get("type")
    if not isinstance(event_type, str):
        return None

    # 1:1 chats have source.type == "user"; groups and rooms still carry userId on message events
    source = event.get("source") or {}
    message = event.get("message") or {}

    message_type = message.get("type") if event_type == "message" else None
    text = message.get("text") if message_type == "text" else None

    return ParsedEvent(
        event_type=event_type,
        message_type=message_type,
        text=text if isinstance(text, str) else None,
        user_id=source.get("userId"),
        source_type=source.get("type"),
        reply_token=event.get("replyToken"),
        webhook_event_id=event.get("webhookEventId"),
    )


def parse_line_webhook(payload: dict[str, Any]) -> list[ParsedEvent]:
    """Parse a LINE webhook payload into its events.

    Args:
        payload: Decoded webhook body (``{"destination": ..., "events": [...]}``)

    Returns:
        Parsed events in delivery order; entries that are not event objects are dropped
    """
    raw_events = payload.get("events") or []
    if not isinstance(raw_events, list):
        logger.warning("Webhook payload 'events' is not a list")
        return []

    events = []
    for raw in raw_events:
        if not isinstance(raw, dict):
            continue
        parsed = _parse_event(raw)
        if parsed is not None:
            events.append(parsed)
    return events
