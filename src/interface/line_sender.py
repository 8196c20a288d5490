"""LINE message sender with retry logic using the Messaging API."""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


# HTTP status code constants for error handling
HTTP_CLIENT_ERROR_START = 400
HTTP_CLIENT_ERROR_END = 500


class SendMessageResult(BaseModel):
    """Result of sending a LINE message."""

    success: bool = Field(..., description="Whether the message was sent successfully")
    request_id: str | None = Field(None, description="LINE request ID (x-line-request-id) if available")
    error: str | None = Field(None, description="Error message if failed")


def _text_messages(text: str) -> list[dict[str, str]]:
    if len(text) > constants.LINE_MAX_TEXT_LENGTH:
        logger.warning("Truncating message of %d characters", len(text))
        text = text[: constants.LINE_MAX_TEXT_LENGTH - 1] + "…"
    return [{"type": "text", "text": text}]


async def _post_line_api(
    *,
    path: str,
    payload: dict[str, Any],
    max_retries: int,
    retry_delay: float,
) -> SendMessageResult:
    """Core sending logic with retry.

    4xx responses are final; 5xx responses and network errors are retried
    with exponential backoff. Nothing is sent without an access token.
    """
    try:
        access_token = settings.require_credential("line_channel_access_token", "LINE channel access token")
    except ValueError as e:
        logger.error("Cannot call the LINE API", extra={"path": path, "error": str(e)})
        return SendMessageResult(success=False, error=str(e))

    url = f"{settings.line_api_base_url}{path}"
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {access_token}",
    }

    for attempt in range(max_retries):
        try:
            async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
                response = await client.post(url, json=payload, headers=headers)

                if response.is_success:
                    return SendMessageResult(success=True, request_id=response.headers.get("x-line-request-id"))

                if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_CLIENT_ERROR_END:
                    return SendMessageResult(
                        success=False, error=f"Client error {response.status_code}: {response.text}"
                    )

                raise httpx.HTTPStatusError(
                    f"Server error: {response.status_code}", request=response.request, response=response
                )
        except httpx.HTTPStatusError as e:
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2**attempt))
            else:
                return SendMessageResult(success=False, error=f"Failed after retries: {e!s}")
        except httpx.HTTPError as e:
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2**attempt))
            else:
                return SendMessageResult(success=False, error=f"Failed after retries: {e!s}")

    return SendMessageResult(success=False, error="Max retries exceeded")


async def reply_message(
    *,
    reply_token: str,
    text: str,
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> SendMessageResult:
    """Reply to an inbound event using its reply token."""
    if not text:
        return SendMessageResult(success=False, error="Empty message text")

    return await _post_line_api(
        path="/v2/bot/message/reply",
        payload={"replyToken": reply_token, "messages": _text_messages(text)},
        max_retries=max_retries,
        retry_delay=retry_delay,
    )


async def push_message(
    *,
    to_user_id: str,
    text: str,
    max_retries: int = 1,
    retry_delay: float = 1.0,
) -> SendMessageResult:
    """Send an unsolicited message (used for reminders).

    Single attempt by default: a failed reminder is retried by the next
    dispatcher run, not within this one.
    """
    if not text:
        return SendMessageResult(success=False, error="Empty message text")

    return await _post_line_api(
        path="/v2/bot/message/push",
        payload={"to": to_user_id, "messages": _text_messages(text)},
        max_retries=max_retries,
        retry_delay=retry_delay,
    )
