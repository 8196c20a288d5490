"""Webhook security utilities: LINE signatures and shared trigger secrets."""

import base64
import hashlib
import hmac
import logging
import secrets
from typing import NamedTuple

from src.core.config import Constants


logger = logging.getLogger(__name__)


class WebhookSecurityResult(NamedTuple):
    """Result of webhook security validation."""

    is_valid: bool
    error_message: str | None
    http_status_code: int | None


def compute_line_signature(body: bytes, channel_secret: str) -> str:
    """Return the base64 HMAC-SHA256 digest LINE sends in ``x-line-signature``."""
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def validate_line_signature(
    body: bytes,
    signature: str | None,
    channel_secret: str | None,
) -> WebhookSecurityResult:
    """Validate the ``x-line-signature`` header against the raw request body.

    Args:
        body: Raw request body, exactly as received
        signature: Value of the x-line-signature header
        channel_secret: LINE channel secret configured in settings

    Returns:
        WebhookSecurityResult indicating if the signature is valid
    """
    if not channel_secret:
        # Signature checking disabled (local development)
        return WebhookSecurityResult(is_valid=True, error_message=None, http_status_code=None)

    if not signature:
        logger.warning("Missing LINE signature")
        return WebhookSecurityResult(
            is_valid=False,
            error_message="Missing signature",
            http_status_code=Constants.HTTP_UNAUTHORIZED,
        )

    expected = compute_line_signature(body, channel_secret)
    if not secrets.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Invalid LINE signature")
        return WebhookSecurityResult(
            is_valid=False,
            error_message="Invalid signature",
            http_status_code=Constants.HTTP_FORBIDDEN,
        )

    return WebhookSecurityResult(is_valid=True, error_message=None, http_status_code=None)


def validate_webhook_secret(received_secret: str | None, expected_secret: str | None) -> WebhookSecurityResult:
    """Validate a shared secret (used by the reminder trigger).

    Args:
        received_secret: Secret received in the request
        expected_secret: Secret configured in settings

    Returns:
        WebhookSecurityResult indicating if secret is valid
    """
    if not expected_secret:
        # Secret not configured, skip validation
        return WebhookSecurityResult(is_valid=True, error_message=None, http_status_code=None)

    if not received_secret:
        logger.warning("Missing webhook secret")
        return WebhookSecurityResult(
            is_valid=False,
            error_message="Missing webhook secret",
            http_status_code=Constants.HTTP_UNAUTHORIZED,
        )

    if not secrets.compare_digest(received_secret.encode("utf-8"), expected_secret.encode("utf-8")):
        logger.warning("Invalid webhook secret")
        return WebhookSecurityResult(
            is_valid=False,
            error_message="Invalid webhook secret",
            http_status_code=Constants.HTTP_FORBIDDEN,
        )

    return WebhookSecurityResult(is_valid=True, error_message=None, http_status_code=None)
