"""Error types and classification for store and transport failures."""

from enum import Enum
from typing import Literal


class ErrorCategory(Enum):
    """Categories of errors that can occur while handling events or reminders."""

    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    AUTHENTICATION_FAILED = "authentication_failed"
    NETWORK_ERROR = "network_error"
    STORE_UNAVAILABLE = "store_unavailable"
    UNKNOWN = "unknown"


class StoreError(RuntimeError):
    """Raised when the key-value store cannot be read or written."""


class TransportError(RuntimeError):
    """Raised when a LINE reply or push could not be delivered."""


_ERROR_PATTERNS: dict[
    Literal["rate_limit", "auth", "network"],
    dict[str, list[str] | set[str]],
] = {
    "rate_limit": {
        "phrases": [
            "rate limit",
            "too many requests",
            "429",
        ],
        "exception_types": set(),
    },
    "auth": {
        "phrases": [
            "authentication failed",
            "invalid token",
            "unauthorized",
            "401",
            "403",
        ],
        "exception_types": {"PermissionError"},
    },
    "network": {
        "phrases": [
            "connection",
            "timeout",
            "network",
            "502",
            "503",
            "504",
            "unreachable",
        ],
        "exception_types": {"ConnectionError", "TimeoutError", "ConnectError", "ReadTimeout"},
    },
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    pattern_type: Literal["rate_limit", "auth", "network"],
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_error(exception: Exception) -> ErrorCategory:
    """Classify an exception raised while processing an event or a reminder.

    Args:
        exception: The exception raised

    Returns:
        The matching ErrorCategory (UNKNOWN when nothing matches)
    """
    if isinstance(exception, StoreError):
        return ErrorCategory.STORE_UNAVAILABLE

    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="rate_limit"):
        return ErrorCategory.RATE_LIMIT_EXCEEDED

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="auth"):
        return ErrorCategory.AUTHENTICATION_FAILED

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return ErrorCategory.NETWORK_ERROR

    return ErrorCategory.UNKNOWN
