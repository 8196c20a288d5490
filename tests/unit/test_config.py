"""Tests for configuration loading."""

import pytest

from src.core.config import Constants, Settings


_ENV_VARS = (
    "CHANNEL_ACCESS_TOKEN",
    "LINE_CHANNEL_ACCESS_TOKEN",
    "CHANNEL_SECRET",
    "LINE_CHANNEL_SECRET",
    "ALLOWED_LINE_USER_ID",
    "REDIS_URL",
    "KV_URL",
    "CRON_SECRET",
    "REMINDER_SECRET",
    "ENABLE_INTERNAL_SCHEDULER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_require_credential_with_valid_value() -> None:
    """Test require_credential returns value when credential is set."""
    settings = Settings(line_channel_access_token="token-123")

    assert settings.require_credential("line_channel_access_token", "LINE") == "token-123"


def test_require_credential_with_empty_string_raises_error() -> None:
    """Test require_credential raises ValueError when credential is empty."""
    settings = Settings(line_channel_access_token="")

    with pytest.raises(ValueError, match="LINE credential not configured"):
        settings.require_credential("line_channel_access_token", "LINE")


def test_require_credential_error_message_includes_field_name() -> None:
    settings = Settings(reminder_secret=None)

    with pytest.raises(ValueError, match="REMINDER_SECRET"):
        settings.require_credential("reminder_secret", "Reminder trigger")


def test_defaults_without_environment() -> None:
    settings = Settings(_env_file=None)

    assert settings.allowed_line_user_id == ""
    assert settings.line_channel_secret is None
    assert settings.redis_url is None
    assert settings.reminder_secret is None
    assert settings.enable_internal_scheduler is False
    assert settings.line_api_base_url == "https://api.line.me"


def test_hosting_environment_variable_names(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test the names used by the hosting platform map onto settings."""
    monkeypatch.setenv("CHANNEL_ACCESS_TOKEN", "access")
    monkeypatch.setenv("CHANNEL_SECRET", "channel-secret")
    monkeypatch.setenv("ALLOWED_LINE_USER_ID", "U999")
    monkeypatch.setenv("KV_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("CRON_SECRET", "cron")

    settings = Settings(_env_file=None)

    assert settings.line_channel_access_token == "access"
    assert settings.line_channel_secret == "channel-secret"
    assert settings.allowed_line_user_id == "U999"
    assert settings.redis_url == "redis://localhost:6379/0"
    assert settings.reminder_secret == "cron"


def test_redis_url_takes_precedence_over_kv_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://primary:6379")
    monkeypatch.setenv("KV_URL", "redis://fallback:6379")

    assert Settings(_env_file=None).redis_url == "redis://primary:6379"


def test_priority_bounds() -> None:
    assert (Constants.MIN_PRIORITY, Constants.MAX_PRIORITY) == (1, 4)
