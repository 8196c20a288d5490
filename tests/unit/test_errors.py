"""Unit tests for error classification utilities."""

import httpx
import pytest

from src.core.errors import ErrorCategory, StoreError, TransportError, classify_error


@pytest.mark.unit
class TestClassifyError:
    """Tests for classify_error function."""

    def test_store_error(self):
        assert classify_error(StoreError("Redis GET failed")) == ErrorCategory.STORE_UNAVAILABLE

    def test_store_error_wins_over_message(self):
        """A store error mentioning a timeout is still a store failure."""
        assert classify_error(StoreError("connection timeout")) == ErrorCategory.STORE_UNAVAILABLE

    def test_rate_limit(self):
        assert classify_error(TransportError("Reply failed: Client error 429")) == ErrorCategory.RATE_LIMIT_EXCEEDED

    def test_authentication_failed(self):
        assert classify_error(TransportError("Reply failed: Client error 401")) == ErrorCategory.AUTHENTICATION_FAILED

    def test_permission_error_type(self):
        assert classify_error(PermissionError("nope")) == ErrorCategory.AUTHENTICATION_FAILED

    def test_network_by_type(self):
        assert classify_error(ConnectionError("reset by peer")) == ErrorCategory.NETWORK_ERROR

    def test_network_by_httpx_type(self):
        assert classify_error(httpx.ConnectError("boom")) == ErrorCategory.NETWORK_ERROR

    def test_network_by_message(self):
        assert classify_error(RuntimeError("Upstream returned 503")) == ErrorCategory.NETWORK_ERROR

    def test_unknown(self):
        assert classify_error(ValueError("something odd")) == ErrorCategory.UNKNOWN

