"""In-memory key-value store and store selection."""

import logging
import threading
import time
from typing import Any

from src.core.redis_client import RedisClient, redis_client


logger = logging.getLogger(__name__)


class InMemoryStore:
    """Thread-safe in-memory key-value store with TTL support.

    Used when no Redis URL is configured. Contents live only as long as the
    process, so reminders driven by an external trigger are disabled for it.
    """

    is_durable = False

    def __init__(self) -> None:
        """Initialize in-memory store."""
        self._data: dict[str, str] = {}
        self._expiry: dict[str, float] = {}
        self._lock = threading.Lock()

        # Health tracking
        self._last_successful_operation: float | None = None
        self._total_operations = 0

    @property
    def is_available(self) -> bool:
        """Check if store is available (always true for in-memory)."""
        return True

    def get_health_status(self) -> dict[str, Any]:
        """Get store health status."""
        return {
            "enabled": True,
            "connected": True,
            "last_successful_operation": self._last_successful_operation,
            "total_operations": self._total_operations,
            "entries": len(self._data),
        }

    def _record_success(self) -> None:
        self._last_successful_operation = time.time()
        self._total_operations += 1

    def _cleanup_expired(self, keys: list[str] | None = None) -> None:
        """Clean up expired entries.

        Args:
            keys: Specific keys to check. If None, checks all keys.
        """
        now = time.time()
        keys_to_check = list(self._expiry.keys()) if keys is None else keys

        for key in keys_to_check:
            expiry = self._expiry.get(key)
            if expiry and expiry < now:
                self._data.pop(key, None)
                self._expiry.pop(key, None)

    async def get(self, key: str) -> str | None:
        """Get value from store.

        Args:
            key: Store key

        Returns:
            Stored value or None if not found or expired
        """
        with self._lock:
            self._cleanup_expired([key])
            value = self._data.get(key)
            self._record_success()
            return value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Set value in store.

        Args:
            key: Store key
            value: Value to store
            ttl_seconds: Time-to-live in seconds (None keeps the key forever)
        """
        with self._lock:
            self._data[key] = value
            if ttl_seconds:
                self._expiry[key] = time.time() + ttl_seconds
            else:
                self._expiry.pop(key, None)
            self._record_success()
            logger.debug("Stored key: %s", key)

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys from store."""
        if not keys:
            return False

        with self._lock:
            for key in keys:
                self._data.pop(key, None)
                self._expiry.pop(key, None)
            self._record_success()
            return True

    async def ping(self) -> bool:
        """Always True for the in-memory store."""
        return True

    async def close(self) -> None:
        """Close store (no-op for in-memory store)."""
        logger.info("In-memory store closed")


# Global in-memory store instance
memory_store = InMemoryStore()


def get_store() -> RedisClient | InMemoryStore:
    """Return the Redis store when configured, the process-local store otherwise."""
    if redis_client.is_available:
        return redis_client
    return memory_store
