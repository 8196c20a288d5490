"""Redis client backing the durable task store."""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from functools import wraps
from typing import Any, TypeVar

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from src.core.config import Constants, settings
from src.core.errors import StoreError


logger = logging.getLogger(__name__)

# Type variable for generic retry decorator
T = TypeVar("T")


def with_retry(
    max_retries: int = 3, base_delay: float = 0.1
) -> Callable[[Callable[..., Coroutine[Any, Any, T]]], Callable[..., Coroutine[Any, Any, T]]]:
    """Decorator to retry async functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 0.1)

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:  # noqa: ANN401
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except RedisError as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Redis operation failed (attempt %d/%d): %s. Retrying in %.2fs",
                            attempt + 1,
                            max_retries,
                            e,
                            delay,
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            "Redis operation failed after %d attempts: %s",
                            max_retries,
                            e,
                        )
            # If we get here, all retries failed
            raise last_exception  # type: ignore[misc]

        return wrapper

    return decorator


class RedisClient:
    """Async Redis client wrapper with connection pooling.

    Unlike a cache, the task store must not silently lose writes, so failed
    operations (after retries) raise StoreError instead of returning a default.
    """

    is_durable = True

    def __init__(self, url: str | None = None) -> None:
        """Initialize Redis client."""
        self._client: Redis | None = None
        self._pool: ConnectionPool | None = None
        url = url if url is not None else settings.redis_url
        self._enabled = bool(url)

        # Health tracking
        self._last_successful_operation: datetime | None = None
        self._failure_count = 0
        self._total_operations = 0

        if self._enabled and url:
            try:
                # Create connection pool for efficient connection reuse
                self._pool = ConnectionPool.from_url(
                    url,
                    decode_responses=True,
                    max_connections=Constants.REDIS_MAX_CONNECTIONS,
                )
                self._client = Redis(connection_pool=self._pool)
                logger.info("Redis client initialized")
            except (RedisError, ValueError) as e:
                logger.warning("Failed to initialize Redis client: %s. Falling back to in-memory store.", e)
                self._enabled = False
                self._client = None
                self._pool = None
        else:
            logger.info("Redis URL not configured. Using in-memory store.")

    @property
    def is_available(self) -> bool:
        """Check if Redis is available."""
        return self._enabled and self._client is not None

    def get_health_status(self) -> dict[str, Any]:
        """Get Redis health status.

        Returns:
            Dict with health status including last successful operation,
            failure count, and total operations
        """
        return {
            "enabled": self._enabled,
            "connected": self.is_available,
            "last_successful_operation": self._last_successful_operation.isoformat()
            if self._last_successful_operation
            else None,
            "failure_count": self._failure_count,
            "total_operations": self._total_operations,
        }

    def _record_success(self) -> None:
        """Record successful Redis operation."""
        self._last_successful_operation = datetime.now(UTC)
        self._total_operations += 1

    def _record_failure(self) -> None:
        """Record failed Redis operation."""
        self._failure_count += 1
        self._total_operations += 1

    def _require_client(self) -> Redis:
        if not self.is_available or not self._client:
            raise StoreError("Redis store is not configured")
        return self._client

    async def get(self, key: str) -> str | None:
        """Get value from Redis.

        Args:
            key: Store key

        Returns:
            Stored value or None if the key does not exist

        Raises:
            StoreError: If Redis is unavailable after retries
        """
        client = self._require_client()

        @with_retry(max_retries=3, base_delay=0.1)
        async def _get_operation() -> str | None:
            return await client.get(key)

        try:
            value = await _get_operation()
        except RedisError as e:
            self._record_failure()
            raise StoreError(f"Redis GET failed for key {key}: {e}") from e

        self._record_success()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Set value in Redis, optionally with a TTL.

        Args:
            key: Store key
            value: Value to store
            ttl_seconds: Time-to-live in seconds (None keeps the key forever)

        Raises:
            StoreError: If Redis is unavailable after retries
        """
        client = self._require_client()

        @with_retry(max_retries=3, base_delay=0.1)
        async def _set_operation() -> None:
            await client.set(key, value, ex=ttl_seconds)

        try:
            await _set_operation()
        except RedisError as e:
            self._record_failure()
            raise StoreError(f"Redis SET failed for key {key}: {e}") from e

        self._record_success()
        logger.debug("Stored key: %s", key)

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys from Redis.

        Args:
            *keys: Store keys to delete

        Returns:
            True if successful, False otherwise
        """
        if not self.is_available or not self._client or not keys:
            return False

        try:
            await self._client.delete(*keys)
            self._record_success()
            return True
        except RedisError as e:
            self._record_failure()
            logger.warning("Redis DELETE error: %s", e)
            return False

    async def ping(self) -> bool:
        """Ping Redis to check connection.

        Returns:
            True if Redis is responsive, False otherwise
        """
        if not self.is_available or not self._client:
            return False

        try:
            result = await self._client.ping()  # type: ignore[misc]
            return bool(result)
        except RedisError as e:
            logger.warning("Redis PING failed: %s", e)
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis client closed")


# Global Redis client instance
redis_client = RedisClient()
