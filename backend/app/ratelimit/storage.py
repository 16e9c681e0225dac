"""
Storage backends for rate limiter state.

Both backends expose ``increment`` so fixed-window counters are updated
atomically: under a lock in memory, with INCR + EXPIRE in Redis.
"""
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import redis

logger = logging.getLogger(__name__)


class RateLimiterStorage(ABC):
    """
    Abstract storage interface for rate limiter state.

    This interface allows different storage backends to be used,
    making it easy to switch from in-memory to Redis.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Get value for a key.

        Args:
            key: Storage key

        Returns:
            Stored value or None if not found
        """

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Set value for a key with optional TTL.

        Args:
            key: Storage key
            value: Value to store
            ttl: Time-to-live in seconds (None = no expiration)
        """

    @abstractmethod
    def increment(self, key: str, ttl: int) -> int:
        """
        Increment a counter, creating it with ``ttl`` if it does not exist.

        Returns:
            The counter value after incrementing
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a key."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all stored data."""


class InMemoryStorage(RateLimiterStorage):
    """
    In-memory storage backend.

    Uses dictionaries with TTL support via expiration timestamps and
    periodic cleanup of expired entries. Thread-safe.

    Note: Data is lost on process restart and not shared between workers.
    Use Redis when running more than one worker.
    """

    def __init__(self, cleanup_interval: int = 60):
        """
        Initialize in-memory storage.

        Args:
            cleanup_interval: How often to cleanup expired entries (seconds)
        """
        self._data: Dict[str, Any] = {}
        self._expiry: Dict[str, float] = {}
        self._lock = threading.RLock()
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    def _expired(self, key: str, now: float) -> bool:
        return key in self._expiry and now > self._expiry[key]

    def get(self, key: str) -> Optional[Any]:
        """Get value for a key, returning None if expired or not found."""
        with self._lock:
            self._maybe_cleanup()
            if key not in self._data:
                return None
            if self._expired(key, time.time()):
                self.delete(key)
                return None
            return self._data[key]

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        with self._lock:
            self._data[key] = value
            if ttl is not None:
                self._expiry[key] = time.time() + ttl
            else:
                self._expiry.pop(key, None)

    def increment(self, key: str, ttl: int) -> int:
        with self._lock:
            self._maybe_cleanup()
            now = time.time()
            if key not in self._data or self._expired(key, now):
                self._data[key] = 0
                self._expiry[key] = now + ttl
            self._data[key] += 1
            return self._data[key]

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
            self._expiry.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._expiry.clear()

    def _maybe_cleanup(self) -> None:
        """Cleanup expired entries if cleanup interval has passed."""
        current_time = time.time()
        if current_time - self._last_cleanup < self._cleanup_interval:
            return

        self._last_cleanup = current_time
        expired_keys = [
            key for key, expiry in self._expiry.items() if current_time > expiry
        ]
        for key in expired_keys:
            self._data.pop(key, None)
            del self._expiry[key]

    def get_stats(self) -> dict:
        """
        Get storage statistics (for monitoring/debugging).

        Returns:
            Dict with keys: total_keys, expired_keys, active_keys
        """
        with self._lock:
            current_time = time.time()
            expired_count = sum(
                1 for expiry in self._expiry.values() if current_time > expiry
            )
            return {
                "total_keys": len(self._data),
                "expired_keys": expired_count,
                "active_keys": len(self._data) - expired_count,
            }


class RedisStorage(RateLimiterStorage):
    """
    Redis storage backend for rate limiting.

    Provides rate limits shared across workers and servers, with connection
    pooling and namespaced keys.

    Errors are logged. A failed ``increment`` returns 0 so requests are let
    through while Redis is unavailable.
    """

    KEY_PREFIX = "ratelimit:"

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: Optional[str] = None,
        connection_pool_size: int = 10,
        socket_timeout: float = 5.0,
        socket_connect_timeout: float = 5.0,
        retry_on_timeout: bool = True,
    ):
        """
        Initialize Redis storage with connection pooling.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0
                       or redis://:password@host:port/db)
            key_prefix: Optional custom prefix for rate limit keys
                        (defaults to "ratelimit:")
            connection_pool_size: Maximum number of connections in the pool
            socket_timeout: Timeout for socket operations in seconds
            socket_connect_timeout: Timeout for socket connections in seconds
            retry_on_timeout: Whether to retry on timeout errors
        """
        self._key_prefix = key_prefix or self.KEY_PREFIX
        self._pool = redis.ConnectionPool.from_url(
            redis_url,
            max_connections=connection_pool_size,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
            retry_on_timeout=retry_on_timeout,
        )
        self._redis = redis.Redis(connection_pool=self._pool)

        try:
            self._redis.ping()
            logger.info("Successfully connected to Redis for rate limiting")
        except redis.ConnectionError as e:
            logger.warning(
                f"Could not connect to Redis on startup: {e}. "
                "Requests will not be rate limited until Redis is available."
            )

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self._redis.get(self._make_key(key))
            if value is None:
                return None
            return json.loads(value.decode("utf-8"))
        except redis.RedisError as e:
            logger.error(f"Redis error during get({key}): {e}")
            return None
        except ValueError as e:
            logger.error(f"JSON decode error during get({key}): {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            serialized = json.dumps(value)
            full_key = self._make_key(key)
            if ttl is not None and ttl > 0:
                self._redis.setex(full_key, ttl, serialized)
            else:
                self._redis.set(full_key, serialized)
        except redis.RedisError as e:
            logger.error(f"Redis error during set({key}): {e}")
        except (TypeError, ValueError) as e:
            logger.error(f"JSON encode error during set({key}): {e}")

    def increment(self, key: str, ttl: int) -> int:
        full_key = self._make_key(key)
        try:
            count = int(self._redis.incr(full_key))
            if count == 1:
                self._redis.expire(full_key, ttl)
            return count
        except redis.RedisError as e:
            logger.error(f"Redis error during increment({key}): {e}")
            return 0

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(self._make_key(key))
        except redis.RedisError as e:
            logger.error(f"Redis error during delete({key}): {e}")

    def clear(self) -> None:
        """
        Clear all rate limit keys.

        Only clears keys with the rate limit prefix, not the entire database.
        """
        try:
            pattern = f"{self._key_prefix}*"
            cursor: int = 0
            while True:
                cursor, keys = self._redis.scan(cursor, match=pattern, count=100)
                if keys:
                    self._redis.delete(*keys)
                if cursor == 0:
                    break
        except redis.RedisError as e:
            logger.error(f"Redis error during clear(): {e}")

    def is_connected(self) -> bool:
        try:
            self._redis.ping()
            return True
        except redis.RedisError:
            return False

    def close(self) -> None:
        """Close the Redis connection pool."""
        self._pool.disconnect()
