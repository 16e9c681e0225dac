"""
Response caching for public read endpoints.

Two backends share one interface:

- ``SimpleCache``: in-process dict with per-entry TTL
- ``RedisCache``: JSON values in Redis under a key prefix

``ResponseCache`` uses Redis when ``CACHE_REDIS_URL`` is set and reachable and
falls back to ``SimpleCache`` otherwise. Redis errors at request time are
logged and treated as cache misses so a cache outage never fails a request.

Usage:
    from app.core.cache import cached_public, invalidate

    data = cached_public("blogs:public", lambda: load_public_blogs(db))
    ...
    invalidate("blogs:")
"""

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300


class SimpleCache:
    """Thread-safe in-memory cache with per-entry TTL."""

    def __init__(self, default_ttl: int = DEFAULT_TTL):
        self.default_ttl = default_ttl
        self._cache: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            value, expiry = entry
            if expiry <= time.time():
                del self._cache[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expiry = time.time() + (ttl if ttl is not None else self.default_ttl)
        with self._lock:
            self._cache[key] = (value, expiry)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def delete_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``. Returns the count removed."""
        with self._lock:
            keys = [k for k in self._cache if k.startswith(prefix)]
            for key in keys:
                del self._cache[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """Drop expired entries. Returns the count removed."""
        now = time.time()
        with self._lock:
            expired = [k for k, (_, expiry) in self._cache.items() if expiry <= now]
            for key in expired:
                del self._cache[key]
            return len(expired)


class RedisCache:
    """JSON-serializing cache stored in Redis under ``key_prefix``."""

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "ansac:",
        default_ttl: int = DEFAULT_TTL,
        socket_timeout: float = 5.0,
    ):
        self.key_prefix = key_prefix
        self.default_ttl = default_ttl
        self._client = redis.Redis.from_url(
            redis_url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def ping(self) -> bool:
        return bool(self._client.ping())

    def get(self, key: str) -> Optional[Any]:
        raw = self._client.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        self._client.set(
            self._key(key),
            json.dumps(value, default=str),
            ex=ttl if ttl is not None else self.default_ttl,
        )

    def delete(self, key: str) -> None:
        self._client.delete(self._key(key))

    def delete_by_prefix(self, prefix: str) -> int:
        keys = list(self._client.scan_iter(match=f"{self._key(prefix)}*"))
        if not keys:
            return 0
        return int(self._client.delete(*keys))

    def clear(self) -> None:
        self.delete_by_prefix("")

    def close(self) -> None:
        self._client.close()


class ResponseCache:
    """
    Cache facade that prefers Redis and degrades to memory.

    Args:
        redis_url: Redis connection URL; empty selects the in-memory backend
        key_prefix: Prefix for every Redis key
        default_ttl: TTL in seconds for entries set without one
        enabled: When False every lookup misses and writes are dropped
    """

    def __init__(
        self,
        redis_url: str = "",
        key_prefix: str = "ansac:",
        default_ttl: int = DEFAULT_TTL,
        enabled: bool = True,
    ):
        self.enabled = enabled
        self.default_ttl = default_ttl
        self.memory = SimpleCache(default_ttl=default_ttl)
        self.redis: Optional[RedisCache] = None
        if enabled and redis_url:
            self.redis = self._connect(redis_url, key_prefix, default_ttl)

    @staticmethod
    def _connect(redis_url: str, key_prefix: str, default_ttl: int) -> Optional[RedisCache]:
        backend = RedisCache(redis_url, key_prefix=key_prefix, default_ttl=default_ttl)
        try:
            backend.ping()
        except redis.exceptions.RedisError as e:
            logger.warning(
                f"Redis unavailable for response cache, using in-memory cache: {e}"
            )
            return None
        logger.info("Response cache connected to Redis")
        return backend

    @property
    def backend_name(self) -> str:
        return "redis" if self.redis is not None else "memory"

    def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        if self.redis is not None:
            try:
                return self.redis.get(key)
            except redis.exceptions.RedisError as e:
                logger.warning(f"Cache get failed for [{key}]: {e}")
                return None
        return self.memory.get(key)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if not self.enabled:
            return
        if self.redis is not None:
            try:
                self.redis.set(key, value, ttl)
            except redis.exceptions.RedisError as e:
                logger.warning(f"Cache set failed for [{key}]: {e}")
            return
        self.memory.set(key, value, ttl)

    def delete(self, key: str) -> None:
        if self.redis is not None:
            try:
                self.redis.delete(key)
            except redis.exceptions.RedisError as e:
                logger.error(f"Cache delete failed for [{key}]: {e}")
        self.memory.delete(key)

    def delete_by_prefix(self, prefix: str) -> int:
        removed = self.memory.delete_by_prefix(prefix)
        if self.redis is not None:
            try:
                removed += self.redis.delete_by_prefix(prefix)
            except redis.exceptions.RedisError as e:
                logger.error(f"Cache clear failed for prefix [{prefix}]: {e}")
        if removed:
            logger.info(f"Cleared {removed} cache entries with prefix [{prefix}]")
        return removed

    def clear(self) -> None:
        self.delete_by_prefix("")

    def close(self) -> None:
        if self.redis is not None:
            self.redis.close()


_cache: Optional[ResponseCache] = None
_cache_lock = threading.Lock()


def get_cache() -> ResponseCache:
    """Return the process-wide response cache, creating it on first use."""
    global _cache
    if _cache is None:
        with _cache_lock:
            if _cache is None:
                _cache = ResponseCache(
                    redis_url=settings.CACHE_REDIS_URL,
                    key_prefix=settings.CACHE_KEY_PREFIX,
                    default_ttl=settings.CACHE_TTL_SECONDS,
                    enabled=settings.CACHE_ENABLED,
                )
    return _cache


def set_cache(cache: Optional[ResponseCache]) -> None:
    """Replace the process-wide cache (used at shutdown and in tests)."""
    global _cache
    with _cache_lock:
        _cache = cache


def cached_public(
    key: str, loader: Callable[[], Any], ttl: Optional[int] = None
) -> Any:
    """
    Return ``loader()`` through the response cache.

    ``loader`` must return JSON-serializable data (already encoded by alias).
    """
    cache = get_cache()
    value = cache.get(key)
    if value is not None:
        logger.debug(f"Cache hit for [{key}]")
        return value
    value = loader()
    cache.set(key, value, ttl)
    return value


def invalidate(prefix: str) -> int:
    """Drop cached entries for a content type after a write."""
    return get_cache().delete_by_prefix(prefix)
