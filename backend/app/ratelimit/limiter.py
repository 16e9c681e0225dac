"""
Fixed-window rate limiter.

Each identifier gets a counter per window of ``window`` seconds aligned to the
epoch. A request is allowed while the counter is at or below the limit.
"""
import math
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .storage import InMemoryStorage, RateLimiterStorage


class RateLimiter:
    """
    Fixed-window request counter.

    Args:
        storage: Backend holding the counters (default: in-memory)
        default_limit: Requests allowed per window when no limit is given
        default_window: Window length in seconds when none is given
        clock: Time source returning epoch seconds
    """

    def __init__(
        self,
        storage: Optional[RateLimiterStorage] = None,
        default_limit: int = 100,
        default_window: int = 900,
        clock: Callable[[], float] = time.time,
    ):
        if default_limit <= 0:
            raise ValueError("default_limit must be positive")
        if default_window <= 0:
            raise ValueError("default_window must be positive")
        self.storage = storage or InMemoryStorage()
        self.default_limit = default_limit
        self.default_window = default_window
        self._clock = clock

    def check(
        self,
        identifier: str,
        limit: Optional[int] = None,
        window: Optional[int] = None,
    ) -> Tuple[bool, Dict[str, Any]]:
        """
        Count a request for ``identifier`` and decide whether it is allowed.

        Returns:
            Tuple of (allowed, metadata) where metadata has ``limit``,
            ``remaining``, ``reset_at`` (epoch seconds) and ``retry_after``
            (seconds, 0 when allowed)
        """
        limit = limit or self.default_limit
        window = window or self.default_window

        now = self._clock()
        window_start = int(now // window) * window
        reset_at = window_start + window
        key = f"{identifier}:{window}:{window_start}"

        count = self.storage.increment(key, ttl=window)
        allowed = count <= limit
        metadata = {
            "limit": limit,
            "remaining": max(0, limit - count),
            "reset_at": reset_at,
            "retry_after": 0 if allowed else max(1, math.ceil(reset_at - now)),
        }
        return allowed, metadata

    def reset(self) -> None:
        """Forget all counters."""
        self.storage.clear()
