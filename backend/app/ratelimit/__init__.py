"""
Rate limiting: fixed-window limiter, storage backends and middleware.
"""
from .limiter import RateLimiter
from .middleware import RateLimitMiddleware, EndpointLimitConfig, get_user_identifier
from .storage import RateLimiterStorage, InMemoryStorage, RedisStorage

__all__ = [
    "RateLimiter",
    "RateLimitMiddleware",
    "EndpointLimitConfig",
    "get_user_identifier",
    "RateLimiterStorage",
    "InMemoryStorage",
    "RedisStorage",
]
