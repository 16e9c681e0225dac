"""
FastAPI middleware for automatic rate limiting.

Applies a default limit to every request plus stricter limits for sensitive
endpoints (login, registration, uploads) and path prefixes (superadmin).
"""
import logging
import math

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from typing import Awaitable, Callable, Optional, TypedDict

from .limiter import RateLimiter
from app.core.auth.ip_extraction import get_secure_client_ip
from app.core.auth.security import TokenError, decode_token, verify_token_type

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Too many requests, please try again later"


class EndpointLimitConfig(TypedDict, total=False):
    """Configuration for per-endpoint rate limits."""

    limit: int
    window: int
    message: str


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for automatic rate limiting.

    Example:
        ```python
        limiter = RateLimiter(default_limit=100, default_window=900)

        app.add_middleware(
            RateLimitMiddleware,
            limiter=limiter,
            endpoint_limits={
                "/api/v1/auth/login": {"limit": 5, "window": 3600},
            },
            prefix_limits={
                "/api/v1/superadmin": {"limit": 30, "window": 900},
            },
        )
        ```
    """

    def __init__(
        self,
        app,
        limiter: RateLimiter,
        identifier_resolver: Optional[Callable[[Request], str]] = None,
        skip_paths: Optional[list[str]] = None,
        add_headers: bool = True,
        endpoint_limits: Optional[dict[str, EndpointLimitConfig]] = None,
        prefix_limits: Optional[dict[str, EndpointLimitConfig]] = None,
    ):
        """
        Initialize rate limit middleware.

        Args:
            app: FastAPI application
            limiter: RateLimiter instance
            identifier_resolver: Function to extract identifier from request
                                (default: uses client IP)
            skip_paths: Paths that are never rate limited (e.g., /health)
            add_headers: Whether to add rate limit headers to responses
            endpoint_limits: Exact-path overrides. Each endpoint uses its own
                             bucket, independent of the default limit.
            prefix_limits: Overrides for every path under a prefix, sharing
                           one bucket per prefix.
        """
        super().__init__(app)
        self.limiter = limiter
        self.identifier_resolver = identifier_resolver or self._default_identifier
        self.skip_paths = skip_paths or []
        self.add_headers = add_headers
        self.endpoint_limits = endpoint_limits or {}
        self.prefix_limits = prefix_limits or {}

    def _resolve_limit(self, path: str) -> tuple[Optional[str], EndpointLimitConfig]:
        if path in self.endpoint_limits:
            return path, self.endpoint_limits[path]
        for prefix, config in self.prefix_limits.items():
            if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
                return prefix, config
        return None, {}

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in self.skip_paths:
            return await call_next(request)

        identifier = self.identifier_resolver(request)
        path = request.url.path
        bucket, config = self._resolve_limit(path)
        if bucket is not None:
            # "::endpoint::" keeps bucket names apart from identifiers with colons
            identifier = f"{identifier}::endpoint::{bucket}"

        allowed, metadata = self.limiter.check(
            identifier, limit=config.get("limit"), window=config.get("window")
        )

        if not allowed:
            logger.warning(
                f"Rate limit exceeded for {path}",
                extra={
                    "ip": get_secure_client_ip(request),
                    "path": path,
                    "reason": "Rate limit exceeded",
                },
            )
            return self._rate_limit_response(
                metadata, config.get("message", DEFAULT_MESSAGE)
            )

        response = await call_next(request)

        if self.add_headers:
            self._add_rate_limit_headers(response, metadata)

        return response

    def _default_identifier(self, request: Request) -> str:
        return f"ip:{get_secure_client_ip(request)}"

    def _rate_limit_response(self, metadata: dict, message: str) -> JSONResponse:
        """
        Create the 429 response.

        ``retryAfter`` in the body is in minutes; the ``Retry-After`` header
        is in seconds.
        """
        retry_after = metadata.get("retry_after", 0)
        response = JSONResponse(
            status_code=429,
            content={
                "status": "error",
                "success": False,
                "message": message,
                "error": {
                    "code": 429,
                    "reason": "Rate limit exceeded",
                    "retryAfter": math.ceil(retry_after / 60),
                },
                "statusCode": 429,
            },
        )
        self._add_rate_limit_headers(response, metadata)
        if retry_after > 0:
            response.headers["Retry-After"] = str(retry_after)
        return response

    def _add_rate_limit_headers(self, response: Response, metadata: dict) -> None:
        """
        Add rate limit headers to response.

        - X-RateLimit-Limit: Request quota
        - X-RateLimit-Remaining: Remaining requests
        - X-RateLimit-Reset: When quota resets (Unix timestamp)
        """
        response.headers["X-RateLimit-Limit"] = str(metadata.get("limit", 0))
        response.headers["X-RateLimit-Remaining"] = str(metadata.get("remaining", 0))
        response.headers["X-RateLimit-Reset"] = str(metadata.get("reset_at", 0))


def get_user_identifier(request: Request) -> str:
    """
    Key a request on the user id from its Bearer access token.

    Middleware runs before route dependencies, so the token is decoded here
    rather than read from ``request.state``. A missing, expired or invalid
    token falls back to the client IP; the route itself still rejects it.

    Returns:
        User ID (format: "user:{id}") or IP address (format: "ip:{address}")
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            payload = decode_token(token.strip())
        except TokenError:
            payload = None
        if payload and verify_token_type(payload, "access") and payload.get("id"):
            return f"user:{payload['id']}"
    return f"ip:{get_secure_client_ip(request)}"
