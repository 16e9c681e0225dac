"""
Security middleware for adding security headers and enforcing security policies.
"""
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp
from typing import Callable, Optional

# Interactive docs load their own scripts and styles
DOCS_PATHS = ("/api-docs", "/redoc", "/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all responses.

    Sets:
    - Content Security Policy (CSP), relaxed for the API docs
    - X-Frame-Options and X-Content-Type-Options
    - Strict-Transport-Security (when enabled)
    - Referrer-Policy and cross-origin policies
    - Long-lived Cache-Control for uploaded static files
    """

    def __init__(
        self,
        app: ASGIApp,
        hsts_enabled: bool = True,
        hsts_max_age: int = 31536000,  # 1 year
        csp_enabled: bool = True,
        static_path: Optional[str] = None,
        static_max_age: int = 2592000,  # 30 days
    ):
        """
        Initialize security headers middleware.

        Args:
            app: ASGI application
            hsts_enabled: Enable HTTP Strict Transport Security
            hsts_max_age: HSTS max age in seconds
            csp_enabled: Enable Content Security Policy
            static_path: URL prefix of uploaded files served by the app
            static_max_age: Cache lifetime for uploaded files in seconds
        """
        super().__init__(app)
        self.hsts_enabled = hsts_enabled
        self.hsts_max_age = hsts_max_age
        self.csp_enabled = csp_enabled
        self.static_path = static_path.rstrip("/") + "/" if static_path else None
        self.static_max_age = static_max_age

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        path = request.url.path

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
        response.headers["Cross-Origin-Resource-Policy"] = "same-site"
        response.headers["X-Permitted-Cross-Domain-Policies"] = "none"

        if self.csp_enabled:
            if path.startswith(DOCS_PATHS):
                csp_directives = [
                    "default-src 'self'",
                    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
                    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
                    "img-src 'self' data: https://fastapi.tiangolo.com",
                ]
            else:
                csp_directives = [
                    "default-src 'self'",
                    "img-src 'self' data:",
                    "object-src 'none'",
                    "frame-src 'none'",
                    "base-uri 'self'",
                    "frame-ancestors 'none'",
                ]
            response.headers["Content-Security-Policy"] = "; ".join(csp_directives)

        if self.hsts_enabled:
            response.headers[
                "Strict-Transport-Security"
            ] = f"max-age={self.hsts_max_age}; includeSubDomains"

        if self.static_path and path.startswith(self.static_path):
            response.headers["Cache-Control"] = f"max-age={self.static_max_age}"

        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce maximum request body size limits.

    Rejects requests whose Content-Length exceeds the limit with 413.
    """

    def __init__(self, app: ASGIApp, max_body_size: int = 1024 * 1024):
        """
        Initialize request size limit middleware.

        Args:
            app: ASGI application
            max_body_size: Maximum request body size in bytes (default: 1MB)
        """
        super().__init__(app)
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_body_size:
                return JSONResponse(
                    status_code=413,
                    content={
                        "status": "error",
                        "success": False,
                        "message": "Request body too large",
                        "statusCode": 413,
                    },
                )

        return await call_next(request)
