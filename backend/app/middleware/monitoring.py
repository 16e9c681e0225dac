"""
Middleware feeding request statistics to ``/monitoring``.
"""
import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from typing import Callable, Optional

from app.core.auth.ip_extraction import get_secure_client_ip
from app.core.monitoring import RequestStats, request_stats

logger = logging.getLogger(__name__)


class MonitoringMiddleware(BaseHTTPMiddleware):
    """
    Record every request into ``RequestStats`` and flag slow requests.

    Adds an ``X-Process-Time`` header (seconds) to each response.
    """

    def __init__(
        self,
        app,
        stats: Optional[RequestStats] = None,
        slow_request_threshold: float = 1.0,
    ):
        """
        Args:
            app: FastAPI application
            stats: Statistics collector (default: the process-wide one)
            slow_request_threshold: Seconds after which a request is logged as slow
        """
        super().__init__(app)
        self.stats = stats or request_stats
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        response.headers["X-Process-Time"] = str(round(process_time, 4))

        if process_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {process_time:.4f}s (threshold: {self.slow_request_threshold}s)"
            )

        self.stats.record(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=process_time * 1000,
            ip=get_secure_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
        return response
