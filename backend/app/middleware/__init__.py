"""
Middleware package for request/response processing.
"""
from .ip_blacklist import IPBlacklistMiddleware
from .monitoring import MonitoringMiddleware
from .request_logging import RequestLoggingMiddleware
from .security import SecurityHeadersMiddleware, RequestSizeLimitMiddleware

__all__ = [
    "IPBlacklistMiddleware",
    "MonitoringMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "RequestSizeLimitMiddleware",
]
