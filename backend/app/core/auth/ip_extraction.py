"""
Client IP extraction for rate limiting, the IP blacklist and monitoring.

X-Forwarded-For can be set by any client, so it is only honoured when the
deployment declares a trusted reverse proxy via ``TRUST_PROXY_HEADERS``.
"""

from fastapi import Request

from app.core.config import settings


def get_secure_client_ip(request: Request) -> str:
    """
    Extract the client IP address from a request.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address as string, or "unknown" if unavailable
    """
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # Left-most entry is the original client
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
