"""
Middleware rejecting requests from blacklisted IP addresses.
"""
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from typing import Callable, Optional

from app.core.auth.ip_extraction import get_secure_client_ip
from app.core.error_responses import ErrorMessages
from app.core.ip_blacklist import IPBlacklist, ip_blacklist

logger = logging.getLogger(__name__)


class IPBlacklistMiddleware(BaseHTTPMiddleware):
    """Answer 403 to clients on the IP blacklist before any other work."""

    def __init__(self, app, blacklist: Optional[IPBlacklist] = None):
        super().__init__(app)
        self.blacklist = blacklist or ip_blacklist

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.blacklist.enabled:
            return await call_next(request)

        ip = get_secure_client_ip(request)
        self.blacklist.cleanup_expired()

        if self.blacklist.is_blacklisted(ip):
            logger.warning(
                f"Blocked request from blacklisted IP: {ip}", extra={"ip": ip}
            )
            return JSONResponse(
                status_code=403,
                content={
                    "status": "error",
                    "success": False,
                    "message": ErrorMessages.IP_BLACKLISTED,
                    "error": {
                        "code": 403,
                        "reason": "IP address temporarily blacklisted",
                    },
                    "statusCode": 403,
                },
            )

        return await call_next(request)
