"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict
from urllib.parse import urlparse

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import health
from app.api.v1.api import api_router
from app.core.auth.ip_extraction import get_secure_client_ip
from app.core.cache import get_cache, set_cache
from app.core.config import settings
from app.core.error_responses import ErrorMessages
from app.core.error_tracking import (
    capture_error,
    init_error_tracking,
    shutdown_error_tracking,
)
from app.core.ip_blacklist import not_found_tracker
from app.core.logging_config import setup_logging
from app.core.responses import error_response
from app.middleware import (
    IPBlacklistMiddleware,
    MonitoringMiddleware,
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from app.models import Base, engine
from app.ratelimit import (
    EndpointLimitConfig,
    InMemoryStorage,
    RateLimiter,
    RateLimiterStorage,
    RateLimitMiddleware,
    RedisStorage,
    get_user_identifier,
)

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)

HOUR = 3600
FIFTEEN_MINUTES = 15 * 60


def _sanitize_redis_url(url: str) -> str:
    """
    Remove password from Redis URL for safe logging.

    Args:
        url: Redis connection URL (e.g., redis://:password@host:port/db)

    Returns:
        URL with password redacted
    """
    parsed = urlparse(url)
    if parsed.password:
        netloc = parsed.hostname or "localhost"
        if parsed.port:
            netloc = f"{netloc}:{parsed.port}"
        return f"{parsed.scheme}://{netloc}{parsed.path}"
    return url


def _create_rate_limit_storage() -> RateLimiterStorage:
    """
    Create rate limit storage backend based on configuration.

    If Redis is configured but unreachable, falls back to in-memory storage.
    """
    if settings.RATE_LIMIT_STORAGE == "redis":
        storage = RedisStorage(redis_url=settings.RATE_LIMIT_REDIS_URL)
        if storage.is_connected():
            logger.info(
                f"Rate limiting using Redis storage at {_sanitize_redis_url(settings.RATE_LIMIT_REDIS_URL)}"
            )
            return storage
        logger.warning(
            "Redis not available for rate limiting, falling back to in-memory storage. "
            "Rate limits will NOT be shared across workers."
        )
        storage.close()
    else:
        logger.info("Rate limiting using in-memory storage")
    return InMemoryStorage()


def _endpoint_limits() -> Dict[str, EndpointLimitConfig]:
    """Stricter limits for authentication and upload endpoints."""
    prefix = settings.API_V1_PREFIX
    upload_limit: EndpointLimitConfig = {
        "limit": 20,
        "window": HOUR,
        "message": "Too many upload attempts, please try again later",
    }
    return {
        f"{prefix}/auth/login": {
            "limit": 5,
            "window": HOUR,
            "message": "Too many login attempts, please try again after an hour",
        },
        f"{prefix}/auth/register": {
            "limit": 3,
            "window": HOUR,
            "message": "Too many registration attempts, please try again after an hour",
        },
        f"{prefix}/auth/refresh-token": {
            "limit": 10,
            "window": FIFTEEN_MINUTES,
            "message": "Too many authentication attempts, please try again later",
        },
        f"{prefix}/blogs/upload-image": upload_limit,
        f"{prefix}/gallery/upload-image": upload_limit,
        f"{prefix}/services/upload-image": upload_limit,
    }


def _prefix_limits() -> Dict[str, EndpointLimitConfig]:
    return {
        f"{settings.API_V1_PREFIX}/superadmin": {
            "limit": 30,
            "window": FIFTEEN_MINUTES,
            "message": "Too many admin requests, please try again later",
        },
    }


def _field_name(loc) -> str:
    """``("body", "user", "email")`` -> ``"user.email"``."""
    parts = [str(part) for part in loc]
    if len(parts) > 1 and parts[0] in ("body", "query", "path", "header", "form"):
        parts = parts[1:]
    return ".".join(parts)


def _validation_messages(exc: RequestValidationError) -> Dict[str, str]:
    """First error message per field, without pydantic's "Value error, " prefix."""
    errors: Dict[str, str] = {}
    for error in exc.errors():
        field = _field_name(error.get("loc", ()))
        message = str(error.get("msg", ""))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: initializes error tracking and creates missing tables
    - On shutdown: closes the response cache and rate limit storage, then
      flushes pending error reports
    """
    init_error_tracking()
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting ({settings.ENV})")

    yield

    get_cache().close()
    set_cache(None)
    logger.info("Closed response cache")

    if hasattr(app.state, "rate_limit_storage"):
        storage = app.state.rate_limit_storage
        if hasattr(storage, "close"):
            storage.close()
            logger.info("Closed rate limit storage connection pool")

    shutdown_error_tracking()


# OpenAPI tags metadata
tags_metadata = [
    {"name": "health", "description": "Service info, health check and request monitoring"},
    {"name": "auth", "description": "Registration, login and token refresh"},
    {"name": "user", "description": "Self-service account management"},
    {"name": "tests", "description": "Psychological tests: authoring, taking and scoring"},
    {"name": "superadmin", "description": "Account management and test approval"},
    {"name": "blogs", "description": "Blog posts with approval workflow"},
    {"name": "faqs", "description": "FAQs and their candidate answers"},
    {"name": "gallery", "description": "Image galleries"},
    {"name": "services", "description": "Service catalogue"},
]


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "**ANSAC API** - Backend for psychological screening tests and site content.\n\n"
            "This API provides:\n"
            "* Account registration, login and role-based access\n"
            "* Test authoring, approval, delivery and scoring per subskala\n"
            "* Blogs, FAQs, galleries and services with an approval workflow\n\n"
            "## Authentication\n\n"
            "Most endpoints require a JWT Bearer token. Obtain tokens via the "
            f"`{settings.API_V1_PREFIX}/auth/login` endpoint."
        ),
        docs_url="/api-docs",
        redoc_url=None,
        openapi_url="/api-docs/openapi.json",
        openapi_tags=tags_metadata,
    )

    # Middleware runs in reverse order of registration: the last one added
    # sees the request first.

    # Configure Security Headers
    # HSTS is enabled only in production to avoid issues with local development
    app.add_middleware(
        SecurityHeadersMiddleware,
        hsts_enabled=settings.ENV == "production",
        hsts_max_age=31536000,  # 1 year
        csp_enabled=True,
        static_path=settings.UPLOAD_URL_PATH,
    )

    app.add_middleware(
        RequestSizeLimitMiddleware, max_body_size=settings.MAX_REQUEST_BODY_BYTES
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=1024)

    # Configure Rate Limiting
    if settings.RATE_LIMIT_ENABLED:
        storage = _create_rate_limit_storage()
        app.state.rate_limit_storage = storage

        limiter = RateLimiter(
            storage=storage,
            default_limit=settings.RATE_LIMIT_DEFAULT_LIMIT,
            default_window=settings.RATE_LIMIT_DEFAULT_WINDOW,
        )
        app.add_middleware(
            RateLimitMiddleware,
            limiter=limiter,
            identifier_resolver=get_user_identifier,
            skip_paths=["/", "/health", "/monitoring", "/api-docs", "/api-docs/openapi.json"],
            add_headers=True,
            endpoint_limits=_endpoint_limits(),
            prefix_limits=_prefix_limits(),
        )

    # Blocked clients are turned away before rate limiting counts them
    app.add_middleware(IPBlacklistMiddleware)

    app.add_middleware(MonitoringMiddleware, slow_request_threshold=1.0)

    # Added last so it logs every request, including rejected ones
    app.add_middleware(RequestLoggingMiddleware)

    # Routers
    app.include_router(health.router, tags=["health"])
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Uploaded images
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.UPLOAD_URL_PATH,
        StaticFiles(directory=str(upload_dir)),
        name="uploads",
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Render HTTP errors in the response envelope.

        A 404 for a path no route matched also counts towards the client's
        404 budget in the IP blacklist tracker.
        """
        message = exc.detail
        if exc.status_code == status.HTTP_404_NOT_FOUND and request.scope.get("route") is None:
            message = ErrorMessages.ROUTE_NOT_FOUND
            not_found_tracker.record(get_secure_client_ip(request), request.url.path)

        if exc.status_code >= 500:
            logger.error(
                f"{request.method} {request.url.path} failed: {exc.detail}",
                extra={"path": request.url.path, "status_code": exc.status_code},
            )

        return error_response(
            message=str(message),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Handle request validation errors as ``{field: message}``.
        """
        errors = _validation_messages(exc)
        logger.info(
            f"Validation failed for {request.method} {request.url.path}",
            extra={"path": request.url.path, "errors": errors},
        )
        return error_response(
            message=ErrorMessages.VALIDATION_ERROR,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            errors=errors,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        Generates a unique error_id (UUID) for each exception to enable
        support teams to trace specific errors in logs. The error_id is
        included in the response body and logged with the full exception.
        """
        error_id = str(uuid.uuid4())

        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"error_id": error_id, "path": request.url.path},
        )

        capture_error(
            exc,
            context={
                "path": request.url.path,
                "method": request.method,
                "error_id": error_id,
            },
            tags={"error_type": exc.__class__.__name__},
        )

        # Don't leak internal details
        return error_response(
            message=ErrorMessages.INTERNAL_ERROR,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_id=error_id,
        )

    return app


app = create_application()
