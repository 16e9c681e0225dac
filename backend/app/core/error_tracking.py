"""
Error tracking with Sentry.

Disabled unless ``SENTRY_DSN`` is set. ``init_error_tracking`` runs once from
the application lifespan; ``capture_error`` is called by the unhandled
exception handler and is a no-op while tracking is off.
"""
import logging
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from app.core.config import settings

logger = logging.getLogger(__name__)

_initialized = False


def init_error_tracking() -> bool:
    """
    Initialize the Sentry SDK from settings.

    Returns:
        True if Sentry is active after the call
    """
    global _initialized
    if not settings.SENTRY_DSN:
        logger.info("Sentry DSN not configured, error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=f"ansac-backend@{settings.APP_VERSION}",
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
    _initialized = True
    logger.info(
        f"Sentry initialized for environment '{settings.ENV}' "
        f"with {settings.SENTRY_TRACES_SAMPLE_RATE * 100:.0f}% trace sampling"
    )
    return True


def is_enabled() -> bool:
    return _initialized


def capture_error(
    exception: BaseException,
    *,
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Send an exception to Sentry with request context.

    Returns:
        The Sentry event id, or None when tracking is disabled
    """
    if not is_enabled():
        return None

    with sentry_sdk.new_scope() as scope:
        if context:
            scope.set_context("request", {k: str(v) for k, v in context.items()})
        for key, value in (tags or {}).items():
            scope.set_tag(key, value)
        return sentry_sdk.capture_exception(exception)


def shutdown_error_tracking() -> None:
    """Flush pending events before the process exits."""
    global _initialized
    if _initialized:
        sentry_sdk.flush(timeout=2.0)
        _initialized = False
