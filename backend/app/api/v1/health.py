"""
Health check, monitoring and service info endpoints.

These routes are mounted at the application root, outside the versioned
API prefix, so load balancers and uptime checks have stable URLs.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core import settings
from app.core.circuit_breaker import db_circuit_breaker
from app.core.datetime_utils import utc_now
from app.core.health import check_health
from app.core.monitoring import request_stats
from app.models import get_db

router = APIRouter()


@router.get("/")
def service_info():
    """Basic service information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENV,
        "apiDocs": "/api-docs",
    }


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns 503 when the database is down. Redis being unavailable is
    reported but does not change the overall status.
    """
    report = check_health(db)
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if report["status"] == "DOWN"
        else status.HTTP_200_OK
    )
    return JSONResponse(status_code=status_code, content=report)


@router.get("/monitoring")
def monitoring():
    """Request statistics collected by the monitoring middleware."""
    return {
        "timestamp": utc_now().isoformat(),
        "requests": request_stats.snapshot(),
        "circuitBreaker": db_circuit_breaker.get_state(),
    }
