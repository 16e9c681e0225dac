"""
Health checks for the database, Redis and the host system.
"""

import logging
import os
import platform
import time
from typing import Any, Dict, Optional

import psutil
import redis
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.cache import ResponseCache, get_cache
from app.core.config import settings
from app.core.datetime_utils import utc_now

logger = logging.getLogger(__name__)

PROCESS_STARTED_AT = time.time()

GB = 1024**3


def _format_duration(seconds: float) -> str:
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours} hours, {minutes} minutes"


def check_database_health(db: Session) -> Dict[str, Any]:
    """Run ``SELECT 1`` and report status with the round-trip time."""
    start = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        result: Dict[str, Any] = {"status": "DOWN", "error": str(e)}
        if settings.ENV == "development":
            result["details"] = repr(e)
        return result
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    return {"status": "UP", "responseTime": f"{elapsed_ms}ms"}


def check_redis_health(cache: Optional[ResponseCache] = None) -> Dict[str, Any]:
    """Ping the cache's Redis backend, if one is configured."""
    cache = cache or get_cache()
    if cache.redis is None:
        return {"status": "DOWN", "message": "Redis connection not established"}
    start = time.perf_counter()
    try:
        cache.redis.ping()
    except redis.exceptions.RedisError as e:
        logger.debug(f"Redis health check failed: {e}")
        return {"status": "DOWN", "error": str(e)}
    elapsed_ms = int((time.perf_counter() - start) * 1000)
    return {"status": "UP", "responseTime": f"{elapsed_ms}ms"}


def get_system_info() -> Dict[str, Any]:
    memory = psutil.virtual_memory()
    used = memory.total - memory.available
    load_average = list(os.getloadavg()) if hasattr(os, "getloadavg") else []
    return {
        "platform": platform.system().lower(),
        "arch": platform.machine(),
        "cpus": psutil.cpu_count() or 0,
        "memory": {
            "total": f"{round(memory.total / GB)} GB",
            "free": f"{round(memory.available / GB)} GB",
            "used": f"{round(used / GB)} GB",
            "usagePercentage": f"{round(memory.percent)}%",
        },
        "uptime": {
            "os": _format_duration(time.time() - psutil.boot_time()),
            "process": _format_duration(time.time() - PROCESS_STARTED_AT),
        },
        "loadAverage": load_average,
    }


def get_app_info() -> Dict[str, Any]:
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENV,
        "pythonVersion": platform.python_version(),
        "uptime": round(time.time() - PROCESS_STARTED_AT, 2),
    }


def check_health(db: Session, cache: Optional[ResponseCache] = None) -> Dict[str, Any]:
    """
    Aggregate health report.

    The overall status is DOWN only when the database is down; Redis is an
    optional dependency and never takes the service down.
    """
    database = check_database_health(db)
    redis_health = check_redis_health(cache)
    status = "DOWN" if database["status"] == "DOWN" else "UP"

    report: Dict[str, Any] = {
        "status": status,
        "timestamp": utc_now().isoformat(),
        "application": get_app_info(),
        "components": {"database": database, "redis": redis_health},
    }
    if settings.ENV == "development" or settings.INCLUDE_SYSTEM_INFO:
        report["system"] = get_system_info()

    if status == "DOWN":
        logger.error("Health check returned DOWN status")
    return report
