"""
In-process request statistics exposed at ``/monitoring``.

``RequestStats`` keeps counters for the lifetime of the process plus rolling
windows:

- requests per minute for the last 60 minutes
- status code counts, reset hourly
- the last 100 server errors
- unique visitors per day, week and month (localhost and crawlers excluded)

Traffic anomalies (request spikes, high error or 404 rates, runs of
consecutive server errors) are logged as warnings.
"""

import logging
import re
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Optional

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

_LOCAL_IP = re.compile(r"^(::1|127\.0\.0\.1)$")
_BOT_MARKERS = ("bot", "crawler", "spider")

ALERT_THRESHOLDS = {
    "requests_per_minute": 500,
    "error_rate_percent": 10,
    "not_found_percent": 20,
    "consecutive_errors": 10,
}

VISITOR_WINDOWS = {"daily": DAY, "weekly": 7 * DAY, "monthly": 30 * DAY}


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class RequestStats:
    """
    Thread-safe request statistics.

    Args:
        clock: Time source returning epoch seconds (injectable for tests)
        max_errors: Number of recent server errors kept
    """

    def __init__(
        self, clock: Callable[[], float] = time.time, max_errors: int = 100
    ):
        self._clock = clock
        self._lock = threading.Lock()
        self.max_errors = max_errors
        now = clock()
        self.started_at = now
        self.total_requests = 0
        self.total_response_time_ms = 0.0
        self.status_codes: Dict[int, int] = {}
        self.errors: Deque[Dict[str, Any]] = deque(maxlen=max_errors)
        self.consecutive_errors = 0
        self._minutes: Deque[int] = deque([0], maxlen=60)
        self._current_minute = int(now // MINUTE)
        self._last_reset = now
        self._last_pattern_check = now
        self._visitors: Dict[str, Dict[str, float]] = {
            name: {} for name in VISITOR_WINDOWS
        }
        self._visitor_reset = {name: now for name in VISITOR_WINDOWS}

    def record(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        ip: str,
        user_agent: Optional[str] = None,
    ) -> None:
        """Record one completed request."""
        with self._lock:
            now = self._clock()
            self._roll_minutes(now)
            self._minutes[0] += 1
            self.total_requests += 1
            self.total_response_time_ms += duration_ms
            self.status_codes[status_code] = self.status_codes.get(status_code, 0) + 1

            if self._is_visitor(ip, user_agent):
                for visitors in self._visitors.values():
                    visitors.setdefault(ip, now)

            if status_code >= 500:
                self.consecutive_errors += 1
                self.errors.append(
                    {
                        "timestamp": _iso(now),
                        "method": method,
                        "path": path,
                        "statusCode": status_code,
                        "ip": ip,
                        "responseTime": round(duration_ms, 2),
                    }
                )
            else:
                self.consecutive_errors = 0

            if now - self._last_pattern_check > MINUTE:
                self._check_patterns()
                self._reset_periodic(now)
                self._last_pattern_check = now

    @staticmethod
    def _is_visitor(ip: str, user_agent: Optional[str]) -> bool:
        if not ip or ip == "unknown" or _LOCAL_IP.match(ip):
            return False
        agent = (user_agent or "").lower()
        return not any(marker in agent for marker in _BOT_MARKERS)

    def _roll_minutes(self, now: float) -> None:
        minute = int(now // MINUTE)
        elapsed = minute - self._current_minute
        if elapsed <= 0:
            return
        for _ in range(min(elapsed, self._minutes.maxlen)):
            self._minutes.appendleft(0)
        self._current_minute = minute

    def _reset_periodic(self, now: float) -> None:
        if now - self._last_reset >= HOUR:
            self.status_codes = {}
            self._last_reset = now
            logger.info("Hourly request stats reset")
        for name, window in VISITOR_WINDOWS.items():
            if now - self._visitor_reset[name] >= window:
                self._visitors[name].clear()
                self._visitor_reset[name] = now
                logger.info(f"{name.capitalize()} visitor stats reset")

    def _check_patterns(self) -> None:
        current = self._minutes[0]
        if current > ALERT_THRESHOLDS["requests_per_minute"]:
            logger.warning(f"High traffic: {current} requests in the current minute")

        total = sum(self.status_codes.values())
        if total:
            errors = sum(c for code, c in self.status_codes.items() if code >= 500)
            not_found = self.status_codes.get(404, 0)
            error_rate = errors / total * 100
            not_found_rate = not_found / total * 100
            if error_rate > ALERT_THRESHOLDS["error_rate_percent"]:
                logger.warning(f"High error rate: {error_rate:.1f}% of requests")
            if not_found_rate > ALERT_THRESHOLDS["not_found_percent"]:
                logger.warning(f"High 404 rate: {not_found_rate:.1f}% of requests")

        if self.consecutive_errors >= ALERT_THRESHOLDS["consecutive_errors"]:
            logger.warning(f"{self.consecutive_errors} consecutive server errors")

    def snapshot(self) -> Dict[str, Any]:
        """Current statistics as a JSON-ready dict."""
        with self._lock:
            now = self._clock()
            self._roll_minutes(now)
            average = (
                self.total_response_time_ms / self.total_requests
                if self.total_requests
                else 0.0
            )
            error_count = sum(
                count for code, count in self.status_codes.items() if code >= 500
            )
            return {
                "uptime": round(now - self.started_at, 2),
                "totalRequests": self.total_requests,
                "requestsPerMinute": self._minutes[0],
                "requestsLastHour": sum(self._minutes),
                "statusCodes": {str(k): v for k, v in sorted(self.status_codes.items())},
                "errorCount": error_count,
                "recentErrors": list(self.errors)[-10:],
                "averageResponseTime": round(average, 2),
                "uniqueVisitors": {
                    name: len(visitors) for name, visitors in self._visitors.items()
                },
            }


request_stats = RequestStats()
