"""
Temporary IP blacklist and 404 abuse detection.

``IPBlacklist`` keeps blocked addresses with an expiry and persists them to a
JSON file so blocks survive restarts:

    {"ips": {"203.0.113.7": {"reason": "...", "blacklistedAt": 1700000000.0,
                              "expiresAt": 1700001800.0}},
     "savedAt": 1700000000.0}

``NotFoundTracker`` counts 404 responses per client and blacklists clients
that look like they are scanning for endpoints.
"""

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 60 * MINUTE


class IPBlacklist:
    """
    Blacklist of client IPs with per-entry expiry.

    Args:
        file_path: JSON file used for persistence; None keeps it in memory
        enabled: When False nothing is ever blocked or persisted
        clock: Time source returning epoch seconds
    """

    CLEANUP_INTERVAL = HOUR

    def __init__(
        self,
        file_path: Optional[str] = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.file_path = Path(file_path) if file_path else None
        self.enabled = enabled
        self._clock = clock
        self._lock = threading.RLock()
        self._ips: Dict[str, Dict[str, object]] = {}
        self._last_cleanup = clock()
        if enabled:
            self.load()

    def load(self) -> None:
        """Load unexpired entries from the backing file, creating it if missing."""
        if self.file_path is None:
            return
        with self._lock:
            if not self.file_path.exists() or self.file_path.stat().st_size == 0:
                self._ips = {}
                self.save()
                logger.info("Created new blacklist file")
                return
            try:
                data = json.loads(self.file_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load blacklist from {self.file_path}: {e}")
                self._ips = {}
                self.save()
                return
            now = self._clock()
            self._ips = {
                ip: entry
                for ip, entry in (data.get("ips") or {}).items()
                if float(entry.get("expiresAt", 0)) > now
            }
            logger.info(f"Loaded {len(self._ips)} blacklisted IPs from storage")

    def save(self) -> None:
        if self.file_path is None:
            return
        with self._lock:
            payload = {"ips": self._ips, "savedAt": self._clock()}
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.file_path)

    def add(self, ip: str, reason: str, duration: float) -> None:
        """Block ``ip`` for ``duration`` seconds."""
        if not self.enabled:
            logger.info(f"Blacklist disabled: not blacklisting {ip} ({reason})")
            return
        with self._lock:
            now = self._clock()
            self._ips[ip] = {
                "reason": reason,
                "blacklistedAt": now,
                "expiresAt": now + duration,
            }
            self.save()
        logger.warning(
            f"IP {ip} blacklisted for {reason} ({int(duration)}s)",
            extra={"ip": ip, "reason": reason},
        )

    def remove(self, ip: str) -> bool:
        with self._lock:
            if self._ips.pop(ip, None) is None:
                return False
            self.save()
            return True

    def is_blacklisted(self, ip: str) -> bool:
        """Whether ``ip`` is currently blocked. Expired entries are dropped."""
        if not self.enabled:
            return False
        with self._lock:
            entry = self._ips.get(ip)
            if entry is None:
                return False
            if self._clock() > float(entry["expiresAt"]):
                del self._ips[ip]
                self.save()
                return False
            return True

    def cleanup_expired(self, force: bool = False) -> int:
        """Drop expired entries, at most once per hour unless ``force``."""
        with self._lock:
            now = self._clock()
            if not force and now - self._last_cleanup < self.CLEANUP_INTERVAL:
                return 0
            expired = [
                ip for ip, entry in self._ips.items() if now > float(entry["expiresAt"])
            ]
            for ip in expired:
                del self._ips[ip]
            if expired:
                logger.info(f"Removed {len(expired)} expired IP(s) from blacklist")
                self.save()
            self._last_cleanup = now
            return len(expired)

    def entries(self) -> Dict[str, Dict[str, object]]:
        with self._lock:
            return {ip: dict(entry) for ip, entry in self._ips.items()}


class NotFoundTracker:
    """
    Per-IP 404 counter that blacklists abusive clients.

    Rules, checked in order:

    - more than 50 404s within 2 minutes of the first one: 30 minutes
    - more than 200 404s in total: 2 hours
    - more than 20 distinct missing paths: 6 hours

    Counters are discarded hourly and after an IP is blacklisted.
    """

    BURST_COUNT = 50
    BURST_WINDOW = 2 * MINUTE
    BURST_BAN = 30 * MINUTE
    SUSTAINED_COUNT = 200
    SUSTAINED_BAN = 2 * HOUR
    SCAN_PATHS = 20
    SCAN_BAN = 6 * HOUR
    RESET_INTERVAL = HOUR

    def __init__(self, blacklist: IPBlacklist, clock: Callable[[], float] = time.time):
        self.blacklist = blacklist
        self._clock = clock
        self._lock = threading.Lock()
        self._requests: Dict[str, Dict[str, object]] = {}
        self._last_reset = clock()

    def record(self, ip: str, path: str) -> Optional[str]:
        """
        Count a 404 for ``ip``.

        Returns:
            The blacklist reason if this request got the IP blacklisted
        """
        with self._lock:
            now = self._clock()
            if now - self._last_reset > self.RESET_INTERVAL:
                self._requests = {}
                self._last_reset = now
                logger.info("Cleaned up 404 request cache")

            entry = self._requests.get(ip)
            if entry is None:
                entry = {"count": 0, "first_seen": now, "paths": {}}
                self._requests[ip] = entry
                logger.warning(f"404 for {path}", extra={"ip": ip, "path": path})
            entry["count"] += 1
            paths = entry["paths"]
            paths[path] = paths.get(path, 0) + 1

            count = entry["count"]
            elapsed = now - entry["first_seen"]
            if count > self.BURST_COUNT and elapsed < self.BURST_WINDOW:
                reason, duration = "Excessive 404 requests", self.BURST_BAN
            elif count > self.SUSTAINED_COUNT:
                reason, duration = "Sustained 404 spam activity", self.SUSTAINED_BAN
            elif len(paths) > self.SCAN_PATHS:
                reason, duration = "Path scanning activity detected", self.SCAN_BAN
            else:
                return None
            del self._requests[ip]

        self.blacklist.add(ip, reason, duration)
        return reason

    def count_for(self, ip: str) -> int:
        with self._lock:
            entry = self._requests.get(ip)
            return int(entry["count"]) if entry else 0


ip_blacklist = IPBlacklist(
    file_path=settings.IP_BLACKLIST_FILE,
    enabled=settings.IP_BLACKLIST_ENABLED,
)
not_found_tracker = NotFoundTracker(ip_blacklist)
