"""
Admission Control

Per-source fixed-window rate limiter guarding the ingestion endpoints. State
is held in the controller instance and is lost on restart; it dampens abuse
rather than enforcing hard quotas.
"""

import asyncio
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict

import structlog
from prometheus_client import Counter

from beacon_analytics.errors import RateLimitDenied

logger = structlog.get_logger(__name__)

ADMISSION_DENIED = Counter(
    "analytics_admission_denied_total",
    "Beacons refused by the admission controller",
)


def now_ms() -> int:
    """Current Unix time in milliseconds"""
    return time.time_ns() // 1_000_000


@dataclass
class _Window:
    count: int
    window_start: int


class AdmissionController:
    """
    Fixed-window request counter keyed by source.

    ``admit`` never awaits, so under asyncio the check-then-increment cannot
    be interleaved; the lock additionally covers callers on other threads.

    Example:
        controller = AdmissionController(ceiling=100, window_ms=60_000)
        if not controller.admit(client_ip):
            ...  # respond 429
    """

    def __init__(
        self,
        ceiling: int = 100,
        window_ms: int = 60_000,
        clock: Callable[[], int] = now_ms,
    ):
        if ceiling < 1:
            raise ValueError("ceiling must be at least 1")
        if window_ms < 1:
            raise ValueError("window_ms must be positive")
        self.ceiling = ceiling
        self.window_ms = window_ms
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _expired(self, window: _Window, now: int) -> bool:
        return now - window.window_start >= self.window_ms

    def admit(self, source_key: str) -> bool:
        """Count one beacon for ``source_key``; False once the ceiling is reached"""
        now = self._clock()
        with self._lock:
            window = self._windows.get(source_key)
            if window is None or self._expired(window, now):
                self._windows[source_key] = _Window(count=1, window_start=now)
                return True
            if window.count < self.ceiling:
                window.count += 1
                return True

        ADMISSION_DENIED.inc()
        return False

    def check(self, source_key: str) -> None:
        """
        Admit or raise.

        Raises:
            RateLimitDenied: The source exhausted its window
        """
        if not self.admit(source_key):
            logger.warning("Rate limit exceeded", ceiling=self.ceiling, window_ms=self.window_ms)
            raise RateLimitDenied(source_key, retry_after_seconds=self.retry_after_seconds)

    @property
    def retry_after_seconds(self) -> int:
        return max(1, -(-self.window_ms // 1000))

    def sweep(self) -> int:
        """Drop expired windows; returns how many were removed"""
        now = self._clock()
        with self._lock:
            expired = [key for key, window in self._windows.items() if self._expired(window, now)]
            for key in expired:
                del self._windows[key]
        return len(expired)

    async def run_periodic_sweep(self, interval_seconds: float = 300) -> None:
        """Sweep every ``interval_seconds`` until cancelled"""
        logger.info("Admission sweeper started", interval_seconds=interval_seconds)
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.sweep()
            if removed:
                logger.debug("Admission windows swept", removed=removed, active=len(self))
