"""Fixed-window per-client request rate limiting."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class _Window:
    count: int
    started_at: float


class FixedWindowRateLimiter:
    """Allow at most `rate` requests per `period` seconds for each client key."""

    def __init__(
        self,
        rate: int,
        period: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        if period <= 0:
            raise ValueError("period must be > 0")
        self.rate = rate
        self.period = period
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_prune = clock()

    def is_rate_limited(self, client_key: str) -> bool:
        if not client_key:
            return False

        with self._lock:
            now = self._clock()
            if now - self._last_prune >= self.period:
                self._prune(now)
            window = self._windows.get(client_key)
            if window is None or now - window.started_at >= self.period:
                window = _Window(count=0, started_at=now)
                self._windows[client_key] = window
            window.count += 1
            return window.count > self.rate

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)

    def _prune(self, now: float) -> None:
        """Drop windows that ended; caller holds the lock."""
        expired = [
            key for key, window in self._windows.items() if now - window.started_at >= self.period
        ]
        for key in expired:
            del self._windows[key]
        self._last_prune = now

    def retry_after_seconds(self, client_key: str) -> int:
        with self._lock:
            window = self._windows.get(client_key)
            if window is None:
                return 0
            remaining = self.period - (self._clock() - window.started_at)
        return max(0, int(remaining + 0.999))
