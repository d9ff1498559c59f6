"""Sliding-window rate limiter shared by API clients."""

import threading
import time
from collections import deque


class RateLimiter:
    """Allow at most ``calls_per_minute`` calls in any 60 second window.

    Safe to share between the engine's worker threads.
    """

    def __init__(self, calls_per_minute: int = 30):
        if calls_per_minute <= 0:
            raise ValueError("calls_per_minute must be positive")
        self.calls_per_minute = calls_per_minute
        self._timestamps: deque[float] = deque()
        self._lock = threading.Lock()

    def wait(self) -> None:
        """Block until a call is allowed, then record it."""
        with self._lock:
            now = time.monotonic()
            while self._timestamps and now - self._timestamps[0] > 60:
                self._timestamps.popleft()
            if len(self._timestamps) >= self.calls_per_minute:
                sleep_time = 60 - (now - self._timestamps[0])
                if sleep_time > 0:
                    time.sleep(sleep_time)
                self._timestamps.popleft()
            self._timestamps.append(time.monotonic())
