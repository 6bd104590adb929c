import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window request counter keyed by an identifier (usually the user id).

    One instance lives on the application (``app.state.rate_limiter``) and is
    handed to request handlers through a dependency.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            self._prune(now)
            window = self._windows.get(identifier)
            if window is None:
                window = _Window(count=0, reset_at=now + self.window_seconds)
                self._windows[identifier] = window

            if window.count >= self.max_requests:
                retry_after = max(1, math.ceil(window.reset_at - now))
                return RateLimitResult(False, self.max_requests, 0, window.reset_at, retry_after)

            window.count += 1
            return RateLimitResult(True, self.max_requests, self.max_requests - window.count, window.reset_at)

    def reset(self, identifier: str | None = None) -> None:
        with self._lock:
            if identifier is None:
                self._windows.clear()
            else:
                self._windows.pop(identifier, None)

    def _prune(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
