"""Process-wide sliding-window rate limiting for the webhook endpoint."""

from __future__ import annotations

import threading
import time
from collections import deque
from datetime import timedelta
from typing import Callable, Deque


class SlidingWindowRateLimiter:
    """Admit at most ``max_requests`` calls within any trailing ``window``.

    The limiter is global rather than per client: it exists to apply
    backpressure in front of the paid generation service. Rejected attempts
    are never recorded, so refused traffic cannot keep the window full.
    """

    def __init__(
        self,
        *,
        max_requests: int = 30,
        window: timedelta = timedelta(seconds=60),
        timer: Callable[[], float] | None = None,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("Rate limit must admit at least one request.")
        if window.total_seconds() <= 0:
            raise ValueError("Rate limit window must be greater than zero seconds.")

        self._max_requests = max_requests
        self._window = window.total_seconds()
        self._timer = timer or time.monotonic
        self._lock = threading.Lock()
        self._timestamps: Deque[float] = deque()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def _evict(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] > self._window:
            self._timestamps.popleft()

    def has_capacity(self, now: float | None = None) -> bool:
        """Return True when a call at *now* would be admitted, without recording it."""

        if now is None:
            now = self._timer()

        with self._lock:
            self._evict(now)
            return len(self._timestamps) < self._max_requests

    def try_acquire(self, now: float | None = None) -> bool:
        """Record a call at *now* and return True, or return False when the window is full."""

        if now is None:
            now = self._timer()

        with self._lock:
            self._evict(now)
            if len(self._timestamps) >= self._max_requests:
                return False
            self._timestamps.append(now)
            return True

    def __len__(self) -> int:
        with self._lock:
            self._evict(self._timer())
            return len(self._timestamps)
