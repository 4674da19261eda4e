"""Bounded, time-expiring in-memory caches shared by every request."""

from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import Callable

from cachetools import TTLCache


def normalize_cache_key(text: str) -> str:
    """Return the lookup key for *text*: whitespace-trimmed and case-folded."""

    return text.strip().casefold()


class _BoundedCache:
    def __init__(
        self,
        *,
        max_entries: int,
        ttl: timedelta,
        timer: Callable[[], float] | None = None,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("Cache size must be greater than zero.")
        if ttl.total_seconds() <= 0:
            raise ValueError("Cache time-to-live must be greater than zero seconds.")

        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: TTLCache = TTLCache(
            maxsize=max_entries,
            ttl=ttl.total_seconds(),
            timer=timer or time.monotonic,
        )

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class DeduplicationCache(_BoundedCache):
    """Remember processed event ids so each event triggers side effects at most once."""

    def __init__(
        self,
        *,
        max_entries: int = 1000,
        ttl: timedelta = timedelta(minutes=10),
        timer: Callable[[], float] | None = None,
    ) -> None:
        super().__init__(max_entries=max_entries, ttl=ttl, timer=timer)

    def check_and_mark(self, event_id: str) -> bool:
        """Return True the first time *event_id* is seen, False while it is retained.

        The membership test and the insert happen under one lock, so only a
        single concurrent caller can observe True for a given id.
        """

        with self._lock:
            if event_id in self._entries:
                return False
            self._entries[event_id] = True
            return True


class ResponseCache(_BoundedCache):
    """Memoize generated replies keyed by normalized input text."""

    def __init__(
        self,
        *,
        max_entries: int = 500,
        ttl: timedelta = timedelta(minutes=5),
        timer: Callable[[], float] | None = None,
    ) -> None:
        super().__init__(max_entries=max_entries, ttl=ttl, timer=timer)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._entries.get(normalize_cache_key(key))

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[normalize_cache_key(key)] = value
