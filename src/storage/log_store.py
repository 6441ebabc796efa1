"""
Bounded, newest-first event log shared by all session views.

The detection service is the only writer; the HTTP API and analytics read
snapshots from another thread, hence the lock.
"""

from __future__ import annotations

import threading
from collections import deque
from itertools import islice
from typing import Deque, Tuple

from models.log_event import LogEvent

DEFAULT_CAPACITY = 1000
DEFAULT_DISPLAY_LIMIT = 20


class LogStore:
    """
    Append-only log with FIFO eviction by insertion order.

    Events are never re-sorted by `captured_at`: if events were ever
    appended out of capture order, insertion order still decides eviction.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        # appendleft on a bounded deque drops from the right (oldest) end
        self._events: Deque[LogEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, event: LogEvent) -> None:
        with self._lock:
            self._events.appendleft(event)

    def snapshot(self) -> Tuple[LogEvent, ...]:
        """All events, newest first. The tuple is a copy; callers cannot mutate the log."""
        with self._lock:
            return tuple(self._events)

    def recent(self, n: int) -> Tuple[LogEvent, ...]:
        """The `n` newest events, newest first."""
        if n < 0:
            raise ValueError(f"n must be >= 0, got {n}")
        with self._lock:
            return tuple(islice(self._events, n))

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
