"""
Event throttle stage.

Turns the per-cycle stream of filtered detections into log events, at most
one per interval. Detections arriving inside the window are dropped, not
queued, so bursts of activity never turn into bursts of log entries.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from models.detection import Detection
from models.log_event import LogEvent

DEFAULT_INTERVAL_MS = 800.0


class EventThrottle:
    """
    Rate limiter producing LogEvents.

    Args:
        interval_ms: Minimum gap between two emissions. An offer exactly
            `interval_ms` after the last emission is still suppressed.
        source: Camera identifier stamped on emitted events.
        wall_clock: Returns the capture time for new events.
    """

    def __init__(
        self,
        interval_ms: float = DEFAULT_INTERVAL_MS,
        source: str = "Cam-01",
        wall_clock: Callable[[], datetime] = datetime.now,
    ):
        if interval_ms < 0:
            raise ValueError(f"interval_ms must be non-negative, got {interval_ms}")
        self.interval_ms = interval_ms
        self.source = source
        self._wall_clock = wall_clock
        self._last_emitted_at: Optional[float] = None

    @property
    def last_emitted_at(self) -> Optional[float]:
        return self._last_emitted_at

    def offer(self, filtered: Sequence[Detection], now: float) -> Optional[LogEvent]:
        """
        Offer one cycle's filtered detections at monotonic time `now` (ms).

        Returns the emitted event, or None if nothing qualified or the
        window is still closed.
        """
        if not filtered:
            return None

        if self._last_emitted_at is not None and now - self._last_emitted_at <= self.interval_ms:
            return None

        # First element: the detector already orders by confidence.
        representative = filtered[0]
        self._last_emitted_at = now
        event = LogEvent(
            category=representative.category,
            confidence=representative.confidence,
            captured_at=self._wall_clock(),
            source=self.source,
        )
        logging.debug(
            f"Logged {event.category} ({event.confidence:.2f}) from {event.source}"
        )
        return event
