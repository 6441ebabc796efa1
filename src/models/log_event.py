"""
LogEvent model for throttled detection log entries.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime


def new_event_id() -> str:
    """Random 128-bit identifier; collisions are negligible for a session."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class LogEvent:
    """
    A log entry emitted when the throttle accepts a detection.

    Attributes:
        category: Raw class name of the representative detection.
        confidence: Its confidence score (0-1).
        captured_at: Wall-clock time the event was created.
        source: Camera identifier (e.g. "Cam-01").
        id: Unique identifier within the session.
    """
    category: str
    confidence: float
    captured_at: datetime
    source: str
    id: str = field(default_factory=new_event_id)

    @property
    def time_label(self) -> str:
        """24h wall-clock label as shown in the detection log, e.g. "14:03:27"."""
        return self.captured_at.strftime("%H:%M:%S")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "category": self.category,
            "confidence": self.confidence,
            "captured_at": self.captured_at.isoformat(),
            "time": self.time_label,
            "source": self.source,
        }
