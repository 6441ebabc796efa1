"""
Session analytics computed from an event log snapshot.

All functions take events newest-first (the LogStore order) and never
mutate them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from models.log_event import LogEvent

TIMELINE_BUCKETS = 10


@dataclass(frozen=True)
class CategoryShare:
    label: str
    count: int
    percentage: int
    max_confidence: float

    def to_dict(self) -> Dict:
        return {
            "label": self.label,
            "count": self.count,
            "percentage": self.percentage,
            "max_confidence": self.max_confidence,
        }


@dataclass(frozen=True)
class SessionSummary:
    total: int
    average_confidence: float
    distribution: List[CategoryShare] = field(default_factory=list)
    timeline: List[int] = field(default_factory=lambda: [0] * TIMELINE_BUCKETS)

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "average_confidence": self.average_confidence,
            "distribution": [share.to_dict() for share in self.distribution],
            "timeline": list(self.timeline),
        }


def _display_label(category: str) -> str:
    return category[:1].upper() + category[1:]


def average_confidence(events: Sequence[LogEvent]) -> float:
    """Mean confidence as a percentage; 0 for an empty log."""
    if not events:
        return 0.0
    return sum(e.confidence for e in events) / len(events) * 100.0


def category_distribution(events: Sequence[LogEvent], top_n: Optional[int] = None) -> List[CategoryShare]:
    """Per-category counts, most frequent first. Ties keep first-seen order."""
    if top_n is not None and top_n < 0:
        raise ValueError(f"top_n must be >= 0, got {top_n}")
    counts: Dict[str, int] = {}
    max_scores: Dict[str, float] = {}
    for event in events:
        label = _display_label(event.category)
        counts[label] = counts.get(label, 0) + 1
        max_scores[label] = max(max_scores.get(label, 0.0), event.confidence)

    total = len(events) or 1
    shares = [
        CategoryShare(
            label=label,
            count=count,
            percentage=int(math.floor(count / total * 100 + 0.5)),
            max_confidence=max_scores[label],
        )
        for label, count in counts.items()
    ]
    shares.sort(key=lambda s: s.count, reverse=True)
    if top_n is not None:
        shares = shares[:top_n]
    return shares


def activity_timeline(events: Sequence[LogEvent], buckets: int = TIMELINE_BUCKETS) -> List[int]:
    """
    Event counts over the session split into equal-size chunks.

    Events are put in chronological order and cut into chunks of
    ceil(n / buckets); trailing buckets stay 0 when n is not a multiple.
    """
    points = [0] * buckets
    if not events:
        return points
    chronological = list(reversed(events))
    chunk_size = math.ceil(len(chronological) / buckets)
    for i in range(buckets):
        points[i] = len(chronological[i * chunk_size:(i + 1) * chunk_size])
    return points


def summarize(events: Sequence[LogEvent], top_n: Optional[int] = None) -> SessionSummary:
    return SessionSummary(
        total=len(events),
        average_confidence=average_confidence(events),
        distribution=category_distribution(events, top_n=top_n),
        timeline=activity_timeline(events),
    )
