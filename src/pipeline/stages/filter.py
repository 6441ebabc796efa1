"""
Detection filter stage.

The confidence threshold is applied once, by the detector call itself.
This stage only gates on category group, keeping input order.
"""

from __future__ import annotations

from typing import Iterable, List

from models.detection import Detection
from models.policy import DetectionPolicy


def filter_detections(raw: Iterable[Detection], policy: DetectionPolicy) -> List[Detection]:
    """Keep detections whose category group is enabled under `policy`."""
    return [d for d in raw if policy.allows(d.category)]


class DetectionFilter:
    """Pipeline stage wrapper around filter_detections."""

    def apply(self, raw: Iterable[Detection], policy: DetectionPolicy) -> List[Detection]:
        return filter_detections(raw, policy)
