"""
Pipeline stages for the detection console.

Each stage handles one step after the detector returns:
- filter: category group gating
- overlay: bounding box and label rendering
- throttle: rate-limited log event emission
"""

from .filter import DetectionFilter, filter_detections
from .overlay import OverlayCanvas, OverlayRenderer
from .throttle import EventThrottle

__all__ = [
    "DetectionFilter",
    "filter_detections",
    "OverlayCanvas",
    "OverlayRenderer",
    "EventThrottle",
]
