"""
Inference layer: detector adapters wrapping an opaque detection model.
"""

from __future__ import annotations

from typing import Any, Dict

from .backend import DetectorAdapter
from .cpu_backend import UltralyticsYoloBackend, YoloConfig


def create_detector_from_config(detection_cfg: Dict[str, Any]) -> DetectorAdapter:
    """Build the detector adapter selected by `detection.backend`."""
    backend = detection_cfg.get("backend", "yolo")
    if backend == "yolo":
        return UltralyticsYoloBackend(
            YoloConfig(
                model=detection_cfg.get("model", "yolov8n.pt"),
                device=detection_cfg.get("device"),
                iou_threshold=float(detection_cfg.get("iou_threshold", 0.45)),
            )
        )
    raise ValueError(f"Unsupported detection backend: {backend}")


__all__ = [
    "DetectorAdapter",
    "UltralyticsYoloBackend",
    "YoloConfig",
    "create_detector_from_config",
]
