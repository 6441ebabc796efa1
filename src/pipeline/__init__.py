"""
Pipeline module for the detection console.

The pipeline orchestrates the per-frame flow:
- Frame acquisition from observation sources
- Detection (threshold applied by the detector)
- Category filtering, overlay rendering and event throttling (stages)
"""

from .engine import (
    CycleResult,
    FailureKind,
    InferenceLoop,
    LoopState,
    PipelineConfig,
    PipelineStats,
    create_loop_from_config,
)
from .stages import DetectionFilter, EventThrottle, OverlayCanvas, OverlayRenderer, filter_detections

__all__ = [
    "CycleResult",
    "FailureKind",
    "InferenceLoop",
    "LoopState",
    "PipelineConfig",
    "PipelineStats",
    "create_loop_from_config",
    "DetectionFilter",
    "EventThrottle",
    "OverlayCanvas",
    "OverlayRenderer",
    "filter_detections",
]
