"""
Typed models for the Neural Eye application.

Frames, detections, policy, log events and the configuration view all live
here so the pipeline stages exchange fixed, typed structures.
"""

from .frame import FrameData
from .detection import Detection, Region
from .log_event import LogEvent
from .policy import (
    ALL_GROUPS,
    CATEGORY_GROUPS,
    DetectionPolicy,
    PolicyError,
    group_for_category,
)
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    PolicyConfig,
    LoopConfig,
    EventLogConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "Region",
    # Log
    "LogEvent",
    # Policy
    "ALL_GROUPS",
    "CATEGORY_GROUPS",
    "DetectionPolicy",
    "PolicyError",
    "group_for_category",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "PolicyConfig",
    "LoopConfig",
    "EventLogConfig",
    "WebConfig",
]
