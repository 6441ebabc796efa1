"""
Observation layer: pluggable frame sources.

Each source implements ObservationSource and returns FrameData objects, or
None while no frame is ready.
"""

from __future__ import annotations

from typing import Any, Dict

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .rtsp_utils import inject_rtsp_credentials


def create_source_from_config(camera_cfg: Dict[str, Any]) -> ObservationSource:
    """Build the frame source described by the `camera` config section."""
    backend = camera_cfg.get("backend", "opencv")
    if backend != "opencv":
        raise ValueError(f"Unsupported camera backend: {backend}")
    camera_cfg = dict(camera_cfg)
    inject_rtsp_credentials(camera_cfg)
    return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]
