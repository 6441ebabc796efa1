"""
Detector adapter interface.

Adapters own the lifecycle of a detection model and return pixel-space
detections in the original frame coordinate system. The inference loop
never calls `detect` before `initialize` has completed and never issues
overlapping `detect` calls.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

import numpy as np

from models.detection import Detection


class DetectorAdapter(ABC):
    """
    Lifecycle:
        1. await initialize()  - slow, one-time; raises ModelLoadError
        2. await detect(...)   - repeatedly, one call at a time
        3. dispose()           - always safe, even if initialize never ran
    """

    def __init__(self) -> None:
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    @abstractmethod
    async def initialize(self) -> None:
        """Load the model. Raises ModelLoadError on failure."""

    @abstractmethod
    async def detect(
        self,
        frame: np.ndarray,
        frame_width: int,
        frame_height: int,
        threshold: float,
    ) -> List[Detection]:
        """
        Detect objects in a frame.

        Only detections scoring at or above `threshold` are returned, in the
        model's own confidence order (highest first).
        """

    @abstractmethod
    def dispose(self) -> None:
        """Release model resources."""

    def _ensure_ready(self) -> None:
        if not self._ready:
            raise RuntimeError(f"{type(self).__name__}.detect called before initialize()")
