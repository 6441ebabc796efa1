"""
Captured frame payload.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class FrameData:
    """
    One frame as handed out by a frame source.

    `width` and `height` always describe `frame` itself. A camera that
    renegotiates its resolution simply starts producing frames of the new
    size, so downstream stages read dimensions from every frame.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    def __post_init__(self) -> None:
        h, w = self.frame.shape[:2]
        if (w, h) != (self.width, self.height):
            raise ValueError(
                f"Frame is {w}x{h} but was labelled {self.width}x{self.height}"
            )

    @classmethod
    def capture(
        cls,
        frame: np.ndarray,
        frame_index: int = 0,
        source: Optional[str] = None,
        timestamp: Optional[float] = None,
    ) -> "FrameData":
        """Wrap a decoded BGR image, taking its size from the array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=time.time() if timestamp is None else timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)
