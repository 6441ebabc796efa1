"""
ObservationSource interface: the frame source feeding the inference loop.

A source supplies the most recent frame of a live stream. Until the first
decodable frame exists, and whenever the device has nothing new to hand
out, `read()` returns None; the inference loop treats that as "not ready"
and skips the cycle instead of failing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Camera identifier stamped on frames and log events.
        resolution: Requested resolution as (width, height). None = device default.
        fps: Requested frames per second. None = device default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "Cam-01"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. open() - raises FrameSourceError if the device is unavailable
           (missing camera, permission denied, bad URL)
        3. read() repeatedly - FrameData, or None while not ready
        4. close() - safe to call multiple times

    Can also be used as a context manager.
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames handed out since open()."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """Open the device. Raises FrameSourceError on failure."""

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Return the latest frame, or None if no frame is ready.

        May raise FrameSourceError if the device is gone for good.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the device."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
