"""
Frame source backed by cv2.VideoCapture.

The device may be a webcam index, a network stream URL, or a video file;
files rewind at end of stream so a recorded clip can stand in for a live
camera.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.errors import FrameSourceError
from models.frame import FrameData
from .base import ObservationConfig, ObservationSource
from .rtsp_utils import sanitize_url

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

# (horizontal, vertical) -> cv2.flip code
_FLIP_CODES = {
    (True, False): 1,
    (False, True): 0,
    (True, True): -1,
}


class DeviceKind(str, Enum):
    WEBCAM = "webcam"
    STREAM = "stream"
    FILE = "file"


def classify_device(device: Union[int, str]) -> DeviceKind:
    if isinstance(device, int):
        return DeviceKind.WEBCAM
    if device.startswith(("rtsp://", "rtsps://", "http://", "https://")):
        return DeviceKind.STREAM
    if os.path.exists(device):
        return DeviceKind.FILE
    # An unknown string is handed to OpenCV as-is (e.g. a GStreamer pipeline)
    return DeviceKind.STREAM


@dataclass(frozen=True)
class FrameTransform:
    """Orientation fixes applied to every frame before it is handed out."""
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    swap_rb: bool = False

    def __post_init__(self) -> None:
        if self.rotate not in (0, 90, 180, 270):
            raise ValueError(f"rotate must be one of 0, 90, 180, 270; got {self.rotate}")

    @property
    def is_identity(self) -> bool:
        return not (self.rotate or self.flip_horizontal or self.flip_vertical or self.swap_rb)

    def apply(self, frame: np.ndarray) -> np.ndarray:
        if self.rotate:
            frame = cv2.rotate(frame, _ROTATIONS[self.rotate])
        flip_code = _FLIP_CODES.get((self.flip_horizontal, self.flip_vertical))
        if flip_code is not None:
            frame = cv2.flip(frame, flip_code)
        if self.swap_rb:
            frame = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)
        return frame


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Attributes:
        device: Webcam index, stream URL, or video file path.
        transport: RTSP transport ("tcp" or "udp").
        buffer_size: Capture buffer length; 1 keeps a live feed current.
        open_attempts: Tries per (re)open, with exponential backoff.
        reopen_after_misses: Failed reads in a row before reconnecting.
        loop_file: Rewind video files at end of stream.
        transform: Orientation fixes.
    """
    device: Union[int, str] = 0
    transport: str = "tcp"
    buffer_size: int = 1
    open_attempts: int = 3
    reopen_after_misses: int = 3
    loop_file: bool = True
    transform: FrameTransform = field(default_factory=FrameTransform)

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any]) -> "OpenCVSourceConfig":
        """Adapter from the `camera` config section."""
        resolution = camera_cfg.get("resolution")
        return cls(
            source_id=camera_cfg.get("source_id", "Cam-01"),
            resolution=tuple(resolution) if resolution else None,
            fps=camera_cfg.get("fps"),
            device=camera_cfg.get("device_id", 0),
            transport=camera_cfg.get("rtsp_transport", "tcp"),
            buffer_size=camera_cfg.get("buffer_size", 1),
            open_attempts=camera_cfg.get("max_retries", 3),
            reopen_after_misses=camera_cfg.get("max_read_failures", 3),
            loop_file=camera_cfg.get("loop_file", True),
            transform=FrameTransform(
                rotate=camera_cfg.get("rotate", 0) or 0,
                flip_horizontal=bool(camera_cfg.get("flip_horizontal", False)),
                flip_vertical=bool(camera_cfg.get("flip_vertical", False)),
                swap_rb=bool(camera_cfg.get("swap_rb", False)),
            ),
        )


class OpenCVSource(ObservationSource):
    """
    A failed read is reported as "not ready" (None). After
    `reopen_after_misses` misses in a row the capture is reconnected; if
    that fails too, FrameSourceError is raised and the loop gives up.
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self.config = config
        self.kind = classify_device(config.device)
        self._cap: Optional[cv2.VideoCapture] = None
        self._misses = 0

    @property
    def device(self) -> Union[int, str]:
        return self.config.device

    @property
    def label(self) -> str:
        """Device description safe for logs."""
        return sanitize_url(self.config.device)

    def open(self) -> None:
        if self._is_open:
            return
        self._connect()
        self._is_open = True
        self._frame_index = 0
        logging.info(f"Camera {self.source_id} opened ({self.kind.value}: {self.label})")

    def _connect(self) -> None:
        if self.kind is DeviceKind.STREAM:
            os.environ["OPENCV_FFMPEG_CAPTURE_OPTIONS"] = f"rtsp_transport;{self.config.transport}"

        attempts = max(1, self.config.open_attempts)
        for attempt in range(1, attempts + 1):
            self._release()
            cap = cv2.VideoCapture(self.config.device)
            if cap.isOpened():
                self._cap = cap
                break
            cap.release()
            logging.warning(f"Could not open {self.label} (attempt {attempt}/{attempts})")
            if attempt < attempts:
                time.sleep(min(2 ** attempt, 10))
        else:
            raise FrameSourceError(f"Camera {self.label} unavailable after {attempts} attempts")

        if self.kind is DeviceKind.WEBCAM:
            self._request_capture_format()
        self._misses = 0

    def _request_capture_format(self) -> None:
        """Ask the webcam for the configured size/rate; it may pick something else."""
        cfg = self.config
        if cfg.resolution:
            width, height = cfg.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        if cfg.fps:
            self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)
        logging.info(
            f"Webcam negotiated {int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))} @ {self._cap.get(cv2.CAP_PROP_FPS)} fps"
        )

    def read(self) -> Optional[FrameData]:
        if self._cap is None:
            return None

        ok, frame = self._cap.read()
        if ok and frame is not None:
            self._misses = 0
            self._frame_index += 1
            if not self.config.transform.is_identity:
                frame = self.config.transform.apply(frame)
            return FrameData.capture(frame, frame_index=self._frame_index, source=self.source_id)

        if self.kind is DeviceKind.FILE and self.config.loop_file:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            return None

        self._misses += 1
        if self._misses >= self.config.reopen_after_misses:
            logging.warning(f"{self._misses} failed reads from {self.label}; reconnecting")
            self._connect()
        return None

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def close(self) -> None:
        self._release()
        if self._is_open:
            logging.info(f"Camera {self.source_id} closed")
        self._is_open = False
