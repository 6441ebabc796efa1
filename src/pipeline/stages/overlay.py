"""
Overlay renderer stage.

Draws the current cycle's filtered detections onto a transparent BGRA
canvas sized to the frame. The canvas is cleared before every draw, so
rendering the same input twice yields the same pixels.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import cv2
import numpy as np

from models.detection import Detection

# Colors (BGR)
COLOR_PERSON = (234, 123, 98)      # #627BEA
COLOR_OTHER = (255, 212, 0)        # #00D4FF
COLOR_LABEL_TEXT = (30, 15, 10)    # #0A0F1E

FILL_ALPHA = 26  # ~10% of 255
STROKE_PX = 2
TAG_HEIGHT = 20
TAG_PADDING = 12
FONT = cv2.FONT_HERSHEY_SIMPLEX
FONT_SCALE = 0.45


class OverlayCanvas:
    """Transparent BGRA drawing surface."""

    def __init__(self, width: int = 0, height: int = 0):
        self.image = np.zeros((height, width, 4), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]

    def resize(self, width: int, height: int) -> None:
        self.image = np.zeros((height, width, 4), dtype=np.uint8)

    def clear(self) -> None:
        self.image[:] = 0

    def composite(self, frame: np.ndarray) -> np.ndarray:
        """Alpha-blend the canvas onto a BGR frame, returning a new array."""
        overlay = self.image
        if overlay.size == 0:
            return frame.copy()
        h, w = frame.shape[:2]
        if (w, h) != (self.width, self.height):
            overlay = cv2.resize(overlay, (w, h), interpolation=cv2.INTER_NEAREST)
        alpha = overlay[..., 3:4].astype(np.float32) / 255.0
        blended = frame.astype(np.float32) * (1.0 - alpha) + overlay[..., :3].astype(np.float32) * alpha
        return blended.astype(np.uint8)


def _style_for(category: str) -> Tuple[int, int, int]:
    return COLOR_PERSON if category == "person" else COLOR_OTHER


class OverlayRenderer:
    """Pure function of (detections, frame dimensions) onto a canvas."""

    def render(
        self,
        canvas: OverlayCanvas,
        detections: Sequence[Detection],
        frame_width: int,
        frame_height: int,
    ) -> None:
        if (canvas.width, canvas.height) != (frame_width, frame_height):
            canvas.resize(frame_width, frame_height)
        canvas.clear()

        for detection in detections:
            self._draw_detection(canvas.image, detection)

    def _draw_detection(self, image: np.ndarray, detection: Detection) -> None:
        x, y, w, h = detection.region.as_int_tuple()
        color = _style_for(detection.category)
        opaque = color + (255,)

        # Fill first so the border stays fully opaque on top of it
        cv2.rectangle(image, (x, y), (x + w, y + h), color + (FILL_ALPHA,), -1)
        cv2.rectangle(image, (x, y), (x + w, y + h), opaque, STROKE_PX)

        label = f"{detection.category.upper()} {detection.percent_label}"
        (text_w, _), _ = cv2.getTextSize(label, FONT, FONT_SCALE, 1)
        tag_w = text_w + TAG_PADDING
        # Above the box when there is room, otherwise inside it at the top
        tag_y = y - TAG_HEIGHT if y - TAG_HEIGHT > 0 else y

        cv2.rectangle(image, (x, tag_y), (x + tag_w, tag_y + TAG_HEIGHT), opaque, -1)
        cv2.putText(
            image,
            label,
            (x + 6, tag_y + 14),
            FONT,
            FONT_SCALE,
            COLOR_LABEL_TEXT + (255,),
            1,
            cv2.LINE_AA,
        )
