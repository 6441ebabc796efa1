"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Region:
    """
    An axis-aligned rectangle in source-frame pixel coordinates.

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Box width in pixels (>= 0).
        height: Box height in pixels (>= 0).
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Region size must be non-negative, got {self.width}x{self.height}"
            )

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x, y, width, height) tuple."""
        return (int(self.x), int(self.y), int(self.width), int(self.height))

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "Region":
        """Create from corner coordinates (x1, y1, x2, y2)."""
        return cls(x=x1, y=y1, width=max(0.0, x2 - x1), height=max(0.0, y2 - y1))


@dataclass(frozen=True)
class Detection:
    """
    A single detection from an object detector.

    Attributes:
        region: Bounding region in pixel coordinates.
        category: Raw class name reported by the detector (e.g. "car").
        confidence: Detection confidence score (0-1).
    """
    region: Region
    category: str
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be in [0, 1], got {self.confidence}")

    @property
    def percent_label(self) -> str:
        """Rounded percentage, e.g. "87%"."""
        return f"{round(self.confidence * 100)}%"

    @classmethod
    def from_xyxy(
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        category: str,
        confidence: float,
    ) -> "Detection":
        """Create Detection from x1, y1, x2, y2 coordinates."""
        return cls(
            region=Region.from_xyxy(x1, y1, x2, y2),
            category=category,
            confidence=confidence,
        )

    def to_dict(self) -> dict:
        return {
            "bbox": list(self.region.as_tuple()),
            "category": self.category,
            "confidence": self.confidence,
        }
