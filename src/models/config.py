"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .policy import ALL_GROUPS, DEFAULT_THRESHOLD


@dataclass
class CameraConfig:
    """Camera configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    source_id: str = "Cam-01"
    secrets_file: Optional[str] = None
    resolution: List[int] = field(default_factory=lambda: [1920, 1080])
    fps: int = 30
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    rtsp_transport: str = "tcp"
    buffer_size: int = 1
    max_retries: int = 3
    max_read_failures: int = 3
    loop_file: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            source_id=d.get("source_id", "Cam-01"),
            secrets_file=d.get("secrets_file"),
            resolution=d.get("resolution", [1920, 1080]),
            fps=d.get("fps", 30),
            swap_rb=d.get("swap_rb", False),
            rotate=d.get("rotate", 0),
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
            rtsp_transport=d.get("rtsp_transport", "tcp"),
            buffer_size=d.get("buffer_size", 1),
            max_retries=d.get("max_retries", 3),
            max_read_failures=d.get("max_read_failures", 3),
            loop_file=d.get("loop_file", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "source_id": self.source_id,
            "secrets_file": self.secrets_file,
            "resolution": self.resolution,
            "fps": self.fps,
            "swap_rb": self.swap_rb,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
            "rtsp_transport": self.rtsp_transport,
            "buffer_size": self.buffer_size,
            "max_retries": self.max_retries,
            "max_read_failures": self.max_read_failures,
            "loop_file": self.loop_file,
        }


@dataclass
class DetectionConfig:
    """Detector adapter configuration (selects the backend/variant)."""
    backend: str = "yolo"
    model: str = "yolov8n.pt"
    device: Optional[str] = None
    iou_threshold: float = 0.45

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            backend=d.get("backend", "yolo"),
            model=d.get("model", "yolov8n.pt"),
            device=d.get("device"),
            iou_threshold=d.get("iou_threshold", 0.45),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "backend": self.backend,
            "model": self.model,
            "iou_threshold": self.iou_threshold,
        }
        if self.device is not None:
            d["device"] = self.device
        return d


@dataclass
class PolicyConfig:
    """Initial detection policy."""
    confidence_threshold: float = DEFAULT_THRESHOLD
    enabled_groups: List[str] = field(default_factory=lambda: sorted(ALL_GROUPS))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PolicyConfig":
        return cls(
            confidence_threshold=d.get("confidence_threshold", DEFAULT_THRESHOLD),
            enabled_groups=list(d.get("enabled_groups", sorted(ALL_GROUPS))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence_threshold": self.confidence_threshold,
            "enabled_groups": list(self.enabled_groups),
        }


@dataclass
class LoopConfig:
    """Inference loop scheduling."""
    refresh_hz: float = 60.0
    max_consecutive_failures: int = 300

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            refresh_hz=d.get("refresh_hz", 60.0),
            max_consecutive_failures=d.get("max_consecutive_failures", 300),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "refresh_hz": self.refresh_hz,
            "max_consecutive_failures": self.max_consecutive_failures,
        }


@dataclass
class EventLogConfig:
    """Throttle window and log capacities."""
    throttle_ms: float = 800.0
    capacity: int = 1000
    display_limit: int = 20

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EventLogConfig":
        return cls(
            throttle_ms=d.get("throttle_ms", 800.0),
            capacity=d.get("capacity", 1000),
            display_limit=d.get("display_limit", 20),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "throttle_ms": self.throttle_ms,
            "capacity": self.capacity,
            "display_limit": self.display_limit,
        }


@dataclass
class WebConfig:
    """HTTP API settings."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    event_log: EventLogConfig = field(default_factory=EventLogConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/neural_eye.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            policy=PolicyConfig.from_dict(d.get("policy", {}) or {}),
            loop=LoopConfig.from_dict(d.get("loop", {}) or {}),
            event_log=EventLogConfig.from_dict(d.get("event_log", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/neural_eye.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "policy": self.policy.to_dict(),
            "loop": self.loop.to_dict(),
            "event_log": self.event_log.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
