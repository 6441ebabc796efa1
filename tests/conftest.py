"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  source_id: "Cam-01"
  resolution: [640, 480]
  fps: 30

detection:
  backend: "yolo"
  model: "yolov8n.pt"

policy:
  confidence_threshold: 0.65
  enabled_groups: ["person", "vehicle", "other"]

event_log:
  throttle_ms: 800
  capacity: 1000
  display_limit: 20

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "source_id": "Cam-01",
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "backend": "yolo",
            "model": "yolov8n.pt",
            "iou_threshold": 0.45,
        },
        "policy": {
            "confidence_threshold": 0.65,
            "enabled_groups": ["person", "vehicle", "other"],
        },
        "loop": {
            "refresh_hz": 60,
            "max_consecutive_failures": 300,
        },
        "event_log": {
            "throttle_ms": 800,
            "capacity": 1000,
            "display_limit": 20,
        },
        "web": {"enabled": True, "host": "127.0.0.1", "port": 5000},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
