"""
Neural Eye: live object detection console.

Opens the camera, runs the detector once per display refresh, draws the
detections and keeps a rate-limited session log served over HTTP.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --host / --port: Override the web server bind address
    --no-web: Run detection without the HTTP API
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
import threading
from dataclasses import asdict
from typing import Any, Dict, Optional, Tuple

import uvicorn
import yaml

from inference import create_detector_from_config
from models.config import Config
from models.policy import ALL_GROUPS, MAX_THRESHOLD, MIN_THRESHOLD, DetectionPolicy
from observation import create_source_from_config
from ops.logging import setup_logging
from pipeline.engine import InferenceLoop, create_loop_from_config
from pipeline.stages.throttle import EventThrottle
from runtime.services import DetectionService
from runtime.session import Session
from web.app import create_app

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    config_dir = os.path.dirname(config_path)
    base_path = os.path.join(config_dir, "default.yaml")
    local_overrides_path = os.path.join(config_dir, "config.yaml")

    try:
        merged: Dict[str, Any] = _read_yaml(base_path) if os.path.exists(base_path) else {}
        if os.path.exists(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(local_overrides_path))

        explicit = os.path.abspath(config_path)
        if os.path.exists(config_path) and explicit not in (
            os.path.abspath(base_path),
            os.path.abspath(local_overrides_path),
        ):
            merged = _deep_merge(merged, _read_yaml(config_path))

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'detection', 'policy', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera') or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (URL/path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    if camera.get('backend', 'opencv') != 'opencv':
        return False, "camera.backend must be: opencv"

    resolution = camera.get('resolution', [1920, 1080])
    if not isinstance(resolution, list) or len(resolution) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(isinstance(x, int) and x > 0 for x in resolution):
        return False, "camera.resolution values must be positive integers"
    fps = camera.get('fps', 30)
    if not isinstance(fps, int) or fps <= 0:
        return False, "camera.fps must be a positive integer"
    if camera.get('rotate', 0) not in (0, 90, 180, 270):
        return False, "camera.rotate must be one of 0,90,180,270"
    if camera.get('rtsp_transport', 'tcp') not in ('tcp', 'udp'):
        return False, "camera.rtsp_transport must be: tcp, udp"
    for key, default in (('buffer_size', 1), ('max_retries', 3), ('max_read_failures', 3)):
        value = camera.get(key, default)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            return False, f"camera.{key} must be a positive integer"
    if not isinstance(camera.get('loop_file', True), bool):
        return False, "camera.loop_file must be true or false"

    # Detector
    detection = config.get('detection') or {}
    if detection.get('backend', 'yolo') != 'yolo':
        return False, "detection.backend must be: yolo"
    model = detection.get('model')
    if not isinstance(model, str) or not model:
        return False, "detection.model is required"
    iou = detection.get('iou_threshold', 0.45)
    if not _is_number(iou) or not (0 < iou <= 1):
        return False, "detection.iou_threshold must be between 0 and 1"

    # Policy
    policy = config.get('policy') or {}
    threshold = policy.get('confidence_threshold', 0.65)
    if not _is_number(threshold) or not (MIN_THRESHOLD <= threshold <= MAX_THRESHOLD):
        return False, f"policy.confidence_threshold must be between {MIN_THRESHOLD} and {MAX_THRESHOLD}"
    groups = policy.get('enabled_groups', [])
    if not isinstance(groups, list):
        return False, "policy.enabled_groups must be a list"
    unknown = [g for g in groups if g not in ALL_GROUPS]
    if unknown:
        return False, f"policy.enabled_groups has unknown groups: {', '.join(map(str, unknown))}"

    # Loop
    loop = config.get('loop') or {}
    refresh_hz = loop.get('refresh_hz', 60.0)
    if not _is_number(refresh_hz) or refresh_hz <= 0:
        return False, "loop.refresh_hz must be a positive number"
    mcf = loop.get('max_consecutive_failures', 300)
    if not isinstance(mcf, int) or mcf <= 0:
        return False, "loop.max_consecutive_failures must be a positive integer"

    # Event log
    event_log = config.get('event_log') or {}
    throttle_ms = event_log.get('throttle_ms', 800)
    if not _is_number(throttle_ms) or throttle_ms < 0:
        return False, "event_log.throttle_ms must be a non-negative number"
    capacity = event_log.get('capacity', 1000)
    if not isinstance(capacity, int) or capacity <= 0:
        return False, "event_log.capacity must be a positive integer"
    display_limit = event_log.get('display_limit', 20)
    if not isinstance(display_limit, int) or display_limit < 0:
        return False, "event_log.display_limit must be a non-negative integer"

    # Web
    web = config.get('web') or {}
    port = web.get('port', 5000)
    if not isinstance(port, int) or not (0 < port < 65536):
        return False, "web.port must be between 1 and 65535"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def build_session(cfg: Config) -> Session:
    policy = DetectionPolicy.from_dict(cfg.policy.to_dict())
    return Session(
        policy=policy,
        source_id=cfg.camera.source_id,
        capacity=cfg.event_log.capacity,
        display_limit=cfg.event_log.display_limit,
    )


def build_loop(config: Dict[str, Any], cfg: Config, session: Session) -> InferenceLoop:
    """Wire source, detector and the detection service into a new loop."""
    source = create_source_from_config(config['camera'])
    detector = create_detector_from_config(config['detection'])

    loop = create_loop_from_config(source, detector, session.get_policy, cfg.loop.to_dict())
    service = DetectionService(
        session,
        throttle=EventThrottle(interval_ms=cfg.event_log.throttle_ms, source=session.source_id),
    )
    loop.add_callback(service.handle_cycle)
    loop.add_state_listener(service.handle_state)
    session.set_cycle_stats_provider(lambda: asdict(loop.stats))
    return loop


def start_web_server(session: Session, host: str, port: int) -> threading.Thread:
    def run_web_app():
        uvicorn.run(
            create_app(session),
            host=host,
            port=port,
            log_level="info",
        )

    web_thread = threading.Thread(target=run_web_app, daemon=True)
    web_thread.start()
    logging.info(f"Web interface started on {host}:{port}")
    return web_thread


async def run_detection(loop: InferenceLoop) -> None:
    """Run the loop until it stops, fails, or this task is cancelled."""
    aio_loop = asyncio.get_running_loop()
    try:
        aio_loop.add_signal_handler(signal.SIGTERM, loop.stop)
    except NotImplementedError:
        logging.debug("SIGTERM handler not supported on this platform")

    loop.start()
    try:
        await loop.wait()
    finally:
        loop.stop()
        await loop.wait()


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Neural Eye - live object detection console')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--host', type=str, default=None,
                        help='Web server host (overrides web.host)')
    parser.add_argument('--port', type=int, default=None,
                        help='Web server port (overrides web.port)')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the HTTP API')
    args = parser.parse_args()

    config = load_config(args.config)
    is_valid, error = validate_config(config)
    if not is_valid:
        print(f"Invalid configuration: {error}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Neural Eye")

    cfg = Config.from_dict(config)
    session = build_session(cfg)
    loop = build_loop(config, cfg, session)

    if cfg.web.enabled and not args.no_web:
        start_web_server(session, args.host or cfg.web.host, args.port or cfg.web.port)

    try:
        asyncio.run(run_detection(loop))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        status = session.loop_status
        if status.state == "failed":
            logging.error(f"Detection stopped with {status.failure_kind} failure: {status.failure_message}")
        logging.info(f"Neural Eye stopped ({len(session.log)} events logged)")

    if session.loop_status.state == "failed":
        sys.exit(2)


if __name__ == "__main__":
    main()
