"""
Logging setup.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that flood INFO with per-frame or per-request lines
NOISY_LOGGERS = ("ultralytics", "uvicorn.access")


def resolve_level(log_level: str) -> int:
    level = logging.getLevelName(str(log_level).upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{log_level}'")
    return level


def setup_logging(log_path: str, log_level: str = "INFO") -> None:
    level = resolve_level(log_level)

    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
        force=True,
    )

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
