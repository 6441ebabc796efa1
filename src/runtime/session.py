from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from models.log_event import LogEvent
from models.policy import DetectionPolicy
from storage.log_store import DEFAULT_CAPACITY, DEFAULT_DISPLAY_LIMIT, LogStore


@dataclass(frozen=True)
class LoopStatus:
    """Last reported inference loop state, as plain strings for the API."""
    state: str = "idle"
    failure_kind: Optional[str] = None
    failure_message: Optional[str] = None


class Session:
    """
    Holds one monitoring session's shared state; avoids global singletons.

    The inference loop thread writes frames, stats and log events; the web
    thread reads snapshots and replaces the policy. The log lives as long
    as the Session, independent of any loop restart.
    """

    def __init__(
        self,
        policy: Optional[DetectionPolicy] = None,
        source_id: str = "Cam-01",
        capacity: int = DEFAULT_CAPACITY,
        display_limit: int = DEFAULT_DISPLAY_LIMIT,
    ):
        if display_limit < 0:
            raise ValueError(f"display_limit must be >= 0, got {display_limit}")
        self.source_id = source_id
        self.display_limit = display_limit
        self.log = LogStore(capacity)
        self.start_time = time.time()

        self._policy = policy or DetectionPolicy()
        self._policy_lock = threading.Lock()

        self._frame: Optional[np.ndarray] = None
        self._frame_lock = threading.Lock()

        self._stats_lock = threading.Lock()
        self._fps = 0.0
        self._last_frame_ts: Optional[float] = None
        self._loop_status = LoopStatus()
        self._cycle_stats_provider: Optional[Callable[[], Dict[str, Any]]] = None

    # Policy

    def get_policy(self) -> DetectionPolicy:
        with self._policy_lock:
            return self._policy

    def set_policy(self, policy: DetectionPolicy) -> None:
        with self._policy_lock:
            self._policy = policy

    def update_policy(
        self,
        confidence_threshold: Optional[float] = None,
        groups: Optional[Dict[str, bool]] = None,
    ) -> DetectionPolicy:
        """
        Replace the policy atomically with an updated copy.

        Raises PolicyError on invalid values; the current policy is kept.
        """
        with self._policy_lock:
            self._policy = self._policy.updated(confidence_threshold=confidence_threshold, groups=groups)
            return self._policy

    # Event log

    def record(self, event: LogEvent) -> None:
        self.log.append(event)

    def recent_for_display(self) -> Tuple[LogEvent, ...]:
        return self.log.recent(self.display_limit)

    def history(self) -> Tuple[LogEvent, ...]:
        return self.log.snapshot()

    # Frame and stats

    def set_frame(self, frame: np.ndarray, fps: Optional[float] = None) -> None:
        with self._frame_lock:
            self._frame = frame
        with self._stats_lock:
            self._last_frame_ts = time.time()
            if fps is not None:
                self._fps = fps

    def get_frame(self) -> Optional[np.ndarray]:
        with self._frame_lock:
            if self._frame is None:
                return None
            return self._frame.copy()

    def set_loop_status(self, state: str, failure_kind: Optional[str] = None, failure_message: Optional[str] = None) -> None:
        with self._stats_lock:
            self._loop_status = LoopStatus(state, failure_kind, failure_message)

    @property
    def loop_status(self) -> LoopStatus:
        with self._stats_lock:
            return self._loop_status

    def get_system_stats_copy(self) -> Dict[str, object]:
        with self._stats_lock:
            return {
                "fps": self._fps,
                "last_frame_ts": self._last_frame_ts,
                "start_time": self.start_time,
                "uptime_seconds": time.time() - self.start_time,
            }

    def set_cycle_stats_provider(self, provider: Callable[[], Dict[str, Any]]) -> None:
        self._cycle_stats_provider = provider

    def get_cycle_stats(self) -> Dict[str, Any]:
        """Inference loop counters, or an empty dict when no loop is attached."""
        provider = self._cycle_stats_provider
        return dict(provider()) if provider is not None else {}
