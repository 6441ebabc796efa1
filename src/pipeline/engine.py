"""
Inference loop: the scheduler driving the detection pipeline.

One cooperative task pulls the latest frame (in a worker thread, since
OpenCV reads and reconnects block), awaits the detector, measures
throughput and hands the result to the registered callbacks, then waits
for the next display refresh. Cycles never overlap: cycle N+1 does not
start its detect call until cycle N's call has resolved, so at most one
inference is in flight.

State machine:
    IDLE -> LOADING -> RUNNING -> STOPPED
    LOADING -> FAILED   (detector or frame source could not be opened)
    RUNNING -> FAILED   (frame source gone)

STOPPED and FAILED are terminal; build a new loop to start again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple, TypeVar

from inference.backend import DetectorAdapter
from models.detection import Detection
from models.errors import FrameSourceError
from models.frame import FrameData
from models.policy import DetectionPolicy
from observation.base import ObservationSource


class LoopState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Which subsystem took the loop down, so the user knows what to fix."""
    MODEL = "model"
    SOURCE = "source"


@dataclass
class PipelineConfig:
    """
    Configuration for the inference loop.

    Attributes:
        refresh_hz: Rescheduling rate (one cycle per display refresh).
        max_consecutive_failures: Consecutive cycles without a frame before
            the frame source is declared unavailable.
    """
    refresh_hz: float = 60.0
    max_consecutive_failures: int = 300

    @property
    def refresh_interval(self) -> float:
        return 1.0 / self.refresh_hz


@dataclass
class PipelineStats:
    """Runtime statistics for the loop."""
    cycle_count: int = 0
    skipped_cycles: int = 0
    detect_failures: int = 0
    consecutive_misses: int = 0
    last_throughput: float = 0.0
    start_time: float = field(default_factory=time.time)


@dataclass(frozen=True)
class CycleResult:
    """
    Everything one completed cycle produced.

    `policy` is the snapshot used for this cycle's detect threshold; later
    stages must use it too so the cycle is internally consistent.
    `completed_at` is the monotonic time (ms) the detect call resolved.
    """
    frame_data: FrameData
    policy: DetectionPolicy
    detections: Tuple[Detection, ...]
    throughput: float
    completed_at: float


def _monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


T = TypeVar("T")

CycleCallback = Callable[[CycleResult], None]
StateListener = Callable[[LoopState, Optional[FailureKind], Optional[str]], None]


class InferenceLoop:
    """
    Example:
        loop = InferenceLoop(source, detector, session.get_policy)
        loop.add_callback(service.handle_cycle)
        loop.start()
        ...
        loop.stop()
        await loop.wait()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: DetectorAdapter,
        policy_provider: Callable[[], DetectionPolicy],
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self.source = source
        self.detector = detector
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._policy_provider = policy_provider
        self._clock = clock
        self._state = LoopState.IDLE
        self._failure_kind: Optional[FailureKind] = None
        self._failure_message: Optional[str] = None
        # Bumped by stop(); a cycle holding an older value must not emit or reschedule
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._cancel_requested = False
        # Worker-thread source call a cancellation interrupted; shutdown waits for it
        self._pending_source_call: Optional[asyncio.Future] = None
        self._callbacks: List[CycleCallback] = []
        self._state_listeners: List[StateListener] = []

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def failure_kind(self) -> Optional[FailureKind]:
        return self._failure_kind

    @property
    def failure_message(self) -> Optional[str]:
        return self._failure_message

    def add_callback(self, callback: CycleCallback) -> None:
        """Register a handler called with each completed cycle's result."""
        self._callbacks.append(callback)

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def start(self) -> asyncio.Task:
        """Schedule run() on the running event loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def stop(self) -> None:
        """
        Stop the loop. Must be called from the event loop thread.

        Any cycle already queued or awaiting the detector is discarded. A
        source open or read already running in its worker thread is allowed
        to finish, then the source is closed; wait() returns after that.
        """
        self._generation += 1
        if self._state is LoopState.IDLE:
            self._set_state(LoopState.STOPPED)
        if self._task is not None and not self._task.done() and not self._cancel_requested:
            self._cancel_requested = True
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the loop task to finish, without raising its outcome."""
        if self._task is not None:
            await asyncio.wait([self._task])

    async def run(self) -> None:
        if self._state is LoopState.STOPPED:
            return
        if self._state is not LoopState.IDLE:
            raise RuntimeError("InferenceLoop instances are single-use; create a new one")

        generation = self._generation
        self.stats = PipelineStats()
        self._set_state(LoopState.LOADING)

        try:
            try:
                await self._source_call(self.source.open)
            except Exception as e:
                self._fail(FailureKind.SOURCE, e)
                return
            if not self._is_current(generation):
                return

            try:
                await self.detector.initialize()
            except Exception as e:
                self._fail(FailureKind.MODEL, e)
                return
            if not self._is_current(generation):
                return

            self._set_state(LoopState.RUNNING)
            logging.info(f"Inference loop started: source={self.source.source_id}")

            while self._is_current(generation):
                try:
                    await self._cycle(generation)
                except FrameSourceError as e:
                    self._fail(FailureKind.SOURCE, e)
                    return
                if not self._is_current(generation):
                    break
                await asyncio.sleep(self.config.refresh_interval)
        except asyncio.CancelledError:
            logging.info("Inference loop cancelled")
            raise
        finally:
            pending = self._pending_source_call
            if pending is not None and not pending.done():
                logging.info("Waiting for frame source call to finish before closing")
                await asyncio.wait([pending])
            self._shutdown()

    async def _cycle(self, generation: int) -> None:
        frame_data = await self._source_call(self._read_frame)
        if frame_data is None:
            self.stats.skipped_cycles += 1
            self.stats.consecutive_misses += 1
            if self.stats.consecutive_misses > self.config.max_consecutive_failures:
                raise FrameSourceError(
                    f"No frame from {self.source.source_id} for "
                    f"{self.stats.consecutive_misses} consecutive cycles"
                )
            return
        self.stats.consecutive_misses = 0

        # One policy snapshot per cycle; updates land on the next cycle
        policy = self._policy_provider()

        t0 = self._clock()
        try:
            detections = await self.detector.detect(
                frame_data.frame,
                frame_data.width,
                frame_data.height,
                policy.confidence_threshold,
            )
        except Exception as e:
            self.stats.detect_failures += 1
            logging.warning(f"Detection failed, skipping cycle: {e}")
            return
        t1 = self._clock()

        if not self._is_current(generation):
            return

        throughput = 1000.0 / max(t1 - t0, 1.0)
        self.stats.cycle_count += 1
        self.stats.last_throughput = throughput

        result = CycleResult(
            frame_data=frame_data,
            policy=policy,
            detections=tuple(detections),
            throughput=throughput,
            completed_at=t1,
        )
        for callback in self._callbacks:
            try:
                callback(result)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

    async def _source_call(self, fn: Callable[[], T]) -> T:
        """
        Run a blocking source call (open, read, reconnect) in a worker thread.

        The event loop keeps running meanwhile, so stop() and signal handlers
        are served. A thread cannot be interrupted: if the task is cancelled
        mid-call, the future is kept and shutdown closes the source only once
        the call has returned.
        """
        future = asyncio.get_running_loop().run_in_executor(None, fn)
        self._pending_source_call = future
        result = await asyncio.shield(future)
        self._pending_source_call = None
        return result

    def _read_frame(self) -> Optional[FrameData]:
        try:
            return self.source.read()
        except FrameSourceError:
            raise
        except Exception as e:
            raise FrameSourceError(f"Frame source read failed: {e}") from e

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _fail(self, kind: FailureKind, error: BaseException) -> None:
        self._failure_kind = kind
        self._failure_message = str(error)
        if kind is FailureKind.MODEL:
            logging.error(f"Detector initialization failed (not retried; restart to retry): {error}")
        else:
            logging.error(f"Frame source unavailable: {error}")
        self._set_state(LoopState.FAILED)

    def _shutdown(self) -> None:
        """Release the detector and source. The session log is left alone."""
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")
        try:
            self.detector.dispose()
        except Exception as e:
            logging.warning(f"Error disposing detector: {e}")

        if self._state is not LoopState.FAILED:
            self._set_state(LoopState.STOPPED)
        logging.info(
            f"Inference loop stopped: cycles={self.stats.cycle_count}, "
            f"skipped={self.stats.skipped_cycles}, detect_failures={self.stats.detect_failures}"
        )

    def _set_state(self, state: LoopState) -> None:
        self._state = state
        for listener in self._state_listeners:
            try:
                listener(state, self._failure_kind, self._failure_message)
            except Exception as e:
                logging.warning(f"State listener error: {e}")


def create_loop_from_config(
    source: ObservationSource,
    detector: DetectorAdapter,
    policy_provider: Callable[[], DetectionPolicy],
    loop_cfg: dict,
) -> InferenceLoop:
    """
    Create an InferenceLoop from the `loop` config section.

    Args:
        source: Frame source (opened by the loop)
        detector: Detector adapter (initialized by the loop)
        policy_provider: Returns the current DetectionPolicy snapshot
        loop_cfg: Dict with refresh_hz, max_consecutive_failures
    """
    config = PipelineConfig(
        refresh_hz=float(loop_cfg.get("refresh_hz", 60.0)),
        max_consecutive_failures=int(loop_cfg.get("max_consecutive_failures", 300)),
    )
    if config.refresh_hz <= 0:
        raise ValueError(f"refresh_hz must be positive, got {config.refresh_hz}")
    return InferenceLoop(source, detector, policy_provider, config=config)
