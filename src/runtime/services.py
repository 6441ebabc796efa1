from __future__ import annotations

import logging
from typing import List, Optional

from models.detection import Detection
from models.log_event import LogEvent
from pipeline.engine import CycleResult, FailureKind, LoopState
from pipeline.stages.filter import DetectionFilter
from pipeline.stages.overlay import OverlayCanvas, OverlayRenderer
from pipeline.stages.throttle import EventThrottle
from runtime.session import Session


class DetectionService:
    """
    Handles one completed inference cycle: filter, overlay, throttle, log.

    Registered as an InferenceLoop callback. Every stage uses the policy
    snapshot the loop took for the cycle, never the live one.
    """

    def __init__(
        self,
        session: Session,
        throttle: Optional[EventThrottle] = None,
        renderer: Optional[OverlayRenderer] = None,
    ):
        self.session = session
        self.filter = DetectionFilter()
        self.renderer = renderer or OverlayRenderer()
        self.canvas = OverlayCanvas()
        self.throttle = throttle or EventThrottle(source=session.source_id)
        self.last_filtered: List[Detection] = []

    def handle_cycle(self, result: CycleResult) -> Optional[LogEvent]:
        frame_data = result.frame_data
        filtered = self.filter.apply(result.detections, result.policy)
        self.last_filtered = filtered

        self.renderer.render(self.canvas, filtered, frame_data.width, frame_data.height)
        annotated = self.canvas.composite(frame_data.frame)
        self.session.set_frame(annotated, fps=result.throughput)

        event = self.throttle.offer(filtered, result.completed_at)
        if event is not None:
            self.session.record(event)
        return event

    def handle_state(
        self,
        state: LoopState,
        failure_kind: Optional[FailureKind],
        failure_message: Optional[str],
    ) -> None:
        """Mirror loop state into the session for the status endpoint."""
        kind = failure_kind.value if failure_kind is not None else None
        self.session.set_loop_status(state.value, kind, failure_message)
        if state is LoopState.FAILED:
            logging.warning(f"Detection halted ({kind}): {failure_message}")
