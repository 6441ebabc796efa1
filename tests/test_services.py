"""
Tests for the session and the per-cycle detection service.
"""

from datetime import datetime

import numpy as np
import pytest

from models.detection import Detection
from models.frame import FrameData
from models.log_event import LogEvent
from models.policy import DetectionPolicy, PolicyError
from pipeline.engine import CycleResult, FailureKind, LoopState
from pipeline.stages.throttle import EventThrottle
from runtime.services import DetectionService
from runtime.session import Session

DETECTIONS = (
    Detection.from_xyxy(100, 100, 200, 300, "person", 0.91),
    Detection.from_xyxy(300, 200, 450, 280, "car", 0.80),
    Detection.from_xyxy(50, 350, 120, 420, "dog", 0.70),
)


def cycle(policy, completed_at, detections=DETECTIONS, size=(640, 480)):
    frame = np.zeros((size[1], size[0], 3), dtype=np.uint8)
    return CycleResult(
        frame_data=FrameData.capture(frame, source="Cam-01"),
        policy=policy,
        detections=tuple(detections),
        throughput=25.0,
        completed_at=completed_at,
    )


@pytest.fixture
def session():
    return Session(source_id="Cam-01")


@pytest.fixture
def service(session):
    throttle = EventThrottle(interval_ms=800, source="Cam-01",
                             wall_clock=lambda: datetime(2024, 5, 1, 9, 15, 0))
    return DetectionService(session, throttle=throttle)


class TestDetectionService:
    def test_filters_renders_and_logs(self, service, session):
        policy = DetectionPolicy(enabled_groups={"person", "other"})

        event = service.handle_cycle(cycle(policy, completed_at=0.0))

        assert [d.category for d in service.last_filtered] == ["person", "dog"]
        assert event.category == "person"
        assert event.confidence == 0.91
        assert event.time_label == "09:15:00"
        assert session.history() == (event,)

    def test_annotated_frame_published(self, service, session):
        service.handle_cycle(cycle(DetectionPolicy(), completed_at=0.0))

        frame = session.get_frame()
        assert frame.shape == (480, 640, 3)
        assert frame.any()
        assert session.get_system_stats_copy()["fps"] == 25.0

    def test_throttle_window_across_cycles(self, service, session):
        policy = DetectionPolicy()

        service.handle_cycle(cycle(policy, completed_at=0.0))
        assert service.handle_cycle(cycle(policy, completed_at=500.0)) is None
        assert service.handle_cycle(cycle(policy, completed_at=900.0)) is not None

        assert len(session.log) == 2

    def test_nothing_enabled_logs_nothing(self, service, session):
        policy = DetectionPolicy(enabled_groups=set())

        assert service.handle_cycle(cycle(policy, completed_at=0.0)) is None
        assert len(session.log) == 0
        # Overlay cleared: frame is the untouched black input
        assert not session.get_frame().any()

    def test_frame_size_change_resizes_overlay(self, service):
        service.handle_cycle(cycle(DetectionPolicy(), completed_at=0.0, size=(640, 480)))
        service.handle_cycle(cycle(DetectionPolicy(), completed_at=1000.0, size=(1280, 720)))

        assert service.canvas.image.shape == (720, 1280, 4)

    def test_state_mirrored_into_session(self, service, session):
        service.handle_state(LoopState.FAILED, FailureKind.SOURCE, "camera unplugged")

        status = session.loop_status
        assert status.state == "failed"
        assert status.failure_kind == "source"
        assert status.failure_message == "camera unplugged"


class TestSession:
    def test_update_policy(self, session):
        policy = session.update_policy(confidence_threshold=0.8, groups={"vehicle": False})

        assert session.get_policy() is policy
        assert policy.confidence_threshold == 0.8
        assert not policy.is_enabled("vehicle")

    def test_invalid_update_keeps_policy(self, session):
        before = session.get_policy()

        with pytest.raises(PolicyError):
            session.update_policy(confidence_threshold=2.0)

        assert session.get_policy() is before

    def test_display_slice(self):
        session = Session(display_limit=2)
        for i in range(5):
            session.record(cycle_event(i))

        assert [e.id for e in session.recent_for_display()] == ["e4", "e3"]

    def test_get_frame_returns_copy(self, session):
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        session.set_frame(frame)

        copy = session.get_frame()
        copy[:] = 255

        assert not session.get_frame().any()

    def test_cycle_stats_provider(self, session):
        assert session.get_cycle_stats() == {}

        session.set_cycle_stats_provider(lambda: {"cycle_count": 3})

        assert session.get_cycle_stats() == {"cycle_count": 3}


def cycle_event(i):
    return LogEvent("person", 0.9, datetime(2024, 5, 1, 9, 0, i), "Cam-01", id=f"e{i}")
