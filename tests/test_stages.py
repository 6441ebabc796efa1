"""
Tests for the pipeline stages: filter, throttle, overlay.
"""

from datetime import datetime

import numpy as np
import pytest

from models.detection import Detection
from models.policy import DetectionPolicy
from pipeline.stages.filter import DetectionFilter, filter_detections
from pipeline.stages.overlay import (
    COLOR_OTHER,
    COLOR_PERSON,
    FILL_ALPHA,
    OverlayCanvas,
    OverlayRenderer,
)
from pipeline.stages.throttle import EventThrottle


def det(category, confidence=0.9, x=100, y=100, w=50, h=50):
    return Detection.from_xyxy(x, y, x + w, y + h, category, confidence)


class TestDetectionFilter:
    def test_all_groups_enabled(self):
        raw = [det("person"), det("car"), det("dog")]
        assert filter_detections(raw, DetectionPolicy()) == raw

    def test_vehicle_disabled(self):
        raw = [det("person", 0.9), det("car", 0.8), det("truck", 0.75), det("dog", 0.7)]
        policy = DetectionPolicy(enabled_groups={"person", "other"})

        result = filter_detections(raw, policy)

        assert [d.category for d in result] == ["person", "dog"]

    def test_other_disabled(self):
        raw = [det("dog"), det("bus"), det("cat")]
        policy = DetectionPolicy(enabled_groups={"person", "vehicle"})

        assert [d.category for d in filter_detections(raw, policy)] == ["bus"]

    def test_does_not_reapply_threshold(self):
        """Scores below the policy threshold pass; the detector owns that cut."""
        raw = [det("person", 0.3)]
        policy = DetectionPolicy(confidence_threshold=0.9)

        assert filter_detections(raw, policy) == raw

    def test_preserves_order(self):
        raw = [det("car", 0.7), det("person", 0.95), det("bus", 0.8)]
        assert DetectionFilter().apply(raw, DetectionPolicy()) == raw

    def test_empty(self):
        assert filter_detections([], DetectionPolicy()) == []


class TestEventThrottle:
    @pytest.fixture
    def throttle(self):
        return EventThrottle(
            interval_ms=800,
            source="Cam-01",
            wall_clock=lambda: datetime(2024, 5, 1, 14, 3, 27),
        )

    def test_first_offer_emits(self, throttle):
        event = throttle.offer([det("person", 0.91)], now=0.0)

        assert event is not None
        assert event.category == "person"
        assert event.confidence == 0.91
        assert event.source == "Cam-01"
        assert event.time_label == "14:03:27"
        assert throttle.last_emitted_at == 0.0

    def test_empty_offer_never_emits(self, throttle):
        assert throttle.offer([], now=0.0) is None
        assert throttle.last_emitted_at is None

    def test_exact_interval_is_suppressed(self, throttle):
        throttle.offer([det("person")], now=1000.0)

        assert throttle.offer([det("car")], now=1800.0) is None

    def test_just_past_interval_emits(self, throttle):
        throttle.offer([det("person")], now=1000.0)
        throttle.offer([det("car")], now=1800.0)

        event = throttle.offer([det("car")], now=1801.0)

        assert event is not None
        assert event.category == "car"
        assert throttle.last_emitted_at == 1801.0

    def test_representative_is_first_element(self, throttle):
        filtered = [det("car", 0.7), det("person", 0.99)]

        event = throttle.offer(filtered, now=0.0)

        assert event.category == "car"
        assert event.confidence == 0.7

    def test_burst_every_100ms(self, throttle):
        """Ten cycles 100 ms apart log exactly at t=0 and t=900."""
        emitted = []
        for i in range(10):
            now = i * 100.0
            if throttle.offer([det("person")], now=now) is not None:
                emitted.append(now)

        assert emitted == [0.0, 900.0]

    def test_empty_cycles_do_not_reset_window(self, throttle):
        throttle.offer([det("person")], now=0.0)
        throttle.offer([], now=500.0)

        assert throttle.offer([det("person")], now=700.0) is None

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            EventThrottle(interval_ms=-1)


class TestOverlayRenderer:
    @pytest.fixture
    def renderer(self):
        return OverlayRenderer()

    def test_resizes_canvas_to_frame(self, renderer):
        canvas = OverlayCanvas()

        renderer.render(canvas, [], 640, 480)

        assert canvas.image.shape == (480, 640, 4)

    def test_zero_detections_clears_canvas(self, renderer):
        canvas = OverlayCanvas(640, 480)
        renderer.render(canvas, [det("person")], 640, 480)

        renderer.render(canvas, [], 640, 480)

        assert not canvas.image.any()

    def test_idempotent(self, renderer):
        canvas = OverlayCanvas()
        detections = [det("person", 0.87), det("car", 0.7, x=300, y=5)]

        renderer.render(canvas, detections, 640, 480)
        first = canvas.image.copy()
        renderer.render(canvas, detections, 640, 480)

        np.testing.assert_array_equal(first, canvas.image)

    def test_person_border_and_fill(self, renderer):
        canvas = OverlayCanvas()

        renderer.render(canvas, [det("person", x=100, y=100, w=50, h=50)], 640, 480)

        assert tuple(canvas.image[125, 100]) == COLOR_PERSON + (255,)
        assert tuple(canvas.image[125, 125]) == COLOR_PERSON + (FILL_ALPHA,)

    def test_other_category_color(self, renderer):
        canvas = OverlayCanvas()

        renderer.render(canvas, [det("car", x=100, y=100, w=50, h=50)], 640, 480)

        assert tuple(canvas.image[125, 100]) == COLOR_OTHER + (255,)

    def test_tag_above_box_when_room(self, renderer):
        canvas = OverlayCanvas()

        renderer.render(canvas, [det("car", x=100, y=100, w=80, h=50)], 640, 480)

        # Tag spans y 80..100, left of the text
        assert tuple(canvas.image[85, 102]) == COLOR_OTHER + (255,)

    def test_tag_inside_box_near_top_edge(self, renderer):
        canvas = OverlayCanvas()

        renderer.render(canvas, [det("car", x=100, y=10, w=80, h=50)], 640, 480)

        assert not canvas.image[:8, 100:180].any()
        assert tuple(canvas.image[15, 102]) == COLOR_OTHER + (255,)

    def test_composite_blends_onto_frame(self, renderer):
        canvas = OverlayCanvas()
        frame = np.full((480, 640, 3), 7, dtype=np.uint8)
        renderer.render(canvas, [det("person", x=100, y=100, w=50, h=50)], 640, 480)

        out = canvas.composite(frame)

        assert out.shape == frame.shape
        assert tuple(out[125, 100]) == COLOR_PERSON
        assert tuple(out[400, 500]) == (7, 7, 7)
        # Source frame untouched
        assert (frame == 7).all()

    def test_composite_with_empty_canvas(self):
        frame = np.full((10, 10, 3), 3, dtype=np.uint8)
        out = OverlayCanvas().composite(frame)

        np.testing.assert_array_equal(out, frame)
        assert out is not frame
