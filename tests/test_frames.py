from collections import deque

import pytest

from core.config import Settings
from services.calibration import CalibrationSession
from services.engine import ZoneEngine
from services.frames import FrameProcessor, RateLimiter, expand_mask_to_margins, guide_alignment
from services.templates_store import InMemoryTemplateRepository


@pytest.fixture
def processor():
    engine = ZoneEngine(InMemoryTemplateRepository(), Settings(DETECT_INTERVAL_MS=120))
    return FrameProcessor(engine, CalibrationSession(), Settings(DETECT_INTERVAL_MS=120), events=deque())


def test_rate_limiter():
    limiter = RateLimiter(0.12)
    assert limiter.allow(0.0)
    assert not limiter.allow(0.1)
    assert limiter.allow(0.12)


def test_guide_alignment():
    assert guide_alignment((20.0, 10.0, 80.0, 90.0))["aligned"]
    # too small
    assert not guide_alignment((40.0, 40.0, 60.0, 60.0))["aligned"]
    # off centre
    assert not guide_alignment((30.0, 10.0, 90.0, 90.0))["aligned"]


def test_preview_mask_expands_and_clamps():
    oval = [(30.0, 20.0), (70.0, 20.0), (70.0, 80.0), (30.0, 80.0)]
    expanded = expand_mask_to_margins(oval, (30.0, 20.0, 70.0, 80.0))
    assert expanded[0] == pytest.approx((30.0 - 40.0 * 0.18, 20.0 - 60.0 * 0.28))
    assert expanded[2] == pytest.approx((70.0 + 40.0 * 0.18, 80.0 + 60.0 * 0.12))
    big = expand_mask_to_margins([(0.0, 0.0), (100.0, 0.0), (100.0, 100.0)], (0.0, 0.0, 100.0, 100.0))
    assert all(0.0 <= x <= 100.0 and 0.0 <= y <= 100.0 for x, y in big)


def test_good_frame_updates_snapshot_and_calibration(processor, make_face):
    result = processor.process(make_face(), now=0.0)
    assert result.status == "ok"
    assert result.calibrated == ["center"]
    assert result.alignment["aligned"]
    assert processor.engine.last_snapshot is result.landmarks
    assert processor.events[0]["direction"] == "center"


def test_frames_inside_interval_are_skipped(processor, make_face):
    first = processor.process(make_face(), now=0.0)
    skipped = processor.process(make_face(nx=-0.3), now=0.05)
    assert skipped.status == "skipped"
    assert skipped.landmarks is first.landmarks
    assert not processor.session.tracker.state.left


def test_missing_face_keeps_last_snapshot(processor, make_face):
    first = processor.process(make_face(), now=0.0)
    lost = processor.process(None, now=1.0)
    assert lost.status == "detection_unavailable"
    assert lost.landmarks is first.landmarks


def test_calibration_complete_event(processor, make_face):
    for i, (nx, ny) in enumerate([(0, 0), (-0.2, 0), (0.2, 0), (0, -0.2), (0, 0.2)]):
        processor.process(make_face(nx, ny), now=float(i))
    assert processor.session.tracker.complete
    assert processor.events[0]["type"] == "calibration_complete"
