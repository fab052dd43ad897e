import itertools

import pytest

from services.calibration import (
    CAPTURE_STEPS,
    CalibrationSession,
    CalibrationTracker,
    directions_for,
    nose_offset,
)
from services.normalizer import normalize_landmarks

OFFSETS = {
    "center": (0.0, 0.0),
    "left": (-0.2, 0.0),
    "right": (0.2, 0.0),
    "up": (0.0, -0.2),
    "down": (0.0, 0.2),
}


def test_direction_thresholds():
    assert directions_for(0.05, -0.05) == ["center"]
    assert directions_for(-0.17, 0.0) == ["left"]
    assert directions_for(0.17, 0.17) == ["right", "down"]
    assert directions_for(0.1, -0.15) == ["up"]
    assert directions_for(0.1, 0.1) == []


def test_nose_offset_in_eye_distances(make_face):
    nx, ny = nose_offset(normalize_landmarks(make_face(nx=-0.2, ny=0.1)))
    assert nx == pytest.approx(-0.2)
    assert ny == pytest.approx(0.1)


@pytest.mark.parametrize("order", list(itertools.permutations(OFFSETS))[::17])
def test_any_order_reaches_complete(order):
    tracker = CalibrationTracker()
    for direction in order:
        assert not tracker.complete
        assert tracker.update_offset(*OFFSETS[direction]) == [direction]
    assert tracker.complete


def test_four_of_five_never_completes():
    tracker = CalibrationTracker()
    for _ in range(3):
        for direction in ("center", "left", "right", "up"):
            tracker.update_offset(*OFFSETS[direction])
    assert not tracker.complete
    assert tracker.state.pending() == ["down"]
    assert tracker.next_hint() == "Look down"


def test_flags_never_clear():
    tracker = CalibrationTracker()
    tracker.update_offset(*OFFSETS["left"])
    tracker.update_offset(*OFFSETS["right"])
    assert tracker.state.left and tracker.state.right


def test_capture_gated_on_calibration(make_face):
    session = CalibrationSession()
    with pytest.raises(PermissionError):
        session.record_capture("face")
    for nx, ny in OFFSETS.values():
        session.observe(normalize_landmarks(make_face(nx, ny)))
    assert session.tracker.complete
    for step in CAPTURE_STEPS:
        assert session.record_capture() == step
    assert session.snapshot()["capture_complete"]


def test_unknown_capture_step_rejected():
    with pytest.raises(ValueError):
        CalibrationTracker().can_capture("overhead")


def test_selection_change_resets(make_face):
    session = CalibrationSession()
    session.select("patient-1")
    session.observe(normalize_landmarks(make_face()))
    assert session.tracker.state.center
    assert not session.select("patient-1")
    assert session.tracker.state.center
    assert session.select("patient-2")
    assert not session.tracker.state.center
    assert session.current_step == "face"


def _calibrated_session(make_face):
    session = CalibrationSession()
    for nx, ny in OFFSETS.values():
        session.observe(normalize_landmarks(make_face(nx, ny)))
    return session


def test_capture_steps_cannot_be_skipped(make_face):
    session = _calibrated_session(make_face)
    with pytest.raises(PermissionError):
        session.record_capture("profile_right")
    assert session.current_step == "face"
    assert not session.captured


def test_retake_keeps_current_step(make_face):
    session = _calibrated_session(make_face)
    session.record_capture("face")
    assert session.record_capture("face") == "face"
    assert session.current_step == "three_quarter_left"
