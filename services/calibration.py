"""Five-pose head calibration that gates the frontal capture."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from models.calibration import DIRECTIONS, CalibrationState
from models.landmarks import LandmarkSet
from services.geometry import distance
from services.topology import KEY_LANDMARKS

logger = logging.getLogger(__name__)

CAPTURE_STEPS = ("face", "three_quarter_left", "three_quarter_right", "profile_left", "profile_right")

CALIBRATION_HINTS = {
    "center": "Look straight at the camera",
    "left": "Turn to the left",
    "right": "Turn to the right",
    "up": "Look up",
    "down": "Look down",
}


@dataclass(frozen=True)
class PoseThresholds:
    center: float = 0.06
    left: float = -0.16
    right: float = 0.16
    up: float = -0.14
    down: float = 0.16


DEFAULT_THRESHOLDS = PoseThresholds()


def nose_offset(landmarks: LandmarkSet) -> Tuple[float, float]:
    """Nose tip offset from the eye midpoint, in inter-eye distances."""
    left = landmarks.point(KEY_LANDMARKS["left_eye"])
    right = landmarks.point(KEY_LANDMARKS["right_eye"])
    nose = landmarks.point(KEY_LANDMARKS["nose_tip"])
    eye_cx = (left[0] + right[0]) / 2.0
    eye_cy = (left[1] + right[1]) / 2.0
    eye_distance = max(distance(left, right), 1e-4)
    return ((nose[0] - eye_cx) / eye_distance, (nose[1] - eye_cy) / eye_distance)


def directions_for(nx: float, ny: float, t: PoseThresholds = DEFAULT_THRESHOLDS) -> List[str]:
    reached = []
    if abs(nx) < t.center and abs(ny) < t.center:
        reached.append("center")
    if nx < t.left:
        reached.append("left")
    if nx > t.right:
        reached.append("right")
    if ny < t.up:
        reached.append("up")
    if ny > t.down:
        reached.append("down")
    return reached


class CalibrationTracker:
    """Monotonic flags: once reached, a direction stays reached."""

    def __init__(self, thresholds: PoseThresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds
        self.state = CalibrationState()

    @property
    def complete(self) -> bool:
        return self.state.complete

    def mark(self, direction: str) -> bool:
        if direction not in DIRECTIONS:
            raise ValueError(f"unknown direction '{direction}'")
        if getattr(self.state, direction):
            return False
        setattr(self.state, direction, True)
        return True

    def update_offset(self, nx: float, ny: float) -> List[str]:
        """Apply one frame; returns the directions newly reached."""
        return [d for d in directions_for(nx, ny, self.thresholds) if self.mark(d)]

    def update(self, landmarks: LandmarkSet) -> List[str]:
        return self.update_offset(*nose_offset(landmarks))

    def next_hint(self) -> str:
        pending = self.state.pending()
        if pending:
            return CALIBRATION_HINTS[pending[0]]
        return "Calibration complete, capture is enabled"

    def can_capture(self, step: str) -> bool:
        # every step, frontal included, waits for calibration
        if step not in CAPTURE_STEPS:
            raise ValueError(f"unknown capture step '{step}'")
        return self.complete


class CalibrationSession:
    """Calibration and capture progress for the current patient selection."""

    def __init__(self, thresholds: PoseThresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds
        self._lock = threading.RLock()
        self.selection: Optional[str] = None
        self.tracker = CalibrationTracker(thresholds)
        self.step_index = 0
        self.captured: Dict[str, bool] = {}

    @property
    def current_step(self) -> str:
        return CAPTURE_STEPS[self.step_index]

    def select(self, selection: Optional[str]) -> bool:
        """Switch patient/session; resets everything when it changes."""
        with self._lock:
            if selection == self.selection:
                return False
            self.selection = selection
            self.reset()
            logger.info("calibration reset for selection %s", selection)
            return True

    def reset(self) -> None:
        with self._lock:
            self.tracker = CalibrationTracker(self.thresholds)
            self.step_index = 0
            self.captured = {}

    def observe(self, landmarks: LandmarkSet) -> List[str]:
        with self._lock:
            if self.current_step != "face" or self.tracker.complete:
                return []
            return self.tracker.update(landmarks)

    def record_capture(self, step: Optional[str] = None) -> str:
        with self._lock:
            step = step or self.current_step
            if not self.tracker.can_capture(step):
                raise PermissionError("calibration required before capture")
            # only the current step or a retake of an earlier one
            if step != self.current_step and not self.captured.get(step):
                raise PermissionError(
                    f"capture step '{step}' is locked until '{self.current_step}' is captured"
                )
            self.captured[step] = True
            if step == self.current_step and self.step_index < len(CAPTURE_STEPS) - 1:
                self.step_index += 1
            return step

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "selection": self.selection,
                "calibration": self.tracker.state.to_dict(),
                "hint": self.tracker.next_hint(),
                "current_step": self.current_step,
                "captured": dict(self.captured),
                "capture_complete": all(self.captured.get(s) for s in CAPTURE_STEPS),
            }
