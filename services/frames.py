from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, List, Optional

from core.config import Settings
from core.errors import NoFaceDetected
from models.landmarks import LandmarkSet
from services.calibration import CalibrationSession
from services.engine import ZoneEngine
from services.geometry import BBox, Point, bbox_center, bbox_size, bounding_box, clamp_point
from services.topology import FACE_OVAL

logger = logging.getLogger(__name__)

# Capture overlay box the face should fill, canonical space
GUIDE_BOX: BBox = (18.0, 6.0, 82.0, 94.0)


def guide_alignment(face_bbox: BBox, guide: BBox = GUIDE_BOX) -> Dict[str, Any]:
    face_w, face_h = bbox_size(face_bbox)
    guide_w, guide_h = bbox_size(guide)
    fcx, fcy = bbox_center(face_bbox)
    gcx, gcy = bbox_center(guide)
    center_dx = abs(fcx - gcx) / guide_w
    center_dy = abs(fcy - gcy) / guide_h
    ratio_x = face_w / guide_w
    ratio_y = face_h / guide_h
    aligned = (
        center_dx < 0.08
        and center_dy < 0.08
        and 0.6 < ratio_x < 0.95
        and 0.6 < ratio_y < 0.95
    )
    return {
        "aligned": aligned,
        "center_dx": center_dx,
        "center_dy": center_dy,
        "size_ratio_x": ratio_x,
        "size_ratio_y": ratio_y,
    }


def expand_mask_to_margins(points: List[Point], face_bbox: BBox) -> List[Point]:
    """Grow the face-oval outline by face-relative margins for the live guide."""
    if not points:
        return points
    min_x, min_y, max_x, max_y = bounding_box(points)
    width = max(max_x - min_x, 0.001)
    height = max(max_y - min_y, 0.001)
    face_w, face_h = bbox_size(face_bbox)
    margin_x = face_w * 0.18
    margin_top = face_h * 0.28
    margin_bottom = face_h * 0.12
    scale_x = (width + margin_x * 2) / width
    scale_y = (height + margin_top + margin_bottom) / height
    return [
        clamp_point(((x - min_x) * scale_x + (min_x - margin_x), (y - min_y) * scale_y + (min_y - margin_top)))
        for x, y in points
    ]


def preview_mask(landmarks: LandmarkSet) -> List[Point]:
    oval = [clamp_point(p) for p in landmarks.select(FACE_OVAL)]
    return expand_mask_to_margins(oval, landmarks.metrics.bbox)


class RateLimiter:
    def __init__(self, interval_s: float):
        self.interval_s = interval_s
        self._last: Optional[float] = None

    def allow(self, now: float) -> bool:
        if self._last is not None and now - self._last < self.interval_s:
            return False
        self._last = now
        return True


@dataclass
class FrameResult:
    status: str  # "ok" | "skipped" | "detection_unavailable"
    landmarks: Optional[LandmarkSet] = None
    alignment: Dict[str, Any] = field(default_factory=dict)
    calibrated: List[str] = field(default_factory=list)
    preview_mask: List[Point] = field(default_factory=list)


class FrameProcessor:
    """Rate-limited landmark intake feeding the engine snapshot and calibration."""

    def __init__(
        self,
        engine: ZoneEngine,
        session: CalibrationSession,
        settings: Settings,
        events: Optional[Deque[Dict[str, Any]]] = None,
    ):
        self.engine = engine
        self.session = session
        self.limiter = RateLimiter(settings.detect_interval_s)
        self.events = events

    def process(self, raw_points: Optional[Iterable[Any]], now: Optional[float] = None) -> FrameResult:
        now = time.perf_counter() if now is None else now
        if not self.limiter.allow(now):
            return FrameResult(status="skipped", landmarks=self.engine.last_snapshot)
        return self.handle(raw_points)

    def handle(self, raw_points: Optional[Iterable[Any]]) -> FrameResult:
        """Process one detection that already passed the rate limiter."""
        try:
            landmarks = self.engine.ingest(raw_points)
        except NoFaceDetected:
            # keep showing the last good geometry
            return FrameResult(status="detection_unavailable", landmarks=self.engine.last_snapshot)

        reached = self.session.observe(landmarks)
        if reached:
            logger.info("calibration reached: %s", ", ".join(reached))
        if self.events is not None:
            for direction in reached:
                self.events.appendleft(
                    {"timestamp": time.time(), "type": "calibration", "direction": direction}
                )
            if reached and self.session.tracker.complete:
                self.events.appendleft({"timestamp": time.time(), "type": "calibration_complete"})
        return FrameResult(
            status="ok",
            landmarks=landmarks,
            alignment=guide_alignment(landmarks.metrics.bbox),
            calibrated=reached,
            preview_mask=preview_mask(landmarks),
        )
