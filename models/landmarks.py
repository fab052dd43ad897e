from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from services.geometry import BBox, Point


class RawLandmark(BaseModel):
    """One detector point, normalized to the image (0..1)."""

    x: float
    y: float
    z: Optional[float] = None


@dataclass(frozen=True)
class FaceMetrics:
    inter_eye_distance: float
    face_width: float
    face_width_cheeks: float
    face_width_temples: float
    face_width_jaw: float
    face_height: float
    nose_width: float
    mouth_width: float
    bbox: BBox

    def to_dict(self) -> Dict[str, float]:
        return {
            "eye_distance": self.inter_eye_distance,
            "face_width": self.face_width,
            "face_height": self.face_height,
            "nose_width": self.nose_width,
            "mouth_width": self.mouth_width,
        }


@dataclass(frozen=True)
class LandmarkSet:
    """Landmarks rescaled to canonical 0..100 space plus derived metrics."""

    points: Tuple[Point, ...]
    depths: Tuple[Optional[float], ...]
    metrics: FaceMetrics

    def __len__(self) -> int:
        return len(self.points)

    def point(self, index: int) -> Point:
        return self.points[index]

    def select(self, indices: List[int]) -> List[Point]:
        return [self.points[i] for i in indices]


class LandmarkRecord(BaseModel):
    """Persisted detection, keyed by (photo_id, session_id)."""

    photo_id: str
    session_id: str
    landmarks: List[RawLandmark]
    key_points: Dict[str, Tuple[float, float]] = Field(default_factory=dict)
    eye_distance: float
    face_width: float
    face_height: float
    nose_width: float
    mouth_width: float
    detection_method: str = "mediapipe"
