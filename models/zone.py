from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, field_validator

ZoneSource = Literal["override", "adapted", "mask_fit", "template"]

CONFIDENCE_WEIGHTS = {
    "geometric_match": 0.3,
    "landmark_coverage": 0.3,
    "size_ratio": 0.2,
    "position_accuracy": 0.2,
}


def check_canonical_polygon(pts: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    if len(pts) < 3:
        raise ValueError("polygon must have >= 3 points")
    for x, y in pts:
        # canonical space, percentages of the photo frame
        if not (0.0 <= x <= 100.0 and 0.0 <= y <= 100.0):
            raise ValueError("points must be within the canonical 0..100 space")
    return [(float(x), float(y)) for x, y in pts]


class ConfidenceDetails(BaseModel):
    geometric_match: float = 0.0
    landmark_coverage: float = 0.0
    size_ratio: float = 0.0
    position_accuracy: float = 0.0
    overall: float = 0.0
    level: Literal["high", "medium", "low"] = "low"

    @classmethod
    def from_scores(
        cls,
        geometric_match: float,
        landmark_coverage: float,
        size_ratio: float,
        position_accuracy: float,
        high: float = 0.85,
        medium: float = 0.70,
    ) -> "ConfidenceDetails":
        overall = (
            CONFIDENCE_WEIGHTS["geometric_match"] * geometric_match
            + CONFIDENCE_WEIGHTS["landmark_coverage"] * landmark_coverage
            + CONFIDENCE_WEIGHTS["size_ratio"] * size_ratio
            + CONFIDENCE_WEIGHTS["position_accuracy"] * position_accuracy
        )
        if overall >= high:
            level = "high"
        elif overall >= medium:
            level = "medium"
        else:
            level = "low"
        return cls(
            geometric_match=geometric_match,
            landmark_coverage=landmark_coverage,
            size_ratio=size_ratio,
            position_accuracy=position_accuracy,
            overall=overall,
            level=level,
        )


class AdaptedZone(BaseModel):
    zone_id: str
    label: str = ""
    polygon: List[Tuple[float, float]]
    exclusion: Optional[List[Tuple[float, float]]] = None
    confidence: ConfidenceDetails = ConfidenceDetails()
    source: ZoneSource = "adapted"


class ZoneOverride(BaseModel):
    session_id: str
    photo_id: str
    zone_id: str
    points: List[Tuple[float, float]]

    @field_validator("points")
    @classmethod
    def _norm(cls, pts: List[Tuple[float, float]]):
        return check_canonical_polygon(pts)

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.session_id, self.photo_id, self.zone_id)
