from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, Field, field_validator

from models.landmarks import RawLandmark
from models.template import Morphology
from models.zone import check_canonical_polygon
from services.visibility import Pose


class PointEdit(BaseModel):
    action: Literal["add", "move", "remove", "undo", "clear"]
    target: str  # zone id or "mask"
    mode: Literal["include", "exclude"] = "include"
    index: Optional[int] = None
    point: Optional[Tuple[float, float]] = None


class ComputeRequest(BaseModel):
    morphology: Morphology
    pose: Pose = "face"
    session_id: Optional[str] = None
    photo_id: Optional[str] = None
    # Raw detector output (0..1); falls back to the cached or live snapshot
    landmarks: Optional[List[RawLandmark]] = None
    use_mask_fit: bool = True


class OverrideBody(BaseModel):
    points: List[Tuple[float, float]]

    @field_validator("points")
    @classmethod
    def _norm(cls, pts: List[Tuple[float, float]]):
        return check_canonical_polygon(pts)


class AutoFitRequest(BaseModel):
    session_id: str
    photo_id: str
    morphology: Morphology
    landmarks: Optional[List[RawLandmark]] = None
    save: bool = False


class FrameRequest(BaseModel):
    landmarks: Optional[List[RawLandmark]] = None
    now: Optional[float] = None


class SelectionBody(BaseModel):
    selection: Optional[str] = None


class CaptureRequest(BaseModel):
    step: Optional[str] = None


class FitAdjustment(BaseModel):
    dx: float = 0.0
    dy: float = 0.0
    scale: Optional[float] = Field(default=None, gt=0)
