import logging
from typing import List, Optional

from fastapi import APIRouter
from core import state
from core.errors import PersistenceError
from models.api import ComputeRequest
from models.landmarks import LandmarkSet
from models.zone import AdaptedZone
from services.normalizer import normalize_landmarks, to_record

router = APIRouter(prefix="/zones", tags=["zones"])
logger = logging.getLogger(__name__)


def _landmarks_for(req: ComputeRequest) -> Optional[LandmarkSet]:
    """Request landmarks, then the cached detection for the photo, then the live snapshot."""
    if req.landmarks is not None:
        landmarks = normalize_landmarks(req.landmarks)
        if req.session_id and req.photo_id:
            # the cache is optional; geometry is returned even if it cannot be written
            try:
                state.landmark_records.upsert(to_record(landmarks, req.session_id, req.photo_id))
            except PersistenceError as exc:
                logger.warning("landmark cache not updated for %s/%s: %s", req.session_id, req.photo_id, exc)
        return landmarks
    if req.session_id and req.photo_id:
        record = state.landmark_records.get((req.photo_id, req.session_id))
        if record is not None:
            return normalize_landmarks(record.landmarks)
    return state.engine.last_snapshot


@router.post("/compute", response_model=List[AdaptedZone])
def compute(req: ComputeRequest):
    overrides = {}
    mask_fit = None
    if req.session_id and req.photo_id:
        overrides = state.overrides.overrides_for(req.session_id, req.photo_id)
        if req.use_mask_fit:
            mask_fit = state.mask_fits.get(req.session_id, req.photo_id, req.morphology)
    return state.engine.zones(
        req.morphology,
        landmarks=_landmarks_for(req),
        overrides=overrides,
        pose=req.pose,
        mask_fit=mask_fit,
    )
