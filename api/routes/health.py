from fastapi import APIRouter
from core import state
from core.config import Settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    s = Settings()
    snapshot = state.engine.last_snapshot if state.engine is not None else None
    return {
        "ok": True,
        "camera_enabled": s.ENABLE_CAMERA,
        "source": s.SOURCE,
        "landmarker_model": s.FACE_LANDMARKER_MODEL,
        "detect_interval_ms": s.DETECT_INTERVAL_MS,
        "has_snapshot": snapshot is not None,
        "calibration_complete": state.calibration.tracker.complete,
    }
