from fastapi import APIRouter, HTTPException
from core import state
from models.api import CaptureRequest, FrameRequest, SelectionBody

router = APIRouter(prefix="/calibration", tags=["calibration"])


@router.get("")
def get_calibration():
    return state.calibration.snapshot()


@router.post("/reset")
def reset(body: SelectionBody | None = None):
    """Select a patient/session (resets on change) or force a reset."""
    if body is not None and body.selection is not None:
        if not state.calibration.select(body.selection):
            state.calibration.reset()
    else:
        state.calibration.reset()
    return state.calibration.snapshot()


@router.post("/frame")
def frame(req: FrameRequest):
    """Feed one detection as the camera worker would."""
    result = state.frames.process(req.landmarks, now=req.now)
    landmarks = result.landmarks
    return {
        "status": result.status,
        "calibrated": result.calibrated,
        "alignment": result.alignment,
        "preview_mask": result.preview_mask,
        "face": landmarks.metrics.to_dict() if landmarks is not None else None,
        "calibration": state.calibration.snapshot(),
    }


@router.post("/capture")
def capture(req: CaptureRequest):
    try:
        step = state.calibration.record_capture(req.step)
    except PermissionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return {"captured": step, **state.calibration.snapshot()}
