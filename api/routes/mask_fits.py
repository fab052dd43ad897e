from fastapi import APIRouter, HTTPException
from core import state
from models.api import AutoFitRequest, FitAdjustment
from models.mask_fit import MaskFit
from models.template import Morphology
from services.normalizer import normalize_landmarks

router = APIRouter(prefix="/mask-fits", tags=["mask-fits"])


@router.post("/auto", response_model=MaskFit)
def auto_fit(req: AutoFitRequest):
    if req.landmarks is not None:
        landmarks = normalize_landmarks(req.landmarks)
    else:
        landmarks = state.engine.require_snapshot()
    template = state.engine.templates.get(req.morphology)
    fit = state.mask_fits.auto_fit(req.session_id, req.photo_id, template, landmarks)
    if fit is None:
        raise HTTPException(status_code=422, detail="Face reference box collapsed; no previous fit")
    if req.save:
        fit = state.mask_fits.save(fit)
    return fit


@router.put("", response_model=MaskFit)
def put_fit(fit: MaskFit):
    return state.mask_fits.save(fit)


@router.get("/{session_id}/{photo_id}/{morphology}", response_model=MaskFit)
def get_fit(session_id: str, photo_id: str, morphology: Morphology):
    fit = state.mask_fits.get(session_id, photo_id, morphology)
    if fit is None:
        raise HTTPException(status_code=404, detail="No saved mask fit")
    return fit


@router.post("/{session_id}/{photo_id}/{morphology}/adjust", response_model=MaskFit)
def adjust_fit(session_id: str, photo_id: str, morphology: Morphology, adj: FitAdjustment):
    """Manual drag/zoom on top of a saved fit."""
    fit = state.mask_fits.get(session_id, photo_id, morphology)
    if fit is None:
        raise HTTPException(status_code=404, detail="No saved mask fit")
    fit = state.mask_fits.nudge(fit, adj.dx, adj.dy)
    if adj.scale is not None:
        fit = state.mask_fits.rescale(fit, adj.scale)
    return state.mask_fits.save(fit)
