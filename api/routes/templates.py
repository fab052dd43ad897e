from fastapi import APIRouter, HTTPException
from core import state
from models.api import PointEdit
from models.template import Morphology, ZoneTemplate
from services.templates_store import (
    add_point,
    clear_points,
    move_point,
    remove_point,
    undo_point,
)

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("/{morphology}", response_model=ZoneTemplate, response_model_by_alias=True)
def get_template(morphology: Morphology):
    return state.engine.templates.get(morphology)


@router.put("/{morphology}", response_model=ZoneTemplate, response_model_by_alias=True)
def put_template(morphology: Morphology, template: ZoneTemplate):
    with state.templates_lock:
        saved = state.engine.templates.put(morphology, template)
        state.template_drafts.pop(morphology, None)
        return saved


def _apply_edit(template: ZoneTemplate, edit: PointEdit) -> ZoneTemplate:
    if edit.action in ("add", "move") and edit.point is None:
        raise HTTPException(status_code=422, detail=f"'{edit.action}' needs a point")
    if edit.action in ("move", "remove") and edit.index is None:
        raise HTTPException(status_code=422, detail=f"'{edit.action}' needs an index")
    try:
        if edit.action == "add":
            return add_point(template, edit.target, edit.point, edit.mode)
        if edit.action == "move":
            return move_point(template, edit.target, edit.index, edit.point, edit.mode)
        if edit.action == "remove":
            return remove_point(template, edit.target, edit.index, edit.mode)
        if edit.action == "undo":
            return undo_point(template, edit.target, edit.mode)
        return clear_points(template, edit.target, edit.mode)
    except IndexError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _draft(morphology: Morphology) -> ZoneTemplate:
    draft = state.template_drafts.get(morphology)
    return draft if draft is not None else state.engine.templates.get(morphology)


@router.get("/{morphology}/draft", response_model=ZoneTemplate, response_model_by_alias=True)
def get_draft(morphology: Morphology):
    with state.templates_lock:
        return _draft(morphology)


@router.post("/{morphology}/points", response_model=ZoneTemplate, response_model_by_alias=True)
def edit_points(morphology: Morphology, edit: PointEdit):
    """Point-level editing on an unsaved draft; polygons may be incomplete here."""
    with state.templates_lock:
        draft = _apply_edit(_draft(morphology), edit)
        state.template_drafts[morphology] = draft
        return draft


@router.post("/{morphology}/save", response_model=ZoneTemplate, response_model_by_alias=True)
def save_draft(morphology: Morphology):
    with state.templates_lock:
        saved = state.engine.templates.put(morphology, _draft(morphology))
        state.template_drafts.pop(morphology, None)
        return saved


@router.delete("/{morphology}/draft", status_code=204)
def discard_draft(morphology: Morphology):
    with state.templates_lock:
        state.template_drafts.pop(morphology, None)
