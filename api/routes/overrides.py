from typing import Dict, List, Tuple

from fastapi import APIRouter, HTTPException
from core import state
from models.api import OverrideBody
from models.zone import ZoneOverride

router = APIRouter(prefix="/overrides", tags=["overrides"])


@router.get("/{session_id}/{photo_id}", response_model=Dict[str, List[Tuple[float, float]]])
def list_overrides(session_id: str, photo_id: str):
    return state.overrides.overrides_for(session_id, photo_id)


@router.get("/{session_id}/{photo_id}/{zone_id}", response_model=ZoneOverride)
def get_override(session_id: str, photo_id: str, zone_id: str):
    record = state.overrides.get_override(session_id, photo_id, zone_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No override for this zone")
    return record


@router.put("/{session_id}/{photo_id}/{zone_id}", response_model=ZoneOverride)
def put_override(session_id: str, photo_id: str, zone_id: str, body: OverrideBody):
    return state.overrides.set_override(session_id, photo_id, zone_id, body.points)


@router.delete("/{session_id}/{photo_id}/{zone_id}")
def delete_override(session_id: str, photo_id: str, zone_id: str):
    return {"removed": state.overrides.clear_override(session_id, photo_id, zone_id)}
