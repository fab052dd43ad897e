from fastapi import APIRouter
from core import state
from core.config import Settings

router = APIRouter(tags=["events"])

@router.get("/events")
def get_events(limit: int = 50, type: str | None = None):
    settings = Settings()
    events = [e for e in state.events if type is None or e.get("type") == type]
    return events[:max(1, min(limit, settings.EVENTS_MAX))]
