import asyncio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from core import state
from core.config import Settings

router = APIRouter()


def _live_payload() -> dict:
    with state.frame_lock:
        metrics = dict(state.latest_metrics)
    # calibration can also advance through POST /calibration/frame
    metrics["calibration"] = state.calibration.snapshot()
    return metrics


@router.websocket("/ws")
async def live_metrics(ws: WebSocket):
    """Pushes face metrics, guide alignment and calibration progress."""
    settings = Settings()
    if ws.headers.get("origin", "") not in settings.allowed_origins:
        await ws.close(code=1008)
        return

    await ws.accept()
    interval = max(settings.detect_interval_s, 0.05)
    try:
        while True:
            await ws.send_json(_live_payload())
            await asyncio.sleep(interval)
    except WebSocketDisconnect:
        return
