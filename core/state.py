from __future__ import annotations
import threading
from collections import deque
from typing import Any, Deque, Optional

from models.landmarks import LandmarkRecord
from models.template import ZoneTemplate
from services.calibration import CalibrationSession
from services.engine import ZoneEngine
from services.frames import FrameProcessor
from services.json_store import KeyedJsonStore
from services.mask_fit import MaskFitService
from services.overrides import OverrideLayer

# Latest frame metrics shared across endpoints (written by worker)
frame_lock = threading.Lock()
latest_metrics: dict[str, Any] = {
    "fps": 0.0,
    "status": "idle",
    "ts": 0.0,
    "img_shape": [0, 0],
}

# Wired in the app lifespan
engine: Optional[ZoneEngine] = None
overrides: Optional[OverrideLayer] = None
mask_fits: Optional[MaskFitService] = None
landmark_records: Optional[KeyedJsonStore[LandmarkRecord]] = None
calibration: CalibrationSession = CalibrationSession()
frames: Optional[FrameProcessor] = None

# Editor drafts per morphology, persisted only on save
templates_lock = threading.RLock()
template_drafts: dict[str, ZoneTemplate] = {}

events: Deque[dict[str, Any]] = deque(maxlen=200)

# Worker control
stop_flag = False
