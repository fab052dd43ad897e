import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import threading
from collections import deque
from pathlib import Path

from core import state
from core.config import Settings
from core.errors import (
    DegeneratePolygon,
    NoFaceDetected,
    PersistenceError,
    ZeroScaleDimension,
    ZoneGeometryError,
)
from core.logging_config import setup_logging
from models.landmarks import LandmarkRecord
from models.mask_fit import MaskFit
from models.zone import ZoneOverride
from services.calibration import CalibrationSession
from services.engine import ZoneEngine
from services.frames import FrameProcessor
from services.json_store import KeyedJsonStore
from services.mask_fit import FitMargins, MaskFitService
from services.overrides import OverrideLayer
from services.templates_store import JsonTemplateRepository
from api.routes import calibration, events, health, mask_fits, overrides, templates, ws, zones

logger = logging.getLogger(__name__)


def wire_state(settings: Settings) -> None:
    """Build the JSON repositories and services under DATA_DIR."""
    data_dir = Path(settings.DATA_DIR)
    state.events = deque(maxlen=settings.EVENTS_MAX)
    state.engine = ZoneEngine(JsonTemplateRepository(data_dir / "templates"), settings)
    state.overrides = OverrideLayer(
        KeyedJsonStore(data_dir / "overrides.json", ZoneOverride, lambda r: r.key)
    )
    state.mask_fits = MaskFitService(
        KeyedJsonStore(data_dir / "mask_fits.json", MaskFit, lambda r: r.key),
        FitMargins(
            x=settings.MASK_MARGIN_X,
            top=settings.MASK_MARGIN_TOP,
            bottom=settings.MASK_MARGIN_BOTTOM,
        ),
    )
    state.landmark_records = KeyedJsonStore(
        data_dir / "landmarks.json", LandmarkRecord, lambda r: (r.photo_id, r.session_id)
    )
    state.calibration = CalibrationSession()
    state.frames = FrameProcessor(state.engine, state.calibration, settings, state.events)
    with state.templates_lock:
        state.template_drafts.clear()


def _error_response(status_code: int, exc: Exception, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc), **extra})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NoFaceDetected)
    async def no_face(request: Request, exc: NoFaceDetected):
        return _error_response(409, exc, status="detection_unavailable")

    @app.exception_handler(DegeneratePolygon)
    async def degenerate(request: Request, exc: DegeneratePolygon):
        return _error_response(422, exc, target=exc.target)

    @app.exception_handler(ZeroScaleDimension)
    async def zero_scale(request: Request, exc: ZeroScaleDimension):
        return _error_response(422, exc)

    @app.exception_handler(PersistenceError)
    async def persistence(request: Request, exc: PersistenceError):
        logger.error("persistence failure on %s: %s", request.url.path, exc)
        return _error_response(503, exc)

    @app.exception_handler(ZoneGeometryError)
    async def geometry(request: Request, exc: ZoneGeometryError):
        return _error_response(422, exc)


def create_app() -> FastAPI:
    settings = Settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # --- startup ---
        state.stop_flag = False
        wire_state(settings)
        worker = None
        if settings.ENABLE_CAMERA:
            from worker.infer import run_inference

            worker = threading.Thread(target=run_inference, args=(settings,), daemon=True)
            worker.start()
            logger.info("camera worker started on source %s", settings.SOURCE)
        try:
            yield
        finally:
            # --- shutdown ---
            state.stop_flag = True
            if worker is not None:
                worker.join(timeout=2)

    app = FastAPI(title="FaceZone API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # Routers
    app.include_router(health.router)
    app.include_router(templates.router)
    app.include_router(zones.router)
    app.include_router(overrides.router)
    app.include_router(mask_fits.router)
    app.include_router(calibration.router)
    app.include_router(events.router)
    app.include_router(ws.router)

    return app


app = create_app()
