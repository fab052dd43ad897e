import logging
import time
from typing import cast
import cv2
import numpy as np
from numpy.typing import NDArray
from core import state
from core.config import Settings
from services.detector import FaceLandmarkDetector
from services.frames import FrameResult

logger = logging.getLogger(__name__)


def _open_capture(settings: Settings):
    if settings.source_is_index:
        return cv2.VideoCapture(int(settings.SOURCE))
    return cv2.VideoCapture(settings.SOURCE)


def _metrics(result: FrameResult, fps: float, img_shape: list) -> dict:
    landmarks = result.landmarks
    return {
        "timestamp": time.time(),
        "fps": round(fps, 2),
        "img_shape": img_shape,
        "status": result.status,
        "face": landmarks.metrics.to_dict() if landmarks is not None else None,
        "alignment": result.alignment,
        "preview_mask": result.preview_mask,
        "calibration": state.calibration.snapshot(),
        "recent_events": list(state.events)[:10],
    }


def run_inference(settings: Settings):
    """Camera loop: grab frames, detect landmarks, hand them to the frame processor."""
    detector = FaceLandmarkDetector(settings.FACE_LANDMARKER_MODEL)
    processor = state.frames
    if processor is None:
        raise RuntimeError("frame processor not initialized")

    video_capture_source = _open_capture(settings)
    while not video_capture_source.isOpened() and not state.stop_flag:
        logger.warning("camera source %s not available, retrying", settings.SOURCE)
        time.sleep(1.0)
        video_capture_source.open(
            int(settings.SOURCE) if settings.source_is_index else settings.SOURCE
        )

    started = time.perf_counter()
    previous_frame_time = started
    smoothed_fps = None  # ema_fps

    try:
        while not state.stop_flag:
            frame_read_success, frame = video_capture_source.read()
            if not frame_read_success:
                video_capture_source.release()
                time.sleep(0.5)
                video_capture_source = _open_capture(settings)
                continue

            now = time.perf_counter()
            # frames inside the detection interval never reach MediaPipe
            if not processor.limiter.allow(now):
                continue

            frame_np: NDArray[np.uint8] = cast(NDArray[np.uint8], frame)
            raw_points = detector.detect(frame_np, int((now - started) * 1000))
            result = processor.handle(raw_points)

            instantaneous_fps = 1.0 / max(now - previous_frame_time, 1e-6)
            previous_frame_time = now
            smoothed_fps = (
                instantaneous_fps
                if smoothed_fps is None
                else (0.9 * smoothed_fps + 0.1 * instantaneous_fps)
            )

            height, width = frame_np.shape[:2]
            with state.frame_lock:
                state.latest_metrics = _metrics(result, smoothed_fps, [height, width])
    finally:
        video_capture_source.release()
        detector.close()
