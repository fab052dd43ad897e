from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision
from numpy.typing import NDArray

RawPoint = Tuple[float, float, float]


class FaceLandmarkDetector:
    """MediaPipe FaceLandmarker (VIDEO mode) returning the first face's raw points."""

    def __init__(
        self,
        model_path: str,
        min_confidence: float = 0.5,
    ):
        options = vision.FaceLandmarkerOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=model_path),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=1,
            min_face_detection_confidence=min_confidence,
            min_face_presence_confidence=min_confidence,
            min_tracking_confidence=0.5,
        )
        self.landmarker = vision.FaceLandmarker.create_from_options(options)
        self._last_timestamp_ms = -1

    def detect(self, frame: NDArray[np.uint8], timestamp_ms: int) -> Optional[List[RawPoint]]:
        """Landmarks normalized to the frame (0..1), or None when no face is found."""
        # VIDEO mode rejects non-increasing timestamps
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self.landmarker.detect_for_video(image, timestamp_ms)
        if not result.face_landmarks:
            return None
        return [(float(p.x), float(p.y), float(p.z)) for p in result.face_landmarks[0]]

    def close(self) -> None:
        self.landmarker.close()
