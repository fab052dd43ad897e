"""Landmark normalization into the canonical 0..100 space."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

import numpy as np

from core.errors import NoFaceDetected
from models.landmarks import FaceMetrics, LandmarkRecord, LandmarkSet, RawLandmark
from services.geometry import CANONICAL_EXTENT, Point, distance
from services.topology import AUTO_FIT_KEYS, KEY_LANDMARKS


def _coerce(raw: Any) -> RawLandmark:
    if isinstance(raw, RawLandmark):
        return raw
    if isinstance(raw, dict):
        return RawLandmark(**raw)
    if hasattr(raw, "x") and hasattr(raw, "y"):
        # MediaPipe NormalizedLandmark and similar objects
        return RawLandmark(x=float(raw.x), y=float(raw.y), z=getattr(raw, "z", None))
    values = list(raw)
    return RawLandmark(x=values[0], y=values[1], z=values[2] if len(values) > 2 else None)


def normalize_landmarks(raw_points: Optional[Iterable[Any]]) -> LandmarkSet:
    """Rescale a raw detection (0..1) to canonical space and derive metrics.

    Raises NoFaceDetected when the detection is missing, empty, or too
    short to contain every key landmark of the topology.
    """
    if raw_points is None:
        raise NoFaceDetected("no landmarks provided")
    raw = [_coerce(p) for p in raw_points]
    if not raw:
        raise NoFaceDetected("empty landmark set")
    required = max(KEY_LANDMARKS.values())
    if len(raw) <= required:
        raise NoFaceDetected(
            f"landmark set has {len(raw)} points, topology needs index {required}"
        )

    coords = np.array([[p.x, p.y] for p in raw], dtype=float) * CANONICAL_EXTENT
    points = tuple((float(x), float(y)) for x, y in coords)
    depths = tuple(p.z for p in raw)

    def pick(name: str) -> Point:
        return points[KEY_LANDMARKS[name]]

    cheeks = distance(pick("left_cheek"), pick("right_cheek"))
    temples = distance(pick("left_temple"), pick("right_temple"))
    jaw = distance(pick("left_jaw"), pick("right_jaw"))
    mins = coords.min(axis=0)
    maxs = coords.max(axis=0)

    metrics = FaceMetrics(
        inter_eye_distance=distance(pick("left_eye"), pick("right_eye")),
        face_width=max(cheeks, temples, jaw),
        face_width_cheeks=cheeks,
        face_width_temples=temples,
        face_width_jaw=jaw,
        face_height=distance(pick("forehead"), pick("chin")),
        nose_width=distance(pick("nose_left"), pick("nose_right")),
        mouth_width=distance(pick("mouth_left"), pick("mouth_right")),
        bbox=(float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1])),
    )
    return LandmarkSet(points=points, depths=depths, metrics=metrics)


def key_points(landmarks: LandmarkSet, names: Sequence[str] = AUTO_FIT_KEYS) -> Dict[str, Point]:
    return {name: landmarks.point(KEY_LANDMARKS[name]) for name in names}


def to_record(landmarks: LandmarkSet, session_id: str, photo_id: str) -> LandmarkRecord:
    """Build the optional landmark cache payload for later recomputation."""
    scale = CANONICAL_EXTENT
    raw = [
        RawLandmark(x=x / scale, y=y / scale, z=z)
        for (x, y), z in zip(landmarks.points, landmarks.depths)
    ]
    m = landmarks.metrics
    return LandmarkRecord(
        photo_id=photo_id,
        session_id=session_id,
        landmarks=raw,
        key_points=key_points(landmarks),
        eye_distance=m.inter_eye_distance,
        face_width=m.face_width,
        face_height=m.face_height,
        nose_width=m.nose_width,
        mouth_width=m.mouth_width,
    )
