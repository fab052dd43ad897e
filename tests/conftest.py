from __future__ import annotations

import math
from typing import List, Tuple

import pytest

from models.template import ZoneTemplate
from services.default_templates import default_template
from services.normalizer import normalize_landmarks
from services.topology import FACE_OVAL, KEY_LANDMARKS, TOPOLOGY_SIZE

# 0..1 image coordinates; canonical bbox is x:20..80, y:10..90
_FIXED = {
    "forehead": (0.50, 0.10),
    "chin": (0.50, 0.90),
    "left_cheek": (0.20, 0.50),
    "right_cheek": (0.80, 0.50),
    "left_temple": (0.22, 0.38),
    "right_temple": (0.78, 0.38),
    "left_jaw": (0.26, 0.72),
    "right_jaw": (0.74, 0.72),
    "nose_left": (0.46, 0.55),
    "nose_right": (0.54, 0.55),
    "mouth_left": (0.44, 0.68),
    "mouth_right": (0.56, 0.68),
    "left_eye": (0.40, 0.42),
    "right_eye": (0.60, 0.42),
}


def build_face(nx: float = 0.0, ny: float = 0.0) -> List[Tuple[float, float, float]]:
    """Synthetic 468-point detection; nose tip offset by (nx, ny) inter-eye distances."""
    points = [(0.5, 0.5, 0.0)] * TOPOLOGY_SIZE
    for i, index in enumerate(FACE_OVAL):
        angle = -math.pi / 2 + 2 * math.pi * i / len(FACE_OVAL)
        points[index] = (0.5 + 0.3 * math.cos(angle), 0.5 + 0.4 * math.sin(angle), 0.0)
    for name, (x, y) in _FIXED.items():
        points[KEY_LANDMARKS[name]] = (x, y, 0.0)
    eye_distance = 0.2
    points[KEY_LANDMARKS["nose_tip"]] = (0.5 + nx * eye_distance, 0.42 + ny * eye_distance, 0.0)
    return points


@pytest.fixture
def make_face():
    return build_face


@pytest.fixture
def face():
    return normalize_landmarks(build_face())


@pytest.fixture
def collapsed_face():
    return normalize_landmarks([(0.5, 0.5, 0.0)] * TOPOLOGY_SIZE)


@pytest.fixture
def template() -> ZoneTemplate:
    return default_template("XX")


@pytest.fixture
def square_template() -> ZoneTemplate:
    """Default mask with one anchor-less zone centred on the canvas."""
    base = default_template("XX")
    return base.model_copy(
        update={
            "zone_polygons": {"whole": [(40.0, 40.0), (60.0, 40.0), (60.0, 60.0), (40.0, 60.0)]},
            "anchor_landmark_indices": {},
            "expected_size_ratio": {},
            "zone_labels": {"whole": "Whole face"},
        }
    )
