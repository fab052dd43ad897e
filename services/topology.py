"""MediaPipe Face Mesh landmark indices (468-point topology, 478 with iris)."""

from typing import Dict, List

TOPOLOGY_SIZE = 468

# Key points used by the normalizer, mask auto-fit and calibration
KEY_LANDMARKS: Dict[str, int] = {
    "left_eye": 33,
    "right_eye": 263,
    "nose_tip": 1,
    "mouth_left": 61,
    "mouth_right": 291,
    "chin": 152,
    "forehead": 10,
    "left_cheek": 234,
    "right_cheek": 454,
    "left_temple": 127,
    "right_temple": 356,
    "left_jaw": 172,
    "right_jaw": 397,
    "nose_left": 129,
    "nose_right": 358,
}

AUTO_FIT_KEYS = ("left_eye", "right_eye", "nose_tip", "mouth_left", "mouth_right", "chin")

FACE_OVAL: List[int] = [
    10, 338, 297, 332, 284, 251, 389, 356, 454, 323, 361, 288, 397, 365, 379,
    378, 400, 377, 152, 148, 176, 149, 150, 136, 172, 58, 132, 93, 234, 127,
    162, 21, 54, 103, 67, 109,
]

# Anchors per zone: a few stable points within or bordering the zone on a
# frontal face.
ZONE_ANCHORS: Dict[str, List[int]] = {
    "frontal": [10, 151, 9],
    "glabella": [168, 9],
    "peri_orbital_left": [159, 145],
    "peri_orbital_right": [386, 374],
    "nasal": [1, 4, 5],
    "malar_left": [50, 117],
    "malar_right": [280, 346],
    "perioral": [13, 14, 0, 17],
    "chin": [199, 175],
    "mandibular_left": [136, 150],
    "mandibular_right": [365, 379],
}
