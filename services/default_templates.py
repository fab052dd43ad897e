"""Built-in starting templates, served until a calibrated one is saved."""

from typing import Dict, Tuple

from models.template import Morphology, ZoneTemplate
from services.geometry import ellipse_polygon
from services.topology import ZONE_ANCHORS

# zone id -> (label, cx, cy, rx, ry)
_ZONES: Dict[str, Tuple[str, float, float, float, float]] = {
    "frontal": ("Frontal zone", 50.0, 22.0, 20.0, 8.0),
    "glabella": ("Glabellar zone", 50.0, 34.0, 5.0, 4.0),
    "peri_orbital_left": ("Left peri-orbital", 38.0, 40.0, 8.0, 5.0),
    "peri_orbital_right": ("Right peri-orbital", 62.0, 40.0, 8.0, 5.0),
    "nasal": ("Nasal zone", 50.0, 50.0, 6.0, 10.0),
    "malar_left": ("Left malar", 34.0, 55.0, 8.0, 6.0),
    "malar_right": ("Right malar", 66.0, 55.0, 8.0, 6.0),
    "perioral": ("Perioral zone", 50.0, 68.0, 10.0, 6.0),
    "chin": ("Chin", 50.0, 82.0, 8.0, 6.0),
    "mandibular_left": ("Left mandibular", 30.0, 74.0, 6.0, 9.0),
    "mandibular_right": ("Right mandibular", 70.0, 74.0, 6.0, 9.0),
}

# XY faces are drawn slightly wider through the lower face
_WIDTH_FACTOR = {"XX": 1.0, "XY": 1.08}

MASK_CENTER = (50.0, 50.0)
MASK_RADII = (32.0, 44.0)  # bbox x:18..82, y:6..94


def default_template(morphology: Morphology) -> ZoneTemplate:
    factor = _WIDTH_FACTOR[morphology]
    zones = {}
    labels = {}
    for zone_id, (label, cx, cy, rx, ry) in _ZONES.items():
        widen = factor if cy >= 50.0 else 1.0
        zones[zone_id] = ellipse_polygon(cx, cy, rx * widen, ry)
        labels[zone_id] = label
    return ZoneTemplate(
        id=f"default-{morphology.lower()}",
        morphology=morphology,
        label=f"Default {morphology} template",
        face_polygon=ellipse_polygon(*MASK_CENTER, *MASK_RADII, segments=24),
        zone_polygons=zones,
        exclusions={},
        anchor_landmark_indices={z: list(ZONE_ANCHORS.get(z, [])) for z in zones},
        expected_size_ratio={z: 1.0 for z in zones},
        zone_labels=labels,
    )
