from __future__ import annotations

from typing import Dict, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field

Morphology = Literal["XX", "XY"]
PolygonPoints = List[Tuple[float, float]]


class ZoneTemplate(BaseModel):
    """Calibrated mask and zone polygons for one morphology, canonical space.

    Field aliases match the persisted calibration payload
    (``mask``/``zones``/``zone_exclusions``).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    morphology: Morphology
    label: str = ""
    face_polygon: PolygonPoints = Field(default_factory=list, alias="mask")
    zone_polygons: Dict[str, PolygonPoints] = Field(default_factory=dict, alias="zones")
    exclusions: Dict[str, PolygonPoints] = Field(default_factory=dict, alias="zone_exclusions")
    anchor_landmark_indices: Dict[str, List[int]] = Field(default_factory=dict, alias="anchors")
    expected_size_ratio: Dict[str, float] = Field(default_factory=dict)
    zone_labels: Dict[str, str] = Field(default_factory=dict)

    def zone_ids(self) -> List[str]:
        return list(self.zone_polygons.keys())

    def anchors_for(self, zone_id: str) -> List[int]:
        return list(self.anchor_landmark_indices.get(zone_id, []))

    def size_ratio_for(self, zone_id: str) -> float:
        return float(self.expected_size_ratio.get(zone_id, 1.0))

    def label_for(self, zone_id: str) -> str:
        return self.zone_labels.get(zone_id, zone_id)

    def exclusion_for(self, zone_id: str) -> PolygonPoints | None:
        pts = self.exclusions.get(zone_id)
        return pts if pts and len(pts) >= 3 else None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)
