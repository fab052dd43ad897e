"""Proportional adaptation of template zones onto a detected face."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence, Set, Tuple

from core.errors import DegeneratePolygon, InvalidAnchorIndex, ZeroScaleDimension
from models.landmarks import LandmarkSet
from models.template import ZoneTemplate
from services.geometry import Point, bbox_center, bbox_size, bounding_box, centroid, clamp_point

logger = logging.getLogger(__name__)

# Lower bound of scale_y relative to scale_x; keeps zones from flattening when
# the detected face aspect diverges from the template. Heuristic, tunable.
MIN_VERTICAL_RATIO = 0.85

Strategy = Literal["anchor", "face_bbox"]


@dataclass(frozen=True)
class ZoneTransform:
    zone_id: str
    strategy: Strategy
    reference: Point  # template-space point mapped onto target
    target: Point
    scale_x: float
    scale_y: float
    expected_scale_x: float  # before the vertical clamp
    expected_scale_y: float

    def apply(self, points: Sequence[Point]) -> List[Point]:
        rx, ry = self.reference
        tx, ty = self.target
        return [
            clamp_point((tx + (x - rx) * self.scale_x, ty + (y - ry) * self.scale_y))
            for x, y in points
        ]


@dataclass(frozen=True)
class ZoneAdaptation:
    zone_id: str
    polygon: List[Point]
    exclusion: Optional[List[Point]]
    transform: ZoneTransform


class ZoneAdapter:
    def __init__(self, min_vertical_ratio: float = MIN_VERTICAL_RATIO):
        self.min_vertical_ratio = min_vertical_ratio
        self._reported: Set[Tuple[str, int]] = set()

    def _clamp_vertical(self, scale_x: float, scale_y: float) -> float:
        return max(scale_y, scale_x * self.min_vertical_ratio)

    def _mask_size(self, template: ZoneTemplate) -> Tuple[float, float, Point]:
        if len(template.face_polygon) < 3:
            raise DegeneratePolygon("mask", len(template.face_polygon))
        box = bounding_box(template.face_polygon)
        width, height = bbox_size(box)
        if width <= 0 or height <= 0:
            raise ZeroScaleDimension("template mask bounding box has zero size")
        return width, height, bbox_center(box)

    def _anchor_points(
        self, zone_id: str, anchors: Sequence[int], landmarks: LandmarkSet
    ) -> List[Point]:
        size = len(landmarks)
        for index in anchors:
            if not 0 <= index < size:
                raise InvalidAnchorIndex(zone_id, index, size)
        return landmarks.select(list(anchors))

    def transform_for(
        self, template: ZoneTemplate, zone_id: str, landmarks: LandmarkSet
    ) -> ZoneTransform:
        polygon = template.zone_polygons.get(zone_id, [])
        if len(polygon) < 3:
            raise DegeneratePolygon(zone_id, len(polygon))
        zone_w, zone_h = bbox_size(bounding_box(polygon))
        if zone_w <= 0 or zone_h <= 0:
            raise ZeroScaleDimension(f"zone '{zone_id}' has a zero-size bounding box")
        mask_w, mask_h, mask_center = self._mask_size(template)
        metrics = landmarks.metrics

        anchors = template.anchors_for(zone_id)
        if anchors:
            if metrics.face_width <= 0 or metrics.face_height <= 0:
                raise ZeroScaleDimension("detected face has zero width or height")
            ratio = template.size_ratio_for(zone_id)
            # face dimensions relative to the calibrated mask
            scale_x = (metrics.face_width / mask_w) * ratio
            scale_y = (metrics.face_height / mask_h) * ratio
            target = centroid(self._anchor_points(zone_id, anchors, landmarks))
            return ZoneTransform(
                zone_id=zone_id,
                strategy="anchor",
                reference=centroid(polygon),
                target=target,
                scale_x=scale_x,
                scale_y=self._clamp_vertical(scale_x, scale_y),
                expected_scale_x=scale_x,
                expected_scale_y=scale_y,
            )

        face_w, face_h = bbox_size(metrics.bbox)
        if face_w <= 0 or face_h <= 0:
            raise ZeroScaleDimension("detected landmark bounding box has zero size")
        scale_x = face_w / mask_w
        scale_y = face_h / mask_h
        return ZoneTransform(
            zone_id=zone_id,
            strategy="face_bbox",
            reference=mask_center,
            target=bbox_center(metrics.bbox),
            scale_x=scale_x,
            scale_y=self._clamp_vertical(scale_x, scale_y),
            expected_scale_x=scale_x,
            expected_scale_y=scale_y,
        )

    def adapt_zone(
        self, template: ZoneTemplate, zone_id: str, landmarks: LandmarkSet
    ) -> ZoneAdaptation:
        transform = self.transform_for(template, zone_id, landmarks)
        exclusion = template.exclusion_for(zone_id)
        return ZoneAdaptation(
            zone_id=zone_id,
            polygon=transform.apply(template.zone_polygons[zone_id]),
            exclusion=transform.apply(exclusion) if exclusion else None,
            transform=transform,
        )

    def adapt(self, template: ZoneTemplate, landmarks: LandmarkSet) -> List[ZoneAdaptation]:
        """Adapt every zone; failing zones are skipped, never the batch."""
        results: List[ZoneAdaptation] = []
        for zone_id in template.zone_ids():
            try:
                results.append(self.adapt_zone(template, zone_id, landmarks))
            except InvalidAnchorIndex as exc:
                key = (exc.zone_id, exc.index)
                if key not in self._reported:
                    self._reported.add(key)
                    logger.warning("skipping zone: %s", exc)
            except (DegeneratePolygon, ZeroScaleDimension) as exc:
                logger.debug("skipping zone %s: %s", zone_id, exc)
        return results
