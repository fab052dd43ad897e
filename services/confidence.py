from __future__ import annotations

from typing import Sequence

from models.landmarks import LandmarkSet
from models.template import ZoneTemplate
from models.zone import ConfidenceDetails
from services.adapter import ZoneAdaptation
from services.geometry import (
    CANONICAL_DIAGONAL,
    Point,
    centroid,
    distance,
    point_inside_polygon,
    polygon_area,
)

# Centroid drift is multiplied by this before being subtracted from 1, so
# small drifts show up in the score. Heuristic, tunable.
POSITION_AMPLIFICATION = 10.0


def area_ratio(a: float, b: float) -> float:
    high = max(a, b)
    if high <= 0:
        return 0.0
    return min(a, b) / high


def geometric_match(adapted: Sequence[Point], reference: Sequence[Point]) -> float:
    return area_ratio(polygon_area(adapted), polygon_area(reference))


def landmark_coverage(polygon: Sequence[Point], anchors: Sequence[Point]) -> float:
    if not anchors:
        return 1.0
    inside = sum(1 for x, y in anchors if point_inside_polygon(x, y, polygon))
    return inside / len(anchors)


def position_accuracy(
    adapted: Sequence[Point],
    reference: Sequence[Point],
    amplification: float = POSITION_AMPLIFICATION,
    diagonal: float = CANONICAL_DIAGONAL,
) -> float:
    if len(adapted) < 3 or len(reference) < 3:
        return 0.0
    drift = distance(centroid(adapted), centroid(reference)) / diagonal
    return min(max(1.0 - amplification * drift, 0.0), 1.0)


class ConfidenceScorer:
    """Rates an adapted zone on four independent axes."""

    def __init__(
        self,
        amplification: float = POSITION_AMPLIFICATION,
        high: float = 0.85,
        medium: float = 0.70,
    ):
        self.amplification = amplification
        self.high = high
        self.medium = medium

    def score(
        self, adaptation: ZoneAdaptation, template: ZoneTemplate, landmarks: LandmarkSet
    ) -> ConfidenceDetails:
        reference = template.zone_polygons.get(adaptation.zone_id, [])
        polygon = adaptation.polygon
        transform = adaptation.transform

        # anchors were range-checked by the adapter
        anchors = landmarks.select(template.anchors_for(adaptation.zone_id))
        coverage = landmark_coverage(polygon, anchors)

        expected_area = (
            polygon_area(reference) * transform.expected_scale_x * transform.expected_scale_y
        )
        return ConfidenceDetails.from_scores(
            geometric_match=geometric_match(polygon, reference),
            landmark_coverage=coverage,
            size_ratio=area_ratio(polygon_area(polygon), expected_area),
            position_accuracy=position_accuracy(polygon, reference, self.amplification),
            high=self.high,
            medium=self.medium,
        )

    def score_polygon(
        self, polygon: Sequence[Point], reference: Sequence[Point], anchors: Sequence[Point]
    ) -> ConfidenceDetails:
        """Score geometry that did not come from the adapter (e.g. an override)."""
        ratio = geometric_match(polygon, reference)
        return ConfidenceDetails.from_scores(
            geometric_match=ratio,
            landmark_coverage=landmark_coverage(polygon, anchors) if len(polygon) >= 3 else 0.0,
            size_ratio=ratio,
            position_accuracy=position_accuracy(polygon, reference, self.amplification),
            high=self.high,
            medium=self.medium,
        )
