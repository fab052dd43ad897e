"""Per-frame zone computation.

``compute_zones`` is a pure function of its inputs; the scheduler (worker
loop or API request) decides when to call it. ``ZoneEngine`` only adds the
injected template repository and the last successful landmark snapshot.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from core.config import Settings
from core.errors import StaleSnapshot
from models.landmarks import LandmarkSet
from models.mask_fit import MaskFitResult
from models.template import Morphology, ZoneTemplate
from models.zone import AdaptedZone, ConfidenceDetails
from services.adapter import ZoneAdaptation, ZoneAdapter
from services.confidence import ConfidenceScorer
from services.geometry import Point
from services.mask_fit import apply_mask_fit, mask_pivot
from services.normalizer import normalize_landmarks
from services.overrides import resolve_geometry
from services.templates_store import TemplateRepository
from services.visibility import is_visible

logger = logging.getLogger(__name__)


def _exclusion(
    template: ZoneTemplate,
    zone_id: str,
    adaptation: Optional[ZoneAdaptation],
    mask_fit: Optional[MaskFitResult],
) -> Optional[List[Point]]:
    if adaptation is not None:
        return adaptation.exclusion
    exclusion = template.exclusion_for(zone_id)
    if exclusion and mask_fit is not None:
        return apply_mask_fit(exclusion, mask_fit, mask_pivot(template))
    return exclusion


def compute_zones(
    landmarks: Optional[LandmarkSet],
    template: ZoneTemplate,
    overrides: Optional[Mapping[str, Sequence[Point]]] = None,
    pose: str = "face",
    mask_fit: Optional[MaskFitResult] = None,
    adapter: Optional[ZoneAdapter] = None,
    scorer: Optional[ConfidenceScorer] = None,
) -> List[AdaptedZone]:
    """Adapt, score, filter by pose, then let overrides take precedence.

    Zones the adapter cannot place (or all zones, without landmarks) fall
    back to the template geometry, transformed by ``mask_fit`` when one is
    given, with all-zero confidence.
    """
    adapter = adapter or ZoneAdapter()
    scorer = scorer or ConfidenceScorer()
    overrides = overrides or {}

    adaptations: Dict[str, ZoneAdaptation] = {}
    if landmarks is not None:
        adaptations = {a.zone_id: a for a in adapter.adapt(template, landmarks)}

    result = []
    for zone_id in template.zone_ids():
        if not is_visible(zone_id, pose):
            continue
        adaptation = adaptations.get(zone_id)
        polygon, source = resolve_geometry(
            zone_id,
            override=overrides.get(zone_id),
            adapted=adaptation.polygon if adaptation is not None else None,
            template=template,
            mask_fit=mask_fit,
        )
        if polygon is None:
            continue
        if source == "adapted":
            confidence = scorer.score(adaptation, template, landmarks)
        elif source == "override":
            anchors = []
            if landmarks is not None:
                ids = [i for i in template.anchors_for(zone_id) if 0 <= i < len(landmarks)]
                anchors = landmarks.select(ids)
            confidence = scorer.score_polygon(
                polygon, template.zone_polygons.get(zone_id, []), anchors
            )
        else:
            confidence = ConfidenceDetails()
        result.append(
            AdaptedZone(
                zone_id=zone_id,
                label=template.label_for(zone_id),
                polygon=polygon,
                exclusion=_exclusion(template, zone_id, adaptation, mask_fit),
                confidence=confidence,
                source=source,
            )
        )

    # overrides for zones the template no longer has are still authoritative
    known = set(template.zone_ids())
    for zone_id, points in overrides.items():
        if zone_id in known or not is_visible(zone_id, pose):
            continue
        polygon, source = resolve_geometry(zone_id, override=points)
        if polygon is not None:
            result.append(AdaptedZone(zone_id=zone_id, label=zone_id, polygon=polygon, source=source))
    return result

class ZoneEngine:
    """Template repository + last good snapshot around ``compute_zones``."""

    def __init__(self, templates: TemplateRepository, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.templates = templates
        self.adapter = ZoneAdapter(min_vertical_ratio=settings.MIN_VERTICAL_RATIO)
        self.scorer = ConfidenceScorer(
            amplification=settings.POSITION_AMPLIFICATION,
            high=settings.CONFIDENCE_HIGH,
            medium=settings.CONFIDENCE_MEDIUM,
        )
        self._lock = threading.Lock()
        self._last: Optional[LandmarkSet] = None

    @property
    def last_snapshot(self) -> Optional[LandmarkSet]:
        with self._lock:
            return self._last

    def ingest(self, raw_points: Optional[Iterable[Any]]) -> LandmarkSet:
        """Normalize a detection; on failure the previous snapshot is kept."""
        landmarks = normalize_landmarks(raw_points)
        with self._lock:
            self._last = landmarks
        return landmarks

    def zones(
        self,
        morphology: Morphology,
        landmarks: Optional[LandmarkSet] = None,
        overrides: Optional[Mapping[str, Sequence[Point]]] = None,
        pose: str = "face",
        mask_fit: Optional[MaskFitResult] = None,
    ) -> List[AdaptedZone]:
        snapshot = landmarks if landmarks is not None else self.last_snapshot
        return compute_zones(
            snapshot,
            self.templates.get(morphology),
            overrides=overrides,
            pose=pose,
            mask_fit=mask_fit,
            adapter=self.adapter,
            scorer=self.scorer,
        )

    def require_snapshot(self) -> LandmarkSet:
        snapshot = self.last_snapshot
        if snapshot is None:
            raise StaleSnapshot("no landmark snapshot yet, detector still warming up")
        return snapshot
