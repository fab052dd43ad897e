"""Global mask auto-fit: one uniform scale plus an offset for the whole mask.

Unlike per-zone adaptation, the fit uses a single scalar scale and only six
stable key points. The face-reference box is the key-point bounding box
grown by margins proportional to the inter-eye distance ``d``:
``0.9·d`` on both sides, ``0.65·d`` above (forehead) and ``0.35·d`` below
(jaw).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from core.errors import ZeroScaleDimension
from models.landmarks import LandmarkSet
from models.mask_fit import MaskFit, MaskFitResult
from models.template import Morphology, ZoneTemplate
from services.geometry import (
    BBox,
    CANONICAL_EXTENT,
    Point,
    bbox_center,
    bbox_size,
    bounding_box,
    clamp_point,
    distance,
)
from services.json_store import KeyedJsonStore
from services.normalizer import key_points
from services.topology import AUTO_FIT_KEYS

logger = logging.getLogger(__name__)

CANVAS_CENTER: Point = (CANONICAL_EXTENT / 2.0, CANONICAL_EXTENT / 2.0)


@dataclass(frozen=True)
class FitMargins:
    x: float = 0.9
    top: float = 0.65
    bottom: float = 0.35


DEFAULT_MARGINS = FitMargins()


def face_reference_box(points: Mapping[str, Point], margins: FitMargins = DEFAULT_MARGINS) -> BBox:
    missing = [k for k in AUTO_FIT_KEYS if k not in points]
    if missing:
        raise KeyError(f"missing key points: {', '.join(missing)}")
    d = distance(points["left_eye"], points["right_eye"])
    min_x, min_y, max_x, max_y = bounding_box([points[k] for k in AUTO_FIT_KEYS])
    return (
        min_x - margins.x * d,
        min_y - margins.top * d,
        max_x + margins.x * d,
        max_y + margins.bottom * d,
    )


def compute_mask_fit(
    points: Mapping[str, Point], mask_bbox: BBox, margins: FitMargins = DEFAULT_MARGINS
) -> MaskFitResult:
    """Pure function of the six key points and the mask bounding box."""
    ref = face_reference_box(points, margins)
    ref_w, ref_h = bbox_size(ref)
    mask_w, mask_h = bbox_size(mask_bbox)
    if ref_w <= 0 or ref_h <= 0:
        raise ZeroScaleDimension("face reference box has zero size")
    if mask_w <= 0 or mask_h <= 0:
        raise ZeroScaleDimension("mask bounding box has zero size")
    ref_cx, ref_cy = bbox_center(ref)
    mask_cx, mask_cy = bbox_center(mask_bbox)
    return MaskFitResult(
        scale=min(ref_w / mask_w, ref_h / mask_h),
        offset_x=ref_cx - mask_cx,
        offset_y=ref_cy - mask_cy,
    )


def apply_mask_fit(
    points: Sequence[Point], fit: MaskFitResult, pivot: Point = CANVAS_CENTER
) -> List[Point]:
    """Scale around ``pivot`` then shift, clamped to the canvas.

    The pivot is normally the mask bbox center.
    """
    px, py = pivot
    return [
        clamp_point(
            ((x - px) * fit.scale + px + fit.offset_x, (y - py) * fit.scale + py + fit.offset_y)
        )
        for x, y in points
    ]


def mask_pivot(template: ZoneTemplate) -> Point:
    if len(template.face_polygon) < 3:
        return CANVAS_CENTER
    return bbox_center(bounding_box(template.face_polygon))


class MaskFitService:
    """Auto-fit, manual adjustment and persistence of mask fits."""

    def __init__(self, store: KeyedJsonStore[MaskFit], margins: FitMargins = DEFAULT_MARGINS):
        self.store = store
        self.margins = margins

    def get(self, session_id: str, photo_id: str, morphology: Morphology) -> Optional[MaskFit]:
        return self.store.get((session_id, photo_id, morphology))

    def auto_fit(
        self,
        session_id: str,
        photo_id: str,
        template: ZoneTemplate,
        landmarks: LandmarkSet,
    ) -> Optional[MaskFit]:
        """Compute a fresh fit, or return the previous one if the boxes collapse."""
        previous = self.get(session_id, photo_id, template.morphology)
        try:
            mask_bbox = bounding_box(template.face_polygon)
            result = compute_mask_fit(key_points(landmarks), mask_bbox, self.margins)
        except (ZeroScaleDimension, ValueError) as exc:
            logger.info("auto-fit kept previous fit for %s/%s: %s", session_id, photo_id, exc)
            return previous
        return MaskFit(
            session_id=session_id,
            photo_id=photo_id,
            morphology=template.morphology,
            scale=result.scale,
            offset_x=result.offset_x,
            offset_y=result.offset_y,
        )

    def save(self, fit: MaskFit) -> MaskFit:
        stamped = fit.model_copy(update={"saved_at": time.time()})
        return self.store.upsert(stamped)

    @staticmethod
    def nudge(fit: MaskFit, dx: float, dy: float) -> MaskFit:
        return fit.model_copy(update={"offset_x": fit.offset_x + dx, "offset_y": fit.offset_y + dy})

    @staticmethod
    def rescale(fit: MaskFit, scale: float) -> MaskFit:
        if scale <= 0:
            raise ValueError("scale must be > 0")
        return fit.model_copy(update={"scale": scale})
