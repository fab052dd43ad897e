from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from core.errors import DegeneratePolygon
from models.mask_fit import MaskFitResult
from models.template import ZoneTemplate
from models.zone import ZoneOverride, ZoneSource
from services.geometry import Point, polygon_area
from services.json_store import KeyedJsonStore
from services.mask_fit import apply_mask_fit, mask_pivot

logger = logging.getLogger(__name__)

OverrideKey = Tuple[str, str, str]


def usable_polygon(polygon: Optional[Sequence[Point]]) -> bool:
    return polygon is not None and len(polygon) >= 3 and polygon_area(polygon) > 0


def resolve_geometry(
    zone_id: str,
    override: Optional[Sequence[Point]] = None,
    adapted: Optional[Sequence[Point]] = None,
    template: Optional[ZoneTemplate] = None,
    mask_fit: Optional[MaskFitResult] = None,
) -> Tuple[Optional[List[Point]], Optional[ZoneSource]]:
    """Override, then adapted, then mask-fit template, then raw template.

    Degenerate or zero-area candidates are passed over.
    """
    if usable_polygon(override):
        return list(override), "override"
    if usable_polygon(adapted):
        return list(adapted), "adapted"
    if template is None:
        return None, None
    raw = template.zone_polygons.get(zone_id)
    if not usable_polygon(raw):
        return None, None
    if mask_fit is not None:
        return apply_mask_fit(raw, mask_fit, mask_pivot(template)), "mask_fit"
    return list(raw), "template"


class OverrideLayer:
    """User-edited zone polygons that supersede computed geometry.

    The in-memory map is authoritative for reads. Writes go to memory first,
    then to the optional store; a failed store write raises PersistenceError
    but the override stays applied and the call can be retried.
    """

    def __init__(self, store: Optional[KeyedJsonStore[ZoneOverride]] = None):
        self.store = store
        self._lock = threading.RLock()
        self._overrides: Dict[OverrideKey, ZoneOverride] = {}
        if store is not None:
            for record in store.all():
                self._overrides[record.key] = record

    def set_override(
        self, session_id: str, photo_id: str, zone_id: str, polygon: Sequence[Point]
    ) -> ZoneOverride:
        if len(polygon) < 3:
            raise DegeneratePolygon(zone_id, len(polygon))
        record = ZoneOverride(
            session_id=session_id, photo_id=photo_id, zone_id=zone_id, points=list(polygon)
        )
        with self._lock:
            self._overrides[record.key] = record
        if self.store is not None:
            self.store.upsert(record)
        logger.debug("override set for %s", record.key)
        return record

    def clear_override(self, session_id: str, photo_id: str, zone_id: str) -> bool:
        key = (session_id, photo_id, zone_id)
        with self._lock:
            removed = self._overrides.pop(key, None) is not None
        if self.store is not None:
            self.store.delete(key)
        return removed

    def get_override(self, session_id: str, photo_id: str, zone_id: str) -> Optional[ZoneOverride]:
        with self._lock:
            return self._overrides.get((session_id, photo_id, zone_id))

    def overrides_for(self, session_id: str, photo_id: str) -> Dict[str, List[Point]]:
        with self._lock:
            return {
                zone_id: list(record.points)
                for (s, p, zone_id), record in self._overrides.items()
                if s == session_id and p == photo_id
            }

    def get_effective_geometry(
        self,
        session_id: str,
        photo_id: str,
        zone_id: str,
        adapted: Optional[Sequence[Point]] = None,
        template: Optional[ZoneTemplate] = None,
        mask_fit: Optional[MaskFitResult] = None,
    ) -> Tuple[Optional[List[Point]], Optional[ZoneSource]]:
        """Apply the precedence chain with this layer's override, if any."""
        record = self.get_override(session_id, photo_id, zone_id)
        return resolve_geometry(
            zone_id,
            override=record.points if record is not None else None,
            adapted=adapted,
            template=template,
            mask_fit=mask_fit,
        )
