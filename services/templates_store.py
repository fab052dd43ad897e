from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import ValidationError

from core.errors import DegeneratePolygon, PersistenceError
from models.template import Morphology, ZoneTemplate
from services.default_templates import default_template
from services.geometry import Point, clamp_point

logger = logging.getLogger(__name__)

MASK_TARGET = "mask"
PointMode = Literal["include", "exclude"]


def validate_template(template: ZoneTemplate) -> ZoneTemplate:
    """Reject a template whose mask or any zone polygon is degenerate.

    Point order is not checked for self-intersection.
    """
    if len(template.face_polygon) < 3:
        raise DegeneratePolygon(MASK_TARGET, len(template.face_polygon))
    for zone_id, pts in template.zone_polygons.items():
        if len(pts) < 3:
            raise DegeneratePolygon(zone_id, len(pts))
    return template.model_copy(
        update={
            # exclusions are optional; unfinished ones are dropped
            "exclusions": {z: pts for z, pts in template.exclusions.items() if len(pts) >= 3}
        }
    )


class TemplateRepository:
    """get(morphology)/put(morphology, template); defaults until saved."""

    def get(self, morphology: Morphology) -> ZoneTemplate:
        stored = self._read(morphology)
        return stored if stored is not None else default_template(morphology)

    def put(self, morphology: Morphology, template: ZoneTemplate) -> ZoneTemplate:
        if template.morphology != morphology:
            template = template.model_copy(update={"morphology": morphology})
        clean = validate_template(template)
        self._write(morphology, clean)
        return clean

    def _read(self, morphology: Morphology) -> Optional[ZoneTemplate]:
        raise NotImplementedError

    def _write(self, morphology: Morphology, template: ZoneTemplate) -> None:
        raise NotImplementedError


class InMemoryTemplateRepository(TemplateRepository):
    def __init__(self, templates: Optional[Dict[str, ZoneTemplate]] = None):
        self._templates: Dict[str, ZoneTemplate] = dict(templates or {})

    def _read(self, morphology: Morphology) -> Optional[ZoneTemplate]:
        return self._templates.get(morphology)

    def _write(self, morphology: Morphology, template: ZoneTemplate) -> None:
        self._templates[morphology] = template


class JsonTemplateRepository(TemplateRepository):
    """One JSON calibration file per morphology."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, morphology: Morphology) -> Path:
        return self.directory / f"template_{morphology.lower()}.json"

    def _read(self, morphology: Morphology) -> Optional[ZoneTemplate]:
        path = self._path(morphology)
        if not path.exists():
            return None
        text = path.read_text(encoding="utf-8").strip()
        if not text:
            return None
        try:
            return ZoneTemplate.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("ignoring unreadable template %s: %s", path, exc)
            return None

    def _write(self, morphology: Morphology, template: ZoneTemplate) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._path(morphology).write_text(
                json.dumps(template.to_payload(), indent=2), encoding="utf-8"
            )
        except OSError as exc:
            raise PersistenceError(f"could not save template {morphology}: {exc}") from exc


# ---- point-level editing (pure: every edit returns a new template) ----

def list_zone_ids(template: ZoneTemplate) -> List[str]:
    return template.zone_ids()


def _target_points(template: ZoneTemplate, target: str, mode: PointMode) -> List[Point]:
    if target == MASK_TARGET:
        return list(template.face_polygon)
    if target not in template.zone_polygons and mode == "include":
        # new zone being drawn
        return []
    source = template.zone_polygons if mode == "include" else template.exclusions
    return list(source.get(target, []))


def _with_points(
    template: ZoneTemplate, target: str, mode: PointMode, points: List[Point]
) -> ZoneTemplate:
    if target == MASK_TARGET:
        return template.model_copy(update={"face_polygon": points})
    if mode == "include":
        zones = dict(template.zone_polygons)
        zones[target] = points
        return template.model_copy(update={"zone_polygons": zones})
    exclusions = dict(template.exclusions)
    exclusions[target] = points
    return template.model_copy(update={"exclusions": exclusions})


def add_point(template: ZoneTemplate, target: str, point: Point, mode: PointMode = "include") -> ZoneTemplate:
    pts = _target_points(template, target, mode)
    pts.append(clamp_point(point))
    return _with_points(template, target, mode, pts)


def move_point(
    template: ZoneTemplate, target: str, index: int, point: Point, mode: PointMode = "include"
) -> ZoneTemplate:
    pts = _target_points(template, target, mode)
    if not 0 <= index < len(pts):
        raise IndexError(f"{target} has no point {index}")
    pts[index] = clamp_point(point)
    return _with_points(template, target, mode, pts)


def remove_point(
    template: ZoneTemplate, target: str, index: int, mode: PointMode = "include"
) -> ZoneTemplate:
    pts = _target_points(template, target, mode)
    if not 0 <= index < len(pts):
        raise IndexError(f"{target} has no point {index}")
    del pts[index]
    return _with_points(template, target, mode, pts)


def undo_point(template: ZoneTemplate, target: str, mode: PointMode = "include") -> ZoneTemplate:
    return _with_points(template, target, mode, _target_points(template, target, mode)[:-1])


def clear_points(template: ZoneTemplate, target: str, mode: PointMode = "include") -> ZoneTemplate:
    return _with_points(template, target, mode, [])
