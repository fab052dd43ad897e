import pytest

from core.errors import NoFaceDetected, StaleSnapshot
from models.mask_fit import MaskFitResult
from models.zone import ZoneOverride
from services.normalizer import normalize_landmarks
from services.overrides import OverrideLayer
from services.engine import ZoneEngine, compute_zones
from services.templates_store import InMemoryTemplateRepository

TRIANGLE = [(40.0, 40.0), (60.0, 40.0), (50.0, 60.0)]


def test_adapted_zones_in_template_order(template, face):
    zones = compute_zones(face, template)
    assert [z.zone_id for z in zones] == template.zone_ids()
    assert {z.source for z in zones} == {"adapted"}
    assert all(z.label for z in zones)


def test_pose_filter_applied(template, face):
    zones = compute_zones(face, template, pose="profile_left")
    assert not any(z.zone_id.endswith("_right") for z in zones)
    assert "nasal" in [z.zone_id for z in zones]


def test_override_wins(template, face):
    zones = {z.zone_id: z for z in compute_zones(face, template, overrides={"nasal": TRIANGLE})}
    assert zones["nasal"].source == "override"
    assert zones["nasal"].polygon == TRIANGLE
    assert 0.0 <= zones["nasal"].confidence.overall <= 1.0


def test_override_for_hidden_zone_is_filtered(template, face):
    zones = compute_zones(face, template, overrides={"malar_right": TRIANGLE}, pose="profile_left")
    assert "malar_right" not in [z.zone_id for z in zones]


def test_override_for_unknown_zone_is_kept(template, face):
    zones = compute_zones(face, template, overrides={"scar": TRIANGLE})
    assert zones[-1].zone_id == "scar" and zones[-1].source == "override"


def test_without_landmarks_template_geometry_is_used(template):
    zones = compute_zones(None, template)
    assert {z.source for z in zones} == {"template"}
    assert all(z.confidence.overall == 0.0 for z in zones)
    nasal = next(z for z in zones if z.zone_id == "nasal")
    assert nasal.polygon == template.zone_polygons["nasal"]


def test_mask_fit_applied_without_landmarks(template):
    zones = compute_zones(None, template, mask_fit=MaskFitResult(scale=1.0, offset_x=5.0))
    nasal = next(z for z in zones if z.zone_id == "nasal")
    assert nasal.source == "mask_fit"
    assert nasal.polygon[0] == pytest.approx(
        (template.zone_polygons["nasal"][0][0] + 5.0, template.zone_polygons["nasal"][0][1])
    )


def test_failed_zones_fall_back_to_template(template, collapsed_face):
    zones = compute_zones(collapsed_face, template)
    assert len(zones) == len(template.zone_ids())
    assert {z.source for z in zones} == {"template"}


def test_engine_keeps_last_snapshot(make_face):
    engine = ZoneEngine(InMemoryTemplateRepository())
    assert engine.last_snapshot is None
    landmarks = engine.ingest(make_face())
    with pytest.raises(NoFaceDetected):
        engine.ingest([])
    assert engine.require_snapshot() is landmarks
    assert {z.source for z in engine.zones("XY")} == {"adapted"}


def test_edge_zones_can_be_saved_as_overrides(template, make_face):
    raw = make_face()
    raw[136] = (0.01, 0.80, 0.0)
    raw[150] = (0.01, 0.80, 0.0)
    zones = compute_zones(normalize_landmarks(raw), template)
    for zone in zones:
        # every computed polygon passes the override validator
        ZoneOverride(session_id="s", photo_id="p", zone_id=zone.zone_id, points=zone.polygon)


def test_zero_area_adaptation_falls_back_like_override_layer(template, face):
    flat = dict(template.zone_polygons)
    flat["nasal"] = [(50.0, 40.0), (50.0, 50.0), (50.0, 60.0)]
    t = template.model_copy(update={"zone_polygons": flat})
    zones = {z.zone_id: z for z in compute_zones(face, t)}
    assert "nasal" not in zones
    assert OverrideLayer().get_effective_geometry("s", "p", "nasal", template=t) == (None, None)


def test_missing_snapshot_is_reported_as_warm_up():
    with pytest.raises(StaleSnapshot):
        ZoneEngine(InMemoryTemplateRepository()).require_snapshot()
