from dataclasses import dataclass

import pytest

from services.visibility import POSES, filter_zones, is_visible


@dataclass
class Z:
    zone_id: str


ZONES = [
    Z("frontal"),
    Z("peri_orbital_left"),
    Z("peri_orbital_right"),
    Z("nasal"),
    Z("malar_left"),
    Z("malar_right"),
    Z("scar"),
    Z("chin"),
]


def ids(zones):
    return [z.zone_id for z in zones]


def test_frontal_pose_keeps_everything():
    assert filter_zones(ZONES, "face") == ZONES


def test_profile_left_drops_right_side():
    kept = ids(filter_zones(ZONES, "profile_left"))
    assert kept == ["frontal", "peri_orbital_left", "nasal", "malar_left", "chin"]


def test_three_quarter_keeps_unclassified_zones():
    kept = ids(filter_zones(ZONES, "three_quarter_right"))
    assert "scar" in kept
    assert "malar_left" not in kept and "malar_right" in kept


@pytest.mark.parametrize("pose", POSES)
def test_filter_is_idempotent(pose):
    once = filter_zones(ZONES, pose)
    assert filter_zones(once, pose) == once


def test_unknown_pose_rejected():
    with pytest.raises(ValueError):
        is_visible("nasal", "upside_down")
