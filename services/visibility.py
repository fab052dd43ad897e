"""Restricts a zone set to what a capture pose can see."""

from __future__ import annotations

from typing import Iterable, List, Literal, Optional, Protocol, TypeVar

Pose = Literal["face", "three_quarter_left", "three_quarter_right", "profile_left", "profile_right"]

POSES: tuple = ("face", "three_quarter_left", "three_quarter_right", "profile_left", "profile_right")

# Retained for every pose
MIDLINE_ZONES = frozenset({"frontal", "forehead", "glabella", "nasal", "nose", "perioral", "mouth", "chin"})


class HasZoneId(Protocol):
    zone_id: str


Z = TypeVar("Z", bound=HasZoneId)


def zone_side(zone_id: str) -> Optional[str]:
    if zone_id.endswith("_left"):
        return "left"
    if zone_id.endswith("_right"):
        return "right"
    return None


def visible_side(pose: str) -> Optional[str]:
    if pose.endswith("_left"):
        return "left"
    if pose.endswith("_right"):
        return "right"
    return None


def is_visible(zone_id: str, pose: str) -> bool:
    if pose not in POSES:
        raise ValueError(f"unknown pose '{pose}'")
    if pose == "face" or zone_id in MIDLINE_ZONES:
        return True
    side = zone_side(zone_id)
    if side is not None:
        return side == visible_side(pose)
    # unclassified zones are not on the profile silhouette
    return not pose.startswith("profile_")


def filter_zones(zones: Iterable[Z], pose: str) -> List[Z]:
    """Keep zones visible from ``pose``; order preserved, idempotent."""
    return [zone for zone in zones if is_visible(zone.zone_id, pose)]
