from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

Point = Tuple[float, float]
BBox = Tuple[float, float, float, float]  # min_x, min_y, max_x, max_y

CANONICAL_EXTENT = 100.0
CANONICAL_DIAGONAL = math.hypot(CANONICAL_EXTENT, CANONICAL_EXTENT)


def point_inside_polygon(
    px: float, py: float, poly: Iterable[Tuple[float, float]]
) -> bool:
    # Ray casting; inclusive on edges
    inside = False
    pts = list(poly)
    n = len(pts)
    if n < 3:
        return False
    for i in range(n):
        x1, y1 = pts[i]
        x2, y2 = pts[(i + 1) % n]
        if (y1 > py) != (y2 > py):
            xin = (x2 - x1) * (py - y1) / (y2 - y1 + 1e-12) + x1
            if px <= xin:
                inside = not inside
    return inside


def polygon_area(points: Sequence[Point]) -> float:
    """Unsigned shoelace area; fewer than 3 points has area 0."""
    n = len(points)
    if n < 3:
        return 0.0
    acc = 0.0
    for i in range(n):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        acc += x1 * y2 - x2 * y1
    return abs(acc) / 2.0


def centroid(points: Sequence[Point]) -> Point:
    """Vertex mean, (0, 0) for an empty sequence."""
    if not points:
        return (0.0, 0.0)
    sx = sum(p[0] for p in points)
    sy = sum(p[1] for p in points)
    return (sx / len(points), sy / len(points))


def bounding_box(points: Sequence[Point]) -> BBox:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return (min(xs), min(ys), max(xs), max(ys))


def bbox_size(box: BBox) -> Tuple[float, float]:
    return (box[2] - box[0], box[3] - box[1])


def bbox_center(box: BBox) -> Point:
    return ((box[0] + box[2]) / 2.0, (box[1] + box[3]) / 2.0)


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def clamp_value(value: float, low: float = 0.0, high: float = CANONICAL_EXTENT) -> float:
    return min(max(value, low), high)


def clamp_point(point: Point) -> Point:
    return (clamp_value(point[0]), clamp_value(point[1]))


def ellipse_polygon(
    cx: float, cy: float, rx: float, ry: float, segments: int = 16
) -> List[Point]:
    return [
        clamp_point(
            (
                cx + math.cos(2 * math.pi * i / segments) * rx,
                cy + math.sin(2 * math.pi * i / segments) * ry,
            )
        )
        for i in range(segments)
    ]
