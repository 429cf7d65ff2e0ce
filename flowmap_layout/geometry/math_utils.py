from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy as np

Vec2 = Tuple[float, float]
Triangle = Tuple[Vec2, Vec2, Vec2]

_DENOM_EPS = 1e-12


def dot2(a: Vec2, b: Vec2) -> float:
    return a[0] * b[0] + a[1] * b[1]


def cross2(a: Vec2, b: Vec2) -> float:
    return a[0] * b[1] - a[1] * b[0]


def norm_sq2(v: Vec2) -> float:
    return dot2(v, v)


def norm2(v: Vec2) -> float:
    return math.sqrt(max(norm_sq2(v), 0.0))


def rotate90(v: Vec2) -> Vec2:
    return -v[1], v[0]


def normalized(v: Vec2) -> Optional[Vec2]:
    length = norm2(v)
    if length <= _DENOM_EPS:
        return None
    return v[0] / length, v[1] / length


def _orientation(ax: float, ay: float, bx: float, by: float, cx: float, cy: float) -> float:
    return (bx - ax) * (cy - ay) - (by - ay) * (cx - ax)


def _on_segment(ax: float, ay: float, bx: float, by: float, px: float, py: float) -> bool:
    return min(ax, bx) <= px <= max(ax, bx) and min(ay, by) <= py <= max(ay, by)


def segments_intersect(
    x1: float, y1: float, x2: float, y2: float,
    x3: float, y3: float, x4: float, y4: float,
) -> bool:
    """Return ``True`` if segment 1-2 and segment 3-4 touch or cross."""

    d1 = _orientation(x3, y3, x4, y4, x1, y1)
    d2 = _orientation(x3, y3, x4, y4, x2, y2)
    d3 = _orientation(x1, y1, x2, y2, x3, y3)
    d4 = _orientation(x1, y1, x2, y2, x4, y4)
    if ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4)):
        return True
    if d1 == 0 and _on_segment(x3, y3, x4, y4, x1, y1):
        return True
    if d2 == 0 and _on_segment(x3, y3, x4, y4, x2, y2):
        return True
    if d3 == 0 and _on_segment(x1, y1, x2, y2, x3, y3):
        return True
    if d4 == 0 and _on_segment(x1, y1, x2, y2, x4, y4):
        return True
    return False


def point_line_distance(px: float, py: float, ax: float, ay: float, dx: float, dy: float) -> float:
    """Distance from ``p`` to the infinite line through ``a`` with direction ``d``."""

    length = math.hypot(dx, dy)
    if length <= _DENOM_EPS:
        return math.hypot(px - ax, py - ay)
    return abs(cross2((dx, dy), (px - ax, py - ay))) / length


def point_segment_distance_sq(px: float, py: float, ax: float, ay: float, bx: float, by: float) -> float:
    dx = bx - ax
    dy = by - ay
    denom = dx * dx + dy * dy
    if denom <= _DENOM_EPS:
        return (px - ax) ** 2 + (py - ay) ** 2
    t = ((px - ax) * dx + (py - ay) * dy) / denom
    t = min(max(t, 0.0), 1.0)
    qx = ax + t * dx
    qy = ay + t * dy
    return (px - qx) ** 2 + (py - qy) ** 2


def point_in_triangle(p: Vec2, tri: Triangle) -> bool:
    a, b, c = tri
    d1 = _orientation(a[0], a[1], b[0], b[1], p[0], p[1])
    d2 = _orientation(b[0], b[1], c[0], c[1], p[0], p[1])
    d3 = _orientation(c[0], c[1], a[0], a[1], p[0], p[1])
    has_neg = d1 < 0 or d2 < 0 or d3 < 0
    has_pos = d1 > 0 or d2 > 0 or d3 > 0
    return not (has_neg and has_pos)


def triangle_edges(tri: Triangle) -> Tuple[Tuple[Vec2, Vec2], ...]:
    return ((tri[0], tri[1]), (tri[1], tri[2]), (tri[2], tri[0]))


def triangles_overlap(t1: Triangle, t2: Triangle) -> bool:
    """General triangle/triangle overlap test (touching counts as overlap)."""

    for a0, a1 in triangle_edges(t1):
        for b0, b1 in triangle_edges(t2):
            if segments_intersect(a0[0], a0[1], a1[0], a1[1], b0[0], b0[1], b1[0], b1[1]):
                return True
    # no crossing edges: one triangle is inside the other or they are disjoint
    return point_in_triangle(t1[0], t2) or point_in_triangle(t2[0], t1)


def polylines_intersect(polyline1: np.ndarray, polyline2: np.ndarray) -> bool:
    """Vectorized test whether any segment of two polylines cross.

    Polylines are ``(n, 2)`` arrays. A vertex lying on the other polyline
    counts as crossing, collinear overlapping segments do not.
    """

    p = np.asarray(polyline1, dtype=float)
    q = np.asarray(polyline2, dtype=float)
    if p.shape[0] < 2 or q.shape[0] < 2:
        return False

    p0 = p[:-1, None, :]
    p1 = p[1:, None, :]
    q0 = q[None, :-1, :]
    q1 = q[None, 1:, :]

    def orient(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
        return (b[..., 0] - a[..., 0]) * (c[..., 1] - a[..., 1]) - (b[..., 1] - a[..., 1]) * (c[..., 0] - a[..., 0])

    d1 = orient(q0, q1, p0)
    d2 = orient(q0, q1, p1)
    d3 = orient(p0, p1, q0)
    d4 = orient(p0, p1, q1)
    collinear = (d1 == 0) & (d2 == 0)
    crossing = (d1 * d2 <= 0) & (d3 * d4 <= 0) & ~collinear
    return bool(np.any(crossing))


__all__ = [
    "Triangle",
    "Vec2",
    "cross2",
    "dot2",
    "norm2",
    "norm_sq2",
    "normalized",
    "point_in_triangle",
    "point_line_distance",
    "point_segment_distance_sq",
    "polylines_intersect",
    "rotate90",
    "segments_intersect",
    "triangle_edges",
    "triangles_overlap",
]
