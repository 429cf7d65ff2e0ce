"""Shapes flows have to keep clear of: node discs and arrowheads."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

import numpy as np

from .bezier import (
    ControlPolygon,
    bounding_box,
    derivative_at,
    distance_sq,
    point_at,
    split,
    t_at_circle_around_end,
)
from .math_utils import (
    Triangle,
    Vec2,
    normalized,
    point_segment_distance_sq,
    polylines_intersect,
    rotate90,
    triangles_overlap,
)
from .types import Point

if TYPE_CHECKING:
    from .flow import BaseFlow


@dataclass(eq=False)
class Obstacle:
    """A disc that flows avoid.

    ``node`` is set for node symbols, ``flow`` for arrowheads; both only
    reference the owner so a flow can skip its own obstacles.
    """

    x: float
    y: float
    r: float
    node: Optional[Point] = None
    flow: Optional["BaseFlow"] = None

    def belongs_to(self, flow: "BaseFlow") -> bool:
        if self.flow is not None and self.flow is flow:
            return True
        return self.node is not None and (self.node is flow.start or self.node is flow.end)


def curve_overlaps_disc(
    polygon: ControlPolygon, half_stroke: float, x: float, y: float, r: float, min_gap: float
) -> bool:
    """Band of half width ``half_stroke`` around the curve vs. a padded disc.

    All distances are in world units.
    """

    reach = half_stroke + r + min_gap
    box = bounding_box(*polygon).expanded(reach)
    if not box.contains(x, y):
        return False
    return distance_sq(*polygon, x, y) < reach * reach


class Arrow:
    """Triangular arrowhead at the end of a flow.

    The tip sits where the circle of ``end_clip_radius`` around the end node
    meets the curve; the base is ``length`` back along the curve.
    """

    def __init__(self, polygon: ControlPolygon, end_clip_radius: float, length: float, width: float,
                 flow: Optional["BaseFlow"] = None):
        self.flow = flow
        self.length = float(length)
        self.width = float(width)

        t_tip = t_at_circle_around_end(*polygon, end_clip_radius)
        self.tip: Vec2 = point_at(*polygon, t_tip)
        head = split(*polygon, t_tip)[0] if 0.0 < t_tip < 1.0 else polygon
        t_base = t_at_circle_around_end(*head, self.length)
        self.base: Vec2 = point_at(*head, t_base)
        # parameter of the arrow base on the full curve
        self.base_t = t_tip * t_base if head is not polygon else t_base

        direction = normalized((self.tip[0] - self.base[0], self.tip[1] - self.base[1]))
        if direction is None:
            direction = normalized(derivative_at(*polygon, t_tip))
        if direction is None:
            direction = normalized((polygon[2][0] - polygon[0][0], polygon[2][1] - polygon[0][1])) or (1.0, 0.0)
        self.direction: Vec2 = direction

        nx, ny = rotate90(direction)
        half = self.width * 0.5
        self.corner1: Vec2 = (self.base[0] + nx * half, self.base[1] + ny * half)
        self.corner2: Vec2 = (self.base[0] - nx * half, self.base[1] - ny * half)

        end = polygon[2]
        self.tip_distance_from_end = math.hypot(self.tip[0] - end[0], self.tip[1] - end[1])
        self.base_distance_from_end = math.hypot(self.base[0] - end[0], self.base[1] - end[1])

    @property
    def triangle(self) -> Triangle:
        return (self.tip, self.corner1, self.corner2)

    def centroid(self) -> Vec2:
        return (
            (self.tip[0] + self.corner1[0] + self.corner2[0]) / 3.0,
            (self.tip[1] + self.corner1[1] + self.corner2[1]) / 3.0,
        )

    def obstacle(self) -> Obstacle:
        cx, cy = self.centroid()
        r = max(math.hypot(vx - cx, vy - cy) for vx, vy in self.triangle)
        return Obstacle(cx, cy, r, flow=self.flow)

    def overlaps_arrow(self, other: "Arrow") -> bool:
        return triangles_overlap(self.triangle, other.triangle)

    def overlaps_polyline(self, polyline: np.ndarray, half_width: float) -> bool:
        """Test the arrowhead against a flow's centre line of given half width.

        Edges crossing the centre line count, and so do vertices closer to the
        centre line than ``half_width`` that do not cross it.
        """

        line = np.asarray(polyline, dtype=float)
        if line.shape[0] < 2:
            return False
        outline = np.array([self.tip, self.corner1, self.corner2, self.tip], dtype=float)
        if polylines_intersect(outline, line):
            return True

        limit = half_width * half_width
        for vx, vy in self.triangle:
            for (ax, ay), (bx, by) in zip(line[:-1], line[1:]):
                if point_segment_distance_sq(vx, vy, ax, ay, bx, by) < limit:
                    return True
        return False

    def as_points(self) -> List[Point]:
        return [Point(x, y) for x, y in self.triangle]


__all__ = ["Arrow", "Obstacle", "curve_overlaps_disc"]
