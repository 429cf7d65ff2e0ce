"""Oriented range boxes limiting how far a control point may drift."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Tuple

from .math_utils import Vec2

if TYPE_CHECKING:
    from .flow import BaseFlow


class RangeboxEnforcer:
    """Clamp control points to a box around the flow baseline.

    The box spans the baseline from start to end and extends
    ``height_fraction * baseline_length`` to either side of it.
    """

    def __init__(self, height_fraction: float = 0.5):
        self.height_fraction = float(height_fraction)

    def _frame(self, flow: "BaseFlow") -> Tuple[Vec2, Vec2, float, float]:
        sx, sy = flow.start.x, flow.start.y
        dx = flow.end.x - sx
        dy = flow.end.y - sy
        length = math.hypot(dx, dy)
        if length == 0.0:
            return (sx, sy), (1.0, 0.0), 0.0, 0.0
        return (sx, sy), (dx / length, dy / length), length, self.height_fraction * length

    def range_box(self, flow: "BaseFlow") -> Tuple[Vec2, Vec2, Vec2, Vec2]:
        """The four box corners, counter-clockwise starting right of the start point."""

        (sx, sy), (ux, uy), length, half_height = self._frame(flow)
        nx, ny = -uy, ux
        corners = []
        for along, across in ((0.0, -half_height), (length, -half_height), (length, half_height), (0.0, half_height)):
            corners.append((sx + ux * along + nx * across, sy + uy * along + ny * across))
        return tuple(corners)  # type: ignore[return-value]

    def contains(self, flow: "BaseFlow", x: float, y: float) -> bool:
        (sx, sy), (ux, uy), length, half_height = self._frame(flow)
        along = (x - sx) * ux + (y - sy) * uy
        across = -(x - sx) * uy + (y - sy) * ux
        return 0.0 <= along <= length and abs(across) <= half_height

    def enforce(self, flow: "BaseFlow", x: float, y: float) -> Vec2:
        """Move ``(x, y)`` toward the baseline midpoint until it lies in the box."""

        (sx, sy), (ux, uy), length, half_height = self._frame(flow)
        if length == 0.0:
            return sx, sy
        along = (x - sx) * ux + (y - sy) * uy
        across = -(x - sx) * uy + (y - sy) * ux
        mid = length * 0.5

        scale = 1.0
        rel = along - mid
        if abs(rel) > mid:
            scale = min(scale, mid / abs(rel))
        if abs(across) > half_height:
            scale = min(scale, half_height / abs(across))
        if scale >= 1.0:
            return x, y

        along = mid + rel * scale
        across *= scale
        nx, ny = -uy, ux
        return sx + ux * along + nx * across, sy + uy * along + ny * across


__all__ = ["RangeboxEnforcer"]
