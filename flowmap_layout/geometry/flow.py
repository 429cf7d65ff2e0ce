"""Quadratic Bézier flows between two nodes."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
from shapely import wkt as shapely_wkt
from shapely.geometry import LineString
from shapely.geometry.base import BaseGeometry

from . import bezier
from .bezier import ControlPolygon, NewtonPolicy, DEFAULT_NEWTON_POLICY
from .math_utils import Vec2, point_segment_distance_sq, polylines_intersect
from .obstacles import Arrow, Obstacle, curve_overlaps_disc
from .types import DegenerateFlowError, InvalidParameterError, Point, Rect, UnsupportedFlowOperationError

if TYPE_CHECKING:
    from ..layout.model import Model

logger = logging.getLogger(__name__)

# first and last regular interval points are moved inward by this fraction of the interval
_INTERVAL_INSET = 0.05
_DEFAULT_TOL = 1e-9

Band = Tuple[np.ndarray, float]


class OffsetQuality(Enum):
    """Iterations and samples used when fitting a parallel offset curve."""

    LOW = (4, 5)
    HIGH = (10, 10)

    @property
    def iterations(self) -> int:
        return self.value[0]

    @property
    def samples(self) -> int:
        return self.value[1]


def _check_endpoints(start: Point, end: Point) -> None:
    if start is end:
        raise DegenerateFlowError("flow must connect two different nodes")
    if start.same_location(end):
        raise DegenerateFlowError(f"flow start and end coincide at ({start.x}, {start.y})")


def _check_t(t: float) -> float:
    t = float(t)
    if not 0.0 <= t <= 1.0:
        raise InvalidParameterError(f"curve parameter must be within [0, 1], got {t}")
    return t


class BaseFlow(ABC):
    """State and queries shared by single flows and flow pairs."""

    kind = "BaseFlow"

    def __init__(
        self,
        start: Point,
        end: Point,
        value: float = 1.0,
        ctrl: Optional[Vec2] = None,
        *,
        flow_id: int = 0,
    ):
        _check_endpoints(start, end)
        value = float(value)
        if not math.isfinite(value):
            raise DegenerateFlowError(f"flow value must be finite, got {value}")

        self.start = start
        self.end = end
        self._value = value
        if ctrl is None:
            ctrl = ((start.x + end.x) * 0.5, (start.y + end.y) * 0.5)
        self.cx = float(ctrl[0])
        self.cy = float(ctrl[1])
        self.id = int(flow_id)
        self.selected = False
        self.locked = False
        self._start_shortening = 0.0
        self._end_shortening = 0.0
        self._start_clip_area: Optional[BaseGeometry] = None
        self._start_clip_area_wkt: Optional[str] = None
        self._end_clip_area: Optional[BaseGeometry] = None
        self._end_clip_area_wkt: Optional[str] = None
        self._cache: Dict[Hashable, Any] = {}
        self._cache_key: Optional[Tuple[float, ...]] = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id}, start=({self.start.x}, {self.start.y}), "
            f"end=({self.end.x}, {self.end.y}), ctrl=({self.cx}, {self.cy}), value={self.value}, "
            f"locked={self.locked})"
        )

    # caches -------------------------------------------------------------

    def _geometry_key(self) -> Tuple[float, ...]:
        return (
            self.start.x, self.start.y, self.end.x, self.end.y,
            self.cx, self.cy, self._start_shortening, self._end_shortening,
        )

    def _cached(self, name: Hashable, factory: Callable[[], Any]) -> Any:
        key = self._geometry_key()
        if key != self._cache_key:
            self._cache.clear()
            self._cache_key = key
        if name not in self._cache:
            self._cache[name] = factory()
        return self._cache[name]

    def invalidate_cached_values(self) -> None:
        self._cache.clear()
        self._cache_key = None

    # attributes ---------------------------------------------------------

    @property
    def value(self) -> float:
        return self._value

    @property
    def ctrl(self) -> Vec2:
        return (self.cx, self.cy)

    def set_ctrl(self, x: float, y: float) -> None:
        self.cx = float(x)
        self.cy = float(y)
        self.invalidate_cached_values()

    def offset_ctrl(self, dx: float, dy: float) -> None:
        self.set_ctrl(self.cx + dx, self.cy + dy)

    def control_polygon(self) -> ControlPolygon:
        return ((self.start.x, self.start.y), (self.cx, self.cy), (self.end.x, self.end.y))

    def _checked_shortening(self, value: float) -> float:
        value = float(value)
        if not math.isfinite(value) or value < 0.0:
            raise InvalidParameterError(f"shortening must be a non-negative number, got {value}")
        return min(value, self.baseline_length)

    @property
    def start_shortening(self) -> float:
        return self._start_shortening

    @start_shortening.setter
    def start_shortening(self, value: float) -> None:
        self._start_shortening = self._checked_shortening(value)

    @property
    def end_shortening(self) -> float:
        return self._end_shortening

    @end_shortening.setter
    def end_shortening(self, value: float) -> None:
        self._end_shortening = self._checked_shortening(value)

    def reset_shortening(self) -> None:
        self._start_shortening = 0.0
        self._end_shortening = 0.0

    # clip areas ---------------------------------------------------------

    @property
    def start_clip_area(self) -> Optional[BaseGeometry]:
        return self._start_clip_area

    @start_clip_area.setter
    def start_clip_area(self, area: Optional[BaseGeometry]) -> None:
        self._start_clip_area = area
        self._start_clip_area_wkt = None if area is None else area.wkt
        self.invalidate_cached_values()

    @property
    def start_clip_area_wkt(self) -> Optional[str]:
        return self._start_clip_area_wkt

    @property
    def end_clip_area(self) -> Optional[BaseGeometry]:
        return self._end_clip_area

    @end_clip_area.setter
    def end_clip_area(self, area: Optional[BaseGeometry]) -> None:
        self._end_clip_area = area
        self._end_clip_area_wkt = None if area is None else area.wkt
        self.invalidate_cached_values()

    @property
    def end_clip_area_wkt(self) -> Optional[str]:
        return self._end_clip_area_wkt

    def set_clip_areas_wkt(self, start_wkt: Optional[str], end_wkt: Optional[str]) -> None:
        self.start_clip_area = shapely_wkt.loads(start_wkt) if start_wkt else None
        self.end_clip_area = shapely_wkt.loads(end_wkt) if end_wkt else None

    def _copy_clip_areas_to(self, other: "BaseFlow") -> None:
        other._start_clip_area = self._start_clip_area
        other._start_clip_area_wkt = self._start_clip_area_wkt
        other._end_clip_area = self._end_clip_area
        other._end_clip_area_wkt = self._end_clip_area_wkt

    # baseline -----------------------------------------------------------

    @property
    def baseline_length(self) -> float:
        return math.hypot(self.end.x - self.start.x, self.end.y - self.start.y)

    @property
    def baseline_orientation(self) -> float:
        return math.atan2(self.end.y - self.start.y, self.end.x - self.start.x)

    @property
    def baseline_midpoint(self) -> Vec2:
        return ((self.start.x + self.end.x) * 0.5, (self.start.y + self.end.y) * 0.5)

    def opposite_point(self, node: Point) -> Optional[Point]:
        if node is self.start:
            return self.end
        if node is self.end:
            return self.start
        return None

    def shared_node(self, other: "BaseFlow") -> Optional[Point]:
        if self.start is other.start or self.start is other.end:
            return self.start
        if self.end is other.start or self.end is other.end:
            return self.end
        return None

    def straighten(self) -> None:
        self.set_ctrl(*self.baseline_midpoint)

    def sort_key(self) -> Tuple[float, ...]:
        """Order by value, baseline length, control hull length, then coordinates."""

        sx, sy, ex, ey = self.start.x, self.start.y, self.end.x, self.end.y
        baseline_sq = (sx - ex) ** 2 + (sy - ey) ** 2
        hull_sq = (self.cx - ex) ** 2 + (self.cy - ey) ** 2 + (self.cx - sx) ** 2 + (self.cy - sy) ** 2
        return (self.value, baseline_sq, hull_sq, sx, sy, ex, ey, self.cx, self.cy)

    # curve queries ------------------------------------------------------

    def point_on_curve(self, t: float) -> Point:
        x, y = bezier.point_at(*self.control_polygon(), _check_t(t))
        return Point(x, y)

    def bounding_box(self) -> Rect:
        return self._cached("bbox", lambda: bezier.bounding_box(*self.control_polygon()))

    def slope(self, t: float) -> float:
        dx, dy = bezier.derivative_at(*self.control_polygon(), _check_t(t))
        return math.atan2(dy, dx)

    def normal(self, t: float) -> Vec2:
        """Unit normal at ``t``, pointing left when looking from start to end."""

        dx, dy = bezier.derivative_at(*self.control_polygon(), _check_t(t))
        length = math.hypot(dx, dy)
        if length == 0.0:
            dx = self.end.x - self.start.x
            dy = self.end.y - self.start.y
            length = math.hypot(dx, dy)
        return (-dy / length, dx / length)

    def closest_point(self, x: float, y: float, tol: float = _DEFAULT_TOL,
                      policy: NewtonPolicy = DEFAULT_NEWTON_POLICY) -> Vec2:
        polygon = self.control_polygon()
        return bezier.point_at(*polygon, bezier.closest_t(*polygon, x, y, tol, policy))

    def distance_sq(self, x: float, y: float, tol: float = _DEFAULT_TOL,
                    policy: NewtonPolicy = DEFAULT_NEWTON_POLICY) -> float:
        return bezier.distance_sq(*self.control_polygon(), x, y, tol, policy)

    def distance(self, x: float, y: float, tol: float = _DEFAULT_TOL,
                 policy: NewtonPolicy = DEFAULT_NEWTON_POLICY) -> float:
        return math.sqrt(self.distance_sq(x, y, tol, policy))

    def intersection_t_with_circle_around_start(self, r: float) -> float:
        return bezier.t_at_circle_around_start(*self.control_polygon(), r)

    def intersection_t_with_circle_around_end(self, r: float) -> float:
        return bezier.t_at_circle_around_end(*self.control_polygon(), r)

    def regular_intervals(self, interval_length: float) -> List[Point]:
        """Points at about ``interval_length`` spacing along the curve.

        The first and last points are moved 5% of an interval away from the
        nodes. At least two points are always returned.
        """

        interval_length = float(interval_length)
        if not interval_length > 0.0 or not math.isfinite(interval_length):
            raise InvalidParameterError(f"interval length must be positive, got {interval_length}")

        polygon = self.control_polygon()
        (sx, sy), (cx, cy), (ex, ey) = polygon
        hull = math.hypot(cx - sx, cy - sy) + math.hypot(ex - cx, ey - cy)
        lut_size = max(2, int(4.0 * hull / interval_length) + 1)
        lut = bezier.arc_length_table(*polygon, lut_size)
        total = float(lut[-1])

        def at(distance: float) -> Point:
            return Point(*bezier.point_at(*polygon, bezier.t_for_length(lut, distance)))

        if total <= interval_length:
            return [at(total * _INTERVAL_INSET), at(total * (1.0 - _INTERVAL_INSET))]

        count = max(2, int(round(total / interval_length)))
        step = total / count
        points = [at(step * _INTERVAL_INSET)]
        points.extend(at(i * step) for i in range(1, count))
        points.append(at(total - step * _INTERVAL_INSET))
        return points

    def irregular_intervals(self, tol: float) -> List[Point]:
        if not tol > 0.0:
            raise InvalidParameterError(f"flattening tolerance must be positive, got {tol}")
        return [Point(x, y) for x, y in bezier.flatten(*self.control_polygon(), tol)]

    def clipped_polygon(self, start_r: float, end_r: float) -> ControlPolygon:
        """Control polygon between the circles around the start and end nodes."""

        polygon = self.control_polygon()
        t0 = bezier.t_at_circle_around_start(*polygon, start_r)
        t1 = bezier.t_at_circle_around_end(*polygon, end_r)
        return bezier.sub_curve(*polygon, t0, max(t0, t1))

    def mask_clipping_radius(self, line: LineString, at_start: bool,
                             clip_area: Optional[BaseGeometry] = None) -> float:
        """Distance from the node to where ``line`` leaves the start or end clip area."""

        if clip_area is None:
            clip_area = self._start_clip_area if at_start else self._end_clip_area
        if clip_area is None:
            return 0.0
        node = self.start if at_start else self.end
        remainder = line.difference(clip_area)
        parts: Sequence[BaseGeometry] = getattr(remainder, "geoms", [remainder])
        radius = 0.0
        for part in parts:
            if not isinstance(part, LineString) or len(part.coords) < 2:
                continue
            x, y = part.coords[0] if at_start else part.coords[-1]
            radius = max(radius, math.hypot(node.x - x, node.y - y))
        return radius

    # model dependent queries --------------------------------------------

    @abstractmethod
    def clipped_bands(self, model: "Model") -> List[Band]:
        """Clipped centre polylines with their half stroke widths, world units."""

    def clipped_polylines(self, model: "Model") -> List[np.ndarray]:
        return [polyline for polyline, _ in self.clipped_bands(model)]

    def intersects(self, other: "BaseFlow", model: "Model") -> bool:
        """Approximate intersection test on the cached clipped polylines."""

        for mine in self.clipped_polylines(model):
            for theirs in other.clipped_polylines(model):
                if polylines_intersect(mine, theirs):
                    return True
        return False

    def band_width_px(self, model: "Model") -> float:
        """Stroke width of everything drawn along the centre curve."""

        return model.flow_width_px(self.value)

    def is_overlapping_obstacle(self, obstacle: Obstacle, model: "Model",
                                min_obstacle_distance_px: Optional[float] = None) -> bool:
        """Test the stroked, clipped curve against an obstacle it does not own."""

        if obstacle.belongs_to(self):
            return False
        if min_obstacle_distance_px is None:
            min_obstacle_distance_px = model.config.min_obstacle_distance_px
        return self._overlaps_obstacle(obstacle, model, min_obstacle_distance_px)

    def _overlaps_obstacle(self, obstacle: Obstacle, model: "Model", min_obstacle_distance_px: float) -> bool:
        polygon = self.clipped_polygon(model.start_clip_radius(self), model.end_clip_radius(self, False))
        half_stroke = self.band_width_px(model) * 0.5 / model.scale
        gap = min_obstacle_distance_px / model.scale
        return curve_overlaps_disc(polygon, half_stroke, obstacle.x, obstacle.y, obstacle.r, gap)

    def is_overlapping_arrow(self, arrow: Arrow, model: "Model") -> bool:
        return any(arrow.overlaps_polyline(line, half) for line, half in self.clipped_bands(model))

    def is_arrow_overlapping_arrow(self, arrow: Arrow, model: "Model") -> bool:
        return any(own.overlaps_arrow(arrow) for own in model.arrows(self))


class Flow(BaseFlow):
    """A single flow drawn as one quadratic Bézier curve."""

    kind = "Flow"

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, value: float) -> None:
        value = float(value)
        if not math.isfinite(value):
            raise DegenerateFlowError(f"flow value must be finite, got {value}")
        self._value = value

    def copy(self) -> "Flow":
        flow = Flow(self.start.copy(), self.end.copy(), self.value, self.ctrl, flow_id=self.id)
        self._copy_clip_areas_to(flow)
        flow.selected = self.selected
        flow.locked = self.locked
        flow._start_shortening = self._start_shortening
        flow._end_shortening = self._end_shortening
        return flow

    def _with_polygon(self, polygon: ControlPolygon, start_value: float, end_value: float) -> "Flow":
        flow = self.copy()
        (sx, sy), (cx, cy), (ex, ey) = polygon
        flow.start = Point(sx, sy, start_value)
        flow.end = Point(ex, ey, end_value)
        flow.cx = cx
        flow.cy = cy
        flow.invalidate_cached_values()
        return flow

    def reverse(self) -> None:
        """Swap start and end together with their clip areas and shortenings."""

        self.start, self.end = self.end, self.start
        self._start_clip_area, self._end_clip_area = self._end_clip_area, self._start_clip_area
        self._start_clip_area_wkt, self._end_clip_area_wkt = self._end_clip_area_wkt, self._start_clip_area_wkt
        self._start_shortening, self._end_shortening = self._end_shortening, self._start_shortening
        self.invalidate_cached_values()

    def split(self, t: float) -> Tuple["Flow", "Flow"]:
        """Split at ``t``; for ``t <= 0`` or ``t >= 1`` both halves are ``self``."""

        t = float(t)
        if math.isnan(t):
            raise InvalidParameterError("curve parameter must not be NaN")
        if t <= 0.0 or t >= 1.0:
            return self, self
        first, second = bezier.split(*self.control_polygon(), t)
        flow1 = self._with_polygon(first, self.start.value, 1.0)
        flow2 = self._with_polygon(second, 1.0, self.end.value)
        flow1.end_clip_area = None
        flow2.start_clip_area = None
        return flow1, flow2

    def clip(self, start_r: float, end_r: float) -> "Flow":
        """Part of the flow outside the circles around its start and end nodes."""

        return self._with_polygon(self.clipped_polygon(start_r, end_r), self.start.value, self.end.value)

    def intersections(self, other: BaseFlow) -> List[Point]:
        if not isinstance(other, Flow):
            raise UnsupportedFlowOperationError("intersections", other.kind)
        return [Point(x, y) for x, y in bezier.curve_intersections(self.control_polygon(), other.control_polygon())]

    def is_intersecting_line_segment(self, x1: float, y1: float, x2: float, y2: float) -> bool:
        polygon = self.control_polygon()
        segment_box = Rect.from_bounds(min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))
        roots = bezier.line_roots(*polygon, x1, y1, x2, y2)
        if roots is None:
            # curve lies on the line: overlapping extents decide
            return self.bounding_box().intersects(segment_box)
        eps = 1e-9 * max(1.0, abs(x1), abs(y1), abs(x2), abs(y2))
        box = segment_box.expanded(eps)
        return any(box.contains(*bezier.point_at(*polygon, t)) for t in roots)

    def offset_flow(self, offset: float, model: "Model", quality: OffsetQuality = OffsetQuality.HIGH) -> None:
        """Replace the geometry with a curve parallel at signed distance ``offset``.

        Start and end move along the normal where the flow meets the node
        symbols; the control point is then refined so the distance to the
        original curve is about constant.
        """

        offset = float(offset)
        if not math.isfinite(offset):
            raise InvalidParameterError(f"offset must be finite, got {offset}")

        original = self.control_polygon()
        w1 = 0.8
        w2 = 1.0 - w1

        end_t = self.intersection_t_with_circle_around_end(model.end_node_clip_radius(self))
        enx, eny = self.normal(end_t)
        ex = self.end.x + enx * offset
        ey = self.end.y + eny * offset

        start_t = self.intersection_t_with_circle_around_start(model.start_node_clip_radius(self))
        snx, sny = self.normal(start_t)
        sx = self.start.x + snx * offset
        sy = self.start.y + sny * offset

        # initial control point: the original hull scaled and rotated onto the new baseline
        cx, cy = self.cx, self.cy
        original_length = self.baseline_length
        new_length = math.hypot(ex - sx, ey - sy)
        if new_length > 0.0:
            scale = new_length / original_length
            rot = math.atan2(ey - sy, ex - sx) - self.baseline_orientation
            cos_r = math.cos(rot)
            sin_r = math.sin(rot)
            rx = scale * (self.cx - self.start.x)
            ry = scale * (self.cy - self.start.y)
            cx = rx * cos_r - ry * sin_r + sx
            cy = rx * sin_r + ry * cos_r + sy

        target = abs(offset)
        samples = quality.samples
        for _ in range(quality.iterations):
            candidate = ((sx, sy), (cx, cy), (ex, ey))
            move_x = 0.0
            move_y = 0.0
            for j in range(samples):
                t = (j + 0.5) / samples

                # walk the offset curve, measure to the original
                qx, qy = bezier.point_at(*candidate, t)
                ox, oy = bezier.point_at(*original, bezier.closest_t(*original, qx, qy, 1e-6))
                d = math.hypot(qx - ox, qy - oy)
                if d > 0.0:
                    gap = (target - d) * w1
                    move_x += (qx - ox) / d * gap
                    move_y += (qy - oy) / d * gap

                # walk the original curve, measure to the offset curve
                px, py = bezier.point_at(*original, t)
                qx, qy = bezier.point_at(*candidate, bezier.closest_t(*candidate, px, py, 1e-6))
                d = math.hypot(qx - px, qy - py)
                if d > 0.0:
                    gap = (target - d) * w2
                    move_x += (qx - px) / d * gap
                    move_y += (qy - py) / d * gap

            cx += move_x / samples
            cy += move_y / samples

        self.start = Point(sx, sy, self.start.value)
        self.end = Point(ex, ey, self.end.value)
        self.cx = cx
        self.cy = cy
        self.invalidate_cached_values()

    def arrow(self, model: "Model", end_clip_radius: Optional[float] = None,
              owner: Optional[BaseFlow] = None) -> Arrow:
        if end_clip_radius is None:
            end_clip_radius = model.end_clip_radius(self, False)
        length, width = model.arrow_size(self.value)
        return Arrow(self.control_polygon(), end_clip_radius, length, width, flow=owner or self)

    def clipped_bands(self, model: "Model") -> List[Band]:
        def build() -> List[Band]:
            clipped = model.clip_flow(self, False)
            segment = model.config.polyline_segment_length_px / model.scale
            line = np.array([p.as_tuple() for p in clipped.regular_intervals(segment)], dtype=float)
            return [(line, model.flow_width_px(self.value) * 0.5 / model.scale)]

        return self._cached(("bands", id(model)), build)

    def is_overlapping_any_flow_at_point(self, t: float, model: "Model",
                                         bands: Optional[Sequence[Band]] = None) -> bool:
        """Whether the stroke around ``point_on_curve(t)`` touches another flow's band."""

        p = self.point_on_curve(t)
        half = model.flow_width_px(self.value) * 0.5 / model.scale
        if bands is None:
            bands = [band for flow in model.flows if flow is not self for band in flow.clipped_bands(model)]
        for line, other_half in bands:
            limit = (half + other_half) ** 2
            for (ax, ay), (bx, by) in zip(line[:-1], line[1:]):
                if point_segment_distance_sq(p.x, p.y, ax, ay, bx, by) < limit:
                    return True
        return False

    def hit(self, x: float, y: float, tolerance: float, model: Optional["Model"] = None,
            clip_nodes: bool = True) -> bool:
        curve: Flow = self
        reach = float(tolerance)
        if model is not None:
            if clip_nodes:
                curve = model.clip_flow(self, False)
            reach += model.flow_width_px(self.value) * 0.5 / model.scale
        if not curve.bounding_box().expanded(reach).contains(x, y):
            return False
        return curve.distance_sq(x, y) <= reach * reach


__all__ = ["Band", "BaseFlow", "Flow", "OffsetQuality"]
