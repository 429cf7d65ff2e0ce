"""Layout parameters and the flow map model the layout engine works on."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Union

from shapely.geometry import LineString

from ..geometry.flow import BaseFlow, Flow
from ..geometry.flow_pair import FlowPair
from ..geometry.math_utils import Vec2
from ..geometry.obstacles import Arrow, Obstacle
from ..geometry.types import IdAllocator, NodeArena, Point, Rect

logger = logging.getLogger(__name__)

NodeRef = Union[int, Point]


@dataclass
class LayoutConfig:
    """Force layout, symbology and overlap removal parameters.

    Sizes ending in ``_px`` are in pixels at ``reference_map_scale``; they are
    divided by the scale to get world units.
    """

    n_iterations: int = 100
    distance_weight_exponent: float = 4.0
    nodes_weight: float = 0.5
    max_flow_length_spring_constant: float = 0.05
    min_flow_length_spring_constant: float = 0.5
    anti_torsion_weight: float = 0.8
    peripheral_stiffness_factor: float = 0.1
    apply_constant_force: bool = False
    constant_force_weight: float = 0.5

    enforce_rangebox: bool = True
    flow_rangebox_height: float = 0.5
    enforce_canvas_range: bool = True
    canvas_padding: float = 0.1

    move_flows_overlapping_obstacles: bool = True
    iterations_fraction_before_moving_flows: float = 0.1
    min_obstacle_distance_px: float = 3.0
    symmetrize_flows: bool = True

    reference_map_scale: float = 1.0
    max_flow_stroke_width_px: float = 20.0
    max_node_size_px: float = 10.0
    node_stroke_width_px: float = 1.0
    flow_distance_from_start_point_px: float = 0.0
    flow_distance_from_end_point_px: float = 0.0
    parallel_flows_gap_px: float = 2.0

    draw_arrows: bool = True
    arrow_length_scale_factor: float = 1.6
    arrow_width_scale_factor: float = 1.4

    clip_flow_starts: bool = False
    clip_flow_ends: bool = False
    start_clip_area_buffer_distance: float = 0.0
    end_clip_area_buffer_distance: float = 0.0

    shorten_flows_to_reduce_overlaps: bool = True
    max_shortening_px: float = 20.0
    min_flow_length_px: float = 10.0
    shortening_step_px: float = 1.0
    consecutive_pixels_without_overlap_to_shorten_flow: int = 3

    polyline_segment_length_px: float = 5.0


class Model:
    """Owns nodes and flows and derives symbol sizes and clip radii from the config."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        if config is None:
            from .config import get_default_layout_config

            config = get_default_layout_config()
        self._arena = NodeArena()
        self._ids = IdAllocator()
        self.flows: List[BaseFlow] = []
        self._stats: Dict[str, float] = {}
        self.config = config

    @property
    def config(self) -> LayoutConfig:
        return self._config

    @config.setter
    def config(self, config: LayoutConfig) -> None:
        self._config = config
        self.invalidate_caches()

    # nodes ----------------------------------------------------------------

    def add_node(self, x: float, y: float, value: float = 1.0) -> int:
        handle = self._arena.add(x, y, value)
        self.invalidate_caches()
        return handle

    def node(self, handle: int) -> Point:
        return self._arena[handle]

    def node_handle(self, point: Point) -> Optional[int]:
        return self._arena.handle_of(point)

    def _resolve(self, ref: NodeRef) -> Point:
        if isinstance(ref, Point):
            return ref
        return self._arena[ref]

    def nodes(self) -> List[Point]:
        """Arena nodes followed by flow end points not in the arena, without duplicates."""

        seen = set()
        result: List[Point] = []
        for point in self._arena:
            seen.add(id(point))
            result.append(point)
        for flow in self.flows:
            for point in (flow.start, flow.end):
                if id(point) not in seen:
                    seen.add(id(point))
                    result.append(point)
        return result

    # flows ----------------------------------------------------------------

    def add_flow(self, start: NodeRef, end: NodeRef, value: float = 1.0, ctrl: Optional[Vec2] = None) -> Flow:
        flow = Flow(self._resolve(start), self._resolve(end), value, ctrl, flow_id=self._ids.allocate())
        self.flows.append(flow)
        self.invalidate_caches()
        return flow

    def add_flow_pair(self, start: NodeRef, end: NodeRef, value1: float, value2: float,
                      ctrl: Optional[Vec2] = None) -> FlowPair:
        pair = FlowPair(self._resolve(start), self._resolve(end), value1, value2, ctrl,
                        flow_id=self._ids.allocate())
        self.flows.append(pair)
        self.invalidate_caches()
        return pair

    def add(self, flow: BaseFlow) -> BaseFlow:
        """Add a flow built elsewhere, keeping its id."""

        self._ids.reserve(flow.id)
        self.flows.append(flow)
        self.invalidate_caches()
        return flow

    def remove_flow(self, flow: BaseFlow) -> None:
        self.flows = [f for f in self.flows if f is not flow]
        self.invalidate_caches()

    def sorted_flows(self) -> List[BaseFlow]:
        return sorted(self.flows, key=lambda f: f.sort_key(), reverse=True)

    def get_locks(self) -> List[bool]:
        return [flow.locked for flow in self.flows]

    def apply_locks(self, locks: Sequence[bool]) -> None:
        if len(locks) != len(self.flows):
            raise ValueError(f"expected {len(self.flows)} lock flags, got {len(locks)}")
        for flow, locked in zip(self.flows, locks):
            flow.locked = bool(locked)

    def set_control_point(self, flow: BaseFlow, x: float, y: float) -> None:
        flow.set_ctrl(x, y)

    def invalidate_caches(self) -> None:
        """Drop model statistics and every flow cache; call after editing node or flow values in place."""

        self._stats.clear()
        for flow in self.flows:
            flow.invalidate_cached_values()

    # symbology ------------------------------------------------------------

    @property
    def scale(self) -> float:
        return self.config.reference_map_scale

    def _stat(self, name: str) -> float:
        if name not in self._stats:
            if name == "max_flow_value":
                values: List[float] = []
                for flow in self.flows:
                    if isinstance(flow, FlowPair):
                        values.extend((abs(flow.value1), abs(flow.value2)))
                    else:
                        values.append(abs(flow.value))
                self._stats[name] = max(values, default=0.0)
            elif name == "max_node_value":
                self._stats[name] = max((abs(p.value) for p in self.nodes()), default=0.0)
            elif name == "longest_flow":
                self._stats[name] = max((f.baseline_length for f in self.flows), default=0.0)
        return self._stats[name]

    def max_flow_value(self) -> float:
        return self._stat("max_flow_value")

    def max_node_value(self) -> float:
        return self._stat("max_node_value")

    def longest_flow_length(self) -> float:
        """Longest baseline; flows only move control points so this stays valid during a run."""

        return self._stat("longest_flow")

    def flow_width_px(self, value: float) -> float:
        max_value = self.max_flow_value()
        if max_value <= 0.0:
            return 0.0
        return abs(value) / max_value * self.config.max_flow_stroke_width_px

    def node_radius_px(self, node: Point) -> float:
        max_value = self.max_node_value()
        if max_value <= 0.0:
            return 0.0
        return self.config.max_node_size_px * 0.5 * math.sqrt(abs(node.value) / max_value)

    def node_obstacle_radius(self, node: Point) -> float:
        return (self.node_radius_px(node) + self.config.node_stroke_width_px * 0.5) / self.scale

    def arrow_size(self, value: float) -> Vec2:
        """Arrowhead length and width in world units."""

        width_px = self.flow_width_px(value)
        return (
            self.config.arrow_length_scale_factor * width_px / self.scale,
            self.config.arrow_width_scale_factor * width_px / self.scale,
        )

    def nodes_bounding_box(self) -> Optional[Rect]:
        nodes = self.nodes()
        if not nodes:
            return None
        return Rect.from_bounds(
            min(p.x for p in nodes),
            min(p.y for p in nodes),
            max(p.x for p in nodes),
            max(p.y for p in nodes),
        )

    def canvas(self) -> Rect:
        """Node bounding box padded by ``canvas_padding`` of its larger side."""

        box = self.nodes_bounding_box()
        if box is None:
            return Rect(0.0, 0.0, 0.0, 0.0)
        return box.expanded(self.config.canvas_padding * max(box.width, box.height))

    # clipping -------------------------------------------------------------

    def start_node_clip_radius(self, flow: BaseFlow) -> float:
        px = (
            self.config.node_stroke_width_px * 0.5
            + self.node_radius_px(flow.start)
            + self.config.flow_distance_from_start_point_px
        )
        return px / self.scale

    def end_node_clip_radius(self, flow: BaseFlow) -> float:
        px = (
            self.config.node_stroke_width_px * 0.5
            + self.node_radius_px(flow.end)
            + self.config.flow_distance_from_end_point_px
        )
        return px / self.scale

    def _mask_radius(self, flow: BaseFlow, at_start: bool) -> float:
        area = flow.start_clip_area if at_start else flow.end_clip_area
        if area is None:
            return 0.0
        buffer_px = (
            self.config.start_clip_area_buffer_distance if at_start else self.config.end_clip_area_buffer_distance
        )
        if buffer_px != 0.0:
            area = area.buffer(buffer_px / self.scale)
        tol = 0.5 / self.scale
        line = LineString([p.as_tuple() for p in flow.irregular_intervals(tol)])
        return flow.mask_clipping_radius(line, at_start, area)

    def start_clip_radius(self, flow: BaseFlow) -> float:
        r = self.start_node_clip_radius(flow) + flow.start_shortening
        if self.config.clip_flow_starts:
            r = max(r, self._mask_radius(flow, True))
        return r

    def end_clip_radius(self, flow: BaseFlow, clip_arrowhead: bool = False) -> float:
        """Radius around the end node where the line (or the arrow tip) ends.

        With ``clip_arrowhead`` the radius extends to the arrowhead base.
        """

        r = self.end_node_clip_radius(flow) + flow.end_shortening
        if self.config.clip_flow_ends:
            r = max(r, self._mask_radius(flow, False))
        if clip_arrowhead and self.config.draw_arrows and isinstance(flow, Flow):
            length, width = self.arrow_size(flow.value)
            r = Arrow(flow.control_polygon(), r, length, width).base_distance_from_end
        return r

    def clip_flow(self, flow: Flow, clip_arrowhead: bool = False) -> Flow:
        """The flow clipped around both nodes; cached until the geometry changes."""

        return flow._cached(
            ("clip", clip_arrowhead, id(self)),
            lambda: flow.clip(self.start_clip_radius(flow), self.end_clip_radius(flow, clip_arrowhead)),
        )

    def clipped_curves(self, flow: BaseFlow, clip_arrowhead: bool = False) -> List[Flow]:
        """One clipped curve for a flow, two clipped offset curves for a pair."""

        if isinstance(flow, FlowPair):
            return [self.clip_flow(f, clip_arrowhead) for f in flow.cached_offset_flows(self)]
        return [self.clip_flow(flow, clip_arrowhead)]

    # obstacles ------------------------------------------------------------

    def arrow(self, flow: Flow) -> Optional[Arrow]:
        if not self.config.draw_arrows:
            return None
        return flow.arrow(self)

    def arrows(self, flow: BaseFlow) -> List[Arrow]:
        if not self.config.draw_arrows:
            return []
        if isinstance(flow, FlowPair):
            return [f.arrow(self, owner=flow) for f in flow.cached_offset_flows(self)]
        return [flow.arrow(self)]

    def node_obstacles(self) -> List[Obstacle]:
        return [Obstacle(p.x, p.y, self.node_obstacle_radius(p), node=p) for p in self.nodes()]

    def obstacles(self) -> List[Obstacle]:
        """Node discs followed by arrowhead discs."""

        obstacles = self.node_obstacles()
        for flow in self.flows:
            obstacles.extend(arrow.obstacle() for arrow in self.arrows(flow))
        return obstacles

    def flow_overlaps_obstacles(self, flow: BaseFlow, obstacles: Optional[Iterable[Obstacle]] = None) -> bool:
        if obstacles is None:
            obstacles = self.obstacles()
        return any(flow.is_overlapping_obstacle(obstacle, self) for obstacle in obstacles)

    def flows_overlapping_obstacles(self) -> List[BaseFlow]:
        obstacles = self.obstacles()
        return [flow for flow in self.flows if self.flow_overlaps_obstacles(flow, obstacles)]


__all__ = ["LayoutConfig", "Model", "NodeRef"]
