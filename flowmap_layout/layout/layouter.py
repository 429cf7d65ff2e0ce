"""Force-directed placement of flow control points."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..geometry.flow import BaseFlow
from ..geometry.math_utils import Vec2
from ..geometry.obstacles import Obstacle
from ..geometry.rangebox import RangeboxEnforcer
from ..geometry.types import Point, Rect
from ..logging_utils import apply_debug_logging
from .model import LayoutConfig, Model

logger = logging.getLogger(__name__)

_RING_COUNT = 20
_RING_STEP_FRACTION = 1.0 / 50.0


@dataclass
class LayoutSnapshot:
    """Model state shared by all force computations of one iteration."""

    nodes: List[Point]
    nodes_box: Optional[Rect]
    longest_flow_length: float


@dataclass
class ForceComponents:
    node: Vec2
    spring: Vec2
    anti_torsion: Vec2

    @property
    def total(self) -> Vec2:
        return (
            self.node[0] + self.spring[0] + self.anti_torsion[0],
            self.node[1] + self.spring[1] + self.anti_torsion[1],
        )


class ForceLayouter:
    """Moves unlocked control points under node repulsion and baseline springs.

    Each iteration computes every proposal from the same model state and
    commits them together, so results do not depend on flow order.
    """

    def __init__(self, model: Model):
        self.model = model

    @property
    def config(self) -> LayoutConfig:
        return self.model.config

    def rangebox(self) -> RangeboxEnforcer:
        return RangeboxEnforcer(self.config.flow_rangebox_height)

    def snapshot(self) -> LayoutSnapshot:
        return LayoutSnapshot(
            nodes=self.model.nodes(),
            nodes_box=self.model.nodes_bounding_box(),
            longest_flow_length=self.model.longest_flow_length(),
        )

    # forces -----------------------------------------------------------------

    def _node_force(self, flow: BaseFlow, nodes: Sequence[Point]) -> Vec2:
        exponent = self.config.distance_weight_exponent
        x, y = flow.cx, flow.cy
        fx = fy = w_total = 0.0
        for node in nodes:
            dx = x - node.x
            dy = y - node.y
            d = math.hypot(dx, dy)
            if d == 0.0:
                continue
            w = d ** -exponent
            if not math.isfinite(w):
                continue
            fx += dx / d * w
            fy += dy / d * w
            w_total += w
        if w_total == 0.0:
            return (0.0, 0.0)
        return (fx / w_total, fy / w_total)

    def _peripherality(self, flow: BaseFlow, box: Optional[Rect]) -> float:
        if box is None:
            return 0.0
        half_diagonal = math.hypot(box.width, box.height) * 0.5
        if half_diagonal == 0.0:
            return 0.0
        cx, cy = box.center
        mx, my = flow.baseline_midpoint
        return min(1.0, math.hypot(mx - cx, my - cy) / half_diagonal)

    def spring_constant(self, flow: BaseFlow, snapshot: LayoutSnapshot) -> float:
        cfg = self.config
        k_min = cfg.min_flow_length_spring_constant
        k_max = cfg.max_flow_length_spring_constant
        if snapshot.longest_flow_length > 0.0:
            k = (k_max - k_min) * flow.baseline_length / snapshot.longest_flow_length + k_min
        else:
            k = k_min
        return k * (1.0 + cfg.peripheral_stiffness_factor * self._peripherality(flow, snapshot.nodes_box))

    def compute_force(self, flow: BaseFlow, snapshot: Optional[LayoutSnapshot] = None) -> ForceComponents:
        if snapshot is None:
            snapshot = self.snapshot()
        cfg = self.config

        nfx, nfy = self._node_force(flow, snapshot.nodes)
        node = (nfx * cfg.nodes_weight, nfy * cfg.nodes_weight)

        mx, my = flow.baseline_midpoint
        k = self.spring_constant(flow, snapshot)
        spring = (k * (mx - flow.cx), k * (my - flow.cy))

        length = flow.baseline_length
        if length > 0.0:
            ux = (flow.end.x - flow.start.x) / length
            uy = (flow.end.y - flow.start.y) / length
            along = (flow.cx - mx) * ux + (flow.cy - my) * uy
            w = cfg.anti_torsion_weight
            anti_torsion = (-w * along * ux, -w * along * uy)
        else:
            anti_torsion = (0.0, 0.0)

        return ForceComponents(node=node, spring=spring, anti_torsion=anti_torsion)

    def cooling_weight(self, i: int) -> float:
        if self.config.apply_constant_force:
            return self.config.constant_force_weight
        n = max(1, self.config.n_iterations)
        return max(0.0, 1.0 - i / n)

    # iteration --------------------------------------------------------------

    def layout_iteration(self, i: int, iter_before_moving_flows: int, canvas: Optional[Rect] = None) -> int:
        """Advance all unlocked flows by one step.

        Returns the iteration at which the next obstacle correction is due.
        """

        cfg = self.config
        if canvas is None:
            canvas = self.model.canvas()
        weight = self.cooling_weight(i)
        snapshot = self.snapshot()
        rangebox = self.rangebox()

        proposals: List[Tuple[BaseFlow, float, float]] = []
        for flow in self.model.flows:
            if flow.locked:
                continue
            fx, fy = self.compute_force(flow, snapshot).total
            x = flow.cx + weight * fx
            y = flow.cy + weight * fy
            if cfg.enforce_rangebox:
                x, y = rangebox.enforce(flow, x, y)
            if cfg.enforce_canvas_range:
                x, y = canvas.clamp(x, y)
            proposals.append((flow, x, y))

        for flow, x, y in proposals:
            self.model.set_control_point(flow, x, y)
        logger.debug("Iteration %d moved %d flows with weight %.4f", i, len(proposals), weight)

        if not cfg.move_flows_overlapping_obstacles or i < iter_before_moving_flows:
            return iter_before_moving_flows

        moved, overlapping = self.move_flows_off_obstacles(canvas)
        n = cfg.n_iterations
        if overlapping == 0:
            next_iter = i + max(1, int(n * cfg.iterations_fraction_before_moving_flows))
        else:
            next_iter = i + max(1, (n - i) // (overlapping + 1))
        logger.debug(
            "Iteration %d: %d flows overlap obstacles, moved %d, next check at %d", i, overlapping, moved, next_iter
        )
        return next_iter

    def straighten_flows(self, only_selected: bool = False) -> None:
        for flow in self.model.flows:
            if flow.locked or (only_selected and not flow.selected):
                continue
            flow.straighten()

    # obstacles --------------------------------------------------------------

    def _overlapping_flows(self, obstacles: Sequence[Obstacle]) -> List[BaseFlow]:
        return [
            flow
            for flow in self.model.sorted_flows()
            if not flow.locked and self.model.flow_overlaps_obstacles(flow, obstacles)
        ]

    def move_flows_off_obstacles(self, canvas: Optional[Rect] = None) -> Tuple[int, int]:
        """Move the first overlapping flow to the nearest obstacle-free position.

        The moved flow is locked so later iterations keep it there. Returns the
        number of moved flows and the number of overlapping flows.
        """

        if canvas is None:
            canvas = self.model.canvas()
        obstacles = self.model.obstacles()
        overlapping = self._overlapping_flows(obstacles)
        if not overlapping:
            return 0, 0

        flow = overlapping[0]
        if self._move_flow_off_obstacles(flow, obstacles, canvas):
            flow.locked = True
            logger.debug("Moved flow %d off obstacles to (%.6g, %.6g)", flow.id, flow.cx, flow.cy)
            return 1, len(overlapping)
        return 0, len(overlapping)

    def _move_flow_off_obstacles(self, flow: BaseFlow, obstacles: Sequence[Obstacle], canvas: Rect) -> bool:
        cfg = self.config
        rangebox = self.rangebox()
        x0, y0 = flow.cx, flow.cy
        step = flow.baseline_length * _RING_STEP_FRACTION
        if step <= 0.0:
            return False

        for ring in range(1, _RING_COUNT + 1):
            radius = ring * step
            count = 8 * ring
            for j in range(count):
                angle = 2.0 * math.pi * j / count
                x = x0 + radius * math.cos(angle)
                y = y0 + radius * math.sin(angle)
                if cfg.enforce_rangebox and not rangebox.contains(flow, x, y):
                    continue
                if cfg.enforce_canvas_range and not canvas.contains(x, y):
                    continue
                flow.set_ctrl(x, y)
                if not self.model.flow_overlaps_obstacles(flow, obstacles):
                    return True

        flow.set_ctrl(x0, y0)
        return False

    def symmetrize_flows(self) -> int:
        """Move control points onto the perpendicular bisector of their baselines.

        The distance from the baseline is kept. Locked flows are skipped, and a
        flow stays as it is when the symmetric curve would hit an obstacle the
        current curve avoids. Returns the number of changed flows.
        """

        obstacles = self.model.obstacles()
        changed = 0
        for flow in self.model.flows:
            if flow.locked:
                continue
            length = flow.baseline_length
            if length == 0.0:
                continue
            ux = (flow.end.x - flow.start.x) / length
            uy = (flow.end.y - flow.start.y) / length
            nx, ny = -uy, ux
            mx, my = flow.baseline_midpoint
            across = (flow.cx - mx) * nx + (flow.cy - my) * ny
            x = mx + nx * across
            y = my + ny * across
            if x == flow.cx and y == flow.cy:
                continue

            old = flow.ctrl
            overlapped = self.model.flow_overlaps_obstacles(flow, obstacles)
            flow.set_ctrl(x, y)
            if not overlapped and self.model.flow_overlaps_obstacles(flow, obstacles):
                flow.set_ctrl(*old)
                continue
            changed += 1
        logger.debug("Symmetrized %d flows", changed)
        return changed


apply_debug_logging(
    globals(),
    logger=logger,
    skip={"ForceLayouter._node_force", "ForceLayouter._peripherality", "ForceLayouter.config"},
)
