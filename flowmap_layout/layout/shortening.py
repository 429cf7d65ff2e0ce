"""Shorten flow ends where arrowheads or line ends overlap other flows."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple, cast

from ..geometry import bezier
from ..geometry.flow import Band, BaseFlow, Flow
from ..geometry.flow_pair import FlowPair
from ..geometry.math_utils import point_line_distance
from ..geometry.obstacles import Arrow
from ..logging_utils import apply_debug_logging
from .model import Model

logger = logging.getLogger(__name__)


@dataclass
class _Shortening:
    owner: BaseFlow
    second: bool
    start: float
    end: float


def _single_flows(model: Model, flow: BaseFlow) -> List[Tuple[Flow, bool]]:
    """Curves searched for ``flow``; the flag marks the second flow of a pair."""

    if isinstance(flow, FlowPair):
        first, second = flow.cached_offset_flows(model)
        return [(first, False), (second, True)]
    if not isinstance(flow, Flow):
        raise TypeError(f"cannot shorten {type(flow).__name__}")
    return [(flow, False)]


class _EndSearch:
    """Pixel-step search for one flow end against fixed neighbours."""

    def __init__(self, model: Model, flow: Flow, bands: Sequence[Band], arrows: Sequence[Arrow]):
        cfg = model.config
        self.model = model
        self.probe = flow.copy()
        self.probe.reset_shortening()
        self.bands = bands
        self.arrows = arrows
        self.step = cfg.shortening_step_px / model.scale
        self.budget = cfg.max_shortening_px / model.scale
        self.min_length = cfg.min_flow_length_px / model.scale
        self.needed = max(1, int(cfg.consecutive_pixels_without_overlap_to_shorten_flow))

    def _steps(self) -> List[float]:
        if self.step <= 0.0:
            return [0.0]
        count = int(math.floor(self.budget / self.step + 1e-9))
        return [k * self.step for k in range(count + 1)]

    def _search(self, probe_state) -> float:
        run_start = None
        run = 0
        for s in self._steps():
            state = probe_state(s)
            if state is None:
                break
            if state:
                run = 0
                run_start = None
                continue
            if run_start is None:
                run_start = s
            run += 1
            if run >= self.needed:
                return run_start
        return 0.0

    def end(self) -> float:
        model = self.model
        probe = self.probe
        node = probe.end
        node_r = model.node_obstacle_radius(node)

        def state(s: float):
            """None when the end cannot move further, else whether it overlaps."""

            probe.end_shortening = s
            r = model.end_clip_radius(probe, False)
            start_t = probe.intersection_t_with_circle_around_start(model.start_clip_radius(probe))
            start_pt = bezier.point_at(*probe.control_polygon(), start_t)
            if model.config.draw_arrows:
                arrow = probe.arrow(model, r)
                dx = arrow.tip[0] - arrow.base[0]
                dy = arrow.tip[1] - arrow.base[1]
                if point_line_distance(node.x, node.y, arrow.base[0], arrow.base[1], dx, dy) > node_r:
                    return None
                if math.hypot(arrow.base[0] - start_pt[0], arrow.base[1] - start_pt[1]) < self.min_length:
                    return None
                return any(arrow.overlaps_polyline(line, half) for line, half in self.bands) or any(
                    arrow.overlaps_arrow(other) for other in self.arrows
                )

            t = probe.intersection_t_with_circle_around_end(r)
            px, py = bezier.point_at(*probe.control_polygon(), t)
            dx, dy = bezier.derivative_at(*probe.control_polygon(), t)
            if point_line_distance(node.x, node.y, px, py, dx, dy) > node_r:
                return None
            if math.hypot(px - start_pt[0], py - start_pt[1]) < self.min_length:
                return None
            return probe.is_overlapping_any_flow_at_point(t, model, self.bands)

        result = self._search(state)
        probe.end_shortening = 0.0
        return result

    def start(self) -> float:
        model = self.model
        probe = self.probe
        node = probe.start
        node_r = model.node_obstacle_radius(node)
        end_r = model.end_clip_radius(probe, True)
        end_t = probe.intersection_t_with_circle_around_end(end_r)
        end_pt = bezier.point_at(*probe.control_polygon(), end_t)

        def state(s: float):
            probe.start_shortening = s
            t = probe.intersection_t_with_circle_around_start(model.start_clip_radius(probe))
            px, py = bezier.point_at(*probe.control_polygon(), t)
            dx, dy = bezier.derivative_at(*probe.control_polygon(), t)
            if point_line_distance(node.x, node.y, px, py, dx, dy) > node_r:
                return None
            if math.hypot(px - end_pt[0], py - end_pt[1]) < self.min_length:
                return None
            return probe.is_overlapping_any_flow_at_point(t, model, self.bands)

        result = self._search(state)
        probe.start_shortening = 0.0
        return result


def shorten_flows_to_reduce_overlaps(model: Model) -> int:
    """Recompute start and end shortenings of all flows.

    Every shortening is reset first and each end is searched against the
    unshortened neighbours; results are committed together, so running the
    pass again on an unchanged layout gives the same shortenings. Returns
    the number of shortened flow ends.
    """

    for flow in model.flows:
        flow.reset_shortening()

    bands: Dict[int, List[Band]] = {id(flow): flow.clipped_bands(model) for flow in model.flows}
    arrows: Dict[int, List[Arrow]] = {id(flow): model.arrows(flow) for flow in model.flows}

    results: List[_Shortening] = []
    for flow in model.flows:
        other_bands = [band for other in model.flows if other is not flow for band in bands[id(other)]]
        other_arrows = [arrow for other in model.flows if other is not flow for arrow in arrows[id(other)]]
        for single, second in _single_flows(model, flow):
            search = _EndSearch(model, single, other_bands, other_arrows)
            results.append(_Shortening(flow, second, search.start(), search.end()))

    shortened = 0
    for item in results:
        shortened += (item.start > 0.0) + (item.end > 0.0)
        if item.second:
            cast(FlowPair, item.owner).update_shortening_flow2(item.start, item.end)
        else:
            item.owner.start_shortening = item.start
            item.owner.end_shortening = item.end
    logger.info("Shortened %d flow ends to reduce overlaps", shortened)
    return shortened


apply_debug_logging(globals(), logger=logger, skip={"_EndSearch._steps", "_EndSearch._search"})
