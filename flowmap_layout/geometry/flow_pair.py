"""Two opposite flows between the same nodes, drawn as parallel curves."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, List, Optional

from .flow import Band, BaseFlow, Flow, OffsetQuality
from .math_utils import Vec2
from .obstacles import Obstacle
from .types import DegenerateFlowError, Point, UnsupportedFlowOperationError

if TYPE_CHECKING:
    from ..layout.model import Model


class FlowPair(BaseFlow):
    """A flow from A to B and a flow from B to A sharing one control point.

    ``value`` is the sum of both values. Operations that only make sense for
    one curve raise :class:`UnsupportedFlowOperationError`.
    """

    kind = "FlowPair"

    def __init__(
        self,
        start: Point,
        end: Point,
        value1: float,
        value2: float,
        ctrl: Optional[Vec2] = None,
        *,
        flow_id: int = 0,
    ):
        value2 = float(value2)
        if not math.isfinite(value2):
            raise DegenerateFlowError(f"flow value must be finite, got {value2}")
        super().__init__(start, end, value1, ctrl, flow_id=flow_id)
        self.value2 = value2
        self._start_shortening2 = 0.0
        self._end_shortening2 = 0.0

    @classmethod
    def from_flows(cls, flow1: BaseFlow, flow2: BaseFlow, *, flow_id: Optional[int] = None) -> "FlowPair":
        """Merge ``flow1`` (A to B) with its opposite ``flow2`` (B to A)."""

        if flow1.start is not flow2.end or flow1.end is not flow2.start:
            raise ValueError("flows of a pair must connect the same nodes in opposite directions")
        ctrl = ((flow1.cx + flow2.cx) * 0.5, (flow1.cy + flow2.cy) * 0.5)
        pair = cls(flow1.start, flow1.end, flow1.value, flow2.value, ctrl,
                   flow_id=flow1.id if flow_id is None else flow_id)
        flow1._copy_clip_areas_to(pair)
        return pair

    @property
    def value(self) -> float:
        return self._value + self.value2

    @property
    def value1(self) -> float:
        return self._value

    def _geometry_key(self):
        return super()._geometry_key() + (self._start_shortening2, self._end_shortening2)

    @property
    def start_shortening2(self) -> float:
        return self._start_shortening2

    @property
    def end_shortening2(self) -> float:
        return self._end_shortening2

    def update_shortening_flow2(self, start_shortening: float, end_shortening: float) -> None:
        self._start_shortening2 = self._checked_shortening(start_shortening)
        self._end_shortening2 = self._checked_shortening(end_shortening)

    def reset_shortening(self) -> None:
        super().reset_shortening()
        self._start_shortening2 = 0.0
        self._end_shortening2 = 0.0

    def copy(self) -> "FlowPair":
        pair = FlowPair(self.start.copy(), self.end.copy(), self.value1, self.value2, self.ctrl, flow_id=self.id)
        self._copy_clip_areas_to(pair)
        pair.selected = self.selected
        pair.locked = self.locked
        pair._start_shortening = self._start_shortening
        pair._end_shortening = self._end_shortening
        pair._start_shortening2 = self._start_shortening2
        pair._end_shortening2 = self._end_shortening2
        return pair

    # single flows -------------------------------------------------------

    def flow1(self) -> Flow:
        """The A to B flow on the shared centre curve."""

        flow = Flow(self.start, self.end, self.value1, self.ctrl, flow_id=self.id)
        self._copy_clip_areas_to(flow)
        flow._start_shortening = self._start_shortening
        flow._end_shortening = self._end_shortening
        return flow

    def flow2(self) -> Flow:
        """The B to A flow on the shared centre curve."""

        flow = Flow(self.start, self.end, self.value2, self.ctrl, flow_id=self.id)
        self._copy_clip_areas_to(flow)
        flow.reverse()
        flow._start_shortening = self._start_shortening2
        flow._end_shortening = self._end_shortening2
        return flow

    def _offset(self, model: "Model", for_flow1: bool) -> float:
        width1 = model.flow_width_px(self.value1)
        width2 = model.flow_width_px(self.value2)
        total = width1 + width2 + model.config.parallel_flows_gap_px
        own = width1 if for_flow1 else width2
        return (total - own) * 0.5 / model.scale

    def offset_flow1(self, model: "Model", quality: OffsetQuality = OffsetQuality.HIGH) -> Flow:
        flow = self.flow1()
        flow.offset_flow(self._offset(model, True), model, quality)
        return flow

    def offset_flow2(self, model: "Model", quality: OffsetQuality = OffsetQuality.HIGH) -> Flow:
        flow = self.flow2()
        flow.offset_flow(self._offset(model, False), model, quality)
        return flow

    def cached_offset_flows(self, model: "Model") -> List[Flow]:
        return self._cached(
            ("offsets", id(model)),
            lambda: [self.offset_flow1(model, OffsetQuality.LOW), self.offset_flow2(model, OffsetQuality.LOW)],
        )

    # model dependent queries --------------------------------------------

    def clipped_bands(self, model: "Model") -> List[Band]:
        return self._cached(
            ("bands", id(model)),
            lambda: [band for flow in self.cached_offset_flows(model) for band in flow.clipped_bands(model)],
        )

    def band_width_px(self, model: "Model") -> float:
        return (
            model.flow_width_px(self.value1)
            + model.flow_width_px(self.value2)
            + model.config.parallel_flows_gap_px
        )

    def _overlaps_obstacle(self, obstacle: Obstacle, model: "Model", min_obstacle_distance_px: float) -> bool:
        # the combined centre curve is cheaper than building the offsets
        if not super()._overlaps_obstacle(obstacle, model, min_obstacle_distance_px):
            return False
        return any(
            flow._overlaps_obstacle(obstacle, model, min_obstacle_distance_px)
            for flow in self.cached_offset_flows(model)
        )

    def hit(self, x: float, y: float, tolerance: float, model: "Model", clip_nodes: bool = True) -> bool:
        return any(
            flow.hit(x, y, tolerance, model, clip_nodes)
            for flow in (self.offset_flow1(model), self.offset_flow2(model))
        )

    # single-curve operations --------------------------------------------

    def split(self, t: float):
        raise UnsupportedFlowOperationError("split")

    def clip(self, start_r: float, end_r: float):
        raise UnsupportedFlowOperationError("clip")

    def intersections(self, other: BaseFlow):
        raise UnsupportedFlowOperationError("intersections")

    def is_intersecting_line_segment(self, x1: float, y1: float, x2: float, y2: float):
        raise UnsupportedFlowOperationError("is_intersecting_line_segment")

    def is_overlapping_any_flow_at_point(self, t: float, model: "Model", bands=None):
        raise UnsupportedFlowOperationError("is_overlapping_any_flow_at_point")

    def offset_flow(self, offset: float, model: "Model", quality: OffsetQuality = OffsetQuality.HIGH):
        raise UnsupportedFlowOperationError("offset_flow")

    def arrow(self, model: "Model", end_clip_radius: Optional[float] = None, owner: Optional[BaseFlow] = None):
        raise UnsupportedFlowOperationError("arrow")

    def reverse(self):
        raise UnsupportedFlowOperationError("reverse")


__all__ = ["FlowPair"]
