"""Read-only layout quality measures."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..logging_utils import apply_debug_logging
from .model import Model

logger = logging.getLogger(__name__)


@dataclass
class LayoutReport:
    flows: int
    nodes: int
    intersections: int
    obstacle_overlaps: int

    def summary(self) -> str:
        return (
            f"{self.flows} flows, {self.nodes} nodes, "
            f"{self.intersections} flow intersections, {self.obstacle_overlaps} obstacle overlaps"
        )


def count_flow_intersections(model: Model) -> int:
    """Number of flow pairs whose clipped polylines cross."""

    flows = model.flows
    count = 0
    for i, flow in enumerate(flows):
        for other in flows[i + 1:]:
            if flow.intersects(other, model):
                count += 1
    return count


def count_obstacle_overlaps(model: Model) -> int:
    """Number of (flow, obstacle) combinations that overlap."""

    obstacles = model.obstacles()
    return sum(
        1 for flow in model.flows for obstacle in obstacles if flow.is_overlapping_obstacle(obstacle, model)
    )


def grade(model: Model) -> LayoutReport:
    report = LayoutReport(
        flows=len(model.flows),
        nodes=len(model.nodes()),
        intersections=count_flow_intersections(model),
        obstacle_overlaps=count_obstacle_overlaps(model),
    )
    logger.info("Layout report: %s", report.summary())
    return report


apply_debug_logging(globals(), logger=logger)
