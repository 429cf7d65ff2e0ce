"""Force-directed flow layout: model, iteration, post passes and grading."""

from .model import LayoutConfig, Model
from .config import get_default_layout_config, layout_config_from_mapping, set_default_layout_config
from .layouter import ForceComponents, ForceLayouter, LayoutSnapshot
from .shortening import shorten_flows_to_reduce_overlaps
from .grader import LayoutReport, count_flow_intersections, count_obstacle_overlaps, grade
from .driver import LayoutResult, LayoutState, ProgressMonitor, run_layout

__all__ = [
    "ForceComponents",
    "ForceLayouter",
    "LayoutConfig",
    "LayoutReport",
    "LayoutResult",
    "LayoutSnapshot",
    "LayoutState",
    "Model",
    "ProgressMonitor",
    "count_flow_intersections",
    "count_obstacle_overlaps",
    "get_default_layout_config",
    "grade",
    "layout_config_from_mapping",
    "run_layout",
    "set_default_layout_config",
    "shorten_flows_to_reduce_overlaps",
]
