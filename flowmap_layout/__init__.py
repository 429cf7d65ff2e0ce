from .geometry import (
    Arrow,
    BaseFlow,
    DEFAULT_NEWTON_POLICY,
    DegenerateFlowError,
    Flow,
    FlowPair,
    IdAllocator,
    InvalidParameterError,
    NewtonPolicy,
    NodeArena,
    Obstacle,
    OffsetQuality,
    Point,
    RangeboxEnforcer,
    Rect,
    UnsupportedFlowOperationError,
)
from .layout import (
    ForceComponents,
    ForceLayouter,
    LayoutConfig,
    LayoutReport,
    LayoutResult,
    LayoutSnapshot,
    LayoutState,
    Model,
    ProgressMonitor,
    count_flow_intersections,
    count_obstacle_overlaps,
    get_default_layout_config,
    grade,
    layout_config_from_mapping,
    run_layout,
    set_default_layout_config,
    shorten_flows_to_reduce_overlaps,
)
from .scene import load_scene, save_scene, scene_from_dict, scene_to_dict

__all__ = [
    'Arrow',
    'BaseFlow',
    'DEFAULT_NEWTON_POLICY',
    'DegenerateFlowError',
    'Flow',
    'FlowPair',
    'ForceComponents',
    'ForceLayouter',
    'IdAllocator',
    'InvalidParameterError',
    'LayoutConfig',
    'LayoutReport',
    'LayoutResult',
    'LayoutSnapshot',
    'LayoutState',
    'Model',
    'NewtonPolicy',
    'NodeArena',
    'Obstacle',
    'OffsetQuality',
    'Point',
    'ProgressMonitor',
    'RangeboxEnforcer',
    'Rect',
    'UnsupportedFlowOperationError',
    'count_flow_intersections',
    'count_obstacle_overlaps',
    'get_default_layout_config',
    'grade',
    'layout_config_from_mapping',
    'load_scene',
    'run_layout',
    'save_scene',
    'scene_from_dict',
    'scene_to_dict',
    'set_default_layout_config',
    'shorten_flows_to_reduce_overlaps',
]
