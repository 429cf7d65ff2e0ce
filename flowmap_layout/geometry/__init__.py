from .types import (
    DegenerateFlowError,
    IdAllocator,
    InvalidParameterError,
    NodeArena,
    Point,
    Rect,
    UnsupportedFlowOperationError,
)
from .bezier import NewtonPolicy, DEFAULT_NEWTON_POLICY
from .flow import BaseFlow, Flow, OffsetQuality
from .flow_pair import FlowPair
from .obstacles import Arrow, Obstacle
from .rangebox import RangeboxEnforcer

__all__ = [
    'Arrow',
    'BaseFlow',
    'DEFAULT_NEWTON_POLICY',
    'DegenerateFlowError',
    'Flow',
    'FlowPair',
    'IdAllocator',
    'InvalidParameterError',
    'NewtonPolicy',
    'NodeArena',
    'Obstacle',
    'OffsetQuality',
    'Point',
    'RangeboxEnforcer',
    'Rect',
    'UnsupportedFlowOperationError',
]
