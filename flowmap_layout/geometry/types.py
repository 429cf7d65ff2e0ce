"""Core value types shared by the geometry and layout modules."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple


class DegenerateFlowError(ValueError):
    """Raised when a flow would connect a node to itself."""


class InvalidParameterError(ValueError):
    """Raised when a geometric parameter is outside its valid domain."""


class UnsupportedFlowOperationError(NotImplementedError):
    """Raised when a single-curve operation is invoked on a flow pair."""

    def __init__(self, operation: str, kind: str = "FlowPair"):
        super().__init__(f"{operation} is not defined for {kind}")
        self.operation = operation


@dataclass(eq=False)
class Point:
    """A 2D location with a mapped value.

    Points compare by identity: two flows share a node only when they
    reference the same ``Point`` instance.
    """

    x: float = 0.0
    y: float = 0.0
    value: float = 1.0
    selected: bool = False

    def copy(self) -> "Point":
        return Point(self.x, self.y, self.value, self.selected)

    def distance(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def distance_sq(self, x: float, y: float) -> float:
        dx = self.x - x
        dy = self.y - y
        return dx * dx + dy * dy

    def same_location(self, other: "Point") -> bool:
        return self.x == other.x and self.y == other.y

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle given by its minimum corner and extent."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_bounds(cls, xmin: float, ymin: float, xmax: float, ymax: float) -> "Rect":
        return cls(xmin, ymin, xmax - xmin, ymax - ymin)

    @property
    def xmin(self) -> float:
        return self.x

    @property
    def ymin(self) -> float:
        return self.y

    @property
    def xmax(self) -> float:
        return self.x + self.width

    @property
    def ymax(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width * 0.5, self.y + self.height * 0.5)

    def contains(self, x: float, y: float) -> bool:
        return self.xmin <= x <= self.xmax and self.ymin <= y <= self.ymax

    def intersects(self, other: "Rect") -> bool:
        return not (
            other.xmin > self.xmax
            or other.xmax < self.xmin
            or other.ymin > self.ymax
            or other.ymax < self.ymin
        )

    def expanded(self, margin: float) -> "Rect":
        return Rect(self.x - margin, self.y - margin, self.width + 2 * margin, self.height + 2 * margin)

    def clamp(self, x: float, y: float) -> Tuple[float, float]:
        return (min(max(x, self.xmin), self.xmax), min(max(y, self.ymin), self.ymax))


class IdAllocator:
    """Sequential flow id source owned by a model."""

    def __init__(self, start: int = 0):
        self._next = int(start)

    def allocate(self) -> int:
        value = self._next
        self._next += 1
        return value

    def reserve(self, used: int) -> None:
        """Make sure ids up to ``used`` are never handed out again."""

        self._next = max(self._next, int(used) + 1)


class NodeArena:
    """Owns the node points of a model and hands out integer handles."""

    def __init__(self) -> None:
        self._points: List[Point] = []
        self._handles: Dict[int, int] = {}

    def add(self, x: float, y: float, value: float = 1.0) -> int:
        point = Point(float(x), float(y), float(value))
        handle = len(self._points)
        self._points.append(point)
        self._handles[id(point)] = handle
        return handle

    def __getitem__(self, handle: int) -> Point:
        try:
            return self._points[handle]
        except (IndexError, TypeError) as exc:
            raise KeyError(f"unknown node handle {handle!r}") from exc

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    def handle_of(self, point: Point) -> Optional[int]:
        handle = self._handles.get(id(point))
        if handle is None or self._points[handle] is not point:
            return None
        return handle


__all__ = [
    "DegenerateFlowError",
    "IdAllocator",
    "InvalidParameterError",
    "NodeArena",
    "Point",
    "Rect",
    "UnsupportedFlowOperationError",
]
