"""Quadratic Bézier helpers operating on plain control polygons.

All functions take the three control points as ``(x, y)`` tuples so they
can be used for flows, offset flows and temporary sub-curves alike.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from numpy.polynomial import Polynomial
from scipy.optimize import minimize_scalar

from .math_utils import Vec2
from .types import Rect

logger = logging.getLogger(__name__)

ControlPolygon = Tuple[Vec2, Vec2, Vec2]

_DENOM_EPS = 1e-12
_ROOT_IMAG_EPS = 1e-7
_T_EPS = 1e-9


@dataclass(frozen=True)
class NewtonPolicy:
    """When to give up on Newton–Raphson and sample the curve instead."""

    max_iterations: int = 12
    # a step longer than this multiple of the previous step counts as divergence
    divergence_factor: float = 2.0
    coarse_samples: int = 16
    brute_force_samples: int = 101


DEFAULT_NEWTON_POLICY = NewtonPolicy()


def point_at(p0: Vec2, p1: Vec2, p2: Vec2, t: float) -> Vec2:
    u = 1.0 - t
    w0 = u * u
    w1 = 2.0 * u * t
    w2 = t * t
    return (
        p0[0] * w0 + p1[0] * w1 + p2[0] * w2,
        p0[1] * w0 + p1[1] * w1 + p2[1] * w2,
    )


def derivative_at(p0: Vec2, p1: Vec2, p2: Vec2, t: float) -> Vec2:
    u = 1.0 - t
    return (
        2.0 * (u * (p1[0] - p0[0]) + t * (p2[0] - p1[0])),
        2.0 * (u * (p1[1] - p0[1]) + t * (p2[1] - p1[1])),
    )


def second_derivative(p0: Vec2, p1: Vec2, p2: Vec2) -> Vec2:
    return (
        2.0 * (p0[0] - 2.0 * p1[0] + p2[0]),
        2.0 * (p0[1] - 2.0 * p1[1] + p2[1]),
    )


def sample(p0: Vec2, p1: Vec2, p2: Vec2, ts: np.ndarray) -> np.ndarray:
    """Evaluate the curve at every parameter in ``ts``; returns ``(n, 2)``."""

    ts = np.asarray(ts, dtype=float)
    u = 1.0 - ts
    w0 = (u * u)[:, None]
    w1 = (2.0 * u * ts)[:, None]
    w2 = (ts * ts)[:, None]
    return w0 * np.asarray(p0, dtype=float) + w1 * np.asarray(p1, dtype=float) + w2 * np.asarray(p2, dtype=float)


def _axis_extremum_t(a: float, b: float, c: float) -> Optional[float]:
    denom = a - 2.0 * b + c
    if denom == 0.0:
        return None
    t = (a - b) / denom
    if not math.isfinite(t) or t < 0.0 or t > 1.0:
        return None
    return t


def bounding_box(p0: Vec2, p1: Vec2, p2: Vec2) -> Rect:
    """Tight bounding box of the curve (the control point may lie outside)."""

    xmin, xmax = min(p0[0], p2[0]), max(p0[0], p2[0])
    ymin, ymax = min(p0[1], p2[1]), max(p0[1], p2[1])

    tx = _axis_extremum_t(p0[0], p1[0], p2[0])
    if tx is not None:
        x = point_at(p0, p1, p2, tx)[0]
        xmin = min(xmin, x)
        xmax = max(xmax, x)

    ty = _axis_extremum_t(p0[1], p1[1], p2[1])
    if ty is not None:
        y = point_at(p0, p1, p2, ty)[1]
        ymin = min(ymin, y)
        ymax = max(ymax, y)

    return Rect.from_bounds(xmin, ymin, xmax, ymax)


def split(p0: Vec2, p1: Vec2, p2: Vec2, t: float) -> Tuple[ControlPolygon, ControlPolygon]:
    """Matrix-form De Casteljau subdivision at ``t``."""

    s = t - 1.0
    c1 = (t * p1[0] - s * p0[0], t * p1[1] - s * p0[1])
    mid = (
        t * t * p2[0] - 2.0 * t * s * p1[0] + s * s * p0[0],
        t * t * p2[1] - 2.0 * t * s * p1[1] + s * s * p0[1],
    )
    c2 = (t * p2[0] - s * p1[0], t * p2[1] - s * p1[1])
    return (p0, c1, mid), (mid, c2, p2)


def t_at_circle_around_end(p0: Vec2, p1: Vec2, p2: Vec2, r: float, steps: int = 20) -> float:
    """Parameter where a circle of radius ``r`` around ``p2`` crosses the curve."""

    if r <= 0.0:
        return 1.0
    r_sq = r * r
    if (p0[0] - p2[0]) ** 2 + (p0[1] - p2[1]) ** 2 <= r_sq:
        return 1.0
    t = 0.5
    step = 0.25
    for _ in range(steps):
        x, y = point_at(p0, p1, p2, t)
        if (p2[0] - x) ** 2 + (p2[1] - y) ** 2 < r_sq:
            t -= step
        else:
            t += step
        step *= 0.5
    return t


def t_at_circle_around_start(p0: Vec2, p1: Vec2, p2: Vec2, r: float, steps: int = 20) -> float:
    """Parameter where a circle of radius ``r`` around ``p0`` crosses the curve."""

    if r <= 0.0:
        return 0.0
    r_sq = r * r
    if (p0[0] - p2[0]) ** 2 + (p0[1] - p2[1]) ** 2 <= r_sq:
        return 0.0
    t = 0.5
    step = 0.25
    for _ in range(steps):
        x, y = point_at(p0, p1, p2, t)
        if (p0[0] - x) ** 2 + (p0[1] - y) ** 2 < r_sq:
            t += step
        else:
            t -= step
        step *= 0.5
    return t


def sub_curve(p0: Vec2, p1: Vec2, p2: Vec2, t0: float, t1: float) -> ControlPolygon:
    """Control polygon of the curve piece between ``t0`` and ``t1``."""

    polygon: ControlPolygon = (p0, p1, p2)
    if t1 < 1.0:
        polygon = split(*polygon, t1)[0]
    if t0 > 0.0 and t1 > 0.0:
        polygon = split(*polygon, min(t0 / t1, 1.0))[1]
    return polygon


def _newton_closest_t(
    p0: Vec2, p1: Vec2, p2: Vec2, x: float, y: float, t: float, tol: float, policy: NewtonPolicy
) -> Optional[float]:
    ddx, ddy = second_derivative(p0, p1, p2)
    previous_step = math.inf
    for _ in range(policy.max_iterations):
        bx, by = point_at(p0, p1, p2, t)
        dx, dy = derivative_at(p0, p1, p2, t)
        rx = bx - x
        ry = by - y
        first = rx * dx + ry * dy
        second = dx * dx + dy * dy + rx * ddx + ry * ddy
        if second <= _DENOM_EPS:
            return None
        step = first / second
        if math.isfinite(previous_step) and abs(step) > policy.divergence_factor * abs(previous_step):
            return None
        previous_step = step
        t_next = min(max(t - step, 0.0), 1.0)
        moved = abs(t_next - t) * math.hypot(dx, dy)
        t = t_next
        if moved <= tol:
            return t
    return None


def _brute_force_closest_t(p0: Vec2, p1: Vec2, p2: Vec2, x: float, y: float, policy: NewtonPolicy) -> float:
    n = max(3, policy.brute_force_samples)
    ts = np.linspace(0.0, 1.0, n)
    pts = sample(p0, p1, p2, ts)
    d_sq = (pts[:, 0] - x) ** 2 + (pts[:, 1] - y) ** 2
    best = int(np.argmin(d_sq))
    lo = ts[max(best - 1, 0)]
    hi = ts[min(best + 1, n - 1)]

    def objective(t: float) -> float:
        qx, qy = point_at(p0, p1, p2, t)
        return (qx - x) ** 2 + (qy - y) ** 2

    result = minimize_scalar(objective, bounds=(float(lo), float(hi)), method="bounded")
    if result.success and float(result.fun) <= float(d_sq[best]):
        return float(result.x)
    return float(ts[best])


def closest_t(
    p0: Vec2,
    p1: Vec2,
    p2: Vec2,
    x: float,
    y: float,
    tol: float = 1e-9,
    policy: NewtonPolicy = DEFAULT_NEWTON_POLICY,
) -> float:
    """Curve parameter of the point closest to ``(x, y)``.

    Newton–Raphson starts at the best of a few coarse samples. When it
    diverges or runs out of iterations, a dense sampling refined by a bounded
    Brent search answers instead.
    """

    n = max(2, policy.coarse_samples)
    ts = np.linspace(0.0, 1.0, n)
    pts = sample(p0, p1, p2, ts)
    d_sq = (pts[:, 0] - x) ** 2 + (pts[:, 1] - y) ** 2
    start = float(ts[int(np.argmin(d_sq))])

    t = _newton_closest_t(p0, p1, p2, x, y, start, tol, policy)
    if t is None:
        logger.debug("Newton-Raphson gave up for point (%.6g, %.6g); sampling curve", x, y)
        t = _brute_force_closest_t(p0, p1, p2, x, y, policy)

    # the end points are candidates too, Newton only finds interior minima
    best_t = t
    best = _distance_sq_at(p0, p1, p2, x, y, t)
    for end_t in (0.0, 1.0):
        d = _distance_sq_at(p0, p1, p2, x, y, end_t)
        if d < best:
            best, best_t = d, end_t
    return best_t


def _distance_sq_at(p0: Vec2, p1: Vec2, p2: Vec2, x: float, y: float, t: float) -> float:
    qx, qy = point_at(p0, p1, p2, t)
    return (qx - x) ** 2 + (qy - y) ** 2


def distance_sq(
    p0: Vec2, p1: Vec2, p2: Vec2, x: float, y: float, tol: float = 1e-9,
    policy: NewtonPolicy = DEFAULT_NEWTON_POLICY,
) -> float:
    return _distance_sq_at(p0, p1, p2, x, y, closest_t(p0, p1, p2, x, y, tol, policy))


def brute_force_distance(p0: Vec2, p1: Vec2, p2: Vec2, x: float, y: float, samples: int = 2001) -> float:
    """Reference distance by dense sampling only."""

    pts = sample(p0, p1, p2, np.linspace(0.0, 1.0, max(2, samples)))
    return float(np.sqrt(np.min((pts[:, 0] - x) ** 2 + (pts[:, 1] - y) ** 2)))


def _power_basis(p0: Vec2, p1: Vec2, p2: Vec2) -> Tuple[Vec2, Vec2, Vec2]:
    a = (p0[0] - 2.0 * p1[0] + p2[0], p0[1] - 2.0 * p1[1] + p2[1])
    b = (2.0 * (p1[0] - p0[0]), 2.0 * (p1[1] - p0[1]))
    return a, b, p0


def _real_unit_roots(poly: Polynomial) -> List[float]:
    coef = np.trim_zeros(np.asarray(poly.coef, dtype=float), trim="b")
    if coef.size <= 1:
        return []
    roots = Polynomial(coef).roots()
    found: List[float] = []
    for root in roots:
        if abs(root.imag) > _ROOT_IMAG_EPS:
            continue
        t = float(root.real)
        if -_T_EPS <= t <= 1.0 + _T_EPS:
            found.append(min(max(t, 0.0), 1.0))
    return sorted(found)


def resultant_roots(curve_a: ControlPolygon, curve_b: ControlPolygon) -> List[Tuple[float, float]]:
    """Parameter pairs ``(s, t)`` where ``curve_a(s) == curve_b(t)``.

    ``curve_a`` is implicitized through the resultant of its two coordinate
    polynomials; substituting ``curve_b`` yields a quartic in ``t``.
    """

    (ax, ay), (bx, by), (cx, cy) = _power_basis(*curve_a)
    qa, qb, qc = _power_basis(*curve_b)
    qx = Polynomial([qc[0], qb[0], qa[0]])
    qy = Polynomial([qc[1], qb[1], qa[1]])

    denom = ax * by - ay * bx
    scale = max(abs(v) for v in (ax, ay, bx, by, 1.0))
    pairs: List[Tuple[float, float]] = []

    if abs(denom) <= 1e-12 * scale * scale:
        # curve_a is a straight segment: intersect with its supporting line
        p0, _, p2 = curve_a
        direction = (p2[0] - p0[0], p2[1] - p0[1])
        length_sq = direction[0] ** 2 + direction[1] ** 2
        if length_sq <= _DENOM_EPS:
            return pairs
        line = -direction[1] * (qx - p0[0]) + direction[0] * (qy - p0[1])
        for t in _real_unit_roots(line):
            px, py = point_at(*curve_b, t)
            s = closest_t(*curve_a, px, py)
            pairs.append((s, t))
        return pairs

    c1 = cx - qx
    c2 = cy - qy
    first = ax * c2 - ay * c1
    second = bx * c2 - by * c1
    # Sylvester resultant: (a1 c2 - a2 c1)^2 - (a1 b2 - a2 b1)(b1 c2 - b2 c1)
    quartic = first * first - denom * second
    for t in _real_unit_roots(quartic):
        # common root of both coordinate quadratics, from a2 f1 - a1 f2 = 0
        s = first(t) / (ay * bx - ax * by)
        if -_T_EPS <= s <= 1.0 + _T_EPS:
            pairs.append((min(max(s, 0.0), 1.0), t))
    return pairs


def curve_intersections(curve_a: ControlPolygon, curve_b: ControlPolygon, tol: float = 1e-6) -> List[Vec2]:
    """Intersection points of two quadratic curves.

    The quartic is only set up when the bounding boxes overlap.
    """

    if not bounding_box(*curve_a).intersects(bounding_box(*curve_b)):
        return []

    points: List[Vec2] = []
    for s, t in resultant_roots(curve_a, curve_b):
        pa = point_at(*curve_a, s)
        pb = point_at(*curve_b, t)
        span = max(1.0, abs(pa[0]), abs(pa[1]))
        if math.hypot(pa[0] - pb[0], pa[1] - pb[1]) > tol * span:
            continue
        if any(math.hypot(pb[0] - q[0], pb[1] - q[1]) <= tol * span for q in points):
            continue
        points.append(pb)
    return points


def line_roots(p0: Vec2, p1: Vec2, p2: Vec2, x1: float, y1: float, x2: float, y2: float) -> Optional[List[float]]:
    """Curve parameters in ``[0, 1]`` where the curve meets the line 1-2.

    Returns ``None`` when the whole curve lies on the line.
    """

    a = y2 - y1
    b = x1 - x2
    c = x2 * y1 - x1 * y2
    pa, pb, pc = _power_basis(p0, p1, p2)
    coef = [
        a * pc[0] + b * pc[1] + c,
        a * pb[0] + b * pb[1],
        a * pa[0] + b * pa[1],
    ]
    scale = max(abs(a), abs(b), _DENOM_EPS) * max(1.0, *(abs(v) for v in (*p0, *p1, *p2)))
    if all(abs(v) <= 1e-12 * scale for v in coef):
        return None
    return _real_unit_roots(Polynomial(coef))


def flatten(p0: Vec2, p1: Vec2, p2: Vec2, tol: float, max_depth: int = 16) -> List[Vec2]:
    """Adaptive De Casteljau flattening; the polyline deviates at most ``tol``."""

    points: List[Vec2] = [p0]

    def recurse(a: Vec2, b: Vec2, c: Vec2, depth: int) -> None:
        # maximum distance between a quadratic and its chord is |a - 2b + c| / 4
        deviation = 0.25 * math.hypot(a[0] - 2.0 * b[0] + c[0], a[1] - 2.0 * b[1] + c[1])
        if deviation <= tol or depth >= max_depth:
            points.append(c)
            return
        left, right = split(a, b, c, 0.5)
        recurse(*left, depth + 1)
        recurse(*right, depth + 1)

    recurse(p0, p1, p2, 0)
    return points


def arc_length_table(p0: Vec2, p1: Vec2, p2: Vec2, size: int) -> np.ndarray:
    """Cumulative chord lengths at ``size`` evenly spaced parameters."""

    size = max(2, int(size))
    pts = sample(p0, p1, p2, np.linspace(0.0, 1.0, size))
    seg = np.hypot(*np.diff(pts, axis=0).T)
    return np.concatenate(([0.0], np.cumsum(seg)))


def t_for_length(lut: np.ndarray, distance: float) -> float:
    """Interpolate the curve parameter at ``distance`` along an arc-length table."""

    n = lut.shape[0]
    idx = int(np.searchsorted(lut, distance, side="right"))
    if idx >= n:
        return 1.0
    if idx <= 0:
        return 0.0
    l1 = float(lut[idx - 1])
    l2 = float(lut[idx])
    dt = 1.0 / (n - 1)
    t1 = (idx - 1) * dt
    if l2 <= l1:
        return min(max(t1, 0.0), 1.0)
    t = t1 + dt * (distance - l1) / (l2 - l1)
    return min(max(t, 0.0), 1.0)


__all__ = [
    "ControlPolygon",
    "DEFAULT_NEWTON_POLICY",
    "NewtonPolicy",
    "arc_length_table",
    "bounding_box",
    "brute_force_distance",
    "closest_t",
    "curve_intersections",
    "derivative_at",
    "distance_sq",
    "flatten",
    "line_roots",
    "point_at",
    "resultant_roots",
    "sample",
    "second_derivative",
    "split",
    "sub_curve",
    "t_at_circle_around_end",
    "t_at_circle_around_start",
    "t_for_length",
]
