import pytest

from flowmap_layout import Flow, Point, RangeboxEnforcer


def _flow():
    return Flow(Point(0.0, 0.0), Point(10.0, 0.0))


def test_range_box_corners():
    corners = RangeboxEnforcer(0.5).range_box(_flow())

    assert [pytest.approx(c) for c in corners] == [(0.0, -5.0), (10.0, -5.0), (10.0, 5.0), (0.0, 5.0)]


def test_contains():
    enforcer = RangeboxEnforcer(0.5)
    flow = _flow()

    assert enforcer.contains(flow, 5.0, 4.9)
    assert not enforcer.contains(flow, 5.0, 5.1)
    assert not enforcer.contains(flow, -0.1, 0.0)


def test_enforce_keeps_inside_points():
    assert RangeboxEnforcer(0.5).enforce(_flow(), 3.0, -2.0) == (3.0, -2.0)


def test_enforce_moves_outside_points_toward_midpoint():
    enforcer = RangeboxEnforcer(0.5)
    flow = _flow()
    x, y = enforcer.enforce(flow, 5.0, 20.0)

    assert (x, y) == pytest.approx((5.0, 5.0))
    x, y = enforcer.enforce(flow, 25.0, 0.0)
    assert (x, y) == pytest.approx((10.0, 0.0))
    assert enforcer.contains(flow, *enforcer.enforce(flow, 40.0, 40.0))


def test_rotated_baseline():
    enforcer = RangeboxEnforcer(0.25)
    flow = Flow(Point(0.0, 0.0), Point(0.0, 8.0))

    assert enforcer.contains(flow, -1.9, 4.0)
    assert not enforcer.contains(flow, 2.1, 4.0)
    assert enforcer.enforce(flow, 10.0, 4.0) == pytest.approx((2.0, 4.0))
