import dataclasses

import pytest

from flowmap_layout import Model, get_default_layout_config, shorten_flows_to_reduce_overlaps
from flowmap_layout.layout.shortening import _single_flows


def _arrow_into_line_model(**overrides):
    """A horizontal flow whose arrowhead ends on a vertical flow."""

    model = Model(dataclasses.replace(get_default_layout_config(), **overrides))
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    c = model.add_node(95.0, -50.0)
    d = model.add_node(95.0, 50.0)
    horizontal = model.add_flow(a, b)
    vertical = model.add_flow(c, d)
    return model, horizontal, vertical


def _shortenings(model):
    return [(f.start_shortening, f.end_shortening) for f in model.flows]


def test_arrowhead_on_other_flow_is_shortened():
    model, horizontal, vertical = _arrow_into_line_model()

    count = shorten_flows_to_reduce_overlaps(model)

    assert count == 1
    assert horizontal.end_shortening == pytest.approx(10.0)
    assert horizontal.start_shortening == 0.0
    assert (vertical.start_shortening, vertical.end_shortening) == (0.0, 0.0)


def test_shortening_is_idempotent():
    model, _, _ = _arrow_into_line_model()

    shorten_flows_to_reduce_overlaps(model)
    first = _shortenings(model)
    shorten_flows_to_reduce_overlaps(model)

    assert _shortenings(model) == first


def test_shortening_respects_budget():
    model, horizontal, _ = _arrow_into_line_model(max_shortening_px=5.0)

    assert shorten_flows_to_reduce_overlaps(model) == 0
    assert horizontal.end_shortening == 0.0


def test_separate_flows_are_not_shortened():
    model = Model()
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    c = model.add_node(0.0, 100.0)
    d = model.add_node(100.0, 100.0)
    model.add_flow(a, b)
    model.add_flow(c, d)

    assert shorten_flows_to_reduce_overlaps(model) == 0
    assert _shortenings(model) == [(0.0, 0.0), (0.0, 0.0)]


def test_previous_shortenings_are_recomputed():
    model = Model()
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    flow = model.add_flow(a, b)
    flow.end_shortening = 7.0

    shorten_flows_to_reduce_overlaps(model)

    assert flow.end_shortening == 0.0


def test_flow_pairs_are_shortened_through_offset_flows():
    model = Model()
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    c = model.add_node(50.0, 100.0)
    pair = model.add_flow_pair(a, b, 2.0, 1.0)
    model.add_flow(a, c, 1.0)

    shorten_flows_to_reduce_overlaps(model)
    first = (pair.start_shortening, pair.end_shortening, pair.start_shortening2, pair.end_shortening2)
    shorten_flows_to_reduce_overlaps(model)

    assert (pair.start_shortening, pair.end_shortening, pair.start_shortening2, pair.end_shortening2) == first
    assert all(0.0 <= s <= 20.0 for s in first)


def test_unknown_flow_types_are_rejected():
    with pytest.raises(TypeError, match="str"):
        _single_flows(Model(), "not a flow")
