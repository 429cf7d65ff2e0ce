import dataclasses
import logging

from flowmap_layout import (
    Model,
    count_flow_intersections,
    count_obstacle_overlaps,
    get_default_layout_config,
    grade,
)


def _cross_model():
    model = Model(dataclasses.replace(get_default_layout_config(), draw_arrows=False))
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    c = model.add_node(50.0, -50.0)
    d = model.add_node(50.0, 50.0)
    model.add_flow(a, b)
    model.add_flow(c, d)
    return model


def test_crossing_flows_are_counted_once():
    assert count_flow_intersections(_cross_model()) == 1


def test_obstacle_overlaps_of_clean_cross():
    assert count_obstacle_overlaps(_cross_model()) == 0


def test_node_on_flow_is_an_obstacle_overlap():
    model = _cross_model()
    model.add_node(25.0, 2.0)

    assert count_obstacle_overlaps(model) == 1


def test_grade_report(caplog):
    with caplog.at_level(logging.INFO, logger="flowmap_layout.layout.grader"):
        report = grade(_cross_model())

    assert (report.flows, report.nodes, report.intersections, report.obstacle_overlaps) == (2, 4, 1, 0)
    assert "1 flow intersections" in report.summary()
    assert any("Layout report" in record.getMessage() for record in caplog.records)


def test_debug_logging_traces_calls(caplog):
    with caplog.at_level(logging.DEBUG, logger="flowmap_layout.layout.grader"):
        count_flow_intersections(_cross_model())

    messages = [record.getMessage() for record in caplog.records]
    assert any(m.startswith("-> count_flow_intersections(") for m in messages)
    assert any(m == "<- count_flow_intersections = 1" for m in messages)
