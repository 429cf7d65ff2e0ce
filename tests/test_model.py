import dataclasses

import pytest

from flowmap_layout import (
    FlowPair,
    LayoutConfig,
    Model,
    Point,
    get_default_layout_config,
    layout_config_from_mapping,
    set_default_layout_config,
)


def _triangle_model(config=None):
    model = Model(config)
    a = model.add_node(0.0, 0.0, 4.0)
    b = model.add_node(100.0, 0.0, 1.0)
    c = model.add_node(50.0, 80.0, 1.0)
    model.add_flow(a, b, 10.0)
    model.add_flow(b, c, 5.0)
    return model


def test_node_handles_resolve_points():
    model = Model()
    handle = model.add_node(1.0, 2.0, 3.0)
    point = model.node(handle)

    assert point.as_tuple() == (1.0, 2.0)
    assert point.value == 3.0
    assert model.node_handle(point) == handle
    assert model.node_handle(Point(1.0, 2.0)) is None
    with pytest.raises(KeyError):
        model.node(42)


def test_flows_share_node_points():
    model = _triangle_model()
    first, second = model.flows

    assert first.end is second.start
    assert first.shared_node(second) is first.end
    assert first.opposite_point(first.end) is first.start
    assert second.opposite_point(first.end) is second.end
    assert first.opposite_point(second.end) is None
    assert first.id != second.id


def test_nodes_lists_arena_then_foreign_end_points():
    model = _triangle_model()
    foreign = Point(200.0, 0.0)
    model.add_flow(model.node(0), foreign, 1.0)
    nodes = model.nodes()

    assert len(nodes) == 4
    assert nodes[-1] is foreign


def test_symbol_sizes():
    model = _triangle_model()
    a, b = model.node(0), model.node(1)

    assert model.flow_width_px(10.0) == pytest.approx(20.0)
    assert model.flow_width_px(5.0) == pytest.approx(10.0)
    assert model.node_radius_px(a) == pytest.approx(5.0)
    assert model.node_radius_px(b) == pytest.approx(2.5)
    assert model.node_obstacle_radius(a) == pytest.approx(5.5)
    assert model.arrow_size(10.0) == pytest.approx((32.0, 28.0))


def test_reference_scale_converts_pixels_to_world_units():
    model = _triangle_model(dataclasses.replace(get_default_layout_config(), reference_map_scale=2.0))

    assert model.node_obstacle_radius(model.node(0)) == pytest.approx(2.75)


def test_max_flow_value_uses_pair_components():
    model = Model()
    a = model.add_node(0.0, 0.0)
    b = model.add_node(10.0, 0.0)
    model.add_flow_pair(a, b, 6.0, 2.0)

    assert model.max_flow_value() == 6.0
    assert model.flow_width_px(6.0) == pytest.approx(20.0)


def test_canvas_pads_node_box():
    model = _triangle_model()
    canvas = model.canvas()

    assert (canvas.xmin, canvas.ymin, canvas.xmax, canvas.ymax) == pytest.approx((-10.0, -10.0, 110.0, 90.0))


def test_locks_round_trip_and_length_is_checked():
    model = _triangle_model()
    model.flows[0].locked = True
    locks = model.get_locks()

    assert locks == [True, False]
    model.apply_locks([False, True])
    assert model.get_locks() == [False, True]
    with pytest.raises(ValueError):
        model.apply_locks([True])


def test_sorted_flows_puts_largest_value_first():
    model = _triangle_model()

    assert [f.value for f in model.sorted_flows()] == [10.0, 5.0]


def test_clip_radii_and_arrowhead_clipping():
    model = _triangle_model()
    flow = model.flows[0]

    assert model.start_clip_radius(flow) == pytest.approx(5.5)
    assert model.end_clip_radius(flow) == pytest.approx(3.0)
    assert model.end_clip_radius(flow, clip_arrowhead=True) == pytest.approx(35.0, abs=1e-3)
    flow.end_shortening = 4.0
    assert model.end_clip_radius(flow) == pytest.approx(7.0)


def test_clip_flow_is_cached():
    model = _triangle_model()
    flow = model.flows[0]
    clipped = model.clip_flow(flow)

    assert model.clip_flow(flow) is clipped
    assert clipped.start.x == pytest.approx(5.5, abs=1e-4)
    model.set_control_point(flow, 50.0, 10.0)
    assert model.clip_flow(flow) is not clipped


def test_clipped_curves_of_pair_are_offset_flows():
    model = Model()
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    pair = model.add_flow_pair(a, b, 1.0, 1.0)

    assert isinstance(pair, FlowPair)
    curves = model.clipped_curves(pair)
    assert len(curves) == 2
    assert curves[0].start.y > 0.0 > curves[1].start.y


def test_obstacles_are_node_discs_then_arrowheads():
    model = _triangle_model()
    obstacles = model.obstacles()

    assert len(obstacles) == 5
    assert all(o.node is not None for o in obstacles[:3])
    assert [o.flow for o in obstacles[3:]] == model.flows


def test_flows_overlapping_obstacles():
    model = Model()
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    model.add_node(50.0, 5.0)
    flow = model.add_flow(a, b)

    assert model.flows_overlapping_obstacles() == [flow]
    model.set_control_point(flow, 50.0, -80.0)
    assert model.flows_overlapping_obstacles() == []


def test_mask_clipping_widens_start_radius():
    from shapely.geometry import Point as ShapelyPoint

    config = dataclasses.replace(get_default_layout_config(), clip_flow_starts=True)
    model = _triangle_model(config)
    flow = model.flows[0]
    flow.start_clip_area = ShapelyPoint(0.0, 0.0).buffer(20.0)

    assert model.start_clip_radius(flow) == pytest.approx(20.0, abs=0.5)


def test_default_config_is_copied():
    original = get_default_layout_config()
    try:
        changed = dataclasses.replace(original, n_iterations=7)
        set_default_layout_config(changed)
        changed.n_iterations = 99

        assert get_default_layout_config().n_iterations == 7
        assert Model().config.n_iterations == 7
        assert get_default_layout_config() is not get_default_layout_config()
    finally:
        set_default_layout_config(original)

    assert isinstance(Model().config, LayoutConfig)
    assert Model().config.n_iterations == original.n_iterations


def _single_flow_model():
    model = Model()
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    return model, model.add_flow(a, b, 1.0)


def test_adding_node_refreshes_clipped_flow():
    model, flow = _single_flow_model()
    before = model.clip_flow(flow).start.x

    model.add_node(50.0, 80.0, 100.0)
    after = model.clip_flow(flow).start.x

    assert after < before
    assert after == pytest.approx(model.start_clip_radius(flow), abs=1e-3)


def test_adding_and_removing_flows_refreshes_band_widths():
    model, flow = _single_flow_model()
    assert flow.clipped_bands(model)[0][1] == pytest.approx(10.0)

    heavy = model.add_flow(model.node(1), model.node(0), 10.0)
    assert flow.clipped_bands(model)[0][1] == pytest.approx(1.0)

    model.remove_flow(heavy)
    assert flow.clipped_bands(model)[0][1] == pytest.approx(10.0)

    model.add(heavy)
    assert flow.clipped_bands(model)[0][1] == pytest.approx(1.0)


def test_adding_pair_refreshes_band_widths():
    model, flow = _single_flow_model()
    flow.clipped_bands(model)

    model.add_flow_pair(model.node(0), model.node(1), 4.0, 2.0)

    assert flow.clipped_bands(model)[0][1] == pytest.approx(2.5)


def test_replacing_config_refreshes_band_widths():
    model, flow = _single_flow_model()
    flow.clipped_bands(model)

    model.config = dataclasses.replace(model.config, max_flow_stroke_width_px=40.0)

    assert flow.clipped_bands(model)[0][1] == pytest.approx(20.0)


def test_layout_config_from_mapping():
    config = layout_config_from_mapping({"n_iterations": 12, "draw_arrows": False})

    assert config.n_iterations == 12
    assert not config.draw_arrows
    assert config.nodes_weight == get_default_layout_config().nodes_weight
    assert layout_config_from_mapping(None) == get_default_layout_config()
    with pytest.raises(ValueError, match="no_such_setting"):
        layout_config_from_mapping({"no_such_setting": 1})
