import dataclasses

import pytest

from flowmap_layout import LayoutState, Model, get_default_layout_config, run_layout


class _Monitor:
    def __init__(self, cancel_after=None):
        self.progress = []
        self.cancel_after = cancel_after

    def report_progress(self, percent):
        self.progress.append(percent)

    def is_cancelled(self):
        return self.cancel_after is not None and len(self.progress) >= self.cancel_after


def _model(**overrides):
    model = Model(dataclasses.replace(get_default_layout_config(), **overrides))
    a = model.add_node(0.0, 0.0)
    b = model.add_node(100.0, 0.0)
    c = model.add_node(50.0, 70.0)
    model.add_flow(a, b, 2.0, (50.0, 10.0))
    model.add_flow(b, c, 1.0)
    model.add_flow(c, a, 1.0, (10.0, 40.0))
    return model


def test_full_run_visits_all_states_and_reports_progress():
    model = _model(n_iterations=10, move_flows_overlapping_obstacles=False)
    monitor = _Monitor()

    result = run_layout(model, monitor=monitor)

    assert result.state is LayoutState.DONE
    assert result.iterations == 10
    assert monitor.progress == [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
    assert result.states == [
        LayoutState.IDLE,
        LayoutState.ITERATING,
        LayoutState.SYMMETRIZING,
        LayoutState.SHORTENING,
        LayoutState.LOCK_RESTORING,
        LayoutState.DONE,
    ]
    assert result.report is not None
    assert result.report.flows == 3


def test_disabled_passes_are_skipped():
    model = _model(n_iterations=3, symmetrize_flows=False, shorten_flows_to_reduce_overlaps=False)

    result = run_layout(model)

    assert LayoutState.SYMMETRIZING not in result.states
    assert LayoutState.SHORTENING not in result.states
    assert all(f.start_shortening == 0.0 and f.end_shortening == 0.0 for f in model.flows)


def test_cancellation_keeps_completed_iterations():
    model = _model(n_iterations=10, move_flows_overlapping_obstacles=False)
    monitor = _Monitor(cancel_after=3)

    result = run_layout(model, monitor=monitor)

    assert result.state is LayoutState.CANCELLED
    assert result.iterations == 3
    assert monitor.progress == [10, 20, 30]
    assert LayoutState.SYMMETRIZING not in result.states
    assert result.states[-2:] == [LayoutState.LOCK_RESTORING, LayoutState.CANCELLED]


def test_locks_are_restored_exactly():
    model = _model(n_iterations=20)
    locked = model.flows[0]
    locked.locked = True
    before = locked.ctrl
    locks = model.get_locks()

    run_layout(model)

    assert model.get_locks() == locks
    assert locked.ctrl == before


def test_locks_are_restored_after_errors():
    model = _model(n_iterations=5)
    model.flows[1].locked = True
    locks = model.get_locks()

    class _Failing(_Monitor):
        def report_progress(self, percent):
            for flow in model.flows:
                flow.locked = True
            raise RuntimeError("monitor failed")

    with pytest.raises(RuntimeError):
        run_layout(model, monitor=_Failing())

    assert model.get_locks() == locks


def test_zero_iterations_still_finishes():
    model = _model(n_iterations=0)
    monitor = _Monitor()

    result = run_layout(model, monitor=monitor)

    assert result.iterations == 0
    assert result.state is LayoutState.DONE
    assert monitor.progress == []


def test_straighten_before_layout():
    model = _model(n_iterations=0, symmetrize_flows=False, shorten_flows_to_reduce_overlaps=False)

    run_layout(model, straighten=True)

    for flow in model.flows:
        assert flow.ctrl == flow.baseline_midpoint
