"""Runs a complete layout: iterations, symmetrization, shortening and lock restore."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol

from ..logging_utils import apply_debug_logging
from .grader import LayoutReport, grade
from .layouter import ForceLayouter
from .model import Model
from .shortening import shorten_flows_to_reduce_overlaps

logger = logging.getLogger(__name__)


class LayoutState(Enum):
    IDLE = "idle"
    ITERATING = "iterating"
    SYMMETRIZING = "symmetrizing"
    SHORTENING = "shortening"
    LOCK_RESTORING = "lock_restoring"
    DONE = "done"
    CANCELLED = "cancelled"


class ProgressMonitor(Protocol):
    def report_progress(self, percent: int) -> None:
        ...

    def is_cancelled(self) -> bool:
        ...


@dataclass
class LayoutResult:
    state: LayoutState
    iterations: int
    report: Optional[LayoutReport] = None
    states: List[LayoutState] = field(default_factory=list)


def run_layout(model: Model, *, monitor: Optional[ProgressMonitor] = None, straighten: bool = False) -> LayoutResult:
    """Lay out all unlocked flows of ``model``.

    Cancellation is polled before each iteration and leaves the last
    completed iteration in place. The lock flags found at the start are
    restored on every exit path.
    """

    cfg = model.config
    n = max(0, int(cfg.n_iterations))
    states = [LayoutState.IDLE]
    initial_locks = model.get_locks()
    layouter = ForceLayouter(model)
    completed = 0
    cancelled = False

    logger.info("Starting layout of %d flows with %d iterations", len(model.flows), n)
    try:
        if straighten:
            layouter.straighten_flows()

        states.append(LayoutState.ITERATING)
        canvas = model.canvas()
        iter_before_moving_flows = int(n * cfg.iterations_fraction_before_moving_flows)
        for i in range(n):
            if monitor is not None and monitor.is_cancelled():
                cancelled = True
                logger.info("Layout cancelled after %d iterations", completed)
                break
            iter_before_moving_flows = layouter.layout_iteration(i, iter_before_moving_flows, canvas)
            completed = i + 1
            if monitor is not None:
                monitor.report_progress(round(100 * (i + 1) / n))

        if not cancelled:
            if cfg.symmetrize_flows:
                states.append(LayoutState.SYMMETRIZING)
                layouter.symmetrize_flows()
            if cfg.shorten_flows_to_reduce_overlaps:
                states.append(LayoutState.SHORTENING)
                shorten_flows_to_reduce_overlaps(model)
    finally:
        states.append(LayoutState.LOCK_RESTORING)
        model.apply_locks(initial_locks)

    final = LayoutState.CANCELLED if cancelled else LayoutState.DONE
    states.append(final)
    report = grade(model)
    logger.info("Layout finished in state %s after %d iterations", final.value, completed)
    return LayoutResult(state=final, iterations=completed, report=report, states=states)


apply_debug_logging(globals(), logger=logger, skip={"ProgressMonitor", "LayoutState"})
