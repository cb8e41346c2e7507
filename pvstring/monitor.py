# -*- coding: utf-8 -*-
"""
This is the PVstring Package.
    pvstring.SolverMonitor()   # solver call counts and non-convergence events

Solvers never raise when they run out of iterations. They return their
best-effort value and hand a NonConvergence event to the monitor the caller
passed in (and always to the logger).
"""

from __future__ import annotations

import logging
import math
import sys
from collections import Counter
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

WARNING = "warning"
ERROR = "error"


def is_normal(value: float) -> bool:
    # finite, non-zero and not subnormal
    if not math.isfinite(value):
        return False
    return abs(value) >= sys.float_info.min


def severity(value: float) -> str:
    """
    classify the value returned by a solve that did not converge
    usable but imprecise -> 'warning'
    degenerate (nan, inf, zero, subnormal) -> 'error'
    """
    return WARNING if is_normal(value) else ERROR


@dataclass(frozen=True)
class NonConvergence:
    """
    iteration budget exhausted in one solve call
    """

    severity: str
    source: str  # e.g. 'Cell.solve_i'
    name: str  # name of the element that was solved
    argument: float  # attempted input
    tol: float
    max_iter: int
    value: float  # returned best-effort value

    def __str__(self):
        return "({0}) {1}({2:e}) did not converge (tol={3:e}, max_iter={4}) -> {5}".format(
            self.name, self.source, self.argument, self.tol, self.max_iter, self.value
        )


class SolverMonitor(object):
    """
    Counts solver calls and collects non-convergence events.

    One monitor is passed by the caller down through Parallel, Series and
    Cell solves. It holds no reference to the elements, so it is safe to
    create one per worker process and merge them afterwards.
    """

    def __init__(self, callback: Optional[Callable[[NonConvergence], None]] = None):
        self.callback = callback
        self.calls = Counter()
        self.events: List[NonConvergence] = []

    def __repr__(self):
        return "<SolverMonitor calls={0} warnings={1} errors={2}>".format(dict(self.calls), len(self.warnings), len(self.errors))

    def count(self, source: str):
        self.calls[source] += 1

    def record(self, event: NonConvergence):
        self.events.append(event)
        if self.callback is not None:
            self.callback(event)

    @property
    def warnings(self) -> List[NonConvergence]:
        return [event for event in self.events if event.severity == WARNING]

    @property
    def errors(self) -> List[NonConvergence]:
        return [event for event in self.events if event.severity == ERROR]

    @property
    def cell_calls(self) -> int:
        # total single-diode solves
        return sum(n for source, n in self.calls.items() if source.startswith("Cell."))

    def merge(self, other: SolverMonitor):
        # combine counts and events of another monitor (e.g. from a worker process)
        self.calls.update(other.calls)
        for event in other.events:
            self.record(event)

    def reset(self):
        self.calls.clear()
        self.events.clear()


def count(monitor: Optional[SolverMonitor], source: str):
    if monitor is not None:
        monitor.count(source)


def not_converged(monitor: Optional[SolverMonitor], source: str, name: str, argument: float, tol: float, max_iter: int, value: float) -> NonConvergence:
    """
    build, log and record the event for a solve that exhausted max_iter
    """
    event = NonConvergence(severity(value), source, name, argument, tol, max_iter, value)
    if event.severity == WARNING:
        logger.warning(str(event))
    else:
        logger.error(str(event))
    if monitor is not None:
        monitor.record(event)
    return event
