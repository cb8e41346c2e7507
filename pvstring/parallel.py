# -*- coding: utf-8 -*-
"""
This is the PVstring Package.
    pvstring.Parallel()    # strings in parallel sharing one voltage
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np  # arrays

from pvstring.cell import CellState
from pvstring.monitor import SolverMonitor, count, not_converged
from pvstring.reduction import Reduction, find, reduce_elements
from pvstring.series import Series, damped_search, gain, parse_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParallelSolver:
    """
    damped search settings of Parallel.v_from_i
    """

    max_iter: int = 1000
    tol_i: float = 0.1  # [A]
    min_g: float = 0.00001  # [V/A] gain floor

    def __post_init__(self):
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if not self.tol_i > 0.0:
            raise ValueError("tol_i must be positive")
        if not self.min_g >= 0.0:
            raise ValueError("min_g must not be negative")


class Parallel(object):
    """
    Parallel class: strings that see one voltage, currents add
    states of a Parallel are one list of CellState per string
    """

    def __init__(self, strings: Iterable[Series] = (), solver: Optional[ParallelSolver] = None, name: str = "parallel"):
        self.name = str(name)
        self.strings: List[Series] = []
        for string in strings:
            self.append(string)
        self.set(solver=ParallelSolver() if solver is None else solver)

    def copy(self) -> Parallel:
        """
        create an independent copy of a Parallel
        """
        return Parallel([string.copy() for string in self.strings], solver=self.solver, name=self.name)

    def __str__(self):
        strout = self.name + ": <pvstring.parallel.Parallel class>"

        strout += "\nmax_iter = {0:d}, tol_i = {1:g} A, min_g = {2:g} V/A".format(self.solver.max_iter, self.solver.tol_i, self.solver.min_g)

        for string in self.strings:
            strout += "\n" + repr(string)

        return strout

    def __repr__(self):
        return "Parallel " + repr(self.strings)

    def __len__(self):
        return len(self.strings)

    def __getitem__(self, index):
        return self.strings[index]

    def __iter__(self):
        return iter(self.strings)

    def __eq__(self, other):
        if not isinstance(other, Parallel):
            return NotImplemented
        return self.strings == other.strings and self.solver == other.solver

    def append(self, string: Series):
        if not isinstance(string, Series):
            raise ValueError("Parallel elements must be Series objects")
        self.strings.append(string)

    def set(self, **kwargs):
        # controlled update of Parallel attributes
        # other keys go to every string, or to one string e.g. 'shading[1]'

        for testkey, value in kwargs.items():
            key, ind = parse_index(testkey)

            if ind is not None:
                if ind >= len(self.strings):
                    raise IndexError(f"invalid string index. Set index is {ind} but parallel size is {len(self.strings)}")
                self.strings[ind].set(**{key: value})
            elif key == "solver":
                if not isinstance(value, ParallelSolver):
                    raise ValueError("solver must be a ParallelSolver")
                self.__dict__[key] = value
            elif key == "name":
                self.__dict__[key] = str(value)
            else:
                for string in self.strings:
                    string.set(**{key: value})

    def states_uniform_conditions(self, irradiance: float, cell_temp: float) -> List[List[CellState]]:
        return [string.states_uniform_conditions(irradiance, cell_temp) for string in self.strings]

    def is_from_v(self, states: Sequence[Sequence[CellState]], v: float, monitor: Optional[SolverMonitor] = None) -> np.ndarray:
        # current of each string at the shared voltage
        return np.array([string.i_from_v(states[k], v, monitor) for k, string in enumerate(self.strings)])

    def i_from_v(self, states: Sequence[Sequence[CellState]], v: float, monitor: Optional[SolverMonitor] = None) -> float:
        """
        array current at voltage v
        """
        return float(np.sum(self.is_from_v(states, v, monitor)))

    def v_from_i(self, states: Sequence[Sequence[CellState]], i: float, monitor: Optional[SolverMonitor] = None) -> float:
        """
        array voltage at current i
        damped search in voltage starting from the lowest open-circuit voltage
        """
        count(monitor, "Parallel.v_from_i")
        if not self.strings:  # no voltage across an empty array
            return 0.0

        g = gain(max(string.sum_voc for string in self.strings), sum(string.min_il for string in self.strings))
        v0 = min(string.v_from_i(states[k], 0.0, monitor) for k, string in enumerate(self.strings))

        def di(v):
            return self.i_from_v(states, v, monitor) - i

        v0, converged = damped_search(di, v0, g, self.solver.tol_i, self.solver.max_iter, self.solver.min_g)

        if not converged:
            not_converged(monitor, "Parallel.v_from_i", self.name, i, self.solver.tol_i, self.solver.max_iter, v0)
        return v0

    def find(self, other: Series) -> Optional[int]:
        """
        position of the first parallel-equivalent string or None
        """
        return find(self.strings, other, Series.is_parallel_equivalent)

    def reduce(self) -> Reduction:
        """
        reduce every string, then merge parallel-equivalent strings
        by summing Np cell by cell
        returns (reduced Parallel, origin_to_reduced, reduced_to_origin)
        """

        def prepare(string):
            return string.reduce().reduced

        def merge(rep, string):
            for rep_cell, cell in zip(rep.cells, string.cells):
                rep_cell.set(Np=rep_cell.Np + cell.Np)

        strings, origin_to_reduced, reduced_to_origin = reduce_elements(self.strings, prepare, Series.is_parallel_equivalent, merge)
        reduced = Parallel(strings, solver=self.solver, name=self.name)
        logger.debug("(%s) Parallel.reduce(): %d -> %d strings", self.name, len(self), len(reduced))
        return Reduction(reduced, origin_to_reduced, reduced_to_origin)
