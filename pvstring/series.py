# -*- coding: utf-8 -*-
"""
This is the PVstring Package.
    pvstring.Series()    # cells in series sharing one current
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

import numpy as np  # arrays
from parse import parse

from pvstring.cell import Cell, CellState
from pvstring.monitor import SolverMonitor, count, not_converged
from pvstring.reduction import Reduction, find, reduce_elements

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesSolver:
    """
    damped search settings of Series.i_from_v
    """

    max_iter: int = 1000
    tol_v: float = 0.1  # [V]
    min_g: float = 0.00001  # [A/V] gain floor

    def __post_init__(self):
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if not self.tol_v > 0.0:
            raise ValueError("tol_v must be positive")
        if not self.min_g >= 0.0:
            raise ValueError("min_g must not be negative")


def damped_search(residual: Callable[[float], float], x0: float, g: float, tol: float, max_iter: int, min_g: float):
    """
    find x with |residual(x)| < tol by stepping x += residual(x) * g

    The gain g is a linearized estimate of dx/dresidual. It is halved each
    time the residual changes sign and never drops below min_g.
    A step that leaves the finite numbers ends the search.
    returns (x, converged)
    """
    x = x0
    r1 = 0.0  # previous residual
    for _ in range(max_iter):
        r = residual(x)
        if abs(r) < tol:
            return x, True
        if r * r1 < 0.0:  # sign change
            g /= 2.0
        g = max(g, min_g)
        x += r * g
        if not math.isfinite(x):  # diverged
            return x, False
        r1 = r
    return x, False


def gain(num: float, den: float) -> float:
    # initial step size num / den; inf when den vanishes, nan for 0 / 0
    if den == 0.0:
        return math.copysign(math.inf, num) if num != 0.0 else math.nan
    return num / den


def parse_index(testkey: str):
    """
    split an indexed key such as 'shading[3]' into ('shading', 3)
    returns (testkey, None) for plain keys
    """
    if testkey.endswith("]") and testkey.find("[") > 0:
        result = parse("{}[{:d}]", testkey)
        if result is None:
            raise ValueError(f"invalid indexed key {testkey}")
        key, ind = result
        return key, ind
    return testkey, None


class Series(object):
    """
    Series class: cells that carry one current, voltages add
    """

    def __init__(self, cells: Iterable[Cell] = (), solver: Optional[SeriesSolver] = None, name: str = "series"):
        self.name = str(name)
        self.cells: List[Cell] = []
        for cell in cells:
            self.append(cell)
        self.set(solver=SeriesSolver() if solver is None else solver)

    def copy(self) -> Series:
        """
        create an independent copy of a Series
        """
        return Series([cell.copy() for cell in self.cells], solver=self.solver, name=self.name)

    def __str__(self):
        strout = self.name + ": <pvstring.series.Series class>"

        strout += "\nmax_iter = {0:d}, tol_v = {1:g} V, min_g = {2:g} A/V".format(self.solver.max_iter, self.solver.tol_v, self.solver.min_g)

        for cell in self.cells:
            strout += "\n\n" + str(cell)

        return strout

    def __repr__(self):
        return "Series " + repr(self.cells)

    def __len__(self):
        return len(self.cells)

    def __getitem__(self, index):
        return self.cells[index]

    def __iter__(self):
        return iter(self.cells)

    def __eq__(self, other):
        if not isinstance(other, Series):
            return NotImplemented
        return self.cells == other.cells and self.solver == other.solver

    def append(self, cell: Cell):
        if not isinstance(cell, Cell):
            raise ValueError("Series elements must be Cell objects")
        self.cells.append(cell)

    def set(self, **kwargs):
        # controlled update of Series attributes
        # cell keys go to every cell, or to one cell e.g. 'shading[3]'

        for testkey, value in kwargs.items():
            key, ind = parse_index(testkey)

            if ind is not None:
                if ind >= len(self.cells):
                    raise IndexError(f"invalid cell index. Set index is {ind} but series size is {len(self.cells)}")
                self.cells[ind].set(**{key: value})
            elif key == "solver":
                if not isinstance(value, SeriesSolver):
                    raise ValueError("solver must be a SeriesSolver")
                self.__dict__[key] = value
            elif key == "name":
                self.__dict__[key] = str(value)
            else:
                for cell in self.cells:
                    cell.set(**{key: value})

    def proplist(self, key: str) -> np.ndarray:
        # array of cell properties
        return np.array([getattr(cell, key) for cell in self.cells])

    @property
    def sum_voc(self) -> float:
        # open-circuit voltage estimate at reference conditions
        return sum(cell.V_oc_ref * cell.Ns for cell in self.cells)

    @property
    def min_il(self) -> float:
        # light current of the limiting cell at reference conditions
        return min((cell.I_L_ref * cell.Np for cell in self.cells), default=0.0)

    def states_uniform_conditions(self, irradiance: float, cell_temp: float) -> List[CellState]:
        return [cell.compute_state(irradiance, cell_temp) for cell in self.cells]

    def states_from_conditions(self, irradiance, cell_temp) -> List[CellState]:
        """
        per-cell states; irradiance and cell_temp are scalars or one value per cell
        """
        irrad = np.broadcast_to(np.asarray(irradiance, dtype=np.float64), (len(self.cells),))
        temps = np.broadcast_to(np.asarray(cell_temp, dtype=np.float64), (len(self.cells),))
        return [cell.compute_state(float(s), float(t)) for cell, s, t in zip(self.cells, irrad, temps)]

    def vs_from_i(self, states: Sequence[CellState], i: float, monitor: Optional[SolverMonitor] = None) -> np.ndarray:
        # voltage of each cell at the shared current
        return np.array([cell.v_from_i(states[k], i, monitor) for k, cell in enumerate(self.cells)])

    def v_from_i(self, states: Sequence[CellState], i: float, monitor: Optional[SolverMonitor] = None) -> float:
        """
        string voltage at current i
        """
        return float(np.sum(self.vs_from_i(states, i, monitor)))

    def i_from_v(self, states: Sequence[CellState], v_str: float, monitor: Optional[SolverMonitor] = None) -> float:
        """
        string current at voltage v_str

        The string Jacobian is only available through inner solves, so a
        damped search starts from the smallest short-circuit current and
        steps with a gain estimated from the reference light current over
        the open-circuit voltage.
        """
        count(monitor, "Series.i_from_v")
        if not self.cells:  # no current through an empty string
            return 0.0

        g = gain(self.min_il, self.sum_voc)
        i0 = min(cell.solve_i(states[k], 0.0, monitor) for k, cell in enumerate(self.cells))

        def dv(i):
            return self.v_from_i(states, i, monitor) - v_str

        i0, converged = damped_search(dv, i0, g, self.solver.tol_v, self.solver.max_iter, self.solver.min_g)

        if not converged:
            not_converged(monitor, "Series.i_from_v", self.name, v_str, self.solver.tol_v, self.solver.max_iter, i0)
        return i0

    def find(self, other: Cell) -> Optional[int]:
        """
        position of the first series-equivalent cell or None
        """
        return find(self.cells, other, Cell.is_series_equivalent)

    def reduce(self) -> Reduction:
        """
        merge series-equivalent cells by summing Ns
        returns (reduced Series, origin_to_reduced, reduced_to_origin)
        """

        def merge(rep, cell):
            rep.set(Ns=rep.Ns + cell.Ns)

        cells, origin_to_reduced, reduced_to_origin = reduce_elements(self.cells, Cell.copy, Cell.is_series_equivalent, merge)
        reduced = Series(cells, solver=self.solver, name=self.name)
        logger.debug("(%s) Series.reduce(): %d -> %d cells", self.name, len(self), len(reduced))
        return Reduction(reduced, origin_to_reduced, reduced_to_origin)

    def is_parallel_equivalent(self, other: Series) -> bool:
        """
        strings that can be merged by summing Np position-wise:
        same length, same cells apart from Np, and proportional Np
        """
        if len(self.cells) != len(other.cells):
            return False
        if not all(a.is_parallel_equivalent(b) for a, b in zip(self.cells, other.cells)):
            return False
        if not self.cells:
            return True
        a0, b0 = self.cells[0].Np, other.cells[0].Np
        return all(a.Np * b0 == b.Np * a0 for a, b in zip(self.cells, other.cells))
