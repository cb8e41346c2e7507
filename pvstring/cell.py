# -*- coding: utf-8 -*-
"""
This is the PVstring Package.
pvstring.Cell()
properties and methods for each cell or module
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Optional

from pvstring.conversions import Q_K, T_REF, TK, irradiance_ratio
from pvstring.monitor import SolverMonitor, count, not_converged

logger = logging.getLogger(__name__)

# Cell defaults
V_BYPASS_DEFAULT = -0.65 * 3.0  # [V] three bypass diode drops
R_BYPASS_DEFAULT = 0.1  # [ohm]
EG_DEFAULT = 1.121  # [eV] Si: 1.121, CdTe: 1.475
DEGDT_DEFAULT = -0.0002677  # [1/K] Si: -0.0002677, CdTe: -0.0003


@dataclass(frozen=True)
class CellSolver:
    """
    Newton-Raphson settings of the single-diode solves
    """

    max_iter: int = 100  # max number of iterations
    tol_i: float = 0.001  # [A] current tolerance
    tol_v: float = 0.01  # [V] voltage tolerance

    def __post_init__(self):
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if not (self.tol_i > 0.0 and self.tol_v > 0.0):
            raise ValueError("tolerances must be positive")


@dataclass(frozen=True)
class CellState:
    """
    derived coefficients of one Cell at one (irradiance, temperature)
    """

    Gsh: float  # [S] shunt conductance
    ra: float  # [1/V] reciprocal of the modified ideality factor a(T)
    I0: float  # [A] saturation current
    IL: float  # [A] light current


def _exp(x: float) -> float:
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def _step(num: float, den: float) -> float:
    # newton step; a vanishing derivative ends in nan
    if den == 0.0:
        return math.nan
    return num / den


class Cell(object):
    """
    Class for PV cells (or modules) described by the single-diode model.

    A Cell stands for Ns x Np identical sub-cells combined beforehand:
    Ns scales the computed voltage and Np scales the computed current.
    """

    ATTR = ["a_ref", "I_o_ref", "I_L_ref", "R_s", "R_sh_ref", "alpha_sc", "V_oc_ref", "V_bypass", "R_bypass", "EgRef", "dEgdT", "shading"]
    COUNT_ATTR = ["Ns", "Np"]
    POSITIVE_ATTR = ["a_ref", "R_sh_ref", "R_bypass"]
    NONNEGATIVE_ATTR = ["I_o_ref", "R_s", "shading"]
    ALIASES = {"series_count": "Ns", "parallel_count": "Np", "shading_factor": "shading", "solver_config": "solver"}

    def __init__(
        self,
        a_ref: float,
        I_o_ref: float,
        I_L_ref: float,
        R_s: float,
        R_sh_ref: float,
        alpha_sc: float,
        V_oc_ref: float,
        name: str = "cell",
        V_bypass: float = V_BYPASS_DEFAULT,
        R_bypass: float = R_BYPASS_DEFAULT,
        EgRef: float = EG_DEFAULT,
        dEgdT: float = DEGDT_DEFAULT,
        shading: float = 0.0,
        Ns: int = 1,
        Np: int = 1,
        solver: Optional[CellSolver] = None,
    ):

        self.name = str(name)
        self.set(
            a_ref=a_ref,  #: [V] modified ideality factor at reference conditions
            I_o_ref=I_o_ref,  #: [A] saturation current at reference conditions
            I_L_ref=I_L_ref,  #: [A] light current at reference conditions
            R_s=R_s,  #: [ohm] series resistance
            R_sh_ref=R_sh_ref,  #: [ohm] shunt resistance at reference irradiance
            alpha_sc=alpha_sc,  #: [A/K] short-circuit current temperature coefficient
            V_oc_ref=V_oc_ref,  #: [V] open-circuit voltage at reference conditions
            V_bypass=V_bypass,  #: [V] per sub-cell voltage where the bypass diode conducts
            R_bypass=R_bypass,  #: [ohm] bypass diode resistance
            EgRef=EgRef,  #: [eV] band gap at reference temperature
            dEgdT=dEgdT,  #: [1/K] relative band gap temperature coefficient
            shading=shading,  #: fraction of the irradiance occluded
            Ns=Ns,  #: sub-cells in series
            Np=Np,  #: sub-cells in parallel
            solver=CellSolver() if solver is None else solver,
        )

    def copy(self, **kwargs) -> Cell:
        """
        create an independent copy of a Cell
        optional kwargs are applied to the copy with set()
        """
        tmp = copy.copy(self)  # every attribute is immutable
        if kwargs:
            tmp.set(**kwargs)
        return tmp

    def __str__(self):
        strout = self.name + ": <pvstring.cell.Cell class>"

        strout += "\na_ref = {0:g} V, I_o_ref = {1:.3e} A, I_L_ref = {2:g} A".format(self.a_ref, self.I_o_ref, self.I_L_ref)

        strout += "\nR_s = {0:g} Ω, R_sh_ref = {1:g} Ω, alpha_sc = {2:g} A/K".format(self.R_s, self.R_sh_ref, self.alpha_sc)

        strout += "\nV_oc_ref = {0:g} V, V_bypass = {1:g} V, R_bypass = {2:g} Ω".format(self.V_oc_ref, self.V_bypass, self.R_bypass)

        strout += "\nEgRef = {0:.3f} eV, dEgdT = {1:g} 1/K, shading = {2:g}".format(self.EgRef, self.dEgdT, self.shading)

        strout += "\nNs = {0:d}, Np = {1:d}".format(self.Ns, self.Np)

        return strout

    def __repr__(self):
        return "{{{0},{1}}}".format(self.Ns, self.Np)

    def __eq__(self, other):
        if not isinstance(other, Cell):
            return NotImplemented
        return self.same_params(other) and self.Ns == other.Ns and self.Np == other.Np and self.solver == other.solver

    def set(self, **kwargs):
        # controlled update of Cell attributes

        for testkey, value in kwargs.items():
            key = self.ALIASES.get(testkey, testkey)

            if key in self.ATTR:  # scalar float
                value = float(value)
                if not math.isfinite(value):
                    raise ValueError(f"{key} must be finite")
                if key in self.POSITIVE_ATTR and value <= 0.0:
                    raise ValueError(f"{key} must be positive")
                if key in self.NONNEGATIVE_ATTR and value < 0.0:
                    raise ValueError(f"{key} must not be negative")
                if key == "shading" and value > 1.0:
                    raise ValueError("shading must be between 0 and 1")
                self.__dict__[key] = value
            elif key in self.COUNT_ATTR:  # integers
                if isinstance(value, bool) or int(value) != value or value < 1:
                    raise ValueError(f"{key} must be a positive integer")
                self.__dict__[key] = int(value)
            elif key == "solver":
                if not isinstance(value, CellSolver):
                    raise ValueError("solver must be a CellSolver")
                self.__dict__[key] = value
            elif key == "name":  # strings
                self.__dict__[key] = str(value)
            else:
                raise ValueError(f"invalid class attribute {testkey}")

    def compute_state(self, irradiance: float, cell_temp: float) -> CellState:
        """
        project ambient conditions onto the single-diode coefficients
        irradiance in [W/m2], cell_temp in [C]
        """
        S = irradiance_ratio(irradiance, self.shading)
        Tj = TK(cell_temp)
        Eg = self.EgRef * (1.0 + self.dEgdT * (Tj - T_REF))
        Gsh = S / self.R_sh_ref
        ra = T_REF / (self.a_ref * Tj)
        I0 = self.I_o_ref * (Tj / T_REF) ** 3 * math.exp(Q_K * (self.EgRef / T_REF - Eg / Tj))
        IL = (self.I_L_ref + self.alpha_sc * (Tj - T_REF)) * S
        return CellState(Gsh, ra, I0, IL)

    def states_uniform_conditions(self, irradiance: float, cell_temp: float) -> CellState:
        return self.compute_state(irradiance, cell_temp)

    def _newton_i(self, state: CellState, v: float):
        """
        sub-cell current at sub-cell voltage v, without bypass
        returns (current, converged)
        """
        i = 0.0
        for _ in range(self.solver.max_iter):
            x = v + i * self.R_s
            e = _exp(x * state.ra)
            den = -1.0 - state.I0 * e * self.R_s * state.ra - self.R_s * state.Gsh
            d = _step(state.IL - i - state.I0 * (e - 1.0) - x * state.Gsh, den)
            i -= d
            if abs(d) < self.solver.tol_i:
                return i, True
        return i, False

    def _newton_v(self, state: CellState, i: float):
        """
        sub-cell voltage at sub-cell current i, without bypass
        returns (voltage, converged)
        """
        v = self.V_oc_ref
        for _ in range(self.solver.max_iter):
            x = v + i * self.R_s
            e = _exp(x * state.ra)
            den = -state.I0 * e * state.ra - state.Gsh
            d = _step(state.IL - i - state.I0 * (e - 1.0) - x * state.Gsh, den)
            v -= d
            if abs(d) < self.solver.tol_v:
                return v, True
        return v, False

    def solve_i(self, state: CellState, v_pnl: float, monitor: Optional[SolverMonitor] = None) -> float:
        """
        current of the Cell at terminal voltage v_pnl
        below V_bypass the bypass diode conducts linearly
        """
        count(monitor, "Cell.solve_i")
        v = v_pnl / self.Ns
        i, converged = self._newton_i(state, v)
        if v < self.V_bypass:
            i += (self.V_bypass - v) / self.R_bypass
        i *= self.Np

        if not converged:
            not_converged(monitor, "Cell.solve_i", self.name, v_pnl, self.solver.tol_i, self.solver.max_iter, i)
        return i

    i_from_v = solve_i

    def v_from_i(self, state: CellState, i_pnl: float, monitor: Optional[SolverMonitor] = None) -> float:
        """
        terminal voltage of the Cell at current i_pnl
        the bypass branch is anchored at the current where the diode
        solution reaches V_bypass
        """
        count(monitor, "Cell.v_from_i")
        i = i_pnl / self.Np
        v, converged = self._newton_v(state, i)
        if v < self.V_bypass:
            ir = self.solve_i(state, self.V_bypass * self.Ns, monitor) / self.Np  # onset of the bypass region
            v = self.V_bypass - (i - ir) * self.R_bypass
        v *= self.Ns

        if not converged:
            not_converged(monitor, "Cell.v_from_i", self.name, i_pnl, self.solver.tol_v, self.solver.max_iter, v)
        return v

    def same_params(self, other: Cell) -> bool:
        # all physical parameters equal
        return all(getattr(self, key) == getattr(other, key) for key in self.ATTR)

    def is_series_equivalent(self, other: Cell) -> bool:
        return self.same_params(other) and self.Np == other.Np

    def is_parallel_equivalent(self, other: Cell) -> bool:
        return self.same_params(other) and self.Ns == other.Ns
