# -*- coding: utf-8 -*-
"""
This is the PVstring Package.
Model PV cells and modules assembled into series strings and parallel arrays
and solve their operating points under given irradiance and temperature.

Single-diode cells are solved by Newton-Raphson in both directions, strings
by a damped search over the shared current, arrays by summing string
currents. Reduction merges identical elements into one representative
with a combined multiplicity, so fewer single-diode solves are needed.

This module contains the classes:
    pvs.Cell()            # single-diode cell or module, Ns x Np sub-cells
    pvs.Series()          # cells in series sharing one current
    pvs.Parallel()        # strings in parallel sharing one voltage
    pvs.SolverMonitor()   # solver call counts and non-convergence events
"""

import pvstring.cell as cell
import pvstring.conversions as conversions
import pvstring.curves as curves
import pvstring.monitor as monitor
import pvstring.parallel as parallel
import pvstring.reduction as reduction
import pvstring.series as series

# expose constructors to package's top level
Cell = cell.Cell
CellSolver = cell.CellSolver
CellState = cell.CellState

Series = series.Series
SeriesSolver = series.SeriesSolver

Parallel = parallel.Parallel
ParallelSolver = parallel.ParallelSolver

SolverMonitor = monitor.SolverMonitor
NonConvergence = monitor.NonConvergence

Reduction = reduction.Reduction
reduce_states = reduction.reduce_states

TK = conversions.TK
Vth = conversions.Vth

voc = curves.voc
isc = curves.isc
iv_curve = curves.iv_curve
mpp = curves.mpp
sweep = curves.sweep
plot_iv = curves.plot_iv

#
VERSION = 0.1

__version__ = VERSION
__release__ = "development"
__all__ = ["cell", "series", "parallel", "reduction", "monitor", "conversions", "curves"]
