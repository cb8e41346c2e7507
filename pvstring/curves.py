# -*- coding: utf-8 -*-
"""
This is the PVstring Package.
    operating points, I-V curves and condition sweeps of Cell, Series and Parallel

Every function takes an element and the states computed for it, so the
same code serves all three levels of the hierarchy.
"""

from __future__ import annotations

import logging
import math
import multiprocessing as mp
from time import time
from typing import Iterable, List, Optional, Tuple, Union

import matplotlib.pyplot as plt  # plotting
import numpy as np  # arrays
import pandas as pd  # data frames
from tqdm import tqdm

from pvstring.cell import Cell
from pvstring.monitor import SolverMonitor
from pvstring.parallel import Parallel
from pvstring.series import Series

logger = logging.getLogger(__name__)

Element = Union[Cell, Series, Parallel]

SWEEP_COLUMNS = ["irradiance", "temperature", "v_target", "i", "v", "p"]


def voc(element: Element, states, monitor: Optional[SolverMonitor] = None) -> float:
    return element.v_from_i(states, 0.0, monitor)


def isc(element: Element, states, monitor: Optional[SolverMonitor] = None) -> float:
    return element.i_from_v(states, 0.0, monitor)


def iv_curve(element: Element, states, pnts: int = 101, monitor: Optional[SolverMonitor] = None) -> pd.DataFrame:
    """
    current and power on a voltage grid from short circuit to open circuit
    """
    Voc = voc(element, states, monitor)
    V = np.linspace(0.0, Voc, pnts)
    current = np.array([element.i_from_v(states, v, monitor) for v in V])
    return pd.DataFrame({"V": V, "I": current, "P": V * current})


def mpp(element: Element, states, pnts: int = 11, monitor: Optional[SolverMonitor] = None, timer: bool = False) -> dict:
    """
    maximum power point by successive refinement of a voltage grid
    returns dict with Voc, Isc, Vmp, Imp, Pmp, FF
    """
    ts = time()
    Voc = voc(element, states, monitor)
    Isc = isc(element, states, monitor)

    if not (Voc > 0.0 and Isc > 0.0):  # dark or degenerate
        Pmp = Vmp = Imp = FF = np.nan
    else:
        Vlo = 0.0
        Vhi = Voc
        for _ in range(5):
            Vtemp = np.linspace(Vlo, Vhi, pnts)
            Itemp = np.array([element.i_from_v(states, v, monitor) for v in Vtemp])
            Ptemp = Vtemp * Itemp
            nmax = int(np.argmax(Ptemp))
            Vlo = Vtemp[max(0, (nmax - 1))]
            Vhi = Vtemp[min((nmax + 1), (pnts - 1))]

        Pmp = float(Ptemp[nmax])
        Vmp = float(Vtemp[nmax])
        Imp = float(Itemp[nmax])
        FF = abs(Pmp / (Voc * Isc))

    mpp_dict = {"Voc": Voc, "Isc": Isc, "Vmp": Vmp, "Imp": Imp, "Pmp": Pmp, "FF": FF}

    if timer:
        logger.info("(%s) MPP %2.4f s", element.name, time() - ts)

    return mpp_dict


def _sweep_condition(element: Element, condition: Tuple[float, float], voltages: List[float], monitor: Optional[SolverMonitor]) -> list:
    # round trip v_target -> i -> v for one (irradiance, temperature)
    irradiance, temperature = condition
    states = element.states_uniform_conditions(irradiance, temperature)
    rows = []
    for v_target in voltages:
        i = element.i_from_v(states, v_target, monitor)
        v = element.v_from_i(states, i, monitor)
        rows.append((irradiance, temperature, v_target, i, v, v * i))
    return rows


def _sweep_async(element: Element, condition: Tuple[float, float], voltages: List[float]):
    # worker process: own monitor, returned for merging
    monitor = SolverMonitor()
    rows = _sweep_condition(element, condition, voltages, monitor)
    return rows, monitor


def sweep(
    element: Element,
    conditions: Iterable[Tuple[float, float]],
    voltages: Iterable[float],
    monitor: Optional[SolverMonitor] = None,
    processes: Optional[int] = None,
    progress: bool = False,
) -> pd.DataFrame:
    """
    Solve every (irradiance, temperature) condition at every target voltage.

    Args:
        element (Cell, Series or Parallel): topology to solve.
        conditions (Iterable[Tuple[float, float]]): (irradiance [W/m2], cell temperature [C]) pairs.
        voltages (Iterable[float]): target voltages [V].
        monitor (SolverMonitor, optional): receives call counts and non-convergence events.
        processes (int, optional): farm the conditions out to this many worker processes.
        progress (bool, optional): show a tqdm progress bar.

    Returns:
        pd.DataFrame: columns irradiance, temperature, v_target, i, v, p with one row per
        condition and target voltage.
    """
    conditions = [(float(s), float(t)) for s, t in conditions]
    voltages = [float(v) for v in voltages]
    rows = []

    with tqdm(total=len(conditions), leave=True, disable=not progress) as pbar:
        if processes is not None and processes > 1:
            pbar.set_description(f"Sweeping {element.name} with {processes} processes")

            with mp.Pool(processes) as pool:
                jobs = [pool.apply_async(_sweep_async, args=(element.copy(), condition, voltages)) for condition in conditions]
                for job in jobs:
                    chunk, worker_monitor = job.get()
                    rows.extend(chunk)
                    if monitor is not None:
                        monitor.merge(worker_monitor)
                    pbar.update(1)

        else:
            pbar.set_description(f"Sweeping {element.name}")

            for condition in conditions:
                rows.extend(_sweep_condition(element, condition, voltages, monitor))
                pbar.update(1)

    return pd.DataFrame(rows, columns=SWEEP_COLUMNS)


def plot_iv(element: Element, states, pnts: int = 101, ax=None, monitor: Optional[SolverMonitor] = None):
    """
    plot the I-V curve and, on a twin axis, the P-V curve with the MPP marked
    returns the I-V axes
    """
    curve = iv_curve(element, states, pnts=pnts, monitor=monitor)

    if ax is None:
        fig, ax = plt.subplots()
    ax.axhline(0, color="gray")
    ax.axvline(0, color="gray")
    ax.set_title(element.name + " I-V")
    ax.set_xlabel("Voltage (V)")
    ax.set_ylabel("Current (A)")
    ax.plot(curve["V"], curve["I"], marker=".", ls="-", label="light")

    axr = ax.twinx()
    axr.set_ylabel("Power (W)", c="cyan")
    axr.plot(curve["V"], curve["P"], ls="--", c="cyan", label="power")

    nmax = int(np.nanargmax(curve["P"].to_numpy()))
    if math.isfinite(curve["P"].iloc[nmax]):
        axr.plot(curve["V"].iloc[nmax], curve["P"].iloc[nmax], marker="o", fillstyle="none", ms=12, c="black")

    return ax
