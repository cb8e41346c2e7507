import pytest

import pvstring as pvs

PARAMS0 = dict(a_ref=1.81, I_o_ref=8.5e-11, I_L_ref=7.4, R_s=0.6, R_sh_ref=600.0, alpha_sc=3.8e-3, V_oc_ref=48.6)

PARAMS1 = dict(
    a_ref=1.94,
    I_o_ref=2.5e-11,
    I_L_ref=9.3,
    R_s=0.4,
    R_sh_ref=600.0,
    alpha_sc=3.8e-3,
    V_oc_ref=47.4,
    V_bypass=-0.65 * 3.0,
    R_bypass=0.1,
    EgRef=1.121,
    dEgdT=-0.0002677,
)

PARAMS2 = dict(a_ref=1.94, I_o_ref=2.5e-11, I_L_ref=9.3, R_s=0.4, R_sh_ref=600.0, alpha_sc=3.8e-3, V_oc_ref=47.4)

CONDITIONS = [(200.0, 60.0), (800.0, 30.0), (600.0, 25.0), (999.0, 45.0)]
VOLTAGES = [40.0 * 6.0, 80.0 * 6.0, 90.0 * 6.0, 110.0 * 6.0, 125.0 * 6.0]
SUM_P = 49475.47731878234


@pytest.fixture
def pnl0():
    return pvs.Cell(**PARAMS0, name="pnl0", Ns=3, Np=1, solver=pvs.CellSolver(max_iter=100, tol_i=0.001, tol_v=0.01))


@pytest.fixture
def pnl1():
    return pvs.Cell(**PARAMS1, name="pnl1", Np=2)


@pytest.fixture
def pnl2():
    return pvs.Cell(**PARAMS2, name="pnl2")


@pytest.fixture
def string10(pnl0, pnl1, pnl2):
    # three parameter sets over ten positions
    cells = [pnl0, pnl1, pnl2, pnl2, pnl0, pnl2, pnl1, pnl0, pnl0, pnl0]
    return pvs.Series([cell.copy() for cell in cells], solver=pvs.SeriesSolver(max_iter=1000, tol_v=1e-1, min_g=0.0), name="string10")


@pytest.fixture
def string3(pnl2):
    # one full-size module and two others, all unshaded
    cell = pvs.Cell(**PARAMS0, name="pnl0")
    return pvs.Series([cell, pnl2.copy(), pnl2.copy()], name="string3")
