import math

import numpy as np
import pytest

import pvstring as pvs
from conftest import PARAMS2
from pvstring.series import damped_search, gain


@pytest.fixture
def stc_states(string3):
    return string3.states_uniform_conditions(1000.0, 25.0)


def test_series_container(string3, pnl2):
    assert len(string3) == 3
    assert string3[1] == pnl2
    assert [cell.name for cell in string3] == ["pnl0", "pnl2", "pnl2"]
    assert repr(string3) == "Series [{1,1}, {1,1}, {1,1}]"

    string3.append(pnl2.copy(Np=2))
    assert len(string3) == 4
    assert repr(string3) == "Series [{1,1}, {1,1}, {1,1}, {1,2}]"

    with pytest.raises(ValueError):
        string3.append("not a cell")


def test_series_str(string3):
    strout = str(string3)
    assert strout.startswith("string3: <pvstring.series.Series class>")
    assert strout.count("<pvstring.cell.Cell class>") == 3


def test_series_copy(string3):
    twin = string3.copy()
    assert twin == string3

    twin.set(Ns=2)
    assert all(cell.Ns == 1 for cell in string3)
    assert twin != string3


def test_series_setter(string3):
    string3.set(**{"shading[1]": 0.5})
    np.testing.assert_array_equal(string3.proplist("shading"), [0.0, 0.5, 0.0])

    string3.set(R_bypass=0.2)
    np.testing.assert_array_equal(string3.proplist("R_bypass"), [0.2, 0.2, 0.2])

    string3.set(solver=pvs.SeriesSolver(tol_v=0.05), name="renamed")
    assert string3.solver.tol_v == 0.05
    assert string3.name == "renamed"

    with pytest.raises(IndexError, match=r"invalid cell index. Set index is 3 but series size is 3"):
        string3.set(**{"shading[3]": 0.5})

    with pytest.raises(ValueError):
        string3.set(**{"shading[x]": 0.5})

    with pytest.raises(ValueError):
        string3.set(solver=pvs.CellSolver())


def test_states(string3):
    uniform = string3.states_uniform_conditions(800.0, 30.0)
    same = string3.states_from_conditions(800.0, 30.0)
    assert uniform == same

    mixed = string3.states_from_conditions([800.0, 400.0, 800.0], 30.0)
    assert mixed[0] == uniform[0]
    assert mixed[2] == uniform[2]
    np.testing.assert_almost_equal(mixed[1].IL, 0.5 * uniform[1].IL)


def test_additivity(string3, stc_states):
    for i in [0.0, 3.0, 7.0, 8.5, 12.0]:
        single = [cell.v_from_i(state, i) for cell, state in zip(string3, stc_states)]
        np.testing.assert_allclose(string3.vs_from_i(stc_states, i), single)
        np.testing.assert_allclose(string3.v_from_i(stc_states, i), sum(single), rtol=1e-12)


@pytest.mark.parametrize("condition", [(1000.0, 25.0), (600.0, 40.0), (250.0, 10.0)])
def test_round_trip(string3, condition):
    monitor = pvs.SolverMonitor()
    states = string3.states_uniform_conditions(*condition)

    for v in [60.0, 80.0, 100.0]:
        i = string3.i_from_v(states, v, monitor)
        v2 = string3.v_from_i(states, i, monitor)
        assert abs(v2 - v) < string3.solver.tol_v

    assert monitor.events == []
    assert monitor.calls["Series.i_from_v"] == 3


def test_i_from_v_shaded(string3):
    # a shaded module goes into bypass instead of limiting the string
    string3.set(**{"shading[0]": 0.8})
    states = string3.states_uniform_conditions(1000.0, 25.0)

    i = string3.i_from_v(states, 60.0)
    vs = string3.vs_from_i(states, i)

    assert i > string3[0].compute_state(1000.0, 25.0).IL
    assert vs[0] < string3[0].V_bypass
    assert abs(vs.sum() - 60.0) < string3.solver.tol_v


def test_i_from_v_nonconvergence(string3, stc_states):
    monitor = pvs.SolverMonitor()
    string3.set(solver=pvs.SeriesSolver(max_iter=1))

    i = string3.i_from_v(stc_states, 60.0, monitor)

    series_events = [event for event in monitor.events if event.source == "Series.i_from_v"]
    assert len(series_events) == 1
    assert series_events[0].severity == "warning"
    assert series_events[0].value == i
    assert series_events[0].max_iter == 1


def test_damped_search_converges():
    x, converged = damped_search(lambda x: 2.0 - x, 0.0, 0.5, 1e-9, 1000, 1e-5)
    assert converged
    np.testing.assert_almost_equal(x, 2.0)


@pytest.mark.parametrize("min_g", [0.0, 1e-5, 0.01])
def test_damped_search_gain_floor(min_g):
    # residual flips sign on every step: the gain halves down to the floor
    xs = []
    rs = []

    def residual(x):
        r = 1.0 if x < 0.3 else -1.0
        xs.append(x)
        rs.append(r)
        return r

    max_iter = 50
    x, converged = damped_search(residual, 0.0, 1.0, 0.5, max_iter, min_g)

    assert not converged
    assert len(xs) == max_iter
    gains = np.diff(xs + [x]) / np.array(rs)
    assert np.all(gains >= min_g - 1e-12)
    assert np.all(gains <= 1.0 + 1e-12)


def test_damped_search_steep():
    # steep residual makes the undamped step overshoot
    calls = []

    def residual(x):
        calls.append(x)
        return 100.0 * (2.0 - x)

    x, converged = damped_search(residual, 0.0, 1.0, 1e-6, 200, 1e-5)
    assert converged
    np.testing.assert_allclose(x, 2.0, atol=1e-7)
    assert len(calls) <= 200


def test_find(string3, pnl2):
    assert string3.find(pnl2.copy(Ns=5)) == 1
    assert string3.find(pnl2.copy(Np=2)) is None


def test_series_solver_validation():
    with pytest.raises(ValueError):
        pvs.SeriesSolver(max_iter=0)
    with pytest.raises(ValueError):
        pvs.SeriesSolver(tol_v=0.0)
    with pytest.raises(ValueError):
        pvs.SeriesSolver(min_g=-1.0)


def test_damped_search_diverged():
    # an infinite gain leaves the finite numbers on the first step
    calls = []

    def residual(x):
        calls.append(x)
        return 1.0

    x, converged = damped_search(residual, 0.0, math.inf, 0.1, 1000, 1e-5)
    assert not converged
    assert x == math.inf
    assert calls == [0.0]


def test_gain():
    np.testing.assert_almost_equal(gain(9.3, 47.4), 9.3 / 47.4)
    assert gain(9.3, 0.0) == math.inf
    assert gain(-1.0, 0.0) == -math.inf
    assert math.isnan(gain(0.0, 0.0))


def test_i_from_v_zero_voc():
    # a zero open-circuit estimate gives an infinite gain: error event, no exception
    string = pvs.Series([pvs.Cell(**dict(PARAMS2, V_oc_ref=0.0))], name="flat")
    states = string.states_uniform_conditions(1000.0, 25.0)
    monitor = pvs.SolverMonitor()

    i = string.i_from_v(states, 10.0, monitor)

    series_events = [event for event in monitor.events if event.source == "Series.i_from_v"]
    assert not math.isfinite(i)
    assert len(series_events) == 1
    assert series_events[0].severity == "error"
    assert series_events[0].name == "flat"


def test_empty_series():
    monitor = pvs.SolverMonitor()
    string = pvs.Series()

    assert string.i_from_v([], 10.0, monitor) == 0.0
    assert string.v_from_i([], 3.0, monitor) == 0.0
    assert string.sum_voc == 0.0
    assert string.min_il == 0.0
    assert monitor.calls["Series.i_from_v"] == 1
    assert monitor.events == []
