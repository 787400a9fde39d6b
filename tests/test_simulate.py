import numpy as np
import pytest

from cgmres.controls import ConstantControl
from cgmres.simulate import simulate, save_simulation
from cgmres.utilities import load_data

from ._utilities import make_double_integrator


@pytest.mark.parametrize('t_span', [(0., 1.), (2., 2.5)])
def test_simulate_constant_control(t_span):
    """The double integrator under a constant control follows a parabola."""
    ocp = make_double_integrator()
    controller = ConstantControl([0.5])
    x0 = np.array([1., -1.])
    dt = 0.05

    sim, status = simulate(ocp, controller, x0, t_span, dt, verbose=False)

    n_steps = int(np.round((t_span[1] - t_span[0]) / dt))
    assert status == 0
    assert sim['t'].shape == (n_steps,)
    assert sim['x'].shape == (2, n_steps)
    assert sim['u'].shape == (1, n_steps)
    assert sim['error'].shape == (n_steps,)
    assert sim['comp_time'].shape == (n_steps,)

    # Constant controllers don't report an optimality error
    assert np.all(np.isnan(sim['error']))
    np.testing.assert_array_equal(sim['u'], 0.5)

    s = sim['t'] - t_span[0]
    np.testing.assert_allclose(sim['t'], t_span[0] + dt * np.arange(n_steps))
    np.testing.assert_allclose(sim['x'][0], 1. - s + 0.25 * s ** 2,
                               rtol=1e-06, atol=1e-06)
    np.testing.assert_allclose(sim['x'][1], -1. + 0.5 * s,
                               rtol=1e-06, atol=1e-06)


def test_bad_time_span():
    ocp = make_double_integrator()
    with pytest.raises(ValueError):
        simulate(ocp, ConstantControl([0.]), [0., 0.], (1., 0.), 0.1,
                 verbose=False)
    with pytest.raises(ValueError):
        simulate(ocp, ConstantControl([0.]), [0., 0.], (0., 1.), -0.1,
                 verbose=False)
    with pytest.raises(ValueError):
        simulate(ocp, ConstantControl([0.]), [0., 0., 0.], (0., 1.), 0.1,
                 verbose=False)


def test_save_simulation(tmp_path):
    ocp = make_double_integrator()
    sim, _ = simulate(ocp, ConstantControl([-1.]), [0., 1.], (0., 0.5), 0.1,
                      verbose=False)

    filepath = tmp_path / 'double_integrator.csv'
    save_simulation(sim, filepath)
    loaded = load_data(filepath)

    for key in ('t', 'x', 'u', 'comp_time'):
        np.testing.assert_allclose(loaded[key], sim[key])
    assert np.all(np.isnan(loaded['error']))


class _CountingControl(ConstantControl):
    """Holds a command equal to the number of updates so far, and reports the
    time and state it was queried at as its error."""
    def __init__(self):
        super().__init__([0.])
        self.queries = []

    def update(self, t, dt, x):
        self.u = self.u + 1.
        return self.u.copy()

    def get_error(self, t, x):
        self.queries.append((t, np.copy(x), self.u[0]))
        return self.u[0]


def test_update_order():
    """The held command is applied over each sampling period and the error is
    recorded before the update, at the sampling instant and its state."""
    ocp = make_double_integrator()
    controller = _CountingControl()
    dt = 0.1
    sim, status = simulate(ocp, controller, [0., 0.], (0., 1.), dt,
                           verbose=False)

    assert status == 0
    np.testing.assert_array_equal(sim['u'][0], np.arange(10))
    np.testing.assert_array_equal(sim['error'], np.arange(10))
    for k, (t, x, u) in enumerate(controller.queries):
        assert t == pytest.approx(sim['t'][k])
        np.testing.assert_array_equal(x, sim['x'][:, k])
        assert u == k

    # Velocity increases by the held command over each period
    np.testing.assert_allclose(np.diff(sim['x'][1]), dt * np.arange(9),
                               atol=1e-08)
