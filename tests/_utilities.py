import numpy as np

from cgmres.utilities import approx_derivative
from cgmres.problem import LinearQuadraticProblem
from cgmres.saturation import ControlInputSaturationSequence


def compare_finite_difference(x, jac, fun, method='3-point',
                              rtol=1e-06, atol=1e-12):
    expected_jac = approx_derivative(fun, x, method=method)
    np.testing.assert_allclose(jac, expected_jac, rtol=rtol, atol=atol)


def make_LQ_params(n_states, n_controls, seed=None):
    """Generate random dynamics matrices `A` and `B` of specified size and
    corresponding positive definite cost matrices `Q` and `R`."""
    rng = np.random.default_rng(seed)

    A = rng.normal(scale=1/2, size=(n_states, n_states))
    B = rng.normal(scale=1/2, size=(n_states, n_controls))
    Q = rng.normal(scale=1/2, size=(n_states, n_states))
    Q = Q.T @ Q + 1e-02 * np.eye(n_states)
    R = rng.normal(scale=1/2, size=(n_controls, n_controls))
    R = R.T @ R + 1e-02 * np.eye(n_controls)

    xf = rng.uniform(size=(n_states,)) - 0.5
    uf = rng.uniform(size=(n_controls,)) - 0.5

    return A, B, Q, R, xf, uf


def make_double_integrator():
    """Double integrator `ddx = u` driven toward the origin."""
    A = np.array([[0., 1.], [0., 0.]])
    B = np.array([[0.], [1.]])
    Q = np.diag([1., 0.1])
    R = np.array([[0.1]])
    return LinearQuadraticProblem(A=A, B=B, Q=Q, R=R)


def make_saturation(n_controls, lb=-1., ub=1., weight=1e-02, seed=None):
    """Saturate every control to `[lb, ub]` with a random weight jitter."""
    rng = np.random.default_rng(seed)
    saturation = ControlInputSaturationSequence()
    for i in range(n_controls):
        saturation.append(i, lb, ub, weight * (1. + rng.uniform()))
    return saturation
