import numpy as np
import pytest

from cgmres.problem import (LinearQuadraticProblem, NMPCProblem,
                            ProblemParameters)

from ._utilities import make_LQ_params, compare_finite_difference


rng = np.random.default_rng(123)


def _make_indefinite_matrices(n, strict=True):
    """Generate random non-square and non-positive-definite cost matrices."""
    if n == 1:
        bad_mats = [np.array([[-1e-14]]),
                    rng.normal(size=(1, 2)),
                    rng.normal(size=(2, 1))]
    else:
        bad_mats = [rng.normal(size=(n, n)),
                    rng.normal(size=(n+1, n)),
                    rng.normal(size=(n, 1))]
        for i in (1, 2):
            bad_mats[i] = bad_mats[i] @ bad_mats[i].T
        bad_mats[-1] -= 1e-10 * np.eye(n)

    if strict:
        bad_mats.append(np.zeros((n, n)))

    return bad_mats


@pytest.mark.parametrize('n_states', [1, 2])
@pytest.mark.parametrize('n_controls', [1, 2])
def test_init(n_states, n_controls):
    """Test that the LQ problem can be initialized and allows parameters to be
    updated as expected."""
    A, B, Q, R, xf, uf = make_LQ_params(n_states, n_controls, seed=1)
    ocp = LinearQuadraticProblem(A=A, B=B, Q=Q, R=R)

    assert ocp.n_states == n_states
    assert ocp.n_controls == n_controls
    assert ocp.n_constraints == 0
    assert ocp.n_control_and_constraints == n_controls
    assert isinstance(ocp.parameters, ProblemParameters)
    assert str(ocp) == 'LinearQuadraticProblem'

    # Defaults are broadcast and the terminal weight copies Q
    np.testing.assert_array_equal(ocp.parameters.xf, np.zeros(n_states))
    np.testing.assert_array_equal(ocp.parameters.uf, np.zeros(n_controls))
    np.testing.assert_allclose(ocp.parameters.Pf, Q, atol=1e-12)

    ocp.parameters.update(xf=xf, uf=uf)
    np.testing.assert_allclose(ocp.parameters.xf, xf, atol=1e-12)
    np.testing.assert_allclose(ocp.parameters.uf, uf, atol=1e-12)

    # Updating Q without an explicit Pf keeps them in sync
    ocp.parameters.update(Q=2. * Q)
    np.testing.assert_allclose(ocp.parameters.Pf, 2. * Q, atol=1e-12)

    # Check that updating with nothing doesn't make any errors
    ocp.parameters.update()

    # Check that a new instance of the problem doesn't carry old parameters
    ocp2 = LinearQuadraticProblem(A=A + 1., B=B, Q=Q, R=R, Pf=3. * Q)
    np.testing.assert_allclose(ocp.parameters.A, A, atol=1e-12)
    np.testing.assert_allclose(ocp2.parameters.A, A + 1., atol=1e-12)
    np.testing.assert_allclose(ocp2.parameters.Pf, 3. * Q, atol=1e-12)


def test_missing_parameters():
    A, B, Q, R, xf, uf = make_LQ_params(2, 1)
    with pytest.raises(RuntimeError, match='R is required'):
        LinearQuadraticProblem(A=A, B=B, Q=Q)


@pytest.mark.parametrize('n_states', [1, 2])
@pytest.mark.parametrize('n_controls', [1, 2])
def test_bad_cost_matrices(n_states, n_controls):
    A, B, Q, R, xf, uf = make_LQ_params(n_states, n_controls)

    for bad_Q in _make_indefinite_matrices(n_states, strict=False):
        with pytest.raises(ValueError, match='State cost matrix Q'):
            LinearQuadraticProblem(A=A, B=B, Q=bad_Q, R=R)
        with pytest.raises(ValueError, match='State cost matrix Pf'):
            LinearQuadraticProblem(A=A, B=B, Q=Q, R=R, Pf=bad_Q)

    for bad_R in _make_indefinite_matrices(n_controls):
        with pytest.raises(ValueError, match='Control cost matrix R'):
            LinearQuadraticProblem(A=A, B=B, Q=Q, R=bad_R)


def test_bad_dynamics_matrices():
    A, B, Q, R, xf, uf = make_LQ_params(3, 2)
    with pytest.raises(ValueError, match='State Jacobian matrix A'):
        LinearQuadraticProblem(A=A[:2], B=B, Q=Q, R=R)
    with pytest.raises(ValueError, match='Control Jacobian matrix B'):
        LinearQuadraticProblem(A=A, B=B[:2], Q=Q, R=R)
    with pytest.raises(ValueError):
        LinearQuadraticProblem(A=A, B=B, Q=Q, R=R, xf=np.zeros(2))


@pytest.mark.parametrize('n_states', [1, 3])
@pytest.mark.parametrize('n_controls', [1, 2])
def test_hamiltonian_derivatives(n_states, n_controls):
    """Compare the analytic Hamiltonian and terminal cost gradients to finite
    differences."""
    A, B, Q, R, xf, uf = make_LQ_params(n_states, n_controls, seed=2)
    ocp = LinearQuadraticProblem(A=A, B=B, Q=Q, R=R, xf=xf, uf=uf, Pf=2. * Q)

    t = rng.uniform()
    x = rng.normal(size=n_states)
    u = rng.normal(size=n_controls)
    lmd = rng.normal(size=n_states)

    np.testing.assert_allclose(ocp.dynamics(t, x, u),
                               A @ (x - xf) + B @ (u - uf), atol=1e-12)

    compare_finite_difference(u, ocp.hu(t, x, u, lmd),
                              lambda u: ocp.hamiltonian(t, x, u, lmd),
                              rtol=1e-05, atol=1e-08)
    compare_finite_difference(x, ocp.hx(t, x, u, lmd),
                              lambda x: ocp.hamiltonian(t, x, u, lmd),
                              rtol=1e-05, atol=1e-08)
    compare_finite_difference(x, ocp.phix(t, x),
                              lambda x: ocp.terminal_cost(t, x),
                              rtol=1e-05, atol=1e-08)

    # The finite difference defaults of the base class agree as well
    np.testing.assert_allclose(NMPCProblem.hu(ocp, t, x, u, lmd),
                               ocp.hu(t, x, u, lmd), rtol=1e-05, atol=1e-08)
    np.testing.assert_allclose(NMPCProblem.hx(ocp, t, x, u, lmd),
                               ocp.hx(t, x, u, lmd), rtol=1e-05, atol=1e-08)
    np.testing.assert_allclose(NMPCProblem.phix(ocp, t, x),
                               ocp.phix(t, x), rtol=1e-05, atol=1e-08)
