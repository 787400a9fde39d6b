import numpy as np
import pytest

from cgmres.gmres import MatrixFreeGMRES, ResidualEquation


rng = np.random.default_rng(2468)


class _LinearEquation(ResidualEquation):
    """Explicit linear equation `A @ v = b`, counting matrix products."""
    def __init__(self, A, b):
        self.A = A
        self.b = b
        self.n_products = 0

    def evaluate_residual(self, t, x, solution, update):
        return self.b - self.A @ update

    def evaluate_directional_residual(self, t, x, solution, direction):
        self.n_products += 1
        return self.A @ direction


def _make_equation(dim):
    A = 3. * np.eye(dim) + rng.normal(scale=0.3, size=(dim, dim))
    b = rng.normal(size=dim)
    return _LinearEquation(A, b)


@pytest.mark.parametrize('dim', [1, 3, 8])
def test_full_krylov_solve(dim):
    """With `kmax == dim` the solve is exact up to round-off."""
    eq = _make_equation(dim)
    gmres = MatrixFreeGMRES(dim, dim)
    update = rng.normal(size=dim)
    update_copy = update.copy()

    sol = gmres.solve(eq, 0., None, None, update)

    np.testing.assert_allclose(eq.A @ sol, eq.b, rtol=1e-08, atol=1e-10)
    np.testing.assert_array_equal(update, update_copy)
    assert 1 <= gmres.n_iterations <= dim
    assert eq.n_products == gmres.n_iterations


def test_residual_decreases_with_kmax():
    dim = 10
    eq = _make_equation(dim)
    update = np.zeros(dim)

    res_norms = [np.linalg.norm(eq.b)]
    for kmax in range(1, dim + 1):
        eq.n_products = 0
        sol = MatrixFreeGMRES(dim, kmax).solve(eq, 0., None, None, update)
        assert eq.n_products <= kmax
        res_norms.append(np.linalg.norm(eq.b - eq.A @ sol))

    assert np.all(np.diff(res_norms) <= 1e-10)
    assert res_norms[-1] < 1e-08


def test_zero_residual_returns_warm_start():
    dim = 4
    eq = _make_equation(dim)
    eq.b = np.zeros(dim)
    gmres = MatrixFreeGMRES(dim, 2)
    update = np.zeros(dim)

    sol = gmres.solve(eq, 0., None, None, update)

    np.testing.assert_array_equal(sol, update)
    assert sol is not update
    assert gmres.n_iterations == 0
    assert eq.n_products == 0


def test_breakdown_stops_early():
    """For the identity the first Krylov vector already spans the solution."""
    dim = 5
    eq = _LinearEquation(np.eye(dim), rng.normal(size=dim))
    gmres = MatrixFreeGMRES(dim, dim)

    sol = gmres.solve(eq, 0., None, None, np.zeros(dim))

    assert gmres.n_iterations == 1
    assert eq.n_products == 1
    np.testing.assert_allclose(sol, eq.b, rtol=1e-12, atol=1e-14)


def test_bad_dimensions():
    with pytest.raises(ValueError):
        MatrixFreeGMRES(3, 4)
    with pytest.raises(ValueError):
        MatrixFreeGMRES(3, 0)
    with pytest.raises(ValueError):
        MatrixFreeGMRES(0, 1)


def test_template_raises():
    eq = ResidualEquation()
    with pytest.raises(NotImplementedError):
        eq.evaluate_residual(0., None, None, None)
    with pytest.raises(NotImplementedError):
        eq.evaluate_directional_residual(0., None, None, None)
