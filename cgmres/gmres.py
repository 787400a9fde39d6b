import numpy as np
from scipy import linalg

from cgmres.utilities import check_int_input


class ResidualEquation:
    """
    Template for a linear equation `A @ v = b` which is only available through
    residual evaluations. Subclasses (the continuation controller and the
    zero-horizon bootstrap solver) implement the two methods below, which are
    called by `MatrixFreeGMRES.solve`.
    """
    def evaluate_residual(self, t, x, solution, update):
        """
        Evaluate the initial residual `b - A @ update` of the linear equation.

        Parameters
        ----------
        t : float
            Current time.
        x : (n_states,) array
            Current state.
        solution : (dim,) array
            Current solution around which the equation is linearized.
        update : (dim,) array
            Initial guess of the solution of the linear equation.

        Returns
        -------
        residual : (dim,) array
            `b - A @ update`.
        """
        raise NotImplementedError

    def evaluate_directional_residual(self, t, x, solution, direction):
        """
        Evaluate the product `A @ direction` without forming `A`.

        Parameters
        ----------
        t : float
            Current time.
        x : (n_states,) array
            Current state.
        solution : (dim,) array
            Current solution around which the equation is linearized.
        direction : (dim,) array
            Vector to multiply.

        Returns
        -------
        Av : (dim,) array
            Jacobian-vector product.
        """
        raise NotImplementedError


class MatrixFreeGMRES:
    """
    Restart-free GMRES with a fixed maximum Krylov subspace dimension, using
    only matrix-vector products supplied by a `ResidualEquation`. All
    workspace arrays are allocated once at construction.
    """
    def __init__(self, dim, kmax, breakdown_tol=1e-12):
        """
        Parameters
        ----------
        dim : int
            Dimension of the linear equation.
        kmax : int
            Maximum dimension of the Krylov subspace, `1 <= kmax <= dim`.
        breakdown_tol : float, default=1e-12
            The Arnoldi process stops early when the norm of a new basis
            vector falls below `breakdown_tol` times the initial residual norm.
        """
        self.dim = check_int_input(dim, 'dim', low=1)
        self.kmax = check_int_input(kmax, 'kmax', low=1)
        if self.kmax > self.dim:
            raise ValueError(f"kmax must be less than or equal to dim "
                             f"({self.dim:d})")
        self.breakdown_tol = float(breakdown_tol)

        self._basis = np.zeros((self.dim, self.kmax + 1))
        self._hessenberg = np.zeros((self.kmax + 1, self.kmax))
        self.n_iterations = 0
        """Number of Arnoldi vectors used in the last call to `solve`."""

    def solve(self, equation, t, x, solution, update):
        """
        Approximately solve the linear equation defined by `equation`,
        warm-started from `update`.

        Parameters
        ----------
        equation : `ResidualEquation`
            Provides `evaluate_residual` (called once) and
            `evaluate_directional_residual` (called at most `kmax` times).
        t : float
            Current time.
        x : (n_states,) array
            Current state.
        solution : (dim,) array
            Current solution passed through to `equation`.
        update : (dim,) array
            Initial guess. Not modified.

        Returns
        -------
        update : (dim,) array
            Improved solution `update + V @ y` minimizing the residual over the
            Krylov subspace `V`.
        """
        V, H = self._basis, self._hessenberg
        H.fill(0.)

        r0 = equation.evaluate_residual(t, x, solution, update)
        r0_norm = np.linalg.norm(r0)
        if r0_norm == 0.:
            self.n_iterations = 0
            return np.array(update, dtype=float)

        V[:, 0] = r0 / r0_norm

        k_used = self.kmax
        for k in range(self.kmax):
            w = equation.evaluate_directional_residual(t, x, solution, V[:, k])
            # Modified Gram-Schmidt
            for j in range(k + 1):
                H[j, k] = V[:, j] @ w
                w = w - H[j, k] * V[:, j]
            H[k + 1, k] = np.linalg.norm(w)
            if H[k + 1, k] <= self.breakdown_tol * r0_norm:
                k_used = k + 1
                break
            V[:, k + 1] = w / H[k + 1, k]

        self.n_iterations = k_used

        g = np.zeros(k_used + 1)
        g[0] = r0_norm
        y = linalg.lstsq(H[:k_used + 1, :k_used], g)[0]

        return update + V[:, :k_used] @ y
