import warnings

import numpy as np

from cgmres.gmres import MatrixFreeGMRES, ResidualEquation
from cgmres.multiple_shooting.elimination import add_saturation_derivative
from cgmres.multiple_shooting.residuals import saturation_residual
from cgmres.utilities import (check_int_input, check_positive_float,
                              check_vector_input)


class ZeroHorizonSolution:
    """
    Solution of the optimality conditions of a zero-length horizon, used to
    initialize every node of a continuation controller.
    """
    def __init__(self, uc, dummy, multiplier, control_error, dummy_error,
                 saturation_error, n_iterations, status, message):
        self.uc = np.asarray(uc)
        """(n_control_and_constraints,) array. Control-and-constraint
        vector."""
        self.dummy = np.asarray(dummy)
        """(n_saturation,) array. Dummy variables of the saturation
        constraints."""
        self.multiplier = np.asarray(multiplier)
        """(n_saturation,) array. Saturation multipliers."""
        self.control_error = np.asarray(control_error)
        """(n_control_and_constraints,) array. Residual of the
        control-and-constraint optimality condition."""
        self.dummy_error = np.asarray(dummy_error)
        """(n_saturation,) array. Residual of the dummy optimality condition."""
        self.saturation_error = np.asarray(saturation_error)
        """(n_saturation,) array. Residual of the saturation equality."""
        self.n_iterations = int(n_iterations)
        """int. Number of Newton iterations performed."""
        self.status = int(status)
        """int. Reason for solver termination:

            * 0: The residual norm reached the convergence radius.
            * 1: The maximum number of iterations was reached.
            * 2: A numerical error (overflow, division by zero) occurred.
        """
        self.message = str(message)
        """str. Human-readable description of `status`."""

    @property
    def success(self):
        """bool. `True` if `status==0`."""
        return self.status == 0

    @property
    def error(self):
        """float. Euclidean norm of all residuals."""
        return float(np.sqrt(np.sum(self.control_error ** 2)
                             + np.sum(self.dummy_error ** 2)
                             + np.sum(self.saturation_error ** 2)))


class ZeroHorizonSolver(ResidualEquation):
    """
    Newton-GMRES solver for the optimality conditions of a single node with
    a zero-length horizon, where the costate equals the terminal cost gradient
    `phix(t0, x0)`. The unknown is the stacked vector
    `z = (uc, dummy, multiplier)` and Jacobian-vector products are
    approximated by forward differences.
    """
    def __init__(self, ocp, saturation, difference_increment, kmax):
        """
        Parameters
        ----------
        ocp : `NMPCProblem`
            Model providing `hu` and `phix`.
        saturation : `ControlInputSaturationSequence`
            Box constraints.
        difference_increment : float
            Forward difference step for Jacobian-vector products.
        kmax : int
            Maximum Krylov subspace dimension of each Newton step. Capped at
            the dimension of `z`.
        """
        self.ocp = ocp
        self.saturation = saturation
        self.difference_increment = check_positive_float(
            difference_increment, 'difference_increment')

        self._n_uc = ocp.n_control_and_constraints
        self._n_sat = saturation.dim_saturation
        saturation.check_dimension(self._n_uc)
        self.dim = self._n_uc + 2 * self._n_sat

        kmax = check_int_input(kmax, 'kmax', low=1)
        self._gmres = MatrixFreeGMRES(self.dim, min(kmax, self.dim))

        self._lmd = None
        self._base_residual = np.zeros(self.dim)

    def _split(self, z):
        n_uc, n_sat = self._n_uc, self._n_sat
        return (z[:n_uc], z[n_uc:n_uc + n_sat].reshape(n_sat, 1),
                z[n_uc + n_sat:].reshape(n_sat, 1))

    def control_error(self, t, x, z):
        """Residual `dH/duc` plus saturation terms of a stacked solution."""
        uc, dummy, multiplier = self._split(z)
        lmd = self._lmd if self._lmd is not None else self.ocp.phix(t, x)
        F = np.array(self.ocp.hu(t, x, uc, lmd), dtype=float)
        return add_saturation_derivative(self.saturation, uc, multiplier, F)

    def dummy_error(self, t, x, z):
        """Residual `2 * multiplier * dummy - weight` of a stacked solution."""
        uc, dummy, multiplier = self._split(z)
        dummy_err, _ = saturation_residual(self.saturation, uc, dummy,
                                           multiplier)
        return dummy_err[:, 0]

    def saturation_error(self, t, x, z):
        """Residual of the saturation equality of a stacked solution."""
        uc, dummy, multiplier = self._split(z)
        _, sat_err = saturation_residual(self.saturation, uc, dummy,
                                         multiplier)
        return sat_err[:, 0]

    def _residual(self, t, x, z):
        uc, dummy, multiplier = self._split(z)
        dummy_err, sat_err = saturation_residual(self.saturation, uc, dummy,
                                                 multiplier)
        return np.concatenate((self.control_error(t, x, z), dummy_err[:, 0],
                               sat_err[:, 0]))

    def evaluate_residual(self, t, x, solution, update):
        self._base_residual = self._residual(t, x, solution)
        return (-self._base_residual
                - self.evaluate_directional_residual(t, x, solution, update))

    def evaluate_directional_residual(self, t, x, solution, direction):
        h = self.difference_increment
        return (self._residual(t, x, solution + h * direction)
                - self._base_residual) / h

    def initial_guess(self, uc_guess, multiplier_guess=None):
        """
        Build a stacked initial guess `z0 = (uc, dummy, multiplier)`.

        Parameters
        ----------
        uc_guess : (n_control_and_constraints,) array
            Guess of the control-and-constraint vector.
        multiplier_guess : {(n_saturation,) array, float}, optional
            Guess of the saturation multipliers. A float is broadcast to all
            saturations. If `None`, the multipliers solving the dummy
            optimality condition `2 * multiplier * dummy = weight` are used.

        Returns
        -------
        z0 : (n_control_and_constraints + 2 * n_saturation,) array
            The dummy variables are `sqrt(half_range**2 - (u - mid)**2)`,
            floored at `1e-03 * half_range`.
        """
        uc = check_vector_input(uc_guess, self._n_uc, 'uc_guess')
        dummy = self.saturation.dummy_from_control(uc)
        if multiplier_guess is None:
            multiplier = self.saturation.weights / (2. * dummy)
        elif np.size(multiplier_guess) == 1 and self._n_sat != 1:
            multiplier = np.full(self._n_sat,
                                 float(np.squeeze(multiplier_guess)))
        else:
            multiplier = check_vector_input(multiplier_guess, self._n_sat,
                                            'multiplier_guess')
        return np.concatenate((uc, dummy, multiplier))

    def solve(self, t0, x0, uc_guess, multiplier_guess=None,
              convergence_radius=1e-06, max_iterations=50, verbose=0):
        """
        Solve the zero-horizon optimality conditions at time `t0` and state
        `x0` by Newton-GMRES iterations.

        Parameters
        ----------
        t0 : float
            Initial time.
        x0 : (n_states,) array
            Initial state.
        uc_guess : (n_control_and_constraints,) array
            Initial guess of the control-and-constraint vector.
        multiplier_guess : {(n_saturation,) array, float}, optional
            Initial guess of the saturation multipliers. See `initial_guess`.
        convergence_radius : float, default=1e-06
            Iterations stop once the residual norm is at most this value.
        max_iterations : int, default=50
            Maximum number of Newton iterations.
        verbose : {0, 1, 2}, default=0
            Level of algorithm's verbosity:

                * 0 (default) : work silently.
                * 1 : display a termination report.
                * 2 : display progress during iterations.

        Returns
        -------
        sol : `ZeroHorizonSolution`
            Solution with `sol.success==True` if the residual norm reached
            `convergence_radius`.
        """
        convergence_radius = check_positive_float(convergence_radius,
                                                  'convergence_radius')
        max_iterations = check_int_input(max_iterations, 'max_iterations',
                                         low=0)
        x0 = check_vector_input(x0, self.ocp.n_states, 'x0')
        z = self.initial_guess(uc_guess, multiplier_guess=multiplier_guess)

        self._lmd = np.asarray(self.ocp.phix(t0, x0), dtype=float)
        zero_update = np.zeros(self.dim)
        status, message = 1, "Maximum number of iterations reached."

        n_iter = 0
        try:
            with warnings.catch_warnings(), np.errstate(over='warn',
                                                         divide='warn',
                                                         invalid='warn'):
                warnings.filterwarnings('error', category=RuntimeWarning)
                error = np.linalg.norm(self._residual(t0, x0, z))
                while error > convergence_radius and n_iter < max_iterations:
                    z = z + self._gmres.solve(self, t0, x0, z, zero_update)
                    error = np.linalg.norm(self._residual(t0, x0, z))
                    n_iter += 1
                    if verbose >= 2:
                        print(f"Iteration {n_iter:d}: residual norm = "
                              f"{error:1.2e}")
            if error <= convergence_radius:
                status = 0
                message = "Residual norm reached the convergence radius."
        except RuntimeWarning as w:
            status, message = 2, str(w)

        sol = ZeroHorizonSolution(z[:self._n_uc],
                                  z[self._n_uc:self._n_uc + self._n_sat],
                                  z[self._n_uc + self._n_sat:],
                                  self.control_error(t0, x0, z),
                                  self.dummy_error(t0, x0, z),
                                  self.saturation_error(t0, x0, z),
                                  n_iter, status, message)
        self._lmd = None

        if verbose:
            if sol.success:
                print(f"Zero-horizon problem solved in {n_iter:d} iterations: "
                      f"residual norm {sol.error:1.2e} <= tolerance "
                      f"{convergence_radius:1.2e}")
            else:
                print(f"Zero-horizon problem failed to converge: status = "
                      f"{status:d}: {message}")

        return sol
