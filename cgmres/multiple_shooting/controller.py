import warnings

import numpy as np

from cgmres.controls import Controller
from cgmres.gmres import MatrixFreeGMRES, ResidualEquation
from cgmres.horizon import HorizonSchedule
from cgmres.saturation import ControlInputSaturationSequence
from cgmres import initialize as zero_horizon
from cgmres.utilities import (check_int_input, check_positive_float,
                              check_vector_input)
from .elimination import (multiply_saturation_derivative,
                          multiply_saturation_self_derivative_inverse)
from .residuals import (control_residual, state_costate_residual,
                        saturation_residual)
from .sweep import compute_state_and_costate
from .workspace import Trajectory, ShootingWorkspace


class MultipleShootingWithSaturation(ResidualEquation, Controller):
    """
    Nonlinear model predictive controller based on the multiple shooting
    continuation/GMRES method, with box constraints on components of the
    control-and-constraint vector handled by dummy variables.

    At each sampling instant the optimality conditions of the whole horizon
    are tracked with one fixed-size GMRES solve. States, costates, dummy
    variables and saturation multipliers are condensed out of the Krylov
    unknown, which contains only the control-and-constraint vectors of all
    nodes, and are updated analytically so that their own residuals decay
    like `exp(-zeta t)`.
    """
    def __init__(self, ocp, saturation, horizon_max_length, alpha, n_nodes,
                 difference_increment, zeta, kmax, dummy_tol=1e-08):
        """
        Parameters
        ----------
        ocp : `NMPCProblem`
            Model providing dynamics and Hamiltonian derivatives.
        saturation : `ControlInputSaturationSequence`
            Box constraints on components of the control-and-constraint
            vector. Copied on construction, so later changes to `saturation`
            do not affect the controller.
        horizon_max_length : float
            Maximum length of the receding horizon.
        alpha : float
            Growth rate of the horizon length, see `HorizonSchedule`.
        n_nodes : int
            Number of shooting nodes the horizon is divided into.
        difference_increment : float
            Forward difference step `h` used for all Jacobian-vector products
            and time derivatives.
        zeta : float
            Stabilization rate of the optimality residuals. Should satisfy
            `zeta * difference_increment < 1`.
        kmax : int
            Dimension of the Krylov subspace built at each update.
        dummy_tol : float, default=1e-08
            A `RuntimeWarning` is issued after any update which leaves a dummy
            variable with absolute value below `dummy_tol`.
        """
        self.ocp = ocp
        self.saturation = ControlInputSaturationSequence(saturation)

        self.n_states = check_int_input(ocp.n_states, 'ocp.n_states', low=1)
        self.n_controls = check_int_input(ocp.n_controls, 'ocp.n_controls',
                                          low=1)
        self.n_uc = check_int_input(ocp.n_control_and_constraints,
                                    'ocp.n_control_and_constraints',
                                    low=self.n_controls)
        self.n_saturation = self.saturation.dim_saturation
        self.saturation.check_dimension(self.n_uc)

        self.horizon = HorizonSchedule(horizon_max_length, alpha, n_nodes)
        self.n_nodes = self.horizon.n_nodes

        self.difference_increment = check_positive_float(
            difference_increment, 'difference_increment')
        self.zeta = check_positive_float(zeta, 'zeta')
        self.kmax = check_int_input(kmax, 'kmax', low=1)
        self.dummy_tol = float(dummy_tol)

        self._gmres = MatrixFreeGMRES(self.n_nodes * self.n_uc, self.kmax)

        dims = (self.n_states, self.n_uc, self.n_saturation, self.n_nodes)
        self.trajectory = Trajectory(*dims)
        self._workspace = ShootingWorkspace(*dims)
        self._initialized = False

    @property
    def is_initialized(self):
        """bool. Whether `initialize` has succeeded and updates can run."""
        return self._initialized

    def _check_initialized(self):
        if not self._initialized:
            raise RuntimeError(f"{self} must be initialized with a successful "
                               f"call to initialize before use")

    def initialize(self, t0, x0, uc_guess, multiplier_guess=None,
                   convergence_radius=1e-06, max_iterations=50, verbose=0):
        """
        Seed every shooting node with the solution of the zero-horizon
        optimality conditions at `(t0, x0)`.

        Parameters
        ----------
        t0 : float
            Initial time, at which the horizon length is zero.
        x0 : (n_states,) array
            Initial state.
        uc_guess : (n_control_and_constraints,) array
            Initial guess of the control-and-constraint vector.
        multiplier_guess : {(n_saturation,) array, float}, optional
            Initial guess of the saturation multipliers. A float is broadcast
            to all saturations. If `None`, a guess consistent with the dummy
            optimality condition is used.
        convergence_radius : float, default=1e-06
            Residual norm the zero-horizon solver has to reach.
        max_iterations : int, default=50
            Maximum number of Newton iterations of the zero-horizon solver.
        verbose : {0, 1, 2}, default=0
            Verbosity of the zero-horizon solver.

        Returns
        -------
        sol : `ZeroHorizonSolution`
            Result of the zero-horizon solver. If `sol.success` is False, the
            controller is left uninitialized.

        Raises
        ------
        ValueError
            If `x0`, `uc_guess` or `multiplier_guess` have the wrong size.
        """
        self._initialized = False

        x0 = check_vector_input(x0, self.n_states, 'x0')
        uc_guess = check_vector_input(uc_guess, self.n_uc, 'uc_guess')

        solver = zero_horizon.ZeroHorizonSolver(
            self.ocp, self.saturation, self.difference_increment, self.kmax)
        sol = solver.solve(t0, x0, uc_guess, multiplier_guess=multiplier_guess,
                           convergence_radius=convergence_radius,
                           max_iterations=max_iterations, verbose=verbose)
        if not sol.success:
            return sol

        self.horizon.reset(t0)

        traj, ws = self.trajectory, self._workspace
        traj.x[...] = x0[:, None]
        traj.lmd[...] = np.reshape(self.ocp.phix(t0, x0), (-1, 1))
        traj.uc_matrix[...] = sol.uc[:, None]
        traj.dummy[...] = sol.dummy[:, None]
        traj.multiplier[...] = sol.multiplier[:, None]

        ws.F0.reshape(self.n_nodes, self.n_uc)[...] = sol.control_error
        ws.dummy_error[...] = sol.dummy_error[:, None]
        ws.saturation_error[...] = sol.saturation_error[:, None]
        ws.state_error.fill(0.)
        ws.costate_error.fill(0.)
        ws.update.fill(0.)

        self._initialized = True
        return sol

    def _incremented_control_residual(self, solution, direction, out):
        """
        Control-and-constraint residual at `(t + h, x + h f)` after moving the
        solution by `h * direction`, with states and costates condensed
        against the shooting defects at `t + h` and the saturation
        multipliers moved along the eliminated direction.
        """
        traj, ws = self.trajectory, self._workspace
        h = self.difference_increment

        np.add(solution, h * direction, out=ws.uc1)
        compute_state_and_costate(self.ocp, self.horizon, ws.t1, ws.x1, ws.uc1,
                                  ws.state_error1, ws.costate_error1,
                                  out_state=ws.x_seq1, out_costate=ws.lmd_seq1)

        multiply_saturation_derivative(self.saturation, solution, direction,
                                       self.n_nodes,
                                       out_dummy=ws.dummy_product,
                                       out_saturation=ws.saturation_product)
        multiply_saturation_self_derivative_inverse(
            traj.dummy, traj.multiplier, ws.dummy_product,
            ws.saturation_product, out_dummy=ws.dummy_update,
            out_multiplier=ws.multiplier_update)
        np.subtract(traj.multiplier, h * ws.multiplier_update,
                    out=ws.multiplier1)

        return control_residual(self.ocp, self.saturation, self.horizon,
                                ws.t1, ws.x1, ws.uc1, ws.x_seq1, ws.lmd_seq1,
                                ws.multiplier1, out=out)

    def evaluate_residual(self, t, x, solution, update):
        """
        Right hand side of the continuation equation minus its product with
        the warm start `update`:
        `-(zeta - 1/h) F0 - F3 / h - (F2 - F1) / h`.
        """
        traj, ws = self.trajectory, self._workspace
        h, zeta = self.difference_increment, self.zeta

        control_residual(self.ocp, self.saturation, self.horizon, t, x,
                         solution, traj.x, traj.lmd, traj.multiplier,
                         out=ws.F0)
        control_residual(self.ocp, self.saturation, self.horizon, ws.t1,
                         ws.x1, solution, traj.x, traj.lmd, traj.multiplier,
                         out=ws.F1)

        state_costate_residual(self.ocp, self.horizon, t, x, solution, traj.x,
                               traj.lmd, out_state=ws.state_error,
                               out_costate=ws.costate_error)
        state_costate_residual(self.ocp, self.horizon, ws.t1, ws.x1, solution,
                               traj.x, traj.lmd, out_state=ws.state_error1,
                               out_costate=ws.costate_error1)

        # Residuals of the condensed variables decay at rate zeta
        decay = 1. - h * zeta
        compute_state_and_costate(self.ocp, self.horizon, ws.t1, ws.x1,
                                  solution, decay * ws.state_error,
                                  decay * ws.costate_error,
                                  out_state=ws.x_seq1, out_costate=ws.lmd_seq1)
        saturation_residual(self.saturation, solution, traj.dummy,
                            traj.multiplier, out_dummy=ws.dummy_error,
                            out_saturation=ws.saturation_error)
        multiply_saturation_self_derivative_inverse(
            traj.dummy, traj.multiplier, -zeta * ws.dummy_error,
            -zeta * ws.saturation_error, out_dummy=ws.dummy_update,
            out_multiplier=ws.multiplier_update)
        np.add(traj.multiplier, h * ws.multiplier_update, out=ws.multiplier1)
        control_residual(self.ocp, self.saturation, self.horizon, ws.t1,
                         ws.x1, solution, ws.x_seq1, ws.lmd_seq1,
                         ws.multiplier1, out=ws.F3)

        self._incremented_control_residual(solution, update, ws.F2)

        return (-(zeta - 1. / h) * ws.F0 - ws.F3 / h
                - (ws.F2 - ws.F1) / h)

    def evaluate_directional_residual(self, t, x, solution, direction):
        """Forward difference `(F2 - F1) / h` along `direction`."""
        ws = self._workspace
        self._incremented_control_residual(solution, direction, ws.F2)
        return (ws.F2 - ws.F1) / self.difference_increment

    def control_update(self, t, sampling_period, x):
        """
        Advance the solution from `t` to `t + sampling_period` and return the
        new control command. The state prediction assumes that the plant is
        driven by the command held before this call, `get_control_input()`,
        over `[t, t + sampling_period)`.

        Parameters
        ----------
        t : float
            Current time.
        sampling_period : float
            Time until the next update.
        x : (n_states,) array
            Current state.

        Returns
        -------
        u : (n_controls,) array
            Control command to hold from `t + sampling_period`.

        Raises
        ------
        RuntimeError
            If the controller has not been initialized.
        ValueError
            If `x` has the wrong size.
        """
        self._check_initialized()
        x = check_vector_input(x, self.n_states, 'x')
        dt = check_positive_float(sampling_period, 'sampling_period')

        traj, ws = self.trajectory, self._workspace
        h, zeta = self.difference_increment, self.zeta

        # Predicted state, only used for forward differences
        ws.t1 = t + h
        ws.x1[...] = x + h * self.ocp.dynamics(t, x,
                                               traj.uc[:self.n_controls])

        ws.update[...] = self._gmres.solve(self, t, x, traj.uc, ws.update)

        # States and costates
        decay = 1. - h * zeta
        np.add(traj.uc, h * ws.update, out=ws.uc1)
        compute_state_and_costate(self.ocp, self.horizon, ws.t1, ws.x1, ws.uc1,
                                  decay * ws.state_error,
                                  decay * ws.costate_error,
                                  out_state=ws.x_seq1, out_costate=ws.lmd_seq1)
        traj.x += dt * (ws.x_seq1 - traj.x) / h
        traj.lmd += dt * (ws.lmd_seq1 - traj.lmd) / h

        # Dummy variables and saturation multipliers
        saturation_residual(self.saturation, traj.uc, traj.dummy,
                            traj.multiplier, out_dummy=ws.dummy_error,
                            out_saturation=ws.saturation_error)
        multiply_saturation_derivative(self.saturation, traj.uc, ws.update,
                                       self.n_nodes,
                                       out_dummy=ws.dummy_product,
                                       out_saturation=ws.saturation_product)
        multiply_saturation_self_derivative_inverse(
            traj.dummy, traj.multiplier,
            -zeta * ws.dummy_error - ws.dummy_product,
            -zeta * ws.saturation_error - ws.saturation_product,
            out_dummy=ws.dummy_update, out_multiplier=ws.multiplier_update)
        traj.dummy += dt * ws.dummy_update
        traj.multiplier += dt * ws.multiplier_update

        # Controls and constraint multipliers
        traj.uc += dt * ws.update

        if self.n_saturation and np.min(np.abs(traj.dummy)) < self.dummy_tol:
            warnings.warn(f"A saturation dummy variable fell below "
                          f"{self.dummy_tol:1.1e} at t = {t:g}; the saturation "
                          f"updates are ill-conditioned", RuntimeWarning)

        return self.get_control_input()

    def get_control_input(self):
        """
        Return the control command of the first node.

        Returns
        -------
        u : (n_controls,) array
            Copy of the first `n_controls` entries of the solution.
        """
        self._check_initialized()
        return self.trajectory.uc[:self.n_controls].copy()

    def get_error(self, t, x):
        """
        Euclidean norm of all optimality residuals of the current solution at
        time `t` and state `x`. Does not modify the controller.

        Parameters
        ----------
        t : float
            Current time.
        x : (n_states,) array
            Current state.

        Returns
        -------
        error : float
            Combined norm of the control-and-constraint, state, costate,
            dummy and saturation residuals.
        """
        self._check_initialized()
        x = check_vector_input(x, self.n_states, 'x')
        traj = self.trajectory

        control_err = control_residual(self.ocp, self.saturation, self.horizon,
                                       t, x, traj.uc, traj.x, traj.lmd,
                                       traj.multiplier)
        state_err, costate_err = state_costate_residual(
            self.ocp, self.horizon, t, x, traj.uc, traj.x, traj.lmd)
        dummy_err, sat_err = saturation_residual(
            self.saturation, traj.uc, traj.dummy, traj.multiplier)

        return float(np.sqrt(np.sum(control_err ** 2) + np.sum(state_err ** 2)
                             + np.sum(costate_err ** 2)
                             + np.sum(dummy_err ** 2) + np.sum(sat_err ** 2)))

    def __call__(self, x):
        return self.get_control_input()

    def update(self, t, dt, x):
        return self.control_update(t, dt, x)
