import numpy as np

from cgmres.problem.parameters import ProblemParameters
from cgmres.utilities import approx_derivative


class NMPCProblem:
    """
    Template superclass defining the model used by nonlinear model predictive
    control (NMPC): system dynamics, running and terminal costs, optional
    equality constraints, and the partial derivatives of the Hamiltonian that
    make up the first-order optimality conditions.

    Controls and constraint multipliers are handled together. The
    "control-and-constraint" vector `uc` has length
    `n_controls + n_constraints`, with `u = uc[:n_controls]` the control input
    and `nu = uc[n_controls:]` the Lagrange multipliers of `constraints`.
    """
    # Dicts of default cost function and dynamics parameters, separated into
    # required and optional parameters. To be overwritten by subclass
    # implementations.
    _required_parameters = {}
    _optional_parameters = {}
    # Finite difference method for default gradient approximations
    _fin_diff_method = '3-point'

    def __init__(self, **problem_parameters):
        """
        Parameters
        ----------
        problem_parameters : dict, default={}
            Parameters specifying the cost function and system dynamics. If
            empty, defaults defined by the subclass will be used.
        """
        problem_parameters = {**self._required_parameters,
                              **self._optional_parameters,
                              **problem_parameters}
        # type(self) is used here in case subclass implementations forget to
        # make _parameter_update_fun a staticmethod.
        self.parameters = ProblemParameters(
            required=self._required_parameters.keys(),
            update_fun=type(self)._parameter_update_fun)
        """`ProblemParameters`. Cost function and system dynamics parameters."""
        self.parameters.update(**problem_parameters)

    def __str__(self):
        return type(self).__name__

    @property
    def n_states(self):
        """The number of system states (positive int)."""
        raise NotImplementedError

    @property
    def n_controls(self):
        """The number of control inputs to the system (positive int)."""
        raise NotImplementedError

    @property
    def n_constraints(self):
        """The number of equality constraints `C(t, x, u) = 0` (non-negative
        int). Defaults to zero."""
        return 0

    @property
    def n_control_and_constraints(self):
        """Length of the control-and-constraint vector `uc`."""
        return self.n_controls + self.n_constraints

    @staticmethod
    def _parameter_update_fun(obj, **new_params):
        """
        Performs operations on `self.parameters` during initialization and each
        time `self.parameters.update` is called. This is used for checking
        parameter shapes and performing other needed calculations.

        Parameters
        ----------
        obj : `ProblemParameters`
            In standard use, `obj` refers to `self.parameters`.
        **new_params : dict
            Parameters which are being set or changing.
        """
        pass

    def dynamics(self, t, x, u):
        """
        Evaluate the system dynamics.

        Parameters
        ----------
        t : float
            Time.
        x : (n_states,) array
            State.
        u : (n_controls,) array
            Control input.

        Returns
        -------
        dxdt : (n_states,) array
            System dynamics $dx/dt = f(t, x, u)$.
        """
        raise NotImplementedError

    def running_cost(self, t, x, u):
        """
        Evaluate the running cost `L(t, x, u)`.

        Parameters
        ----------
        t : float
            Time.
        x : (n_states,) array
            State.
        u : (n_controls,) array
            Control input.

        Returns
        -------
        L : float
            Running cost.
        """
        raise NotImplementedError

    def terminal_cost(self, t, x):
        """
        Evaluate the terminal cost `phi(t, x)`.

        Parameters
        ----------
        t : float
            Time at the end of the horizon.
        x : (n_states,) array
            State at the end of the horizon.

        Returns
        -------
        phi : float
            Terminal cost.
        """
        raise NotImplementedError

    def constraints(self, t, x, u):
        """
        Evaluate the equality constraints `C(t, x, u)`, which are enforced as
        `C(t, x, u) = 0`. The default has no constraints.

        Parameters
        ----------
        t : float
            Time.
        x : (n_states,) array
            State.
        u : (n_controls,) array
            Control input.

        Returns
        -------
        C : (n_constraints,) array
            Constraint values.
        """
        return np.zeros(0)

    def _split_controls(self, uc):
        return uc[:self.n_controls], uc[self.n_controls:]

    def hamiltonian(self, t, x, uc, lmd):
        """
        Evaluate the Hamiltonian
        `H(t, x, uc, lmd) = L(t, x, u) + lmd.T @ f(t, x, u) + nu.T @ C(t, x, u)`
        where `lmd` is the costate and `nu = uc[n_controls:]` are the
        multipliers of the equality constraints.

        Parameters
        ----------
        t : float
            Time.
        x : (n_states,) array
            State.
        uc : (n_controls + n_constraints,) array
            Control input and constraint multipliers.
        lmd : (n_states,) array
            Costate.

        Returns
        -------
        H : float
            Hamiltonian.
        """
        u, nu = self._split_controls(uc)
        H = self.running_cost(t, x, u) + np.dot(lmd, self.dynamics(t, x, u))
        if self.n_constraints:
            H = H + np.dot(nu, self.constraints(t, x, u))
        return H

    def hu(self, t, x, uc, lmd):
        """
        Evaluate the partial derivative of the Hamiltonian with respect to the
        control-and-constraint vector, $dH/duc$. Its last `n_constraints`
        entries are the constraints themselves. Default implementation
        approximates this with finite differences.

        Parameters
        ----------
        t : float
            Time.
        x : (n_states,) array
            State.
        uc : (n_controls + n_constraints,) array
            Control input and constraint multipliers.
        lmd : (n_states,) array
            Costate.

        Returns
        -------
        dHduc : (n_controls + n_constraints,) array
            Gradient of the Hamiltonian.
        """
        return approx_derivative(lambda uc: self.hamiltonian(t, x, uc, lmd),
                                 uc, method=self._fin_diff_method)

    def hx(self, t, x, uc, lmd):
        """
        Evaluate the partial derivative of the Hamiltonian with respect to the
        state, $dH/dx$, which gives the costate dynamics
        $dlmd/dt = -dH/dx$. Default implementation approximates this with
        finite differences.

        Parameters
        ----------
        t : float
            Time.
        x : (n_states,) array
            State.
        uc : (n_controls + n_constraints,) array
            Control input and constraint multipliers.
        lmd : (n_states,) array
            Costate.

        Returns
        -------
        dHdx : (n_states,) array
            Gradient of the Hamiltonian.
        """
        return approx_derivative(lambda x: self.hamiltonian(t, x, uc, lmd),
                                 x, method=self._fin_diff_method)

    def phix(self, t, x):
        """
        Evaluate the gradient of the terminal cost, $dphi/dx$, which is the
        costate at the end of the horizon. Default implementation approximates
        this with finite differences.

        Parameters
        ----------
        t : float
            Time at the end of the horizon.
        x : (n_states,) array
            State at the end of the horizon.

        Returns
        -------
        dphidx : (n_states,) array
            Gradient of the terminal cost.
        """
        return approx_derivative(lambda x: self.terminal_cost(t, x), x,
                                 method=self._fin_diff_method)
