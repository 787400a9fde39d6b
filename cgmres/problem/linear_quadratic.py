import numpy as np

from cgmres.utilities import resize_vector
from cgmres.problem.problem import NMPCProblem


class LinearQuadraticProblem(NMPCProblem):
    """
    Linear dynamics with a quadratic tracking cost over the receding horizon.
    Takes the following parameters upon initialization.

    Parameters
    ----------
    A : (n_states, n_states) array
        State Jacobian matrix, $df/dx$.
    B : (n_states, n_controls) array
        Control Jacobian matrix, $df/du$.
    Q : (n_states, n_states) array
        Running cost weight on states. Must be positive semi-definite.
    R : (n_controls, n_controls) array
        Running cost weight on controls. Must be positive definite.
    Pf : (n_states, n_states) array, optional
        Terminal cost weight on states. Must be positive semi-definite.
        Defaults to `Q`.
    xf : {(n_states,) array, float}, default=0.
        Goal state, nominal linearization point. If float, will be broadcast
        into an array of shape `(n_states,)`.
    uf : {(n_controls,) array, float}, default=0.
        Control values at nominal linearization point. If float, will be
        broadcast into an array of shape `(n_controls,)`.

    The dynamics are `f(x, u) = A @ (x - xf) + B @ (u - uf)`, the running cost
    is `L(x, u) = (x - xf).T @ Q @ (x - xf) + (u - uf).T @ R @ (u - uf)` and
    the terminal cost is `phi(x) = (x - xf).T @ Pf @ (x - xf)`.
    """
    _required_parameters = {'A': None, 'B': None, 'Q': None, 'R': None,
                            'xf': 0., 'uf': 0.}
    _optional_parameters = {'Pf': None}

    @property
    def n_states(self):
        return self.parameters.n_states

    @property
    def n_controls(self):
        return self.parameters.n_controls

    @staticmethod
    def _parameter_update_fun(obj, **new_params):
        if 'A' in new_params:
            try:
                obj.A = np.atleast_1d(obj.A)
                obj.n_states = obj.A.shape[0]
                obj.A = obj.A.reshape(obj.n_states, obj.n_states)
            except ValueError:
                raise ValueError("State Jacobian matrix A must have shape "
                                 "(n_states, n_states)")

        if 'B' in new_params:
            try:
                obj.B = np.asarray(obj.B)
                if obj.B.ndim == 2 and obj.B.shape[0] != obj.n_states:
                    raise ValueError
                obj.B = np.reshape(obj.B, (obj.n_states, -1))
                obj.n_controls = obj.B.shape[1]
            except ValueError:
                raise ValueError("Control Jacobian matrix B must have shape "
                                 "(n_states, n_controls)")

        for key in ('Q', 'Pf'):
            if key in new_params and getattr(obj, key) is not None:
                try:
                    mat = np.reshape(getattr(obj, key),
                                     (obj.n_states, obj.n_states))
                    if (not np.allclose(mat, mat.T)
                            or np.any(np.linalg.eigvalsh(mat) < 0.)):
                        raise ValueError
                    setattr(obj, key, mat)
                except ValueError:
                    raise ValueError(f"State cost matrix {key} must have shape "
                                     f"(n_states, n_states) and be positive "
                                     f"semi-definite")

        if obj.as_dict().get('Pf') is None:
            obj.Pf = obj.Q

        if 'R' in new_params:
            try:
                obj.R = np.reshape(obj.R, (obj.n_controls, obj.n_controls))
                if (not np.allclose(obj.R, obj.R.T)
                        or np.any(np.linalg.eigvalsh(obj.R) <= 0.)):
                    raise ValueError
            except ValueError:
                raise ValueError("Control cost matrix R must have shape "
                                 "(n_controls, n_controls) and be positive "
                                 "definite")

        if 'xf' in new_params:
            obj.xf = resize_vector(obj.xf, obj.n_states)

        if 'uf' in new_params:
            obj.uf = resize_vector(obj.uf, obj.n_controls)

    def dynamics(self, t, x, u):
        p = self.parameters
        return p.A @ (x - p.xf) + p.B @ (u - p.uf)

    def running_cost(self, t, x, u):
        p = self.parameters
        x_err = x - p.xf
        u_err = u - p.uf
        return x_err @ p.Q @ x_err + u_err @ p.R @ u_err

    def terminal_cost(self, t, x):
        x_err = x - self.parameters.xf
        return x_err @ self.parameters.Pf @ x_err

    def hu(self, t, x, uc, lmd):
        p = self.parameters
        return 2. * p.R @ (uc - p.uf) + p.B.T @ lmd

    def hx(self, t, x, uc, lmd):
        p = self.parameters
        return 2. * p.Q @ (x - p.xf) + p.A.T @ lmd

    def phix(self, t, x):
        return 2. * self.parameters.Pf @ (x - self.parameters.xf)
