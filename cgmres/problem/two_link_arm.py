import numpy as np

from cgmres.utilities import resize_vector
from cgmres.problem.problem import NMPCProblem


class TwoLinkArm(NMPCProblem):
    """
    Fully actuated planar two-link arm swinging in a vertical plane under
    gravity. Joint angles are measured from the downward vertical, so the
    upright configuration is `q1 = pi, q2 = 0`.

    The state is `x = (q1, q2, dq1, dq2)` and the control is the pair of joint
    torques `u = (u1, u2)`. The running cost is
    `L(x, u) = 1/2 (x - x_ref).T @ diag(q) @ (x - x_ref)
    + 1/2 u.T @ diag(r) @ u`
    and the terminal cost is
    `phi(x) = 1/2 (x - x_ref).T @ diag(sf) @ (x - x_ref)`.
    """
    _required_parameters = {'m1': 0.2, 'm2': 0.7, 'l1': 0.3, 'd1': 0.15,
                            'd2': 0.257, 'J1': 0.006, 'J2': 0.051,
                            'g': 9.80665, 'q': [1., 1., 0.1, 0.1],
                            'r': [0.1, 0.1], 'sf': [1., 1., 0.1, 0.1],
                            'x_ref': [np.pi, 0., 0., 0.]}
    _optional_parameters = {}
    # The Hamiltonian is analytic in the state, so dH/dx is exact up to
    # rounding with complex-step differentiation
    _fin_diff_method = 'cs'

    @property
    def n_states(self):
        return 4

    @property
    def n_controls(self):
        return 2

    @staticmethod
    def _parameter_update_fun(obj, **new_params):
        for key in ('m1', 'm2', 'l1', 'd1', 'd2', 'J1', 'J2', 'g'):
            if key in new_params:
                val = getattr(obj, key)
                if np.size(val) != 1 or float(np.squeeze(val)) < 0.:
                    raise ValueError(f"{key} must be a non-negative float")
                setattr(obj, key, float(np.squeeze(val)))

        for key, n in (('q', 4), ('r', 2), ('sf', 4)):
            if key in new_params:
                weights = resize_vector(getattr(obj, key), n)
                if np.any(weights < 0.):
                    raise ValueError(f"Cost weights {key} must be non-negative")
                setattr(obj, key, weights)

        if 'x_ref' in new_params:
            obj.x_ref = resize_vector(obj.x_ref, 4)

    def _mass_matrix_inverse(self, q2):
        p = self.parameters
        c2 = np.cos(q2)
        M11 = (p.J1 + p.J2 + p.m1 * p.d1 ** 2
               + p.m2 * (p.l1 ** 2 + p.d2 ** 2 + 2. * p.l1 * p.d2 * c2))
        M12 = p.J2 + p.m2 * (p.d2 ** 2 + p.l1 * p.d2 * c2)
        M22 = p.J2 + p.m2 * p.d2 ** 2
        det = M11 * M22 - M12 ** 2
        return M22 / det, -M12 / det, M11 / det

    def _bias_forces(self, x):
        p = self.parameters
        q1, q2, dq1, dq2 = x[0], x[1], x[2], x[3]
        h = p.m2 * p.l1 * p.d2 * np.sin(q2)
        C1 = -h * (2. * dq1 * dq2 + dq2 ** 2)
        C2 = h * dq1 ** 2
        G2 = p.m2 * p.d2 * p.g * np.sin(q1 + q2)
        G1 = (p.m1 * p.d1 + p.m2 * p.l1) * p.g * np.sin(q1) + G2
        return C1 + G1, C2 + G2

    def dynamics(self, t, x, u):
        Minv11, Minv12, Minv22 = self._mass_matrix_inverse(x[1])
        b1, b2 = self._bias_forces(x)
        tau1 = u[0] - b1
        tau2 = u[1] - b2
        return np.array([x[2], x[3],
                         Minv11 * tau1 + Minv12 * tau2,
                         Minv12 * tau1 + Minv22 * tau2])

    def running_cost(self, t, x, u):
        p = self.parameters
        x_err = x - p.x_ref
        return 0.5 * (x_err @ (p.q * x_err) + u[:2] @ (p.r * u[:2]))

    def terminal_cost(self, t, x):
        x_err = x - self.parameters.x_ref
        return 0.5 * x_err @ (self.parameters.sf * x_err)

    def hu(self, t, x, uc, lmd):
        # df/du = [0; M^-1] and M^-1 is symmetric
        Minv11, Minv12, Minv22 = self._mass_matrix_inverse(x[1])
        return np.array([
            self.parameters.r[0] * uc[0] + Minv11 * lmd[2] + Minv12 * lmd[3],
            self.parameters.r[1] * uc[1] + Minv12 * lmd[2] + Minv22 * lmd[3]])

    def phix(self, t, x):
        return self.parameters.sf * (x - self.parameters.x_ref)
