import numpy as np

from cgmres.utilities import check_int_input, check_positive_float


class HorizonSchedule:
    """
    Receding horizon which grows smoothly from zero toward `max_length`,
    `T(t) = max_length * (1 - exp(-alpha * (t - t0)))`, and is divided into
    `n_nodes` equal steps.
    """
    def __init__(self, max_length, alpha, n_nodes, initial_time=0.):
        """
        Parameters
        ----------
        max_length : float
            Upper bound of the horizon length. Must be positive.
        alpha : float
            Growth rate of the horizon length. Must be positive.
        n_nodes : int
            Number of shooting nodes the horizon is divided into.
        initial_time : float, default=0.
            Time `t0` at which the horizon length is zero.
        """
        self.max_length = check_positive_float(max_length, 'max_length')
        self.alpha = check_positive_float(alpha, 'alpha')
        self.n_nodes = check_int_input(n_nodes, 'n_nodes', low=1)
        self.reset(initial_time)

    def reset(self, initial_time):
        """Set the time `t0` at which the horizon starts growing."""
        self.initial_time = float(initial_time)

    def length(self, t):
        """
        Horizon length at time `t`. Times earlier than `initial_time` give a
        zero-length horizon.
        """
        elapsed = np.maximum(t - self.initial_time, 0.)
        return self.max_length * (1. - np.exp(-self.alpha * elapsed))

    def step_size(self, t):
        """Length of each of the `n_nodes` horizon steps at time `t`."""
        return self.length(t) / self.n_nodes
