import numpy as np


def node_matrix(uc, n_nodes):
    """
    View a flat, node-major control-and-constraint sequence as a
    `(n_control_and_constraints, n_nodes)` array, one column per node.
    Writing to the returned array writes to `uc`.
    """
    return np.reshape(uc, (n_nodes, -1)).T


class Trajectory:
    """
    Per-node variables of the multiple shooting discretization. All arrays are
    allocated at construction and only ever modified in place.
    """
    def __init__(self, n_states, n_control_and_constraints, n_saturation,
                 n_nodes):
        self.n_nodes = n_nodes

        self.x = np.zeros((n_states, n_nodes))
        """(n_states, n_nodes) array. State at the end of each shooting
        interval."""
        self.lmd = np.zeros((n_states, n_nodes))
        """(n_states, n_nodes) array. Costate at each node."""
        self.uc = np.zeros(n_nodes * n_control_and_constraints)
        """(n_nodes * n_control_and_constraints,) array. Node-major sequence of
        control-and-constraint vectors, which is the unknown of the Krylov
        solve."""
        self.dummy = np.zeros((n_saturation, n_nodes))
        """(n_saturation, n_nodes) array. Dummy variables of the saturation
        constraints. Must stay away from zero."""
        self.multiplier = np.zeros((n_saturation, n_nodes))
        """(n_saturation, n_nodes) array. Lagrange multipliers of the
        saturation constraints."""

    @property
    def uc_matrix(self):
        """`(n_control_and_constraints, n_nodes)` view of `uc`."""
        return node_matrix(self.uc, self.n_nodes)


class ShootingWorkspace:
    """
    Scratch buffers reused by every residual evaluation and control update of
    a `MultipleShootingWithSaturation` controller. Sizes are fixed at
    construction.
    """
    def __init__(self, n_states, n_control_and_constraints, n_saturation,
                 n_nodes):
        n_seq = n_nodes * n_control_and_constraints

        # Time and state one finite difference increment ahead
        self.t1 = 0.
        self.x1 = np.zeros(n_states)

        # Control-and-constraint residuals
        self.F0 = np.zeros(n_seq)
        self.F1 = np.zeros(n_seq)
        self.F2 = np.zeros(n_seq)
        self.F3 = np.zeros(n_seq)

        # Shooting defects at t and t + h
        self.state_error = np.zeros((n_states, n_nodes))
        self.costate_error = np.zeros((n_states, n_nodes))
        self.state_error1 = np.zeros((n_states, n_nodes))
        self.costate_error1 = np.zeros((n_states, n_nodes))

        # Condensed trajectories
        self.uc1 = np.zeros(n_seq)
        self.x_seq1 = np.zeros((n_states, n_nodes))
        self.lmd_seq1 = np.zeros((n_states, n_nodes))

        # Saturation residuals, their products with directions, and the
        # resulting dummy and multiplier updates
        self.dummy_error = np.zeros((n_saturation, n_nodes))
        self.saturation_error = np.zeros((n_saturation, n_nodes))
        self.dummy_product = np.zeros((n_saturation, n_nodes))
        self.saturation_product = np.zeros((n_saturation, n_nodes))
        self.dummy_update = np.zeros((n_saturation, n_nodes))
        self.multiplier_update = np.zeros((n_saturation, n_nodes))
        self.multiplier1 = np.zeros((n_saturation, n_nodes))

        # Last Krylov solution, warm start of the next solve
        self.update = np.zeros(n_seq)
