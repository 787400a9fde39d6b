import numpy as np

from cgmres.multiple_shooting.workspace import node_matrix


def compute_state_and_costate(ocp, horizon, t, x, uc, state_error,
                              costate_error, out_state=None, out_costate=None):
    """
    Reconstruct the state and costate trajectories whose shooting defects
    equal prescribed values, by integrating states forward and costates
    backward across the nodes. This condenses the state and costate out of
    the Krylov unknown.

    Parameters
    ----------
    ocp : `NMPCProblem`
        Model providing `dynamics`, `hx` and `phix`.
    horizon : `HorizonSchedule`
        Horizon used to discretize time.
    t : float
        Current time.
    x : (n_states,) array
        Current state.
    uc : (n_nodes * n_control_and_constraints,) array
        Node-major control-and-constraint sequence.
    state_error, costate_error : (n_states, n_nodes) array
        Prescribed defects, see `residuals.state_costate_residual`.
    out_state, out_costate : (n_states, n_nodes) array, optional
        Arrays to write the trajectories to. Must not alias `state_error` or
        `costate_error`.

    Returns
    -------
    x_seq, lmd_seq : (n_states, n_nodes) array
        State and costate trajectories.
    """
    n_nodes = state_error.shape[1]
    if out_state is None:
        out_state = np.empty_like(state_error)
    if out_costate is None:
        out_costate = np.empty_like(costate_error)

    dtau = horizon.step_size(t)
    U = node_matrix(uc, n_nodes)
    n_u = ocp.n_controls

    out_state[:, 0] = (x + dtau * ocp.dynamics(t, x, U[:n_u, 0])
                       + state_error[:, 0])
    for i in range(1, n_nodes):
        out_state[:, i] = (out_state[:, i - 1]
                           + dtau * ocp.dynamics(t + i * dtau,
                                                 out_state[:, i - 1],
                                                 U[:n_u, i])
                           + state_error[:, i])

    out_costate[:, -1] = (ocp.phix(t + n_nodes * dtau, out_state[:, -1])
                          + costate_error[:, -1])
    for i in range(n_nodes - 1, 0, -1):
        out_costate[:, i - 1] = (out_costate[:, i]
                                 + dtau * ocp.hx(t + (i + 1) * dtau,
                                                 out_state[:, i - 1], U[:, i],
                                                 out_costate[:, i])
                                 + costate_error[:, i - 1])

    return out_state, out_costate
