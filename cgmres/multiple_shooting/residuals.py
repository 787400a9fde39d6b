"""
Optimality residuals of the multiple shooting discretization, evaluated for a
candidate trajectory at time `t` and state `x`.

Node `i` covers the interval starting at `t + i * dtau`, where `dtau` is the
horizon step size at time `t`. Its state is the state at the end of that
interval, so node `i` is driven from the previous node's state (or from `x`
for node 0).
"""

import numpy as np

from cgmres.multiple_shooting.workspace import node_matrix
from cgmres.multiple_shooting.elimination import add_saturation_derivative


def control_residual(ocp, saturation, horizon, t, x, uc, x_seq, lmd_seq,
                     multiplier, out=None):
    """
    Compute the optimality residual of the control-and-constraint variables,
    `dH/duc` plus the saturation multiplier terms, at every node.

    Parameters
    ----------
    ocp : `NMPCProblem`
        Model providing `hu`.
    saturation : `ControlInputSaturationSequence`
        Box constraints.
    horizon : `HorizonSchedule`
        Horizon used to discretize time.
    t : float
        Current time.
    x : (n_states,) array
        Current state.
    uc : (n_nodes * n_control_and_constraints,) array
        Node-major control-and-constraint sequence.
    x_seq, lmd_seq : (n_states, n_nodes) array
        State and costate trajectories.
    multiplier : (n_saturation, n_nodes) array
        Saturation multipliers.
    out : (n_nodes * n_control_and_constraints,) array, optional
        Array to write the residual to.

    Returns
    -------
    residual : (n_nodes * n_control_and_constraints,) array
        Node-major residual.
    """
    n_nodes = x_seq.shape[1]
    if out is None:
        out = np.empty(np.shape(uc))

    dtau = horizon.step_size(t)
    U = node_matrix(uc, n_nodes)
    F = node_matrix(out, n_nodes)

    F[:, 0] = ocp.hu(t, x, U[:, 0], lmd_seq[:, 0])
    for i in range(1, n_nodes):
        F[:, i] = ocp.hu(t + i * dtau, x_seq[:, i - 1], U[:, i],
                         lmd_seq[:, i])

    return add_saturation_derivative(saturation, uc, multiplier, out)


def state_costate_residual(ocp, horizon, t, x, uc, x_seq, lmd_seq,
                           out_state=None, out_costate=None):
    """
    Compute the shooting defects of the state and costate trajectories with
    respect to one forward Euler step of the dynamics and of the costate
    equation.

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
    x_seq, lmd_seq : (n_states, n_nodes) array
        State and costate trajectories.
    out_state, out_costate : (n_states, n_nodes) array, optional
        Arrays to write the defects to.

    Returns
    -------
    state_error : (n_states, n_nodes) array
        `x_seq[:, i] - x_seq[:, i-1] - dtau * f(t + i dtau, x_seq[:, i-1], u_i)`
        with `x_seq[:, -1]` replaced by `x`.
    costate_error : (n_states, n_nodes) array
        `lmd_seq[:, i-1] - lmd_seq[:, i]
        - dtau * hx(t + (i+1) dtau, x_seq[:, i-1], uc_i, lmd_seq[:, i])`, with
        the last column measured against `phix` at the end of the horizon. The
        costate step into node `i-1` is evaluated at the end time of node `i`.
    """
    n_nodes = x_seq.shape[1]
    if out_state is None:
        out_state = np.empty_like(x_seq)
    if out_costate is None:
        out_costate = np.empty_like(lmd_seq)

    dtau = horizon.step_size(t)
    U = node_matrix(uc, n_nodes)
    n_u = ocp.n_controls

    out_state[:, 0] = x_seq[:, 0] - x - dtau * ocp.dynamics(t, x, U[:n_u, 0])
    for i in range(1, n_nodes):
        out_state[:, i] = (x_seq[:, i] - x_seq[:, i - 1]
                           - dtau * ocp.dynamics(t + i * dtau, x_seq[:, i - 1],
                                                 U[:n_u, i]))

    out_costate[:, -1] = (lmd_seq[:, -1]
                          - ocp.phix(t + n_nodes * dtau, x_seq[:, -1]))
    for i in range(n_nodes - 1, 0, -1):
        out_costate[:, i - 1] = (lmd_seq[:, i - 1] - lmd_seq[:, i]
                                 - dtau * ocp.hx(t + (i + 1) * dtau,
                                                 x_seq[:, i - 1], U[:, i],
                                                 lmd_seq[:, i]))

    return out_state, out_costate


def saturation_residual(saturation, uc, dummy, multiplier, out_dummy=None,
                        out_saturation=None):
    """
    Compute the optimality residuals of the saturation variables at every
    node.

    Parameters
    ----------
    saturation : `ControlInputSaturationSequence`
        Box constraints.
    uc : (n_nodes * n_control_and_constraints,) array
        Node-major control-and-constraint sequence.
    dummy, multiplier : (n_saturation, n_nodes) array
        Dummy variables and saturation multipliers.
    out_dummy, out_saturation : (n_saturation, n_nodes) array, optional
        Arrays to write the residuals to.

    Returns
    -------
    dummy_error : (n_saturation, n_nodes) array
        `2 * multiplier * dummy - weight`.
    saturation_error : (n_saturation, n_nodes) array
        `(uc[index] - mid)**2 - half_range**2 + dummy**2`.
    """
    n_nodes = dummy.shape[1]
    if out_dummy is None:
        out_dummy = np.empty_like(dummy)
    if out_saturation is None:
        out_saturation = np.empty_like(dummy)

    if saturation.dim_saturation:
        U = node_matrix(uc, n_nodes)
        out_dummy[...] = 2. * multiplier * dummy - saturation.weights[:, None]
        out_saturation[...] = ((U[saturation.indices]
                                - saturation.mid[:, None]) ** 2
                               - saturation.half_range[:, None] ** 2
                               + dummy ** 2)

    return out_dummy, out_saturation
