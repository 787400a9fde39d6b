"""
Closed-form handling of the saturation variables. Each box constraint couples
only its own dummy variable and multiplier to the control-and-constraint
vector, so their contribution to the optimality conditions can be added,
differentiated and inverted component by component without enlarging the
Krylov problem.
"""

import numpy as np

from cgmres.multiple_shooting.workspace import node_matrix


def add_saturation_derivative(saturation, uc, multiplier, out):
    """
    Add the derivative of the saturation constraints with respect to the
    control-and-constraint vector, `(2 uc[j] - lb_j - ub_j) * multiplier_j`,
    to a control-and-constraint residual.

    Parameters
    ----------
    saturation : `ControlInputSaturationSequence`
        Box constraints.
    uc : (n_nodes * n_control_and_constraints,) array
        Node-major control-and-constraint sequence.
    multiplier : (n_saturation, n_nodes) array
        Saturation multipliers.
    out : (n_nodes * n_control_and_constraints,) array
        Residual to which the derivative is added in place.

    Returns
    -------
    out : (n_nodes * n_control_and_constraints,) array
        The modified residual.
    """
    if saturation.dim_saturation:
        n_nodes = multiplier.shape[1]
        idx = saturation.indices
        U = node_matrix(uc, n_nodes)
        F = node_matrix(out, n_nodes)
        slope = 2. * U[idx] - (saturation.lb + saturation.ub)[:, None]
        # Repeated indices accumulate
        np.add.at(F, idx, slope * multiplier)
    return out


def multiply_saturation_derivative(saturation, uc, direction, n_nodes,
                                   out_dummy=None, out_saturation=None):
    """
    Multiply the derivative of the saturation residuals with respect to the
    control-and-constraint vector by a direction. The dummy optimality
    condition does not depend on the controls, so its part is zero.

    Parameters
    ----------
    saturation : `ControlInputSaturationSequence`
        Box constraints.
    uc : (n_nodes * n_control_and_constraints,) array
        Node-major control-and-constraint sequence where the derivative is
        evaluated.
    direction : (n_nodes * n_control_and_constraints,) array
        Node-major direction to multiply.
    n_nodes : int
        Number of shooting nodes.
    out_dummy, out_saturation : (n_saturation, n_nodes) array, optional
        Arrays to write the results to.

    Returns
    -------
    dummy_product : (n_saturation, n_nodes) array
        Zeros.
    saturation_product : (n_saturation, n_nodes) array
        `(2 uc[j] - lb_j - ub_j) * direction[j]` for each saturated component.
    """
    n_sat = saturation.dim_saturation

    if out_dummy is None:
        out_dummy = np.empty((n_sat, n_nodes))
    if out_saturation is None:
        out_saturation = np.empty((n_sat, n_nodes))

    out_dummy.fill(0.)
    if n_sat:
        idx = saturation.indices
        U = node_matrix(uc, n_nodes)
        V = node_matrix(direction, n_nodes)
        slope = 2. * U[idx] - (saturation.lb + saturation.ub)[:, None]
        np.multiply(slope, V[idx], out=out_saturation)

    return out_dummy, out_saturation


def multiply_saturation_self_derivative_inverse(dummy, multiplier, v_dummy,
                                                v_saturation, out_dummy=None,
                                                out_multiplier=None):
    """
    Multiply the inverse of the derivative of the saturation residuals with
    respect to the dummy variables and multipliers by a pair of vectors.

    For one component the derivative of
    `(2 multiplier dummy - weight, (u - mid)**2 - half_range**2 + dummy**2)`
    with respect to `(dummy, multiplier)` is `[[2 multiplier, 2 dummy],
    [2 dummy, 0]]`, whose inverse gives

        dummy_update = v_saturation / (2 dummy)
        multiplier_update = v_dummy / (2 dummy)
                            - multiplier * v_saturation / (2 dummy**2)

    `dummy` must not contain zeros.

    Parameters
    ----------
    dummy, multiplier : (n_saturation, n_nodes) array
        Current dummy variables and saturation multipliers.
    v_dummy, v_saturation : (n_saturation, n_nodes) array
        Vectors multiplying the inverse, one for each residual class.
    out_dummy, out_multiplier : (n_saturation, n_nodes) array, optional
        Arrays to write the results to. May alias the inputs.

    Returns
    -------
    dummy_update : (n_saturation, n_nodes) array
    multiplier_update : (n_saturation, n_nodes) array
    """
    two_dummy = 2. * dummy
    dummy_update = v_saturation / two_dummy
    multiplier_update = ((v_dummy - multiplier * v_saturation / dummy)
                         / two_dummy)

    if out_dummy is None:
        out_dummy = dummy_update
    else:
        out_dummy[...] = dummy_update
    if out_multiplier is None:
        out_multiplier = multiplier_update
    else:
        out_multiplier[...] = multiplier_update

    return out_dummy, out_multiplier
