import numpy as np
import pytest

from cgmres.saturation import (ControlInputSaturation,
                               ControlInputSaturationSequence)
from cgmres.multiple_shooting.residuals import saturation_residual
from cgmres.multiple_shooting.elimination import (
    add_saturation_derivative, multiply_saturation_derivative,
    multiply_saturation_self_derivative_inverse)

from ._utilities import compare_finite_difference


rng = np.random.default_rng(789)


def _make_saturation():
    return ControlInputSaturationSequence([(1, -10., 10., 1e-03),
                                           (0, -1., 3., 0.5),
                                           (2, 0., 0.2, 2.)])


def _interior_point(saturation, n_uc, n_nodes):
    """Random controls strictly inside the boxes, with the matching positive
    dummy variables and random multipliers."""
    uc = rng.normal(size=(n_nodes, n_uc))
    for s in saturation:
        margin = (s.ub - s.lb) / 4.
        uc[:, s.index] = rng.uniform(s.lb + margin, s.ub - margin,
                                     size=n_nodes)
    uc = uc.reshape(-1)

    U = uc.reshape(n_nodes, n_uc).T
    half_range = saturation.half_range[:, None]
    dummy = np.sqrt(half_range ** 2
                    - (U[saturation.indices] - saturation.mid[:, None]) ** 2)
    multiplier = rng.uniform(0.1, 1., size=dummy.shape)
    return uc, dummy, multiplier


def test_sequence():
    saturation = ControlInputSaturationSequence()
    assert len(saturation) == 0
    assert saturation.dim_saturation == 0
    assert saturation.indices.shape == (0,)

    saturation.append(1, -10, 10, 0.001)
    saturation.append(0, -1., 3., 0.5)

    assert saturation.dim_saturation == 2
    assert saturation[0] == ControlInputSaturation(1, -10., 10., 0.001)
    assert saturation.index(1) == 0
    assert saturation.min(1) == -1.
    assert saturation.max(1) == 3.
    assert saturation.weight(0) == 0.001

    np.testing.assert_array_equal(saturation.indices, [1, 0])
    np.testing.assert_array_equal(saturation.lb, [-10., -1.])
    np.testing.assert_array_equal(saturation.ub, [10., 3.])
    np.testing.assert_array_equal(saturation.weights, [0.001, 0.5])
    np.testing.assert_array_equal(saturation.mid, [0., 1.])
    np.testing.assert_array_equal(saturation.half_range, [10., 2.])

    # Entries are immutable
    with pytest.raises(AttributeError):
        saturation[0].lb = 0.

    saturation.check_dimension(2)
    with pytest.raises(ValueError):
        saturation.check_dimension(1)


@pytest.mark.parametrize('entry', [(0, 1., 1., 1.), (0, 2., -2., 1.),
                                   (0, -1., 1., 0.), (0, -1., 1., -1.),
                                   (-1, -1., 1., 1.), (0.5, -1., 1., 1.)])
def test_bad_entries(entry):
    saturation = ControlInputSaturationSequence()
    with pytest.raises((ValueError, TypeError)):
        saturation.append(*entry)
    assert len(saturation) == 0


def test_dummy_from_control():
    saturation = _make_saturation()
    uc = np.array([0., 6., 0.1])
    np.testing.assert_allclose(saturation.dummy_from_control(uc),
                               [8., np.sqrt(3.), 0.1])

    # On or outside a bound the dummy is floored
    uc = np.array([-1., 12., 0.1])
    np.testing.assert_allclose(saturation.dummy_from_control(uc),
                               [1e-02, 2e-03, 0.1])


@pytest.mark.parametrize('n_nodes', [1, 4])
def test_saturation_residual_vanishes_inside_box(n_nodes):
    """Inside the box, the dummy variable making the saturation residual zero
    exists, for any multiplier."""
    saturation = _make_saturation()
    uc, dummy, multiplier = _interior_point(saturation, 3, n_nodes)

    dummy_err, sat_err = saturation_residual(saturation, uc, dummy, multiplier)
    assert sat_err.shape == (3, n_nodes)
    np.testing.assert_allclose(sat_err, 0., atol=1e-12)
    np.testing.assert_allclose(
        dummy_err, 2. * multiplier * dummy - saturation.weights[:, None])

    # Writing into preallocated arrays gives the same result
    out_dummy, out_sat = np.empty((3, n_nodes)), np.empty((3, n_nodes))
    res = saturation_residual(saturation, uc, dummy, multiplier,
                              out_dummy=out_dummy, out_saturation=out_sat)
    assert res[0] is out_dummy and res[1] is out_sat
    np.testing.assert_array_equal(out_dummy, dummy_err)


def test_add_saturation_derivative():
    """The added term is the gradient of the saturation constraints weighted
    by their multipliers, including repeated indices."""
    saturation = _make_saturation()
    saturation.append(1, -2., 5., 0.1)
    n_uc = 3
    uc, dummy, multiplier = _interior_point(saturation, n_uc, 1)

    def penalty(uc):
        _, sat_err = saturation_residual(saturation, uc, dummy, multiplier)
        return np.sum(multiplier * sat_err)

    base = rng.normal(size=n_uc)
    out = add_saturation_derivative(saturation, uc, multiplier, base.copy())
    compare_finite_difference(uc, out - base, penalty, rtol=1e-06, atol=1e-08)


@pytest.mark.parametrize('n_nodes', [1, 3])
def test_eliminator_inverse(n_nodes):
    """Moving the controls along a direction changes the saturation residuals
    by the same amount, to first order, as moving the dummy variables and
    multipliers along the eliminated direction."""
    saturation = _make_saturation()
    n_uc = 3
    uc, dummy, multiplier = _interior_point(saturation, n_uc, n_nodes)
    direction = rng.normal(size=uc.shape)
    eps = 1e-06

    dummy_prod, sat_prod = multiply_saturation_derivative(
        saturation, uc, direction, n_nodes)
    np.testing.assert_array_equal(dummy_prod, 0.)

    dummy_update, multiplier_update = \
        multiply_saturation_self_derivative_inverse(dummy, multiplier,
                                                    dummy_prod, sat_prod)

    base = np.concatenate(saturation_residual(saturation, uc, dummy,
                                              multiplier))
    moved_uc = np.concatenate(saturation_residual(
        saturation, uc + eps * direction, dummy, multiplier))
    moved_sat = np.concatenate(saturation_residual(
        saturation, uc, dummy + eps * dummy_update,
        multiplier + eps * multiplier_update))

    np.testing.assert_allclose((moved_uc - base) / eps,
                               np.concatenate((dummy_prod, sat_prod)),
                               rtol=1e-04, atol=1e-04)
    np.testing.assert_allclose((moved_sat - base) / eps,
                               (moved_uc - base) / eps, rtol=1e-04, atol=1e-04)


def test_self_derivative_inverse_outputs_may_alias_inputs():
    dummy = rng.uniform(0.5, 1., size=(2, 3))
    multiplier = rng.uniform(size=(2, 3))
    v_dummy = rng.normal(size=(2, 3))
    v_sat = rng.normal(size=(2, 3))

    expected = multiply_saturation_self_derivative_inverse(
        dummy, multiplier, v_dummy, v_sat)
    np.testing.assert_allclose(expected[0], v_sat / (2. * dummy))
    np.testing.assert_allclose(
        expected[1],
        v_dummy / (2. * dummy) - multiplier * v_sat / (2. * dummy ** 2))

    multiply_saturation_self_derivative_inverse(
        dummy, multiplier, v_dummy, v_sat, out_dummy=v_dummy,
        out_multiplier=v_sat)
    np.testing.assert_allclose(v_dummy, expected[0])
    np.testing.assert_allclose(v_sat, expected[1])
