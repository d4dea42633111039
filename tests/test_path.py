"""
Tests for waypoint transforms and polynomial fitting.
"""

import casadi as ca
import numpy as np
import pytest

from bicycle_mpc.path import (
    fit_polynomial,
    polyeval,
    polyslope,
    reference_heading,
    reference_points,
    to_vehicle_frame,
)


COEFFS = [1.0, -0.5, 0.02, -0.003]


def test_polyeval_matches_numpy():
    xs = np.linspace(-5.0, 30.0, 12)

    np.testing.assert_allclose(
        polyeval(COEFFS, xs), np.polynomial.polynomial.polyval(xs, COEFFS)
    )


def test_polyslope_matches_numpy_derivative():
    xs = np.linspace(-5.0, 30.0, 12)
    deriv = np.polynomial.polynomial.polyder(COEFFS)

    np.testing.assert_allclose(
        polyslope(COEFFS, xs), np.polynomial.polynomial.polyval(xs, deriv)
    )


def test_polyeval_accepts_casadi_symbols():
    x = ca.SX.sym("x")
    f = ca.Function("f", [x], [polyeval(COEFFS, x)])

    assert float(f(2.0)) == pytest.approx(polyeval(COEFFS, 2.0))


def test_reference_heading():
    assert reference_heading([0.0, 1.0, 0.0, 0.0], 3.0) == pytest.approx(np.pi / 4)


def test_fit_recovers_cubic():
    xs = np.linspace(0.0, 50.0, 6)
    ys = polyeval(COEFFS, xs)

    np.testing.assert_allclose(fit_polynomial(xs, ys), COEFFS, atol=1e-6)


def test_fit_needs_enough_points():
    with pytest.raises(ValueError):
        fit_polynomial([0.0, 1.0, 2.0], [0.0, 1.0, 4.0], order=3)


def test_fit_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        fit_polynomial([0.0, 1.0, 2.0, 3.0], [0.0, 1.0, 4.0])


def test_point_ahead_lands_on_x_axis():
    xs, ys = to_vehicle_frame([1.0], [3.0], px=1.0, py=1.0, psi=np.pi / 2)

    assert xs[0] == pytest.approx(2.0)
    assert ys[0] == pytest.approx(0.0, abs=1e-12)


def test_point_to_the_left_has_positive_y():
    xs, ys = to_vehicle_frame([0.0], [1.0], px=1.0, py=1.0, psi=np.pi / 2)

    assert xs[0] == pytest.approx(0.0, abs=1e-12)
    assert ys[0] == pytest.approx(1.0)


def test_transform_preserves_distances():
    rng = np.random.default_rng(7)
    ptsx = rng.uniform(-20, 20, 5)
    ptsy = rng.uniform(-20, 20, 5)

    xs, ys = to_vehicle_frame(ptsx, ptsy, px=3.0, py=-4.0, psi=0.7)

    np.testing.assert_allclose(
        np.hypot(xs, ys), np.hypot(ptsx - 3.0, ptsy + 4.0)
    )


def test_transform_rejects_mismatched_shapes():
    with pytest.raises(ValueError):
        to_vehicle_frame([0.0, 1.0], [0.0], 0.0, 0.0, 0.0)


def test_reference_points_sample_ahead():
    xs, ys = reference_points([0.5, 0.0, 0.0, 0.0], num_points=4, spacing=2.0)

    np.testing.assert_allclose(xs, [2.0, 4.0, 6.0, 8.0])
    np.testing.assert_allclose(ys, 0.5)
