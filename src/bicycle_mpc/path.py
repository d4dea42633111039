"""
Reference path helpers.

Waypoints arrive in the map frame.  They are rotated into the vehicle frame
(origin at the car, x pointing along its heading) and fitted with a low order
polynomial ``y = c0 + c1 x + c2 x^2 + c3 x^3``.  Coefficients are always kept
in ascending order.

``polyeval`` and ``polyslope`` only use ``+`` and ``*`` so they accept floats,
NumPy arrays and CasADi symbols alike; the objective builder relies on that.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from numpy.polynomial import polynomial as P


def polyeval(coeffs: Sequence, x):
    """Evaluates the polynomial at ``x`` with Horner's scheme."""
    result = coeffs[-1]
    for c in reversed(coeffs[:-1]):
        result = result * x + c
    return result


def polyslope(coeffs: Sequence, x):
    """Evaluates the first derivative of the polynomial at ``x``."""
    if len(coeffs) < 2:
        return 0.0 * x
    deriv = [k * coeffs[k] for k in range(1, len(coeffs))]
    return polyeval(deriv, x)


def reference_heading(coeffs: Sequence, x) -> np.ndarray:
    """Heading of the path tangent, ``atan(f'(x))``."""
    return np.arctan(polyslope(list(coeffs), np.asarray(x, dtype=float)))


def to_vehicle_frame(
    ptsx: Sequence[float],
    ptsy: Sequence[float],
    px: float,
    py: float,
    psi: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Translates and rotates map-frame waypoints into the frame of a vehicle at
    ``(px, py)`` with heading ``psi``.
    """
    ptsx = np.asarray(ptsx, dtype=float)
    ptsy = np.asarray(ptsy, dtype=float)
    if ptsx.shape != ptsy.shape:
        raise ValueError("ptsx and ptsy must have the same shape")
    dx = ptsx - px
    dy = ptsy - py
    cos_psi = np.cos(psi)
    sin_psi = np.sin(psi)
    xs = dx * cos_psi + dy * sin_psi
    ys = -dx * sin_psi + dy * cos_psi
    return xs, ys


def fit_polynomial(xs: Sequence[float], ys: Sequence[float], order: int = 3) -> np.ndarray:
    """
    Least-squares polynomial fit.  Returns ``order + 1`` ascending
    coefficients.
    """
    xs = np.asarray(xs, dtype=float).reshape(-1)
    ys = np.asarray(ys, dtype=float).reshape(-1)
    if xs.shape != ys.shape:
        raise ValueError("xs and ys must have the same length")
    if xs.size < order + 1:
        raise ValueError(
            f"need at least {order + 1} waypoints for an order {order} fit, got {xs.size}"
        )
    return P.polyfit(xs, ys, order)


def reference_points(
    coeffs: Sequence[float], num_points: int = 25, spacing: float = 2.5
) -> Tuple[np.ndarray, np.ndarray]:
    """Samples the fitted path ahead of the vehicle for display."""
    xs = spacing * np.arange(1, num_points + 1, dtype=float)
    ys = polyeval(list(coeffs), xs)
    return xs, np.asarray(ys, dtype=float)
