"""
Cost and constraint evaluator for the tracking MPC.

``TrackingObjective`` maps a decision vector onto ``fg``: entry 0 is the
scalar cost, entries ``1 .. 6N`` are the constraint rows laid out by
``MPCDecisionLayout``.  Expressions are built with CasADi so the solver gets
exact sparse derivatives; numeric evaluation goes through a ``ca.Function``
wrapping the same expressions.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import casadi as ca
import numpy as np

from .mpc_config import MPCConfig
from .mpc_layout import MPCDecisionLayout
from .path import polyeval, polyslope


Coefficients = Union[Sequence[float], np.ndarray, ca.SX]


class TrackingObjective:
    """
    Parameters
    ----------
    coeffs : array-like or ca.SX
        Ascending path polynomial coefficients.  Passing an ``SX`` column of
        length ``poly_order + 1`` keeps the coefficients symbolic; they then
        become the parameter vector of the NLP and can change every cycle
        without rebuilding the solver.
    config : MPCConfig
        Horizon, timestep, vehicle and cost constants.
    """

    def __init__(self, coeffs: Coefficients, config: MPCConfig):
        self.config = config
        self.layout = MPCDecisionLayout(config.horizon)
        if isinstance(coeffs, ca.SX):
            assert coeffs.numel() == config.num_coeffs
            self._symbolic = True
            self.coeffs = coeffs
            self._c = [coeffs[k] for k in range(coeffs.numel())]
        else:
            values = np.asarray(coeffs, dtype=float).reshape(-1)
            self._symbolic = False
            self.coeffs = values
            self._c = [float(c) for c in values]
        self._fg_fun: Optional[ca.Function] = None

    @property
    def parameters(self) -> ca.SX:
        """Symbolic NLP parameters, empty for numeric coefficients."""
        if self._symbolic:
            return self.coeffs
        return ca.SX.sym("coeffs", 0)

    def __call__(self, vars):
        return ca.vertcat(self.cost(vars), self.constraints(vars))

    def cost(self, vars):
        cfg = self.config
        L = self.layout
        N = cfg.horizon

        cost = 0
        # Deviation from the reference state.
        for t in range(N):
            cost += cfg.cte_weight * vars[L.cte_start + t] ** 2
            cost += cfg.epsi_weight * vars[L.epsi_start + t] ** 2
            cost += cfg.v_weight * (vars[L.v_start + t] - cfg.ref_v) ** 2

        # Actuator effort.
        for t in range(N - 1):
            cost += cfg.delta_weight * vars[L.delta_start + t] ** 2
            cost += cfg.a_weight * vars[L.a_start + t] ** 2

        # Actuator jerk between consecutive steps.
        for t in range(N - 2):
            cost += cfg.delta_rate_weight * (
                vars[L.delta_start + t + 1] - vars[L.delta_start + t]
            ) ** 2
            cost += cfg.a_rate_weight * (
                vars[L.a_start + t + 1] - vars[L.a_start + t]
            ) ** 2
        return cost

    def constraints(self, vars):
        cfg = self.config
        L = self.layout
        N = cfg.horizon
        dt = cfg.dt
        lf = cfg.lf

        g = [None] * L.constraint_dim

        # Pin rows: bounded to the measured state by the optimizer.
        for start in L.state_starts:
            g[start] = vars[start]

        for t in range(N - 1):
            x1 = vars[L.x_start + t + 1]
            y1 = vars[L.y_start + t + 1]
            psi1 = vars[L.psi_start + t + 1]
            v1 = vars[L.v_start + t + 1]
            cte1 = vars[L.cte_start + t + 1]
            epsi1 = vars[L.epsi_start + t + 1]

            x0 = vars[L.x_start + t]
            y0 = vars[L.y_start + t]
            psi0 = vars[L.psi_start + t]
            v0 = vars[L.v_start + t]
            epsi0 = vars[L.epsi_start + t]

            # Zero-order hold: only the actuation at t acts over [t, t + 1].
            delta0 = vars[L.delta_start + t]
            a0 = vars[L.a_start + t]

            f0 = polyeval(self._c, x0)
            psides0 = ca.atan(polyslope(self._c, x0))

            g[L.x_start + t + 1] = x1 - (x0 + v0 * ca.cos(psi0) * dt)
            g[L.y_start + t + 1] = y1 - (y0 + v0 * ca.sin(psi0) * dt)
            g[L.psi_start + t + 1] = psi1 - (psi0 - v0 / lf * delta0 * dt)
            g[L.v_start + t + 1] = v1 - (v0 + a0 * dt)
            g[L.cte_start + t + 1] = cte1 - ((f0 - y0) + v0 * ca.sin(epsi0) * dt)
            g[L.epsi_start + t + 1] = epsi1 - (
                (psi0 - psides0) - v0 / lf * delta0 * dt
            )
        return ca.vertcat(*g)

    def function(self) -> ca.Function:
        """``fg_eval(vars, coeffs) -> fg`` as a compiled CasADi function."""
        if self._fg_fun is None:
            vars = ca.SX.sym("vars", self.layout.decision_dim)
            self._fg_fun = ca.Function(
                "fg_eval", [vars, self.parameters], [self(vars)], ["vars", "coeffs"], ["fg"]
            )
        return self._fg_fun

    def evaluate(self, decision: np.ndarray, coeffs: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Numeric ``fg`` for a decision vector.  ``coeffs`` is required only when
        the objective was built with symbolic coefficients.
        """
        decision = np.asarray(decision, dtype=float).reshape(-1)
        assert decision.shape[0] == self.layout.decision_dim
        if self._symbolic:
            if coeffs is None:
                raise ValueError("coeffs required for a symbolic objective")
            params = np.asarray(coeffs, dtype=float).reshape(-1)
        else:
            params = np.zeros(0)
        return self.function()(decision, params).full().reshape(-1)

    def evaluate_cost(self, decision: np.ndarray, coeffs: Optional[np.ndarray] = None) -> float:
        return float(self.evaluate(decision, coeffs)[0])

    def evaluate_constraints(
        self, decision: np.ndarray, coeffs: Optional[np.ndarray] = None
    ) -> np.ndarray:
        return self.evaluate(decision, coeffs)[1:]
