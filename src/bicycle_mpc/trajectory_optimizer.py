"""
Receding-horizon trajectory optimizer for path tracking.

Each call lays out the decision vector, seeds the initial guess, builds the
variable and constraint bounds, hands everything to the NLP solver, and pulls
out the first actuator pair plus the predicted path.  The CasADi problem is
built once with symbolic path coefficients, which are passed in as solver
parameters every cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import casadi as ca
import numpy as np

from .mpc_config import MPCConfig
from .mpc_layout import MPCDecisionLayout
from .nlp_solver import IpoptSolver, NLPBounds, NLPSolution, NLPSolver, SolveStatus
from .objective import TrackingObjective


@dataclass
class MPCResult:
    steering: float
    acceleration: float
    predicted_x: np.ndarray
    predicted_y: np.ndarray
    state_trajectory: np.ndarray
    control_trajectory: np.ndarray
    status: SolveStatus
    message: str
    cost: float
    raw_decision: np.ndarray

    @property
    def success(self) -> bool:
        return self.status is SolveStatus.CONVERGED

    @property
    def usable(self) -> bool:
        return self.status.usable

    @property
    def predicted_speed(self) -> np.ndarray:
        return self.state_trajectory[:, 3]

    def as_vector(self) -> list:
        """``[delta, a, x_1, y_1, ..., x_{N-1}, y_{N-1}]``."""
        out = [self.steering, self.acceleration]
        for x, y in zip(self.predicted_x, self.predicted_y):
            out.extend((float(x), float(y)))
        return out


class MPCTrajectoryOptimizer:
    def __init__(self, config: Optional[MPCConfig] = None, solver: Optional[NLPSolver] = None):
        self.config = config if config is not None else MPCConfig()
        self.layout = MPCDecisionLayout(self.config.horizon)
        self.solver = (
            solver if solver is not None else IpoptSolver(print_level=self.config.print_level)
        )
        self.objective = TrackingObjective(
            ca.SX.sym("coeffs", self.config.num_coeffs), self.config
        )

    def solve(
        self,
        current_state: Sequence[float],
        coeffs: Sequence[float],
        warm_start: Optional[MPCResult] = None,
    ) -> MPCResult:
        state = self._validate_state(current_state)
        coeffs = self._validate_coeffs(coeffs)

        guess = self.initial_guess(state, warm_start)
        lbx, ubx = self.variable_bounds()
        lbg, ubg = self.constraint_bounds(state)
        solution = self.solver.solve(
            self.objective,
            guess,
            NLPBounds(lbx=lbx, ubx=ubx, lbg=lbg, ubg=ubg),
            coeffs,
            self.config.time_budget_sec,
        )

        if self.config.verbose:
            print("[MPC] IPOPT status:", solution.message)
            print("[MPC] Cost", solution.cost)
            print("[MPC] Max constraint violation", solution.constraint_violation)
        if solution.status is SolveStatus.TIMED_OUT and self.config.verbose:
            print("[MPC] WARNING: solver stopped at its limit, using last iterate.")
        if solution.status is SolveStatus.FAILED and self.config.verbose:
            print("[MPC] WARNING: no feasible iterate, result is not usable.")

        return self._extract(solution)

    def initial_guess(
        self, state: np.ndarray, warm_start: Optional[MPCResult] = None
    ) -> np.ndarray:
        """
        Zeros everywhere except the initial state slots.  A warm start reuses
        the previous decision vector with its initial state overwritten.
        """
        L = self.layout
        if (
            warm_start is not None
            and warm_start.usable
            and warm_start.raw_decision.shape[0] == L.decision_dim
        ):
            guess = np.array(warm_start.raw_decision, dtype=float)
        else:
            guess = np.zeros(L.decision_dim)
        for start, value in zip(L.state_starts, state):
            guess[start] = value
        return guess

    def variable_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        L = self.layout
        cfg = self.config
        lower = np.empty(L.decision_dim)
        upper = np.empty(L.decision_dim)

        lower[: L.delta_start] = -cfg.unbounded
        upper[: L.delta_start] = cfg.unbounded

        lower[L.delta_start : L.a_start] = -cfg.max_steering
        upper[L.delta_start : L.a_start] = cfg.max_steering

        lower[L.a_start :] = -cfg.max_accel
        upper[L.a_start :] = cfg.max_accel
        return lower, upper

    def constraint_bounds(self, state: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        L = self.layout
        lower = np.zeros(L.constraint_dim)
        upper = np.zeros(L.constraint_dim)
        for start, value in zip(L.state_starts, state):
            lower[start] = value
            upper[start] = value
        return lower, upper

    def _extract(self, solution: NLPSolution) -> MPCResult:
        L = self.layout
        N = self.config.horizon
        decision = np.asarray(solution.x, dtype=float).reshape(-1)
        assert decision.shape[0] == L.decision_dim
        states, controls = L.split(decision)
        return MPCResult(
            steering=_clip_actuator(decision[L.delta_start], self.config.max_steering),
            acceleration=_clip_actuator(decision[L.a_start], self.config.max_accel),
            predicted_x=decision[L.x_start + 1 : L.x_start + N].copy(),
            predicted_y=decision[L.y_start + 1 : L.y_start + N].copy(),
            state_trajectory=states,
            control_trajectory=controls,
            status=solution.status,
            message=solution.message,
            cost=solution.cost,
            raw_decision=decision,
        )

    def _validate_state(self, state: Sequence[float]) -> np.ndarray:
        state = np.asarray(state, dtype=float).reshape(-1)
        if state.shape[0] != self.layout.state_dim:
            raise ValueError(
                f"state must have {self.layout.state_dim} entries, got {state.shape[0]}"
            )
        if not np.all(np.isfinite(state)):
            raise ValueError("state contains non-finite values")
        return state

    def _validate_coeffs(self, coeffs: Sequence[float]) -> np.ndarray:
        coeffs = np.asarray(coeffs, dtype=float).reshape(-1)
        if coeffs.shape[0] != self.config.num_coeffs:
            raise ValueError(
                f"expected {self.config.num_coeffs} path coefficients, got {coeffs.shape[0]}"
            )
        if not np.all(np.isfinite(coeffs)):
            raise ValueError("path coefficients contain non-finite values")
        return coeffs


def _clip_actuator(value: float, limit: float) -> float:
    # IPOPT relaxes bounds by a tiny factor; commands must stay inside them.
    if not np.isfinite(value):
        return 0.0
    return float(np.clip(value, -limit, limit))
