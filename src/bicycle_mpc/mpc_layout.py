from __future__ import annotations

from dataclasses import dataclass

import numpy as np


STATE_NAMES = ("x", "y", "psi", "v", "cte", "epsi")
ACTUATOR_NAMES = ("delta", "a")


@dataclass(frozen=True)
class MPCDecisionLayout:
    """
    Index bookkeeping for the flattened MPC decision vector.

    Every variable occupies one contiguous block, ordered in time:

        [x_0..x_{N-1}, y_0.., psi_0.., v_0.., cte_0.., epsi_0..,
         delta_0..delta_{N-2}, a_0..a_{N-2}]

    The constraint vector reuses the state block offsets: row ``start`` of a
    block pins the initial state, row ``start + t + 1`` holds the dynamics
    residual for step ``t -> t + 1``.
    """

    horizon: int

    def __post_init__(self) -> None:
        if self.horizon < 2:
            raise ValueError("horizon must be >= 2")

    @property
    def state_dim(self) -> int:
        return len(STATE_NAMES)

    @property
    def control_dim(self) -> int:
        return len(ACTUATOR_NAMES)

    @property
    def x_start(self) -> int:
        return 0

    @property
    def y_start(self) -> int:
        return self.x_start + self.horizon

    @property
    def psi_start(self) -> int:
        return self.y_start + self.horizon

    @property
    def v_start(self) -> int:
        return self.psi_start + self.horizon

    @property
    def cte_start(self) -> int:
        return self.v_start + self.horizon

    @property
    def epsi_start(self) -> int:
        return self.cte_start + self.horizon

    @property
    def delta_start(self) -> int:
        return self.epsi_start + self.horizon

    @property
    def a_start(self) -> int:
        return self.delta_start + self.horizon - 1

    @property
    def state_block(self) -> int:
        return self.state_dim * self.horizon

    @property
    def control_block(self) -> int:
        return self.control_dim * (self.horizon - 1)

    @property
    def decision_dim(self) -> int:
        return self.state_block + self.control_block

    @property
    def constraint_dim(self) -> int:
        return self.state_block

    @property
    def state_starts(self) -> tuple:
        return (
            self.x_start,
            self.y_start,
            self.psi_start,
            self.v_start,
            self.cte_start,
            self.epsi_start,
        )

    def block(self, name: str) -> slice:
        """Slice of the decision vector holding variable ``name``."""
        if name in STATE_NAMES:
            start = self.state_starts[STATE_NAMES.index(name)]
            return slice(start, start + self.horizon)
        if name == "delta":
            return slice(self.delta_start, self.a_start)
        if name == "a":
            return slice(self.a_start, self.decision_dim)
        raise KeyError(f"unknown decision variable {name!r}")

    def split(self, decision: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Splits a decision vector into ``(N, 6)`` states and ``(N - 1, 2)``
        actuators.
        """
        decision = np.asarray(decision, dtype=float).reshape(-1)
        assert decision.shape[0] == self.decision_dim
        states = decision[: self.state_block].reshape(self.state_dim, self.horizon).T
        controls = decision[self.state_block :].reshape(
            self.control_dim, self.horizon - 1
        ).T
        return states, controls

    def pack(self, states: np.ndarray, controls: np.ndarray) -> np.ndarray:
        """Inverse of :meth:`split`."""
        states = np.asarray(states, dtype=float)
        controls = np.asarray(controls, dtype=float)
        assert states.shape == (self.horizon, self.state_dim)
        assert controls.shape == (self.horizon - 1, self.control_dim)
        return np.concatenate([states.T.reshape(-1), controls.T.reshape(-1)])
