"""
Numerical kinematic bicycle model.

The optimizer builds the prediction equations symbolically with CasADi.  This
module evaluates the very same discrete equations with NumPy so they can be
used for latency compensation, for simulating a plant in closed loop, and for
hand-propagating trajectories in tests.

State layout: ``[x, y, psi, v, cte, epsi]``; control layout: ``[delta, a]``.
Positive steering turns the vehicle so that ``psi`` decreases, which matches
the simulator the controller was tuned against.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .path import polyeval, polyslope


StateVector = np.ndarray
ControlVector = np.ndarray


@dataclass
class VehicleParams:
    lf: float = 2.67


@dataclass
class KinematicBicycle:
    """
    Discrete kinematic bicycle with the error states used by the MPC.

    Parameters
    ----------
    params : VehicleParams
        Physical constants.  ``MPCController`` rejects a model whose ``lf``
        differs from ``MPCConfig.lf``.
    """

    params: VehicleParams = field(default_factory=VehicleParams)

    @property
    def state_dim(self) -> int:
        return 6

    @property
    def control_dim(self) -> int:
        return 2

    def step(
        self,
        state: StateVector,
        control: ControlVector,
        coeffs: Sequence[float],
        dt: float,
    ) -> StateVector:
        """
        Propagates ``state`` by ``dt`` holding ``control`` constant.  ``cte``
        and ``epsi`` are measured against the path ``coeffs``.
        """
        state = np.asarray(state, dtype=float)
        control = np.asarray(control, dtype=float)
        assert state.shape[0] == self.state_dim
        assert control.shape[0] == self.control_dim

        x, y, psi, v, _, epsi = state
        delta, a = control
        coeffs = [float(c) for c in coeffs]
        lf = self.params.lf

        f0 = polyeval(coeffs, x)
        psides0 = np.arctan(polyslope(coeffs, x))
        return np.array(
            [
                x + v * np.cos(psi) * dt,
                y + v * np.sin(psi) * dt,
                psi - v / lf * delta * dt,
                v + a * dt,
                (f0 - y) + v * np.sin(epsi) * dt,
                (psi - psides0) - v / lf * delta * dt,
            ]
        )

    def rollout(
        self,
        initial_state: StateVector,
        controls: np.ndarray,
        coeffs: Sequence[float],
        dt: float,
    ) -> np.ndarray:
        """
        Applies ``controls`` (shape ``(K, 2)``) in sequence and returns the
        ``(K + 1, 6)`` state trajectory including ``initial_state``.
        """
        controls = np.atleast_2d(np.asarray(controls, dtype=float))
        states = [np.asarray(initial_state, dtype=float)]
        for u in controls:
            states.append(self.step(states[-1], u, coeffs, dt))
        return np.vstack(states)

    def plant_step(
        self, pose: np.ndarray, control: ControlVector, dt: float
    ) -> np.ndarray:
        """
        Advances a map-frame pose ``[x, y, psi, v]``.  Used as the simulated
        vehicle in closed-loop runs.
        """
        x, y, psi, v = np.asarray(pose, dtype=float)
        delta, a = control
        return np.array(
            [
                x + v * np.cos(psi) * dt,
                y + v * np.sin(psi) * dt,
                psi - v / self.params.lf * delta * dt,
                v + a * dt,
            ]
        )


def initial_errors(coeffs: Sequence[float]) -> tuple[float, float]:
    """
    Cross-track and heading error of a vehicle sitting at the origin of its
    own frame with zero heading.
    """
    coeffs = [float(c) for c in coeffs]
    cte = polyeval(coeffs, 0.0)
    epsi = -np.arctan(polyslope(coeffs, 0.0))
    return float(cte), float(epsi)


def propagate_latency(
    model: KinematicBicycle,
    speed: float,
    coeffs: Sequence[float],
    control: ControlVector,
    latency_sec: float,
) -> StateVector:
    """
    Builds the vehicle-frame state at the moment a new command takes effect.

    The vehicle starts at the origin with zero heading; during the latency
    interval it keeps executing ``control``, the command applied last cycle.
    """
    cte, epsi = initial_errors(coeffs)
    state = np.array([0.0, 0.0, 0.0, float(speed), cte, epsi])
    if latency_sec <= 0.0:
        return state
    return model.step(state, control, coeffs, latency_sec)
