"""
One control cycle: telemetry in, actuator command out.

The controller moves the waypoints into the vehicle frame, fits the path
polynomial, compensates actuation latency by propagating the vehicle forward
with the last command, runs the MPC, and normalizes the steering for the
actuator.  When the solver reports a failure the configured fallback command
is sent instead of the unusable iterate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .path import fit_polynomial, reference_points, to_vehicle_frame
from .trajectory_optimizer import MPCResult, MPCTrajectoryOptimizer
from .vehicle_dynamics import KinematicBicycle, VehicleParams, propagate_latency


FALLBACK_MODES = ("hold", "brake")


@dataclass
class ControllerConfig:
    latency_sec: float = 0.1
    # Physical steering limit of the actuator; commands are sent as a
    # fraction of it.
    steering_limit_rad: float = float(np.deg2rad(25.0))
    fallback: str = "hold"
    brake_throttle: float = -1.0
    warm_start: bool = False
    num_reference_points: int = 25
    reference_spacing: float = 2.5

    def __post_init__(self) -> None:
        if self.fallback not in FALLBACK_MODES:
            raise ValueError(f"fallback must be one of {FALLBACK_MODES}, got {self.fallback!r}")
        if self.latency_sec < 0.0:
            raise ValueError("latency_sec must be non-negative")
        if self.steering_limit_rad <= 0.0:
            raise ValueError("steering_limit_rad must be positive")


@dataclass
class Telemetry:
    """
    Map-frame vehicle pose and upcoming waypoints.  ``steering_angle`` (rad,
    MPC sign convention) and ``throttle`` describe the command currently being
    executed.
    """

    ptsx: Sequence[float]
    ptsy: Sequence[float]
    x: float
    y: float
    psi: float
    speed: float
    steering_angle: float = 0.0
    throttle: float = 0.0


@dataclass
class ActuatorCommand:
    steering: float
    throttle: float


@dataclass
class ControllerOutput:
    command: ActuatorCommand
    result: MPCResult
    coeffs: np.ndarray
    state: np.ndarray
    reference_x: np.ndarray
    reference_y: np.ndarray
    fallback_used: bool = False

    @property
    def predicted_x(self) -> np.ndarray:
        return self.result.predicted_x

    @property
    def predicted_y(self) -> np.ndarray:
        return self.result.predicted_y


class MPCController:
    def __init__(
        self,
        optimizer: Optional[MPCTrajectoryOptimizer] = None,
        config: Optional[ControllerConfig] = None,
        model: Optional[KinematicBicycle] = None,
    ):
        self.optimizer = optimizer if optimizer is not None else MPCTrajectoryOptimizer()
        self.config = config if config is not None else ControllerConfig()
        self.model = (
            model
            if model is not None
            else KinematicBicycle(VehicleParams(lf=self.optimizer.config.lf))
        )
        # Latency propagation must use the same geometry as the prediction.
        if self.model.params.lf != self.optimizer.config.lf:
            raise ValueError(
                f"model lf {self.model.params.lf} does not match "
                f"optimizer lf {self.optimizer.config.lf}"
            )
        self.last_command = ActuatorCommand(steering=0.0, throttle=0.0)
        self._last_result: Optional[MPCResult] = None

    def compute(self, telemetry: Telemetry) -> ControllerOutput:
        xs, ys = to_vehicle_frame(
            telemetry.ptsx, telemetry.ptsy, telemetry.x, telemetry.y, telemetry.psi
        )
        coeffs = fit_polynomial(xs, ys, self.optimizer.config.poly_order)
        control = np.array([telemetry.steering_angle, telemetry.throttle])
        state = propagate_latency(
            self.model, telemetry.speed, coeffs, control, self.config.latency_sec
        )

        warm = self._last_result if self.config.warm_start else None
        result = self.optimizer.solve(state, coeffs, warm_start=warm)

        fallback_used = not result.usable
        if fallback_used:
            command = self._fallback_command()
            self._last_result = None
        else:
            command = ActuatorCommand(
                steering=float(
                    np.clip(result.steering / self.config.steering_limit_rad, -1.0, 1.0)
                ),
                throttle=result.acceleration,
            )
            self._last_result = result
        self.last_command = command

        ref_x, ref_y = reference_points(
            coeffs, self.config.num_reference_points, self.config.reference_spacing
        )
        return ControllerOutput(
            command=command,
            result=result,
            coeffs=coeffs,
            state=state,
            reference_x=ref_x,
            reference_y=ref_y,
            fallback_used=fallback_used,
        )

    def steering_to_radians(self, normalized: float) -> float:
        """Converts a normalized steering command back to the model angle."""
        return normalized * self.config.steering_limit_rad

    def _fallback_command(self) -> ActuatorCommand:
        if self.config.fallback == "brake":
            return ActuatorCommand(steering=0.0, throttle=self.config.brake_throttle)
        return ActuatorCommand(
            steering=self.last_command.steering, throttle=self.last_command.throttle
        )
