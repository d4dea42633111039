"""
Closed-loop simulation of the MPC controller on a synthetic track.

The plant is the kinematic bicycle in the map frame.  Commands reach the
plant one latency interval late: during the first ``latency_sec`` of a cycle
the vehicle keeps executing the previous command.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .controller import MPCController, Telemetry
from .nlp_solver import SolveStatus


def sinusoidal_track(
    length: float = 1000.0,
    amplitude: float = 15.0,
    wavelength: float = 400.0,
    points: int = 1001,
) -> Tuple[np.ndarray, np.ndarray]:
    """Centerline of a gently winding road."""
    x = np.linspace(0.0, length, points)
    y = amplitude * np.sin(2.0 * np.pi * x / wavelength)
    return x, y


def upcoming_waypoints(
    track_x: np.ndarray,
    track_y: np.ndarray,
    pose: np.ndarray,
    count: int = 6,
    stride: int = 10,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Returns ``count`` waypoints starting just behind the vehicle, every
    ``stride`` track samples.  Fewer are returned near the end of the track.
    """
    dist = np.hypot(track_x - pose[0], track_y - pose[1])
    start = max(int(np.argmin(dist)) - stride, 0)
    idx = np.arange(start, start + count * stride, stride)
    idx = idx[idx < track_x.shape[0]]
    return track_x[idx], track_y[idx]


@dataclass
class ClosedLoopLog:
    poses: List[np.ndarray] = field(default_factory=list)
    commands: List[np.ndarray] = field(default_factory=list)
    statuses: List[SolveStatus] = field(default_factory=list)
    cte: List[float] = field(default_factory=list)

    def as_arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        commands = np.array(self.commands) if self.commands else np.zeros((0, 2))
        return np.array(self.poses), commands


def run_closed_loop(
    controller: MPCController,
    track_x: np.ndarray,
    track_y: np.ndarray,
    initial_pose: np.ndarray,
    steps: int,
    cycle_sec: float = 0.1,
    min_waypoints: Optional[int] = None,
) -> ClosedLoopLog:
    model = controller.model
    latency = min(controller.config.latency_sec, cycle_sec)
    if min_waypoints is None:
        min_waypoints = controller.optimizer.config.num_coeffs + 1

    pose = np.asarray(initial_pose, dtype=float)
    applied = np.zeros(2)
    log = ClosedLoopLog(poses=[pose.copy()])

    for _ in range(steps):
        ptsx, ptsy = upcoming_waypoints(track_x, track_y, pose)
        if ptsx.shape[0] < min_waypoints:
            if controller.optimizer.config.verbose:
                print("[MPC] End of track reached.")
            break

        telemetry = Telemetry(
            ptsx=ptsx,
            ptsy=ptsy,
            x=pose[0],
            y=pose[1],
            psi=pose[2],
            speed=pose[3],
            steering_angle=applied[0],
            throttle=applied[1],
        )
        output = controller.compute(telemetry)
        command = np.array(
            [
                controller.steering_to_radians(output.command.steering),
                output.command.throttle,
            ]
        )

        if latency > 0.0:
            pose = model.plant_step(pose, applied, latency)
        if cycle_sec - latency > 0.0:
            pose = model.plant_step(pose, command, cycle_sec - latency)
        applied = command

        log.poses.append(pose.copy())
        log.commands.append(np.array([output.command.steering, output.command.throttle]))
        log.statuses.append(output.result.status)
        log.cte.append(float(output.state[4]))
    return log
