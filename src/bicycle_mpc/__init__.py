"""
Building blocks for kinematic-bicycle model predictive path tracking.

The package exposes the decision-vector layout shared by every component, the
CasADi cost/constraint builder, an IPOPT-backed solver behind a small
interface, the receding-horizon optimizer, and a controller that turns map
telemetry into normalized actuator commands.
"""

from .mpc_config import MPCConfig
from .mpc_layout import MPCDecisionLayout
from .objective import TrackingObjective
from .nlp_solver import IpoptSolver, NLPBounds, NLPSolution, NLPSolver, SolveStatus
from .trajectory_optimizer import MPCResult, MPCTrajectoryOptimizer
from .vehicle_dynamics import KinematicBicycle, VehicleParams, propagate_latency
from .path import fit_polynomial, polyeval, reference_points, to_vehicle_frame
from .controller import (
    ActuatorCommand,
    ControllerConfig,
    ControllerOutput,
    MPCController,
    Telemetry,
)

__all__ = [
    "MPCConfig",
    "MPCDecisionLayout",
    "TrackingObjective",
    "IpoptSolver",
    "NLPBounds",
    "NLPSolution",
    "NLPSolver",
    "SolveStatus",
    "MPCResult",
    "MPCTrajectoryOptimizer",
    "KinematicBicycle",
    "VehicleParams",
    "propagate_latency",
    "fit_polynomial",
    "polyeval",
    "reference_points",
    "to_vehicle_frame",
    "ActuatorCommand",
    "ControllerConfig",
    "ControllerOutput",
    "MPCController",
    "Telemetry",
]
