#!/usr/bin/env python3
"""
Drives the MPC controller around a synthetic sinusoidal track.

The simulated vehicle uses the same kinematic bicycle as the controller and
receives every command one latency interval late.  Prints a per-cycle summary
and optionally plots the driven path.
"""

from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path

import sys

import numpy as np

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from bicycle_mpc.controller import ControllerConfig, MPCController
from bicycle_mpc.mpc_config import MPCConfig
from bicycle_mpc.nlp_solver import SolveStatus
from bicycle_mpc.plotting import plot_closed_loop
from bicycle_mpc.simulation import run_closed_loop, sinusoidal_track
from bicycle_mpc.trajectory_optimizer import MPCTrajectoryOptimizer


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Closed-loop MPC path tracking demo.")
    parser.add_argument("--steps", type=int, default=200, help="Control cycles to run.")
    parser.add_argument("--horizon", type=int, default=MPCConfig.horizon)
    parser.add_argument("--dt", type=float, default=MPCConfig.dt)
    parser.add_argument("--ref-v", type=float, default=20.0, help="Reference speed.")
    parser.add_argument("--latency", type=float, default=0.1, help="Actuation latency (s).")
    parser.add_argument(
        "--fallback", choices=("hold", "brake"), default="hold",
        help="Command sent when the solver fails.",
    )
    parser.add_argument("--warm-start", action="store_true")
    parser.add_argument("--verbose", action="store_true", help="Print solver status each cycle.")
    parser.add_argument("--plot", action="store_true", help="Show the driven path.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    config = dataclasses.replace(
        MPCConfig(), horizon=args.horizon, dt=args.dt, ref_v=args.ref_v, verbose=args.verbose
    )
    controller = MPCController(
        optimizer=MPCTrajectoryOptimizer(config),
        config=ControllerConfig(
            latency_sec=args.latency, fallback=args.fallback, warm_start=args.warm_start
        ),
    )

    track_x, track_y = sinusoidal_track()
    heading = np.arctan2(track_y[1] - track_y[0], track_x[1] - track_x[0])
    initial_pose = np.array([track_x[0], track_y[0] + 1.0, heading, 0.0])

    log = run_closed_loop(controller, track_x, track_y, initial_pose, args.steps)
    poses, commands = log.as_arrays()

    failed = sum(1 for s in log.statuses if s is SolveStatus.FAILED)
    timed_out = sum(1 for s in log.statuses if s is SolveStatus.TIMED_OUT)
    print(f"[MPC] Closed-loop run finished. Steps: {len(log.statuses)}")
    print(f"[MPC] Timed out: {timed_out}  Failed: {failed}")
    if log.cte:
        print(f"[MPC] Mean |cte| = {np.mean(np.abs(log.cte)):.3f}  max |cte| = {np.max(np.abs(log.cte)):.3f}")
        print(f"[MPC] Final speed = {poses[-1, 3]:.2f}")

    if args.plot:
        plot_closed_loop(track_x, track_y, poses, commands, dt=0.1, show=True)


if __name__ == "__main__":
    main()
