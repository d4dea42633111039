#!/usr/bin/env python3
"""
Standalone MPC prediction visualizer.

Fits a path through a handful of map-frame waypoints, runs a single control
cycle from the given pose and plots the reference against the predicted
trajectory.
"""

from __future__ import annotations

import argparse
from pathlib import Path

import sys

import numpy as np

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from bicycle_mpc.controller import MPCController, Telemetry
from bicycle_mpc.plotting import plot_prediction


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Plot one MPC prediction.")
    parser.add_argument("--speed", type=float, default=10.0)
    parser.add_argument("--offset", type=float, default=2.0, help="Lateral offset from the path.")
    parser.add_argument("--heading", type=float, default=0.0, help="Vehicle heading (rad).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    ptsx = np.linspace(-10.0, 60.0, 8)
    ptsy = 0.002 * ptsx ** 2
    telemetry = Telemetry(
        ptsx=ptsx, ptsy=ptsy, x=0.0, y=args.offset, psi=args.heading, speed=args.speed
    )

    output = MPCController().compute(telemetry)
    print("[MPC] Status:", output.result.message)
    print("[MPC] Steering (normalized) =", output.command.steering)
    print("[MPC] Throttle =", output.command.throttle)
    plot_prediction(
        output.reference_x,
        output.reference_y,
        output.predicted_x,
        output.predicted_y,
        show=True,
    )


if __name__ == "__main__":
    main()
