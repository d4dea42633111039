"""2D visualization utilities for MPC predictions and closed-loop runs."""

from __future__ import annotations

from typing import Optional

import numpy as np
import matplotlib.pyplot as plt


def plot_prediction(
    reference_x: np.ndarray,
    reference_y: np.ndarray,
    predicted_x: np.ndarray,
    predicted_y: np.ndarray,
    ax: Optional[plt.Axes] = None,
    show: bool = False,
) -> plt.Figure:
    """Plot the fitted reference path and the MPC prediction in the vehicle frame."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))
    else:
        fig = ax.figure

    ax.plot(reference_x, reference_y, "y-", linewidth=2, label="Reference")
    ax.plot(predicted_x, predicted_y, "g-o", markersize=3, label="MPC prediction")
    ax.scatter(0.0, 0.0, color="k", marker="^", label="Vehicle")

    ax.set_xlabel("x (vehicle frame)")
    ax.set_ylabel("y (vehicle frame)")
    ax.set_aspect("equal", adjustable="datalim")
    ax.legend()
    ax.set_title("MPC Prediction")
    fig.tight_layout()
    if show:
        plt.show()
    return fig


def plot_closed_loop(
    track_x: np.ndarray,
    track_y: np.ndarray,
    poses: np.ndarray,
    commands: Optional[np.ndarray] = None,
    dt: float = 0.1,
    show: bool = False,
) -> plt.Figure:
    """
    Plot the driven path against the track and, when given, the ``(K, 2)``
    steering/throttle history.
    """
    poses = np.asarray(poses)
    rows = 2 if commands is not None else 1
    fig, axes = plt.subplots(rows, 1, figsize=(9, 4 * rows), squeeze=False)

    ax = axes[0, 0]
    ax.plot(track_x, track_y, "k--", linewidth=1, label="Track")
    ax.plot(poses[:, 0], poses[:, 1], "b-", linewidth=2, label="Vehicle")
    ax.scatter(poses[0, 0], poses[0, 1], color="g", marker="o", label="Start")
    ax.scatter(poses[-1, 0], poses[-1, 1], color="r", marker="*", label="End")
    ax.set_xlabel("x (m)")
    ax.set_ylabel("y (m)")
    ax.legend()
    ax.set_title("Closed-loop MPC run")

    if commands is not None:
        commands = np.asarray(commands)
        t = dt * np.arange(commands.shape[0])
        ax = axes[1, 0]
        ax.plot(t, commands[:, 0], label="steering (normalized)")
        ax.plot(t, commands[:, 1], label="throttle")
        ax.set_xlabel("time (s)")
        ax.legend()

    fig.tight_layout()
    if show:
        plt.show()
    return fig
