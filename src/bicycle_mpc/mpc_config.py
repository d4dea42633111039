"""
Tuning constants shared by the objective builder and the trajectory optimizer.

The values reproduce the reference tuning for a simulated car driven at about
40 mph.  Weights encode priority: path tracking (cte, epsi) dominates raw
actuator effort, and steering-rate smoothness is weighted well above
acceleration-rate smoothness.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np


@dataclass(frozen=True)
class MPCConfig:
    horizon: int = 15
    dt: float = 0.1
    # Front axle to centre of gravity.  Tuned so the model's turning radius at
    # constant steering matches the simulator's.
    lf: float = 2.67
    ref_v: float = 40.0

    cte_weight: float = 3000.0
    epsi_weight: float = 500.0
    v_weight: float = 1.0
    delta_weight: float = 1.0
    a_weight: float = 1.0
    delta_rate_weight: float = 200.0
    a_rate_weight: float = 1.0

    max_steering: float = np.pi / 8.0
    max_accel: float = 1.0
    unbounded: float = 1.0e19

    poly_order: int = 3
    time_budget_sec: float = 0.5
    print_level: int = 0
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.horizon < 2:
            raise ValueError("horizon must be >= 2")
        if self.poly_order < 1:
            raise ValueError("poly_order must be >= 1")
        for name in ("dt", "lf", "max_steering", "max_accel", "unbounded", "time_budget_sec"):
            if not getattr(self, name) > 0.0:
                raise ValueError(f"{name} must be positive")
        for f in fields(self):
            if f.name.endswith("_weight") and getattr(self, f.name) < 0.0:
                raise ValueError(f"{f.name} must be non-negative")

    @property
    def num_coeffs(self) -> int:
        return self.poly_order + 1
