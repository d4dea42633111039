"""
Nonlinear program solver capability.

The optimizer only needs "minimise f(x) subject to lbg <= g(x) <= ubg and
lbx <= x <= ubx, starting from a guess, within a time budget".  ``NLPSolver``
captures that contract; ``IpoptSolver`` fulfils it with IPOPT through CasADi.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import casadi as ca
import numpy as np


class SolveStatus(enum.Enum):
    CONVERGED = "converged"
    # Iteration or time limit hit with a last iterate that satisfies the
    # constraints to within tolerance.
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def usable(self) -> bool:
        return self is not SolveStatus.FAILED


CONVERGED_STATUSES = (
    "Solve_Succeeded",
    "Solved_To_Acceptable_Level",
    "Feasible_Point_Found",
)
LIMIT_STATUSES = (
    "Maximum_Iterations_Exceeded",
    "Maximum_CpuTime_Exceeded",
    "Maximum_WallTime_Exceeded",
)

# Same as IPOPT's default acceptable_constr_viol_tol.
CONSTRAINT_TOLERANCE = 1.0e-2


def classify_status(
    return_status: str,
    iterate: np.ndarray,
    constraint_violation: float = 0.0,
    tolerance: float = CONSTRAINT_TOLERANCE,
) -> SolveStatus:
    """
    Maps an IPOPT return status onto ``SolveStatus``.  An iterate left behind
    by an iteration or time limit only counts as usable when its largest
    constraint violation is within ``tolerance``.
    """
    if not np.all(np.isfinite(iterate)):
        return SolveStatus.FAILED
    if return_status in CONVERGED_STATUSES:
        return SolveStatus.CONVERGED
    if return_status in LIMIT_STATUSES:
        if not np.isfinite(constraint_violation) or constraint_violation > tolerance:
            return SolveStatus.FAILED
        return SolveStatus.TIMED_OUT
    return SolveStatus.FAILED


def max_violation(values: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> float:
    """Largest amount by which ``values`` leaves ``[lower, upper]``."""
    values = np.asarray(values, dtype=float).reshape(-1)
    if values.size == 0:
        return 0.0
    below = np.asarray(lower, dtype=float).reshape(-1) - values
    above = values - np.asarray(upper, dtype=float).reshape(-1)
    return float(max(np.max(below), np.max(above), 0.0))


@dataclass(frozen=True)
class NLPBounds:
    lbx: np.ndarray
    ubx: np.ndarray
    lbg: np.ndarray
    ubg: np.ndarray


@dataclass
class NLPSolution:
    status: SolveStatus
    x: np.ndarray
    cost: float
    message: str
    iterations: int = 0
    solve_time_sec: float = 0.0
    constraint_violation: float = 0.0


class NLPProblem(Protocol):
    """Anything that maps a symbolic decision vector to ``[f; g]``."""

    @property
    def parameters(self) -> ca.SX: ...

    def __call__(self, vars: ca.SX) -> ca.SX: ...


class NLPSolver(Protocol):
    def solve(
        self,
        problem: NLPProblem,
        initial_guess: np.ndarray,
        bounds: NLPBounds,
        params: Optional[np.ndarray],
        time_budget_sec: float,
    ) -> NLPSolution: ...


class IpoptSolver:
    """
    IPOPT via ``ca.nlpsol``.  The CasADi solver is generated on first use and
    kept for as long as the same problem object and time budget are passed
    in, so only the numeric data changes between control cycles.

    The time budget is applied to both IPOPT's wall-clock and CPU-time
    limits.
    """

    def __init__(
        self,
        print_level: int = 0,
        max_iter: int = 3000,
        constraint_tolerance: float = CONSTRAINT_TOLERANCE,
        extra_options: Optional[Dict[str, Any]] = None,
    ):
        self.print_level = print_level
        self.max_iter = max_iter
        self.constraint_tolerance = constraint_tolerance
        self.extra_options = dict(extra_options or {})
        self._problem: Optional[NLPProblem] = None
        self._time_budget: Optional[float] = None
        self._solver: Optional[ca.Function] = None
        self._num_params = 0
        self._options: Dict[str, Any] = {}

    def _build(self, problem: NLPProblem, num_vars: int, time_budget_sec: float) -> ca.Function:
        if (
            self._solver is not None
            and self._problem is problem
            and self._time_budget == time_budget_sec
        ):
            return self._solver

        vars = ca.SX.sym("vars", num_vars)
        fg = problem(vars)
        nlp = {"x": vars, "f": fg[0], "g": fg[1:]}
        params = problem.parameters
        if params.numel() > 0:
            nlp["p"] = params

        opts = {
            "ipopt.print_level": self.print_level,
            "ipopt.sb": "yes",
            "ipopt.max_iter": self.max_iter,
            "ipopt.max_wall_time": float(time_budget_sec),
            "ipopt.max_cpu_time": float(time_budget_sec),
            "print_time": False,
            "error_on_fail": False,
        }
        opts.update(self.extra_options)

        self._solver = ca.nlpsol("solver", "ipopt", nlp, opts)
        self._options = opts
        self._problem = problem
        self._time_budget = time_budget_sec
        self._num_params = params.numel()
        return self._solver

    def solve(
        self,
        problem: NLPProblem,
        initial_guess: np.ndarray,
        bounds: NLPBounds,
        params: Optional[np.ndarray],
        time_budget_sec: float,
    ) -> NLPSolution:
        initial_guess = np.asarray(initial_guess, dtype=float).reshape(-1)
        solver = self._build(problem, initial_guess.shape[0], time_budget_sec)

        args = dict(
            x0=initial_guess,
            lbx=bounds.lbx,
            ubx=bounds.ubx,
            lbg=bounds.lbg,
            ubg=bounds.ubg,
        )
        if self._num_params > 0:
            if params is None:
                raise ValueError("problem is parametric but no params were given")
            args["p"] = np.asarray(params, dtype=float).reshape(-1)

        sol = solver(**args)
        stats = solver.stats()
        return_status = str(stats.get("return_status", ""))
        x = np.array(sol["x"]).reshape(-1)
        g = np.array(sol["g"]).reshape(-1)
        violation = max(
            max_violation(g, bounds.lbg, bounds.ubg),
            max_violation(x, bounds.lbx, bounds.ubx),
        )
        return NLPSolution(
            status=classify_status(
                return_status, x, violation, self.constraint_tolerance
            ),
            x=x,
            cost=float(sol["f"]),
            message=return_status,
            iterations=int(stats.get("iter_count", 0)),
            solve_time_sec=float(stats.get("t_wall_total", 0.0)),
            constraint_violation=violation,
        )
