"""
Tests for the IPOPT-backed NLP solver and status classification.
"""

import casadi as ca
import numpy as np
import pytest

from bicycle_mpc.nlp_solver import (
    CONSTRAINT_TOLERANCE,
    IpoptSolver,
    NLPBounds,
    SolveStatus,
    classify_status,
    max_violation,
)


class ShiftedQuadratic:
    """min (x0 - p)^2 + x1^2  s.t.  x0 + x1 = 1"""

    def __init__(self):
        self._p = ca.SX.sym("p", 1)

    @property
    def parameters(self):
        return self._p

    def __call__(self, vars):
        f = (vars[0] - self._p[0]) ** 2 + vars[1] ** 2
        return ca.vertcat(f, vars[0] + vars[1])


class Rosenbrock:
    @property
    def parameters(self):
        return ca.SX.sym("p", 0)

    def __call__(self, vars):
        f = (1 - vars[0]) ** 2 + 100 * (vars[1] - vars[0] ** 2) ** 2
        return ca.vertcat(f, vars[0])


def _bounds(lbx, ubx, lbg, ubg):
    return NLPBounds(
        lbx=np.array(lbx, dtype=float),
        ubx=np.array(ubx, dtype=float),
        lbg=np.array(lbg, dtype=float),
        ubg=np.array(ubg, dtype=float),
    )


@pytest.mark.parametrize(
    "return_status, expected",
    [
        ("Solve_Succeeded", SolveStatus.CONVERGED),
        ("Solved_To_Acceptable_Level", SolveStatus.CONVERGED),
        ("Maximum_CpuTime_Exceeded", SolveStatus.TIMED_OUT),
        ("Maximum_Iterations_Exceeded", SolveStatus.TIMED_OUT),
        ("Infeasible_Problem_Detected", SolveStatus.FAILED),
        ("Restoration_Failed", SolveStatus.FAILED),
        ("Invalid_Number_Detected", SolveStatus.FAILED),
        ("", SolveStatus.FAILED),
    ],
)
def test_classify_status(return_status, expected):
    assert classify_status(return_status, np.zeros(3)) is expected


def test_non_finite_iterate_is_never_usable():
    status = classify_status("Solve_Succeeded", np.array([0.0, np.nan]))

    assert status is SolveStatus.FAILED
    assert not status.usable


def test_timed_out_is_usable():
    assert SolveStatus.TIMED_OUT.usable
    assert SolveStatus.CONVERGED.usable


def test_parametric_problem_solves():
    solver = IpoptSolver()
    problem = ShiftedQuadratic()
    bounds = _bounds([-10, -10], [10, 10], [1], [1])

    sol = solver.solve(problem, np.zeros(2), bounds, np.array([3.0]), 5.0)

    assert sol.status is SolveStatus.CONVERGED
    np.testing.assert_allclose(sol.x, [2.0, -1.0], atol=1e-6)
    assert sol.cost == pytest.approx(2.0, abs=1e-6)
    assert sol.message == "Solve_Succeeded"


def test_solver_is_reused_across_parameter_changes():
    solver = IpoptSolver()
    problem = ShiftedQuadratic()
    bounds = _bounds([-10, -10], [10, 10], [1], [1])

    solver.solve(problem, np.zeros(2), bounds, np.array([3.0]), 5.0)
    first = solver._solver
    sol = solver.solve(problem, np.zeros(2), bounds, np.array([-1.0]), 5.0)

    assert solver._solver is first
    np.testing.assert_allclose(sol.x, [0.0, 1.0], atol=1e-6)


def test_solver_rebuilds_for_new_budget():
    solver = IpoptSolver()
    problem = ShiftedQuadratic()
    bounds = _bounds([-10, -10], [10, 10], [1], [1])

    solver.solve(problem, np.zeros(2), bounds, np.array([3.0]), 5.0)
    first = solver._solver
    solver.solve(problem, np.zeros(2), bounds, np.array([3.0]), 2.0)

    assert solver._solver is not first


def test_missing_parameters_rejected():
    solver = IpoptSolver()
    bounds = _bounds([-10, -10], [10, 10], [1], [1])

    with pytest.raises(ValueError):
        solver.solve(ShiftedQuadratic(), np.zeros(2), bounds, None, 5.0)


def test_iteration_limit_reports_timed_out():
    solver = IpoptSolver(max_iter=2)
    bounds = _bounds([-5, -5], [5, 5], [-10], [10])

    sol = solver.solve(Rosenbrock(), np.array([-1.2, 1.0]), bounds, None, 5.0)

    assert sol.message == "Maximum_Iterations_Exceeded"
    assert sol.status is SolveStatus.TIMED_OUT
    assert np.all(np.isfinite(sol.x))


def test_infeasible_problem_reports_failed():
    solver = IpoptSolver()
    # x0 is boxed to [0, 1] but must equal 5.
    bounds = _bounds([0, -5], [1, 5], [5], [5])

    sol = solver.solve(Rosenbrock(), np.array([0.5, 0.0]), bounds, None, 5.0)

    assert sol.status is SolveStatus.FAILED


@pytest.mark.parametrize(
    "return_status, violation, expected",
    [
        ("Maximum_CpuTime_Exceeded", 20.0, SolveStatus.FAILED),
        ("Maximum_WallTime_Exceeded", 0.5, SolveStatus.FAILED),
        ("Maximum_Iterations_Exceeded", np.inf, SolveStatus.FAILED),
        ("Maximum_WallTime_Exceeded", 1e-6, SolveStatus.TIMED_OUT),
        ("Solve_Succeeded", 1e-6, SolveStatus.CONVERGED),
    ],
)
def test_limit_status_needs_a_feasible_iterate(return_status, violation, expected):
    assert classify_status(return_status, np.zeros(3), violation) is expected


def test_max_violation():
    values = np.array([0.0, 2.0, -3.0])
    lower = np.array([-1.0, -1.0, -1.0])
    upper = np.array([1.0, 1.5, 1.0])

    assert max_violation(values, lower, upper) == pytest.approx(2.0)
    assert max_violation(np.zeros(2), -np.ones(2), np.ones(2)) == 0.0
    assert max_violation(np.zeros(0), np.zeros(0), np.zeros(0)) == 0.0


def test_budget_sets_wall_and_cpu_limits():
    solver = IpoptSolver()
    solver.solve(
        ShiftedQuadratic(),
        np.zeros(2),
        _bounds([-10, -10], [10, 10], [1], [1]),
        np.array([3.0]),
        2.5,
    )

    assert solver._options["ipopt.max_wall_time"] == 2.5
    assert solver._options["ipopt.max_cpu_time"] == 2.5


def test_stopping_before_reaching_feasibility_reports_failed():
    solver = IpoptSolver(max_iter=0)
    bounds = _bounds([-10, -10], [10, 10], [1], [1])

    sol = solver.solve(ShiftedQuadratic(), np.zeros(2), bounds, np.array([3.0]), 5.0)

    assert sol.message == "Maximum_Iterations_Exceeded"
    assert sol.constraint_violation > CONSTRAINT_TOLERANCE
    assert sol.status is SolveStatus.FAILED
    assert not sol.status.usable
