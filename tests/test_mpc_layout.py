"""
Tests for the decision-vector layout and the shared configuration.
"""

import dataclasses

import numpy as np
import pytest

from bicycle_mpc.mpc_config import MPCConfig
from bicycle_mpc.mpc_layout import ACTUATOR_NAMES, STATE_NAMES, MPCDecisionLayout


@pytest.mark.parametrize("N", [2, 3, 10, 15, 40])
def test_block_offsets_are_functions_of_horizon(N):
    layout = MPCDecisionLayout(N)

    assert layout.state_starts == (0, N, 2 * N, 3 * N, 4 * N, 5 * N)
    assert layout.delta_start == 6 * N
    assert layout.a_start == 6 * N + N - 1
    assert layout.decision_dim == 6 * N + 2 * (N - 1)
    assert layout.constraint_dim == 6 * N


def test_blocks_tile_the_decision_vector():
    layout = MPCDecisionLayout(7)
    covered = []
    for name in STATE_NAMES + ACTUATOR_NAMES:
        covered.extend(range(layout.decision_dim)[layout.block(name)])

    assert covered == list(range(layout.decision_dim))


def test_unknown_block_name():
    with pytest.raises(KeyError):
        MPCDecisionLayout(5).block("throttle")


def test_horizon_must_allow_one_transition():
    with pytest.raises(ValueError):
        MPCDecisionLayout(1)


def test_split_reads_contiguous_blocks():
    N = 4
    layout = MPCDecisionLayout(N)
    decision = np.arange(layout.decision_dim, dtype=float)

    states, controls = layout.split(decision)

    assert states.shape == (N, 6)
    assert controls.shape == (N - 1, 2)
    np.testing.assert_array_equal(states[:, 0], np.arange(0, N))
    np.testing.assert_array_equal(states[:, 5], np.arange(5 * N, 6 * N))
    np.testing.assert_array_equal(controls[:, 0], np.arange(6 * N, 7 * N - 1))
    np.testing.assert_array_equal(controls[:, 1], np.arange(7 * N - 1, 8 * N - 2))


def test_pack_inverts_split():
    layout = MPCDecisionLayout(6)
    rng = np.random.default_rng(3)
    decision = rng.normal(size=layout.decision_dim)

    np.testing.assert_array_equal(layout.pack(*layout.split(decision)), decision)


def test_config_defaults_match_reference_tuning():
    config = MPCConfig()

    assert config.horizon == 15
    assert config.dt == pytest.approx(0.1)
    assert config.lf == pytest.approx(2.67)
    assert config.max_steering == pytest.approx(np.pi / 8)
    assert config.max_accel == pytest.approx(1.0)
    assert config.time_budget_sec == pytest.approx(0.5)
    assert config.num_coeffs == 4
    # Tracking dominates effort; steering jerk dominates throttle jerk.
    assert config.cte_weight > config.delta_weight
    assert config.delta_rate_weight > config.a_rate_weight


def test_config_is_immutable():
    config = MPCConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.horizon = 20


@pytest.mark.parametrize(
    "overrides",
    [
        {"horizon": 1},
        {"dt": 0.0},
        {"lf": -1.0},
        {"max_steering": 0.0},
        {"max_accel": -0.5},
        {"time_budget_sec": 0.0},
        {"cte_weight": -1.0},
        {"poly_order": 0},
    ],
)
def test_config_rejects_bad_values(overrides):
    with pytest.raises(ValueError):
        MPCConfig(**overrides)


def test_config_override_by_replace():
    config = dataclasses.replace(MPCConfig(), horizon=8, ref_v=10.0)

    assert config.horizon == 8
    assert config.ref_v == 10.0
    assert config.cte_weight == MPCConfig().cte_weight
