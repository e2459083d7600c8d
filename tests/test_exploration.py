"""
Tests for epsilon schedules, epsilon-greedy choice and tie-breaking.
"""
import numpy as np
import pytest

from modular_hrl import ConfigurationError, EpsilonGreedy, EpsilonSchedule, ExplorationConfig
from modular_hrl.exploration import argmax


class TestEpsilonSchedule:

    def test_linear(self):
        sched = EpsilonSchedule(ExplorationConfig(epsilon_start=1.0, epsilon_end=0.0, decay_episodes=10))
        assert sched(0) == 1.0
        assert sched(5) == pytest.approx(0.5)
        assert sched(10) == 0.0
        assert sched(50) == 0.0

    def test_exponential_hits_end(self):
        sched = EpsilonSchedule(ExplorationConfig(epsilon_start=1.0, epsilon_end=0.01,
                                                  decay_episodes=20, schedule="exponential"))
        assert sched(0) == pytest.approx(1.0)
        assert sched(10) == pytest.approx(0.1)
        assert sched(20) == 0.01
        assert sched(0) > sched(5) > sched(15)

    def test_constant(self):
        sched = EpsilonSchedule(ExplorationConfig.constant(0.3))
        assert sched(0) == sched(1000) == 0.3

    def test_invalid_configs(self):
        with pytest.raises(ConfigurationError):
            EpsilonSchedule(ExplorationConfig(epsilon_start=1.5))
        with pytest.raises(ConfigurationError):
            EpsilonSchedule(ExplorationConfig(schedule="cosine"))
        with pytest.raises(ConfigurationError):
            EpsilonSchedule(ExplorationConfig(tie_break="last"))


class TestEpsilonGreedy:

    def test_zero_epsilon_is_greedy(self):
        eg = EpsilonGreedy(ExplorationConfig.constant(0.0), seed=1)
        for _ in range(50):
            assert eg.choose([0.0, 3.0, 1.0]) == 1

    def test_full_epsilon_covers_all_choices(self):
        eg = EpsilonGreedy(ExplorationConfig.constant(1.0), seed=1)
        seen = {eg.choose([0.0, 3.0, 1.0]) for _ in range(300)}
        assert seen == {0, 1, 2}

    def test_seeded_streams_replay(self):
        a = EpsilonGreedy(ExplorationConfig.constant(0.5), seed=42)
        b = EpsilonGreedy(ExplorationConfig.constant(0.5), seed=42)
        q = [0.1, 0.2, 0.3, 0.0]
        assert [a.choose(q) for _ in range(100)] == [b.choose(q) for _ in range(100)]


class TestTieBreaking:

    def test_first_in_enumeration_order(self):
        assert argmax(np.array([1.0, 2.0, 2.0, 0.0])) == 1
        assert argmax(np.zeros(4)) == 0

    def test_random_ties_stay_among_maxima(self):
        rng = np.random.default_rng(0)
        picks = {argmax(np.array([2.0, 1.0, 2.0, 2.0]), "random", rng) for _ in range(200)}
        assert picks == {0, 2, 3}
