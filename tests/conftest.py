"""
Pytest Configuration and Shared Fixtures
Small seeded worlds and configs reused across the suite.
"""
import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from modular_hrl import (  # noqa: E402
    BanditWorld, ExplorationConfig, HRLConfig, LearnerConfig, TrainingConfig, World,
)
from modular_hrl.pacman import PacManWorld  # noqa: E402


class CorridorWorld(World):
    """Cells 0..length-1, food at the right end, a ghost that never moves.

    State is (pac, ghost). Fully deterministic apart from init placement.
    """

    ACTIONS = ("L", "R")

    def __init__(self, length: int = 5, seed: int = 0):
        self.length = length
        self.food = length - 1
        self.rng = np.random.default_rng(seed)
        self.state = self.init()

    def init(self):
        self.state = (int(self.rng.integers(0, self.length)), int(self.rng.integers(0, self.length)))
        return self.state

    def reset_agent(self):
        self.state = (int(self.rng.integers(0, self.length)), self.state[1])
        return self.state

    def states(self):
        return [(p, g) for p in range(self.length) for g in range(self.length)]

    def actions(self):
        return self.ACTIONS

    def act(self, action):
        pac, ghost = self.state
        pac = max(0, pac - 1) if action == "L" else min(self.length - 1, pac + 1)
        self.state = (pac, ghost)
        return self.state


def corridor_food_reward(pac):
    return 1.0 if pac == 4 else -0.1


def corridor_ghost_reward(state):
    return -10.0 if state[0] == state[1] else 0.0


def corridor_agent_reward(state):
    return corridor_food_reward(state[0]) + corridor_ghost_reward(state)


@pytest.fixture
def bandit_world():
    return BanditWorld(seed=0)


@pytest.fixture
def pacman_world():
    return PacManWorld(width=4, height=4, ghost_chase=0.5, seed=11)


@pytest.fixture
def corridor_world():
    return CorridorWorld(length=5, seed=5)


@pytest.fixture
def fast_config():
    """Short runs with greedy modules and a decaying arbitrator."""
    return HRLConfig(
        name="test",
        module_learner=LearnerConfig(alpha=0.5, gamma=0.9),
        arbitration_learner=LearnerConfig(alpha=0.5, gamma=0.9),
        module_exploration=ExplorationConfig.constant(0.1),
        arbitration_exploration=ExplorationConfig(epsilon_start=1.0, epsilon_end=0.05, decay_episodes=10),
        training=TrainingConfig(max_episodes=10, max_steps=25, seed=123, log_every=0),
    )
