"""Modular hierarchical reinforcement learning.

This package contains:
- The world contract and a caching/checking adapter, plus two small worlds
  (a two-armed bandit and a PacMan grid).
- Behavior modules: selfish tabular Q-learners over their own state
  abstraction and reward.
- The arbitrator: a tabular Q-learner over which module to obey.
- The agent and training loop, metrics and plotting utilities.
"""

from .agent import Agent, ReplayBuffer, Transition
from .arbitration import Arbitrator, identity_state, proposed_actions, state_and_proposals
from .baselines import FixedArbitrator, HighestValueArbitrator, RandomArbitrator
from .config import (ExplorationConfig, HRLConfig, LearnerConfig, TrainingConfig,
                     create_default_config, load_config)
from .errors import ConfigurationError, HRLError, UnreachableStateError
from .exploration import EpsilonGreedy, EpsilonSchedule
from .metrics import EpisodeLog, TrainingHistory, load_results, save_results
from .modules import Module, ModuleSpec, Proposal
from .tables import QTable
from .worlds import BanditWorld, World, WorldAdapter, as_adapter

__version__ = "0.1.0"

__all__ = [
    "Agent", "ReplayBuffer", "Transition",
    "Arbitrator", "identity_state", "proposed_actions", "state_and_proposals",
    "FixedArbitrator", "HighestValueArbitrator", "RandomArbitrator",
    "ExplorationConfig", "HRLConfig", "LearnerConfig", "TrainingConfig",
    "create_default_config", "load_config",
    "ConfigurationError", "HRLError", "UnreachableStateError",
    "EpsilonGreedy", "EpsilonSchedule",
    "EpisodeLog", "TrainingHistory", "load_results", "save_results",
    "Module", "ModuleSpec", "Proposal",
    "QTable",
    "BanditWorld", "World", "WorldAdapter", "as_adapter",
]
