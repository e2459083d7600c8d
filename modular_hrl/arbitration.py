from __future__ import annotations

import logging
from typing import Any, Callable, Hashable, Optional, Sequence

import numpy as np

from .config import LearnerConfig
from .errors import ConfigurationError
from .exploration import EpsilonGreedy
from .modules import Proposal
from .tables import QTable
from .worlds import WorldAdapter

logger = logging.getLogger(__name__)

ArbitrationAbstraction = Callable[[Any, Sequence[Proposal]], Hashable]


def identity_state(world_state, proposals: Sequence[Proposal]):
    return world_state


def proposed_actions(world_state, proposals: Sequence[Proposal]):
    """Arbitrate on what the modules want rather than on where the agent is."""
    return tuple(p.action for p in proposals)


def state_and_proposals(world_state, proposals: Sequence[Proposal]):
    return (world_state, proposed_actions(world_state, proposals))


class Arbitrator:
    """Learns which module to listen to.

    Q_a maps (arbitration state, module index) to the agent-level return.
    Arbitration states default to the world state, which keeps the table
    closed over the world's enumeration; any other abstraction gets an open
    table that grows as new arbitration states appear.
    """

    def __init__(self, world: WorldAdapter, num_modules: int,
                 abstraction: Optional[ArbitrationAbstraction] = None,
                 learner: Optional[LearnerConfig] = None):
        if num_modules <= 0:
            raise ConfigurationError("an agent needs at least one module")
        if abstraction is not None and not callable(abstraction):
            raise ConfigurationError("arbitration abstraction must be callable")
        self.world = world
        self.num_modules = int(num_modules)
        self.abstraction = abstraction or identity_state
        self.cfg = learner or LearnerConfig()
        self.cfg.validate()

        closed = self.abstraction is identity_state
        self.table = QTable(range(self.num_modules), world.states if closed else None,
                            initial_value=self.cfg.initial_value, name="arbitrator")
        logger.info(
            f"Arbitrator: {self.num_modules} modules, "
            f"{'closed' if closed else 'open'} table, "
            f"alpha={self.cfg.alpha}, gamma={self.cfg.gamma}"
        )

    def arbitration_state(self, world_state, proposals: Sequence[Proposal]) -> Hashable:
        if len(proposals) != self.num_modules:
            raise ConfigurationError(
                f"expected {self.num_modules} proposals, got {len(proposals)}")
        return self.abstraction(self.world.check(world_state, "arbitrator"), proposals)

    def values(self, arbitration_state) -> np.ndarray:
        return self.table.values(arbitration_state)

    def greedy(self, world_state, proposals: Sequence[Proposal]) -> int:
        return self.table.greedy(self.arbitration_state(world_state, proposals))

    def select(self, world_state, proposals: Sequence[Proposal],
               exploration: Optional[EpsilonGreedy] = None, episode: int = 0) -> int:
        q = self.table.row(self.arbitration_state(world_state, proposals))
        if exploration is None:
            return int(np.argmax(q))
        return exploration.choose(q, episode)

    def update(self, state_before, chosen: int, agent_reward: float, state_after,
               terminal: bool = False) -> float:
        if not 0 <= chosen < self.num_modules:
            raise ConfigurationError(f"module index {chosen} out of range [0, {self.num_modules})")
        return self.table.td_update(state_before, chosen, agent_reward, state_after,
                                    self.cfg.alpha, self.cfg.gamma, terminal=terminal)
