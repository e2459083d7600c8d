from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from .modules import Proposal


class BaseArbitrator:
    """Non-learning arbitration: same interface as Arbitrator, nothing to update."""

    num_modules: int

    def arbitration_state(self, world_state, proposals: Sequence[Proposal]):
        return world_state

    def select(self, world_state, proposals: Sequence[Proposal],
               exploration=None, episode: int = 0) -> int: ...

    def greedy(self, world_state, proposals: Sequence[Proposal]) -> int:
        return self.select(world_state, proposals)

    def update(self, state_before, chosen: int, agent_reward: float, state_after,
               terminal: bool = False) -> float:
        return 0.0


class FixedArbitrator(BaseArbitrator):
    """Always defers to the same module."""

    def __init__(self, num_modules: int, index: int = 0):
        if not 0 <= index < num_modules:
            raise ValueError(f"index must be in [0, {num_modules})")
        self.num_modules = num_modules
        self.index = index

    def select(self, world_state, proposals, exploration=None, episode: int = 0) -> int:
        return self.index


class RandomArbitrator(BaseArbitrator):
    def __init__(self, num_modules: int, seed: int = 0):
        self.num_modules = num_modules
        self.rng = np.random.default_rng(seed)

    def select(self, world_state, proposals, exploration=None, episode: int = 0) -> int:
        return int(self.rng.integers(0, self.num_modules))


class HighestValueArbitrator(BaseArbitrator):
    """Winner-takes-all: the module most confident in its own proposal wins.

    Module values live on different reward scales, so this is only a fair
    comparison when module rewards are authored on a common scale.
    """

    def __init__(self, num_modules: int):
        self.num_modules = num_modules

    def select(self, world_state, proposals, exploration=None, episode: int = 0) -> int:
        return int(np.argmax([p.value for p in proposals]))
