"""Behavior modules: selfish sub-learners over their own state abstraction.

A module sees the world only through its state abstraction and is scored
only by its own reward. It learns from every world transition, whichever
module's proposal the agent actually executed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

import numpy as np

from .config import LearnerConfig
from .errors import ConfigurationError
from .exploration import EpsilonGreedy
from .tables import QTable
from .worlds import WorldAdapter, as_adapter

logger = logging.getLogger(__name__)

StateAbstraction = Callable[[Any], Hashable]
RewardFunction = Callable[[Any], float]
TerminalTest = Callable[[Any], bool]


def identity(world_state):
    return world_state


@dataclass(frozen=True)
class Proposal:
    """A module's recommended action and its own estimate of that action's value."""
    action: Any
    value: float
    action_index: int


@dataclass
class ModuleSpec:
    """Declarative description of a module.

    Required: world, module_reward. Optional: state_abstraction (identity
    when omitted), name, learner, module_terminal (a test on the module's own
    state; without one the module never treats a transition as terminal).
    """
    world: Any = None
    module_reward: Optional[RewardFunction] = None
    state_abstraction: Optional[StateAbstraction] = None
    name: Optional[str] = None
    learner: Optional[LearnerConfig] = None
    module_terminal: Optional[TerminalTest] = None

    def build(self, world: Optional[WorldAdapter] = None,
              learner: Optional[LearnerConfig] = None) -> "Module":
        if self.world is None:
            raise ConfigurationError("ModuleSpec.world is required")
        if self.module_reward is None or not callable(self.module_reward):
            raise ConfigurationError(f"ModuleSpec({self.name or '?'}).module_reward is required")
        if self.state_abstraction is not None and not callable(self.state_abstraction):
            raise ConfigurationError("state_abstraction must be callable")
        if self.module_terminal is not None and not callable(self.module_terminal):
            raise ConfigurationError("module_terminal must be callable")
        if world is None:
            world = as_adapter(self.world)
        elif self.world is not world and self.world is not world.world:
            raise ConfigurationError(
                f"module {self.name or '?'} was specified for a different world than the agent's")
        return Module(
            world=world,
            module_reward=self.module_reward,
            state_abstraction=self.state_abstraction,
            name=self.name,
            learner=self.learner or learner,
            module_terminal=self.module_terminal,
        )


class Module:
    def __init__(self, world: WorldAdapter, module_reward: RewardFunction,
                 state_abstraction: Optional[StateAbstraction] = None,
                 name: Optional[str] = None, learner: Optional[LearnerConfig] = None,
                 module_terminal: Optional[TerminalTest] = None):
        self.world = world
        self.module_reward = module_reward
        self.module_terminal = module_terminal
        self.state_abstraction = state_abstraction or identity
        self.name = name or getattr(module_reward, "__name__", "module")
        self.cfg = learner or LearnerConfig()
        self.cfg.validate()

        module_states = []
        seen = set()
        for s in world.states:
            try:
                ms = self.state_abstraction(s)
                fresh = ms not in seen
            except Exception as exc:
                raise ConfigurationError(
                    f"module {self.name}: state abstraction failed on {s!r}: {exc}") from exc
            if fresh:
                seen.add(ms)
                module_states.append(ms)

        self.table = QTable(world.actions, module_states,
                            initial_value=self.cfg.initial_value, name=f"module {self.name}")
        logger.info(
            f"Module {self.name}: {len(module_states)} module states "
            f"(from {world.num_states} world states), {world.num_actions} actions, "
            f"alpha={self.cfg.alpha}, gamma={self.cfg.gamma}"
        )

    def abstract(self, world_state) -> Hashable:
        return self.state_abstraction(self.world.check(world_state, f"module {self.name}"))

    def reward(self, world_state) -> float:
        return float(self.module_reward(self.abstract(world_state)))

    def values(self, world_state) -> np.ndarray:
        return self.table.values(self.abstract(world_state))

    def propose(self, world_state, exploration: Optional[EpsilonGreedy] = None,
                episode: int = 0) -> Proposal:
        q = self.table.row(self.abstract(world_state))
        if exploration is None:
            i = int(np.argmax(q))
        else:
            i = exploration.choose(q, episode)
        return Proposal(action=self.world.actions[i], value=float(q[i]), action_index=i)

    def update(self, before, action, after) -> float:
        """One TD step on (own state before, executed action, own reward after).

        Terminality is judged on the module's own next state only.
        """
        s = self.abstract(before)
        s2 = self.abstract(after)
        r = float(self.module_reward(s2))
        a = self.world.action_index(action)
        terminal = self.module_terminal is not None and bool(self.module_terminal(s2))
        return self.table.td_update(s, a, r, s2, self.cfg.alpha, self.cfg.gamma, terminal=terminal)

    def __repr__(self) -> str:
        return f"Module({self.name!r}, states={len(self.table)})"
