from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Hashable, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError, UnreachableStateError

logger = logging.getLogger(__name__)


class World:
    """Environment contract consumed by modules and agents.

    A world owns its dynamics and its random source. States and actions are
    opaque to the learning core; they only need equality and hashing.

    Subclasses implement:
        init()         -> state   fresh episode, every entity re-placed
        reset_agent()  -> state   re-place only the agent, keep the rest
        states()       -> finite sequence of every reachable state
        actions()      -> finite sequence of actions
        act(action)    -> state   apply an action and advance the world
    """

    def init(self) -> Hashable:
        raise NotImplementedError

    def reset_agent(self) -> Hashable:
        raise NotImplementedError

    def states(self) -> Sequence[Hashable]:
        raise NotImplementedError

    def actions(self) -> Sequence[Hashable]:
        raise NotImplementedError

    def act(self, action) -> Hashable:
        raise NotImplementedError

    def is_terminal(self, state) -> bool:
        """Whole episode is over."""
        return False

    def is_agent_terminal(self, state) -> bool:
        """The agent's sub-episode is over (e.g. it got caught); the world goes on."""
        return False


class WorldAdapter:
    """Caches a world's enumerations and enforces the closed state space.

    The enumeration is computed once here and shared (read-only) by every
    module and the arbitrator built on top of the same adapter.
    """

    def __init__(self, world: World):
        if isinstance(world, WorldAdapter):
            raise ConfigurationError("world is already adapted")
        self.world = world
        self.states: Tuple = tuple(world.states())
        self.actions: Tuple = tuple(world.actions())
        if not self.states:
            raise ConfigurationError(f"{type(world).__name__}.states() is empty")
        if not self.actions:
            raise ConfigurationError(f"{type(world).__name__}.actions() is empty")
        try:
            self._state_index: Dict = {s: i for i, s in enumerate(self.states)}
            self._action_index: Dict = {a: i for i, a in enumerate(self.actions)}
        except TypeError as exc:
            raise ConfigurationError(f"world states and actions must be hashable: {exc}") from exc
        if len(self._action_index) != len(self.actions):
            raise ConfigurationError("world actions contain duplicates")
        self.current = None
        logger.info(
            f"WorldAdapter({type(world).__name__}): "
            f"{len(self.states)} states, {len(self.actions)} actions"
        )

    @property
    def num_states(self) -> int:
        return len(self.states)

    @property
    def num_actions(self) -> int:
        return len(self.actions)

    def check(self, state, where: str = "world"):
        try:
            known = state in self._state_index
        except TypeError:
            known = False
        if not known:
            raise UnreachableStateError(state, where)
        return state

    def state_index(self, state) -> int:
        self.check(state)
        return self._state_index[state]

    def action_index(self, action) -> int:
        try:
            return self._action_index[action]
        except (KeyError, TypeError):
            raise ConfigurationError(f"action {action!r} is not one of {self.actions}") from None

    def init(self):
        self.current = self.check(self.world.init(), "init")
        return self.current

    def reset_agent(self):
        self.current = self.check(self.world.reset_agent(), "reset_agent")
        return self.current

    def act(self, action):
        self.action_index(action)
        self.current = self.check(self.world.act(action), "act")
        return self.current

    def is_terminal(self, state) -> bool:
        return bool(self.world.is_terminal(state))

    def is_agent_terminal(self, state) -> bool:
        return bool(self.world.is_agent_terminal(state))


def as_adapter(world) -> WorldAdapter:
    if isinstance(world, WorldAdapter):
        return world
    if not isinstance(world, World):
        raise ConfigurationError(f"expected a World, got {type(world).__name__}")
    return WorldAdapter(world)


class Pull(str, Enum):
    READY = "READY"
    PAID = "PAID"
    PENALIZED = "PENALIZED"


class BanditWorld(World):
    """Single decision point, two arms.

    Arm "A" pays, arm "B" penalizes. The state remembers the outcome of the
    last pull so a state-based reward can score it; every state offers the
    same choice again.
    """

    ACTIONS = ("A", "B")
    PAYOFFS = {"A": 1.0, "B": -1.0}

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        self.state = Pull.READY
        self.pulls = 0

    def init(self):
        self.state = Pull.READY
        self.pulls = 0
        return self.state

    def reset_agent(self):
        self.state = Pull.READY
        return self.state

    def states(self):
        return tuple(Pull)

    def actions(self):
        return self.ACTIONS

    def act(self, action):
        if action not in self.ACTIONS:
            raise ValueError(f"action must be one of {self.ACTIONS}")
        self.pulls += 1
        self.state = Pull.PAID if action == "A" else Pull.PENALIZED
        return self.state

    @classmethod
    def reward(cls, state) -> float:
        if state == Pull.PAID:
            return cls.PAYOFFS["A"]
        if state == Pull.PENALIZED:
            return cls.PAYOFFS["B"]
        return 0.0
