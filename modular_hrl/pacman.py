"""A small PacMan world and the two classic modules for it.

Grid with one PacMan, one ghost and one food pellet. Actions are the four
compass moves; walls clamp. The ghost moves after PacMan, toward PacMan with
probability `ghost_chase`, otherwise at random. A pellet that gets eaten
stays visible for one state (so rewards can see it) and is relocated at the
start of the next move.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .modules import ModuleSpec
from .worlds import World

Pos = Tuple[int, int]

MOVES = {
    "N": (0, -1),
    "S": (0, 1),
    "E": (1, 0),
    "W": (-1, 0),
}

FOOD_POINTS = 10
CAUGHT_POINTS = -50


@dataclass(frozen=True)
class PacManState:
    pac: Pos
    ghost: Pos
    food: Pos


class PacManWorld(World):
    ACTIONS = tuple(MOVES)

    def __init__(self, width: int = 4, height: int = 4, ghost_chase: float = 0.5,
                 seed: Optional[int] = None):
        if width < 2 or height < 1:
            raise ValueError("grid must be at least 2x1")
        if not 0.0 <= ghost_chase <= 1.0:
            raise ValueError("ghost_chase must be in [0, 1]")
        self.width = int(width)
        self.height = int(height)
        self.ghost_chase = float(ghost_chase)
        self.rng = np.random.default_rng(seed)
        self.cells: List[Pos] = [(x, y) for y in range(self.height) for x in range(self.width)]

        self.score = 0
        self.last_score_delta = 0
        self.food_eaten = 0
        self.times_caught = 0
        self.state = self.init()

    def _random_cell(self, exclude: Tuple[Pos, ...] = ()) -> Pos:
        free = [c for c in self.cells if c not in exclude]
        return free[int(self.rng.integers(0, len(free)))]

    def _clamp(self, x: int, y: int) -> Pos:
        return (min(max(x, 0), self.width - 1), min(max(y, 0), self.height - 1))

    def init(self) -> PacManState:
        pac = self._random_cell()
        ghost = self._random_cell((pac,))
        food = self._random_cell((pac,))
        self.score = 0
        self.last_score_delta = 0
        self.food_eaten = 0
        self.times_caught = 0
        self.state = PacManState(pac, ghost, food)
        return self.state

    def reset_agent(self) -> PacManState:
        s = self.state
        self.state = PacManState(self._random_cell((s.ghost,)), s.ghost, s.food)
        return self.state

    def states(self):
        return [PacManState(p, g, f) for p, g, f in itertools.product(self.cells, repeat=3)]

    def actions(self):
        return self.ACTIONS

    def _ghost_step(self, ghost: Pos, pac: Pos) -> Pos:
        if self.rng.random() < self.ghost_chase:
            dx, dy = pac[0] - ghost[0], pac[1] - ghost[1]
            if abs(dx) >= abs(dy) and dx != 0:
                return self._clamp(ghost[0] + int(np.sign(dx)), ghost[1])
            if dy != 0:
                return self._clamp(ghost[0], ghost[1] + int(np.sign(dy)))
            return ghost
        mx, my = MOVES[self.ACTIONS[int(self.rng.integers(0, len(self.ACTIONS)))]]
        return self._clamp(ghost[0] + mx, ghost[1] + my)

    def act(self, action) -> PacManState:
        if action not in MOVES:
            raise ValueError(f"action must be one of {self.ACTIONS}")
        pac, ghost, food = self.state.pac, self.state.ghost, self.state.food
        if food == pac:
            food = self._random_cell((pac,))

        mx, my = MOVES[action]
        pac = self._clamp(pac[0] + mx, pac[1] + my)
        delta = 0
        if pac == food:
            self.food_eaten += 1
            delta += FOOD_POINTS
        # walking into the ghost ends it before the ghost gets to move
        if pac != ghost:
            ghost = self._ghost_step(ghost, pac)
        if pac == ghost:
            self.times_caught += 1
            delta += CAUGHT_POINTS

        self.score += delta
        self.last_score_delta = delta
        self.state = PacManState(pac, ghost, food)
        return self.state

    def is_agent_terminal(self, state) -> bool:
        return state.pac == state.ghost


def food_offset(state: PacManState) -> Pos:
    return (state.food[0] - state.pac[0], state.food[1] - state.pac[1])


def ghost_offset(state: PacManState) -> Pos:
    return (state.ghost[0] - state.pac[0], state.ghost[1] - state.pac[1])


def find_food_reward(offset: Pos) -> float:
    return 1.0 if offset == (0, 0) else -0.1


def avoid_ghost_reward(offset: Pos) -> float:
    return -10.0 if offset == (0, 0) else 0.0


def ghost_caught(offset: Pos) -> bool:
    return offset == (0, 0)


def pacman_agent_reward(state: PacManState) -> float:
    r = 0.0
    if state.pac == state.food:
        r += FOOD_POINTS
    if state.pac == state.ghost:
        r += CAUGHT_POINTS
    return r


def score_delta(world: PacManWorld):
    """Agent reward read off the world's running score."""
    def reward(state) -> float:
        return float(world.last_score_delta)
    return reward


def pacman_module_specs(world: PacManWorld) -> List[ModuleSpec]:
    return [
        ModuleSpec(world=world, name="find_food",
                   state_abstraction=food_offset, module_reward=find_food_reward),
        ModuleSpec(world=world, name="avoid_ghost",
                   state_abstraction=ghost_offset, module_reward=avoid_ghost_reward,
                   module_terminal=ghost_caught),
    ]
