from __future__ import annotations

from typing import Optional

import numpy as np

from .config import ExplorationConfig


def argmax(values: np.ndarray, tie_break: str = "first",
           rng: Optional[np.random.Generator] = None) -> int:
    """Index of the largest value; ties go to the lowest index unless tie_break == "random"."""
    values = np.asarray(values, dtype=np.float64)
    if tie_break == "random" and rng is not None:
        best = np.flatnonzero(values == values.max())
        return int(best[0]) if len(best) == 1 else int(rng.choice(best))
    return int(np.argmax(values))


class EpsilonSchedule:
    """Epsilon as a function of the episode number."""

    def __init__(self, cfg: Optional[ExplorationConfig] = None):
        self.cfg = cfg or ExplorationConfig()
        self.cfg.validate()

    def __call__(self, episode: int) -> float:
        cfg = self.cfg
        if cfg.schedule == "constant":
            return float(cfg.epsilon_start)
        if cfg.decay_episodes == 0:
            return float(cfg.epsilon_end)
        frac = min(1.0, max(0, episode) / cfg.decay_episodes)
        if cfg.schedule == "linear":
            return float(cfg.epsilon_start + frac * (cfg.epsilon_end - cfg.epsilon_start))
        # exponential: geometric interpolation, floored so epsilon_end == 0 still decays
        lo = max(cfg.epsilon_end, 1e-12)
        hi = max(cfg.epsilon_start, 1e-12)
        eps = hi * (lo / hi) ** frac
        return float(cfg.epsilon_end if frac >= 1.0 else eps)


class EpsilonGreedy:
    """Perturbs greedy choices with probability epsilon.

    The same class governs module proposals (choices over world actions) and
    arbitration (choices over module indices).
    """

    def __init__(self, cfg: Optional[ExplorationConfig] = None,
                 rng: Optional[np.random.Generator] = None, seed: int = 0):
        self.schedule = EpsilonSchedule(cfg)
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    @property
    def tie_break(self) -> str:
        return self.schedule.cfg.tie_break

    def epsilon(self, episode: int) -> float:
        return self.schedule(episode)

    def greedy(self, values: np.ndarray) -> int:
        return argmax(values, self.tie_break, self.rng)

    def choose(self, values: np.ndarray, episode: int = 0) -> int:
        values = np.asarray(values, dtype=np.float64)
        eps = self.epsilon(episode)
        # always consume one draw so the stream does not depend on epsilon
        explore = self.rng.random() < eps
        if explore:
            return int(self.rng.integers(0, len(values)))
        return self.greedy(values)
