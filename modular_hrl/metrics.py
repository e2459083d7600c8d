from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass
class EpisodeLog:
    episode: int
    rewards: List[float] = field(default_factory=list)
    actions: List[Any] = field(default_factory=list)
    choices: List[int] = field(default_factory=list)
    module_rewards: List[List[float]] = field(default_factory=list)
    agent_resets: int = 0
    terminated: bool = False
    max_value_change: float = 0.0

    @property
    def steps(self) -> int:
        return len(self.rewards)

    @property
    def total_reward(self) -> float:
        return float(np.sum(self.rewards)) if self.rewards else 0.0

    def record(self, action, choice: int, reward: float, module_rewards: List[float],
               value_change: float) -> None:
        self.actions.append(action)
        self.choices.append(int(choice))
        self.rewards.append(float(reward))
        self.module_rewards.append([float(r) for r in module_rewards])
        self.max_value_change = max(self.max_value_change, abs(float(value_change)))

    def as_dict(self) -> Dict:
        return {
            "episode": int(self.episode),
            "steps": self.steps,
            "total_reward": self.total_reward,
            "rewards": list(map(float, self.rewards)),
            "actions": [str(a) for a in self.actions],
            "choices": list(map(int, self.choices)),
            "module_rewards": self.module_rewards,
            "agent_resets": int(self.agent_resets),
            "terminated": bool(self.terminated),
            "max_value_change": float(self.max_value_change),
        }


class TrainingHistory:
    """Episode logs of one training run plus a simple convergence tracker.

    A run counts as converged once the largest value change stays at or
    below `tol` for `patience` consecutive episodes.
    """

    def __init__(self, module_names: List[str], tol: Optional[float] = None, patience: int = 10):
        self.module_names = list(module_names)
        self.tol = tol
        self.patience = int(patience)
        self.episodes: List[EpisodeLog] = []
        self.converged_at: Optional[int] = None
        self._quiet = 0

    def __len__(self) -> int:
        return len(self.episodes)

    def add(self, log: EpisodeLog) -> bool:
        """Store an episode; returns True the first time the run is judged converged."""
        self.episodes.append(log)
        if self.tol is None or self.converged_at is not None:
            return False
        self._quiet = self._quiet + 1 if log.max_value_change <= self.tol else 0
        if self._quiet >= self.patience:
            self.converged_at = log.episode
            return True
        return False

    @property
    def converged(self) -> bool:
        return self.converged_at is not None

    def total_rewards(self) -> List[float]:
        return [e.total_reward for e in self.episodes]

    def mean_reward(self, last: Optional[int] = None) -> float:
        r = self.total_rewards()
        if last:
            r = r[-last:]
        return float(np.mean(r)) if r else 0.0

    def choice_frequencies(self, last: Optional[int] = None) -> Dict[str, float]:
        episodes = self.episodes[-last:] if last else self.episodes
        counts = np.zeros(len(self.module_names), dtype=np.float64)
        for e in episodes:
            for c in e.choices:
                counts[c] += 1
        total = counts.sum()
        if total > 0:
            counts /= total
        return {name: float(c) for name, c in zip(self.module_names, counts)}

    def summary(self) -> Dict[str, Any]:
        return {
            "episodes": len(self.episodes),
            "mean_total_reward": self.mean_reward(),
            "mean_total_reward_last10": self.mean_reward(10),
            "mean_steps": float(np.mean([e.steps for e in self.episodes])) if self.episodes else 0.0,
            "choice_frequencies": self.choice_frequencies(),
            "agent_resets": int(sum(e.agent_resets for e in self.episodes)),
            "converged_at": self.converged_at,
        }

    def as_dict(self) -> Dict[str, Any]:
        return {
            "modules": list(self.module_names),
            "summary": self.summary(),
            "episodes": [e.as_dict() for e in self.episodes],
        }


def save_results(history: TrainingHistory, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(history.as_dict(), f, indent=2)
    return path


def load_results(path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
