"""Configuration for modular HRL training runs.

Everything a run needs is a dataclass so it can be created in code or
loaded from YAML:

```yaml
name: pacman
module_learner:
  alpha: 0.2
  gamma: 0.9
arbitration_exploration:
  epsilon_start: 1.0
  epsilon_end: 0.05
  decay_episodes: 400
training:
  max_episodes: 500
  max_steps: 100
  seed: 7
```
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SCHEDULES = ("constant", "linear", "exponential")
TIE_BREAKS = ("first", "random")
RESET_MODES = ("agent", "episode")


@dataclass
class LearnerConfig:
    """Temporal-difference hyperparameters for one value table."""
    alpha: float = 0.1
    gamma: float = 0.9
    initial_value: float = 0.0

    def validate(self) -> None:
        if not 0.0 < self.alpha <= 1.0:
            raise ConfigurationError(f"alpha must be in (0, 1], got {self.alpha}")
        if not 0.0 <= self.gamma < 1.0:
            raise ConfigurationError(f"gamma must be in [0, 1), got {self.gamma}")


@dataclass
class ExplorationConfig:
    """Epsilon-greedy exploration schedule."""
    epsilon_start: float = 1.0
    epsilon_end: float = 0.05
    decay_episodes: int = 100
    schedule: str = "linear"
    tie_break: str = "first"

    def validate(self) -> None:
        for name in ("epsilon_start", "epsilon_end"):
            eps = getattr(self, name)
            if not 0.0 <= eps <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {eps}")
        if self.decay_episodes < 0:
            raise ConfigurationError("decay_episodes must be >= 0")
        if self.schedule not in SCHEDULES:
            raise ConfigurationError(f"unknown schedule {self.schedule!r}, expected one of {SCHEDULES}")
        if self.tie_break not in TIE_BREAKS:
            raise ConfigurationError(f"unknown tie_break {self.tie_break!r}, expected one of {TIE_BREAKS}")

    @classmethod
    def constant(cls, epsilon: float, tie_break: str = "first") -> "ExplorationConfig":
        return cls(epsilon_start=epsilon, epsilon_end=epsilon, decay_episodes=0,
                   schedule="constant", tie_break=tie_break)


@dataclass
class TrainingConfig:
    """Loop-level limits and optional features."""
    max_episodes: int = 200
    max_steps: int = 100
    seed: int = 0
    # what happens when the world reports the agent itself is done
    reset_on_terminal: str = "agent"
    replay_capacity: int = 0
    replay_batch_size: int = 0
    parallel_module_updates: bool = False
    convergence_tol: Optional[float] = None
    convergence_patience: int = 10
    log_every: int = 50

    def validate(self) -> None:
        if self.max_episodes <= 0:
            raise ConfigurationError("max_episodes must be positive")
        if self.max_steps <= 0:
            raise ConfigurationError("max_steps must be positive")
        if self.reset_on_terminal not in RESET_MODES:
            raise ConfigurationError(
                f"unknown reset_on_terminal {self.reset_on_terminal!r}, expected one of {RESET_MODES}")
        if self.replay_capacity < 0 or self.replay_batch_size < 0:
            raise ConfigurationError("replay sizes must be >= 0")
        if self.replay_batch_size and not self.replay_capacity:
            raise ConfigurationError("replay_batch_size set without replay_capacity")
        if self.convergence_tol is not None and self.convergence_tol < 0:
            raise ConfigurationError("convergence_tol must be >= 0")
        if self.convergence_patience <= 0:
            raise ConfigurationError("convergence_patience must be positive")

    @property
    def replay_enabled(self) -> bool:
        return self.replay_capacity > 0 and self.replay_batch_size > 0


_SECTIONS = {
    "module_learner": LearnerConfig,
    "arbitration_learner": LearnerConfig,
    "module_exploration": ExplorationConfig,
    "arbitration_exploration": ExplorationConfig,
    "training": TrainingConfig,
}


@dataclass
class HRLConfig:
    """Complete configuration of an agent and its training loop."""
    name: str = "experiment"
    module_learner: LearnerConfig = field(default_factory=LearnerConfig)
    arbitration_learner: LearnerConfig = field(default_factory=LearnerConfig)
    # modules propose greedily unless told otherwise
    module_exploration: ExplorationConfig = field(
        default_factory=lambda: ExplorationConfig.constant(0.0))
    arbitration_exploration: ExplorationConfig = field(default_factory=ExplorationConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)

    def validate(self) -> "HRLConfig":
        for section in _SECTIONS:
            getattr(self, section).validate()
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save(self, path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HRLConfig":
        if d is None:
            d = {}
        if not isinstance(d, dict):
            raise ConfigurationError(f"config must be a mapping, got {type(d).__name__}")
        d = dict(d)
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ConfigurationError(f"unknown config keys: {sorted(unknown)}")
        for section, section_cls in _SECTIONS.items():
            if section not in d:
                continue
            value = d[section]
            if value is None:
                # an empty YAML section means "all defaults"
                del d[section]
            elif isinstance(value, dict):
                d[section] = _build_section(section_cls, value, section)
            elif not isinstance(value, section_cls):
                raise ConfigurationError(
                    f"{section} must be a mapping, got {type(value).__name__}")
        return cls(**d)


def _build_section(section_cls, values: Dict[str, Any], section: str):
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(f"unknown keys in {section}: {sorted(unknown)}")
    return section_cls(**values)


def load_config(path) -> HRLConfig:
    """Load and validate a configuration from a YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        d = yaml.safe_load(f)
    cfg = HRLConfig.from_dict(d).validate()
    logger.info(f"Loaded config {cfg.name!r} from {path}")
    return cfg


def create_default_config(name: str = "default") -> HRLConfig:
    return HRLConfig(name=name)
