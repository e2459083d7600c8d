"""Agent: modules + arbitrator + the training loop that drives them.

Per step:
    1. every module proposes an action for the current world state
    2. the arbitrator picks one module; its action is executed
    3. the arbitrator learns from the agent-level reward
    4. every module learns from the same world transition with its own reward,
       regardless of which module was chosen
"""

from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Hashable, List, Optional, Sequence, Tuple

import numpy as np

from .arbitration import ArbitrationAbstraction, Arbitrator
from .config import ExplorationConfig, HRLConfig
from .errors import ConfigurationError
from .exploration import EpsilonGreedy
from .metrics import EpisodeLog, TrainingHistory
from .modules import Module, ModuleSpec, Proposal
from .worlds import as_adapter

logger = logging.getLogger(__name__)

AgentReward = Callable[[Any], float]

# stream layout for SeedSequence.spawn; modules take ids from _MODULE_STREAM on
_ARBITRATION_STREAM = 0
_REPLAY_STREAM = 1
_MODULE_STREAM = 2


@dataclass(frozen=True)
class Transition:
    """One world transition, with everything needed to replay its updates."""
    before: Any
    action: Any
    after: Any
    chosen: int
    agent_reward: float
    arbitration_before: Hashable
    arbitration_after: Hashable
    module_rewards: Tuple[float, ...] = ()
    terminal: bool = False


class ReplayBuffer:
    def __init__(self, capacity: int, rng: Optional[np.random.Generator] = None):
        if capacity <= 0:
            raise ConfigurationError("replay capacity must be positive")
        self.capacity = int(capacity)
        self.rng = rng if rng is not None else np.random.default_rng(0)
        self.buffer: deque = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self.buffer)

    def add(self, transition: Transition) -> None:
        self.buffer.append(transition)

    def sample(self, batch_size: int) -> List[Transition]:
        if not self.buffer:
            return []
        n = min(len(self.buffer), int(batch_size))
        idx = self.rng.choice(len(self.buffer), size=n, replace=False)
        return [self.buffer[int(i)] for i in idx]


class Agent:
    def __init__(
        self,
        world,
        modules: Sequence,
        agent_reward: AgentReward,
        config: Optional[HRLConfig] = None,
        arbitrator=None,
        arbitration_abstraction: Optional[ArbitrationAbstraction] = None,
    ):
        self.cfg = (config or HRLConfig()).validate()
        self.world = as_adapter(world)
        if not modules:
            raise ConfigurationError("an agent needs at least one module")
        if agent_reward is None or not callable(agent_reward):
            raise ConfigurationError("agent_reward must be a callable over world states")
        self.agent_reward = agent_reward

        self.modules: List[Module] = []
        for m in modules:
            if isinstance(m, ModuleSpec):
                m = m.build(self.world, learner=self.cfg.module_learner)
            elif not isinstance(m, Module):
                raise ConfigurationError(f"expected ModuleSpec or Module, got {type(m).__name__}")
            elif m.world.world is not self.world.world:
                raise ConfigurationError(f"module {m.name} was built for a different world")
            else:
                # same world, separate adapter; share ours so membership checks and
                # the current state stay in one place
                m.world = self.world
            self.modules.append(m)

        if arbitrator is None:
            arbitrator = Arbitrator(self.world, len(self.modules),
                                    abstraction=arbitration_abstraction,
                                    learner=self.cfg.arbitration_learner)
        elif arbitration_abstraction is not None:
            raise ConfigurationError("pass either an arbitrator or an arbitration abstraction")
        if arbitrator.num_modules != len(self.modules):
            raise ConfigurationError(
                f"arbitrator expects {arbitrator.num_modules} modules, agent has {len(self.modules)}")
        self.arbitrator = arbitrator

        tcfg = self.cfg.training
        seeds = np.random.SeedSequence(tcfg.seed).spawn(_MODULE_STREAM + len(self.modules))
        self._rngs = [np.random.default_rng(s) for s in seeds]
        self.set_exploration(self.cfg.module_exploration, self.cfg.arbitration_exploration)

        self.replay = (ReplayBuffer(tcfg.replay_capacity, self._rngs[_REPLAY_STREAM])
                       if tcfg.replay_enabled else None)
        # only set while train() runs; see train()
        self._pool: Optional[ThreadPoolExecutor] = None
        self.episode = 0
        logger.info(
            f"Agent {self.cfg.name!r}: modules={[m.name for m in self.modules]}, "
            f"arbitrator={type(self.arbitrator).__name__}, seed={tcfg.seed}"
        )

    @property
    def module_names(self) -> List[str]:
        return [m.name for m in self.modules]

    def set_exploration(self, module: Optional[ExplorationConfig] = None,
                        arbitration: Optional[ExplorationConfig] = None) -> None:
        """Swap exploration schedules; the underlying random streams carry on."""
        if module is not None:
            self.module_exploration = [
                EpsilonGreedy(module, rng=self._rngs[_MODULE_STREAM + i])
                for i in range(len(self.modules))
            ]
        if arbitration is not None:
            self.arbitration_exploration = EpsilonGreedy(arbitration, rng=self._rngs[_ARBITRATION_STREAM])

    def propose_all(self, world_state, explore: bool = False, episode: int = 0) -> List[Proposal]:
        if not explore:
            return [m.propose(world_state) for m in self.modules]
        return [m.propose(world_state, x, episode)
                for m, x in zip(self.modules, self.module_exploration)]

    def act_greedy(self, world_state) -> Tuple[int, Any]:
        proposals = self.propose_all(world_state)
        choice = self.arbitrator.greedy(world_state, proposals)
        return choice, proposals[choice].action

    def step(self, episode: Optional[int] = None, learn: bool = True) -> Tuple[Transition, float]:
        episode = self.episode if episode is None else episode
        s = self.world.current
        if s is None:
            raise ConfigurationError("world not initialised; call run_episode or world.init() first")

        greedy = self.propose_all(s)
        arb_s = self.arbitrator.arbitration_state(s, greedy)
        if learn:
            proposals = self.propose_all(s, explore=True, episode=episode)
            choice = self.arbitrator.select(s, greedy, self.arbitration_exploration, episode)
        else:
            proposals = greedy
            choice = self.arbitrator.greedy(s, greedy)
        action = proposals[choice].action

        s2 = self.world.act(action)
        terminal = self.world.is_terminal(s2) or self.world.is_agent_terminal(s2)
        transition = Transition(
            before=s,
            action=action,
            after=s2,
            chosen=int(choice),
            agent_reward=float(self.agent_reward(s2)),
            arbitration_before=arb_s,
            arbitration_after=self.arbitrator.arbitration_state(s2, self.propose_all(s2)),
            module_rewards=tuple(m.reward(s2) for m in self.modules),
            terminal=bool(terminal),
        )
        logger.debug(f"step: {s!r} -[{choice}:{action}]-> {s2!r}, r={transition.agent_reward:.3f}")

        change = 0.0
        if learn:
            change = self.observe(transition)
            if self.replay is not None:
                self.replay.add(transition)
                for past in self.replay.sample(self.cfg.training.replay_batch_size):
                    change = max(change, self.observe(past))
        return transition, change

    def observe(self, transition: Transition) -> float:
        """Apply one transition: arbitrator first, then every module independently.

        The world-level terminal flag only reaches the arbitrator. Modules
        judge terminality from their own abstracted state.
        """
        t = transition
        change = abs(self.arbitrator.update(t.arbitration_before, t.chosen, t.agent_reward,
                                            t.arbitration_after, terminal=t.terminal))

        def _update(m: Module) -> float:
            return abs(m.update(t.before, t.action, t.after))

        if self._pool is not None:
            module_changes = list(self._pool.map(_update, self.modules))
        else:
            module_changes = [_update(m) for m in self.modules]
        return max([change] + module_changes)

    def run_episode(self, episode: Optional[int] = None, learn: bool = True) -> EpisodeLog:
        episode = self.episode if episode is None else episode
        log = EpisodeLog(episode=episode)
        self.world.init()
        for _ in range(self.cfg.training.max_steps):
            t, change = self.step(episode, learn=learn)
            log.record(t.action, t.chosen, t.agent_reward, list(t.module_rewards), change)
            if self.world.is_terminal(t.after):
                log.terminated = True
                break
            if self.world.is_agent_terminal(t.after):
                if self.cfg.training.reset_on_terminal == "episode":
                    log.terminated = True
                    break
                self.world.reset_agent()
                log.agent_resets += 1
        if learn:
            self.episode = episode + 1
        return log

    def train(self, episodes: Optional[int] = None) -> TrainingHistory:
        tcfg = self.cfg.training
        n = tcfg.max_episodes if episodes is None else int(episodes)
        if n <= 0:
            raise ConfigurationError("number of episodes must be positive")
        history = TrainingHistory(self.module_names, tol=tcfg.convergence_tol,
                                  patience=tcfg.convergence_patience)
        if tcfg.parallel_module_updates and len(self.modules) > 1:
            with ThreadPoolExecutor(max_workers=len(self.modules), thread_name_prefix="module") as pool:
                self._pool = pool
                try:
                    self._train_loop(n, history)
                finally:
                    self._pool = None
        else:
            self._train_loop(n, history)
        return history

    def _train_loop(self, n: int, history: TrainingHistory) -> None:
        tcfg = self.cfg.training
        for _ in range(n):
            log = self.run_episode()
            if history.add(log):
                logger.info(f"Converged at episode {log.episode}; stopping early")
                break
            if tcfg.log_every and len(history) % tcfg.log_every == 0:
                logger.info(
                    f"episode {log.episode}: reward={log.total_reward:.2f} "
                    f"mean10={history.mean_reward(10):.2f} steps={log.steps} "
                    f"eps={self.arbitration_exploration.epsilon(log.episode):.3f} "
                    f"dQ={log.max_value_change:.4f}"
                )

    def evaluate(self, episodes: int = 10) -> TrainingHistory:
        """Greedy rollouts without learning or exploration."""
        history = TrainingHistory(self.module_names)
        for i in range(int(episodes)):
            history.add(self.run_episode(episode=i, learn=False))
        return history
