"""
End-to-end learning scenarios: a two-armed bandit and a find-food / avoid-ghost corridor.
"""
import pytest

from modular_hrl import (Agent, BanditWorld, EpsilonGreedy, ExplorationConfig, HRLConfig,
                         LearnerConfig, ModuleSpec, TrainingConfig)
from modular_hrl.worlds import Pull

from conftest import corridor_agent_reward, corridor_food_reward, corridor_ghost_reward


class TestBanditScenario:
    """One module, one state worth deciding in, two arms.

    Rewards are functions of state, so the bandit state records how the last
    pull went: PAID after A, PENALIZED after B. Every pull starts from the
    same situation, and both arms are open from every state, so the three
    states act as a single decision point. READY is only where episodes begin.
    """

    @pytest.fixture
    def trained(self, bandit_world):
        spec = ModuleSpec(world=bandit_world, module_reward=BanditWorld.reward, name="bandit")
        cfg = HRLConfig(
            module_learner=LearnerConfig(alpha=0.5, gamma=0.5),
            arbitration_learner=LearnerConfig(alpha=0.5, gamma=0.5),
            module_exploration=ExplorationConfig(epsilon_start=1.0, epsilon_end=0.0, decay_episodes=150),
            arbitration_exploration=ExplorationConfig(epsilon_start=1.0, epsilon_end=0.0, decay_episodes=150),
            training=TrainingConfig(max_episodes=200, max_steps=5, seed=17, log_every=0),
        )
        agent = Agent(bandit_world, [spec], BanditWorld.reward, config=cfg)
        history = agent.train()
        return agent, history

    def test_module_prefers_paying_arm(self, trained):
        agent, _ = trained
        for s in Pull:
            assert agent.modules[0].propose(s).action == "A"
        q = agent.modules[0].values(Pull.READY)
        assert q[0] > q[1]

    def test_arbitrator_always_picks_the_only_module(self, trained):
        agent, _ = trained
        explore = EpsilonGreedy(ExplorationConfig.constant(1.0), seed=0)
        props = agent.propose_all(Pull.READY)
        assert all(agent.arbitrator.select(Pull.READY, props, explore) == 0 for _ in range(50))
        assert agent.act_greedy(Pull.READY) == (0, "A")

    def test_greedy_rollouts_pull_a(self, trained):
        agent, _ = trained
        history = agent.evaluate(5)
        for log in history.episodes:
            assert set(log.actions) == {"A"}
            assert log.total_reward == 5.0

    def test_late_episodes_exploit(self, trained):
        _, history = trained
        assert history.mean_reward(last=20) == 5.0


class TestFoodAndGhostScenario:
    """Two selfish modules; the arbitrator learns whom to trust where.

    find_food sees only PacMan's cell; avoid_ghost sees PacMan and the ghost.
    Modules first learn from random behavior, then the arbitrator learns
    over their (now settled) proposals.
    """

    @pytest.fixture
    def trained(self, corridor_world):
        specs = [
            ModuleSpec(world=corridor_world, name="find_food",
                       state_abstraction=lambda s: s[0], module_reward=corridor_food_reward),
            ModuleSpec(world=corridor_world, name="avoid_ghost",
                       module_reward=corridor_ghost_reward),
        ]
        cfg = HRLConfig(
            module_learner=LearnerConfig(alpha=1.0, gamma=0.5),
            arbitration_learner=LearnerConfig(alpha=1.0, gamma=0.5),
            module_exploration=ExplorationConfig.constant(1.0),
            arbitration_exploration=ExplorationConfig.constant(1.0),
            training=TrainingConfig(max_episodes=1500, max_steps=10, seed=3, log_every=0),
        )
        agent = Agent(corridor_world, specs, corridor_agent_reward, config=cfg)
        agent.train()
        agent.set_exploration(module=ExplorationConfig.constant(0.0))
        agent.train()
        return agent

    def test_modules_learn_their_own_goals(self, trained):
        food, avoid = trained.modules
        for pac in range(5):
            assert food.propose((pac, 0)).action == "R"
        # stepping right from next to the ghost would walk into it
        for pac in range(4):
            assert avoid.propose((pac, pac + 1)).action == "L"

    def test_arbitrator_defers_to_avoid_ghost_next_to_ghost(self, trained):
        checked = 0
        for pac in range(4):
            s = (pac, pac + 1)
            props = trained.propose_all(s)
            assert props[0].action != props[1].action
            assert trained.act_greedy(s) == (1, "L")
            checked += 1
        assert checked == 4

    def test_arbitrator_defers_to_find_food_when_path_is_clear(self, trained):
        checked = 0
        for s in trained.world.states:
            pac, ghost = s
            props = trained.propose_all(s)
            if ghost < pac and props[0].action != props[1].action:
                assert trained.act_greedy(s)[0] == 0
                checked += 1
        assert checked > 0
