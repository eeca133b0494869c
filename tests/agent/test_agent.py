# tests/agent/test_agent.py
"""
Tests for the LearningAgent loop.

Covers:
- Construction requirements
- Goal and strategy selection, candidate actions
- Tool execution, step fallback, reward and score
- Learning triggers (reflexion, gradient write-back)
- Loop error handling and stop()
- Milestone emission and ledger failures
- Export / import round trip
"""

import asyncio
import json
import logging

import pytest

from ariacore.agent import (
    Guidance,
    LearningAgent,
    default_log_sink,
    default_params,
    infer_tool_from_step,
)
from ariacore.config import AgentConfig
from ariacore.config.agent_config import LearningConfig, MilestoneConfig
from ariacore.exceptions import ConfigError
from ariacore.models import ActionResult, Goal, GoalStatus, MilestoneType, RunStep
from ariacore.strategies import Strategy, StrategyStore


def greedy_config(**milestones):
    """Fast config with exploration switched off."""
    return AgentConfig(
        name="greedy",
        min_iteration_seconds=0.0,
        error_pause_seconds=0.0,
        learning=LearningConfig(epsilon=0.0, epsilon_min=0.0),
        milestones=MilestoneConfig(**milestones),
    )


def make_agent(llm, config, goals=None, **kwargs):
    return LearningAgent(
        llm_call=llm,
        config=config,
        goals=goals if goals is not None else [Goal(id="g1", description="research token prices", priority=5)],
        **kwargs,
    )


class LogCapture:
    def __init__(self):
        self.entries = []

    def __call__(self, message, level):
        self.entries.append((level, message))

    def messages(self, prefix):
        return [m for _, m in self.entries if m.startswith(prefix)]


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:
    """Tests for module-level helpers."""

    def test_default_params(self):
        goal = Goal(id="g", description="Research Solana ecosystem news today")
        guidance = Guidance()

        assert default_params("search", goal, guidance) == {"query": goal.description, "count": 5}
        assert default_params("news", goal, guidance) == {"topic": "Research Solana ecosystem", "count": 5}
        assert default_params("prices", goal, guidance) == {"coins": ["bitcoin", "ethereum", "solana"]}
        assert default_params("weather", goal, guidance) == {"city": "San Francisco"}
        assert default_params("custom", goal, guidance) == {"query": goal.description}

    def test_infer_tool_from_step(self):
        tools = ["search", "prices"]

        assert infer_tool_from_step("Check current prices", tools) == "prices"
        assert infer_tool_from_step("Search for relevant information", tools) == "search"
        # Keyword tool not registered -> first registered tool
        assert infer_tool_from_step("Get latest news", tools) == "search"
        assert infer_tool_from_step("Get latest news", []) is None

    def test_reward_and_score(self):
        ok = ActionResult(tool="t", params={}, success=True, result=1, duration=0.0)
        bad = ActionResult(tool="t", params={}, success=False, result="x", duration=0.0)

        assert LearningAgent.calculate_reward([]) == -0.5
        assert LearningAgent.calculate_score([]) == 0.0
        assert LearningAgent.calculate_reward([ok, ok]) == 1.0
        assert LearningAgent.calculate_reward([bad]) == -1.0
        assert LearningAgent.calculate_reward([ok, bad]) == 0.0
        assert LearningAgent.calculate_score([ok, bad, bad, ok]) == 0.5

    def test_default_log_sink_marks_display(self, caplog):
        caplog.set_level(logging.INFO, logger="ariacore.agent")

        default_log_sink("hello", "learn")

        record = caplog.records[-1]
        assert record.getMessage() == "[LEARN] hello"
        assert record.display is True


# =============================================================================
# Construction and selection
# =============================================================================


class TestConstruction:
    """Tests for agent construction."""

    def test_requires_llm(self, fast_config):
        with pytest.raises(ConfigError):
            LearningAgent(llm_call=None, config=fast_config)

    def test_defaults(self, plain_text_llm):
        agent = LearningAgent(llm_call=plain_text_llm)

        assert agent.config.name == "aria"
        assert [s.id for s in agent.get_strategies()] == ["research", "monitor", "analyze"]
        assert agent.is_running is False
        assert agent.get_metrics()["epsilon"] == pytest.approx(0.2)

    def test_empty_strategy_store_is_kept(self, plain_text_llm, fast_config):
        store = StrategyStore([])
        agent = make_agent(plain_text_llm, fast_config, strategies=store)

        assert agent.strategies is store


class TestSelection:
    """Tests for goal, strategy and candidate selection."""

    def test_highest_priority_active_goal(self, plain_text_llm, fast_config):
        goals = [
            Goal(id="low", description="a", priority=1),
            Goal(id="done", description="b", priority=10, status=GoalStatus.COMPLETED),
            Goal(id="high", description="c", priority=7),
            Goal(id="tie", description="d", priority=7),
        ]
        agent = make_agent(plain_text_llm, fast_config, goals=goals)

        assert agent.select_goal().id == "high"

    def test_no_active_goal(self, plain_text_llm, fast_config):
        agent = make_agent(plain_text_llm, fast_config, goals=[])
        assert agent.select_goal() is None

    def test_exploratory_strategy_when_store_empty(self, plain_text_llm, fast_config, succeeding_tool):
        agent = make_agent(plain_text_llm, fast_config, strategies=StrategyStore([]))
        agent.register_tool("search", succeeding_tool)

        strategy = agent.select_strategy(agent.goals[0])

        assert strategy.id == "explore_g1"
        assert agent.strategies.get("explore_g1") is strategy

    def test_candidate_actions(self, plain_text_llm, fast_config, succeeding_tool):
        agent = make_agent(plain_text_llm, fast_config)
        agent.register_tool("search", succeeding_tool)
        agent.register_tool("news", succeeding_tool)
        strategy = agent.strategies.get("research")

        keys = list(agent.candidate_actions(strategy).keys())

        assert keys[:2] == ["use:search", "use:news"]
        assert keys[2:] == [RunStep(step).key for step in strategy.steps]

    def test_candidate_actions_never_empty(self, plain_text_llm, fast_config):
        agent = make_agent(plain_text_llm, fast_config)
        strategy = Strategy(id="bare", name="Bare strategy", description="", steps=[])

        candidates = agent.candidate_actions(strategy)

        assert list(candidates.values()) == [RunStep("Bare strategy")]

    @pytest.mark.asyncio
    async def test_bare_strategy_without_tools_is_a_no_action_iteration(self, plain_text_llm):
        bare = Strategy(id="bare", name="Bare strategy", description="", steps=[])
        agent = make_agent(plain_text_llm, greedy_config(), strategies=StrategyStore([bare]))

        report = await agent.run_iteration()

        assert report.results == []
        assert report.reward == -0.5
        assert agent.experience.get_buffer_size() == 1


# =============================================================================
# Iterations
# =============================================================================


class TestIteration:
    """Tests for single iterations."""

    @pytest.mark.asyncio
    async def test_no_goal_iteration_is_noop(self, plain_text_llm, fast_config, succeeding_tool):
        agent = make_agent(plain_text_llm, fast_config, goals=[])
        agent.register_tool("search", succeeding_tool)

        report = await agent.run_iteration()

        assert report.iteration == 1
        assert report.goal_id is None
        assert report.results == []
        assert succeeding_tool.calls == []
        assert agent.experience.get_buffer_size() == 0

    @pytest.mark.asyncio
    async def test_greedy_iteration_invokes_first_tool(self, plain_text_llm, succeeding_tool):
        agent = make_agent(plain_text_llm, greedy_config())
        agent.register_tool("search", succeeding_tool)

        report = await agent.run_iteration()

        assert report.action == "use:search"
        assert report.is_exploration is False
        assert report.strategy_id == "research"
        assert report.reward == 1.0
        assert report.score == 1.0
        assert succeeding_tool.calls == [{"query": "research token prices", "count": 5}]
        assert agent.experience.get_value("goal:g1|iter:1|", "use:search") > 0
        assert agent.strategies.get("research").success_rate == 1.0

    @pytest.mark.asyncio
    async def test_step_action_runs_first_three_steps(self, plain_text_llm, succeeding_tool):
        agent = make_agent(plain_text_llm, greedy_config())
        agent.register_tool("search", succeeding_tool)
        step_key = RunStep("Search for relevant information").key
        agent.experience.import_state({"buffer": [], "values": {"goal:g1|iter:1|": {step_key: 5.0}}, "epsilon": 0.0})

        report = await agent.run_iteration()

        assert report.action == step_key
        assert [r.tool for r in report.results] == ["search", "search", "search"]
        assert agent.metrics.total_actions == 3

    @pytest.mark.asyncio
    async def test_tool_failure_becomes_failed_result(self, plain_text_llm, failing_tool):
        agent = make_agent(plain_text_llm, greedy_config())
        agent.register_tool("search", failing_tool)

        report = await agent.run_iteration()

        assert report.results[0].success is False
        assert report.results[0].result == "upstream unavailable"
        assert report.reward == -1.0
        assert agent.metrics.total_actions == 1
        assert agent.metrics.successful_actions == 0

    @pytest.mark.asyncio
    async def test_tool_timeout_is_a_tool_failure(self, plain_text_llm):
        async def slow(params):
            await asyncio.sleep(1)

        config = greedy_config()
        config.tool_timeout_seconds = 0.01
        agent = make_agent(plain_text_llm, config)
        agent.register_tool("slow", slow)

        report = await agent.run_iteration()

        assert report.results[0].success is False
        assert report.results[0].result == "TimeoutError"

    @pytest.mark.asyncio
    async def test_perception_tool_snapshot_in_state(self, plain_text_llm, succeeding_tool):
        async def prices(params):
            return {"sol": 150}

        config = greedy_config()
        config.perception_tool = "prices"
        agent = make_agent(plain_text_llm, config)
        agent.register_tool("search", succeeding_tool)
        agent.register_tool("prices", prices)

        await agent.run_iteration()

        state = agent.experience.export_state()["buffer"][0]["state"]
        assert state.startswith("goal:g1|iter:1|prices:")
        assert '"sol": 150' in state

    @pytest.mark.asyncio
    async def test_reflexion_and_gradient_on_failure(self, failing_tool):
        gradient_reply = {
            "reasoning": "The tool keeps failing",
            "magnitude": 1.0,
            "modifications": {"addHeuristics": ["Check tool health first"]},
        }

        async def llm(prompt):
            if "textual gradient" in prompt.lower():
                return json.dumps(gradient_reply)
            return "No JSON here."

        config = greedy_config()
        config.learning.gradient_learning_rate = 1.0
        agent = make_agent(llm, config)
        agent.register_tool("search", failing_tool)

        await agent.run_iteration()

        assert agent.metrics.reflections_triggered == 1
        assert agent.metrics.gradients_applied == 1
        assert "Check tool health first" in agent.strategies.get("research").heuristics

    @pytest.mark.asyncio
    async def test_success_does_not_reflect(self, scripted_llm, succeeding_tool):
        llm = scripted_llm()
        agent = make_agent(llm, greedy_config())
        agent.register_tool("search", succeeding_tool)

        await agent.run_iteration()

        assert agent.metrics.reflections_triggered == 0
        assert agent.metrics.gradients_applied == 0
        # Only the skill synthesis prompt
        assert llm.call_count == 1


# =============================================================================
# Loop control
# =============================================================================


class TestRunLoop:
    """Tests for run() and stop()."""

    @pytest.mark.asyncio
    async def test_errors_are_logged_and_loop_continues(self, plain_text_llm, succeeding_tool):
        def broken_builder(tool_name, goal, guidance):
            raise ValueError("bad params")

        agent = make_agent(plain_text_llm, greedy_config())
        agent.register_tool("search", succeeding_tool)
        agent.set_param_builder(broken_builder)
        logs = LogCapture()
        agent.set_log_handler(logs)

        await agent.run(max_iterations=3)

        assert agent.iteration == 3
        assert logs.messages("Error in loop") == ["Error in loop: bad params"] * 3
        assert agent.is_running is False

    @pytest.mark.asyncio
    async def test_stop_halts_before_next_iteration(self, plain_text_llm):
        agent = make_agent(plain_text_llm, greedy_config())
        calls = []

        async def tool(params):
            calls.append(params)
            if len(calls) >= 2:
                agent.stop()
            return "ok"

        agent.register_tool("search", tool)

        await agent.run()

        assert agent.iteration == 2
        assert agent.is_running is False

    @pytest.mark.asyncio
    async def test_idle_agent_can_be_stopped_concurrently(self, plain_text_llm):
        config = greedy_config()
        config.min_iteration_seconds = 0.01
        agent = make_agent(plain_text_llm, config, goals=[])

        async def stopper():
            await asyncio.sleep(0.05)
            agent.stop()

        task = asyncio.create_task(stopper())
        await agent.run(max_iterations=200_000)
        await task

        assert 1 <= agent.iteration < 100

    @pytest.mark.asyncio
    async def test_idle_iteration_yields_without_padding(self, plain_text_llm):
        agent = make_agent(plain_text_llm, greedy_config(), goals=[])

        async def stopper():
            agent.stop()

        task = asyncio.create_task(stopper())
        await agent.run(max_iterations=200_000)
        await task

        assert agent.iteration < 10

    @pytest.mark.asyncio
    async def test_run_uses_configured_limit(self, plain_text_llm, succeeding_tool):
        config = greedy_config()
        config.max_iterations = 4
        agent = make_agent(plain_text_llm, config)
        agent.register_tool("search", succeeding_tool)

        await agent.run()

        assert agent.iteration == 4


# =============================================================================
# Milestones
# =============================================================================


class TestMilestones:
    """Tests for milestone emission and the ledger collaborator."""

    @pytest.mark.asyncio
    async def test_experience_milestone_with_receipt(self, plain_text_llm, succeeding_tool):
        agent = make_agent(plain_text_llm, greedy_config(experience_milestone=3))
        agent.register_tool("search", succeeding_tool)
        received = []

        async def ledger(milestone):
            received.append(milestone)
            return f"receipt-{len(received)}"

        agent.set_milestone_handler(ledger)

        await agent.run(max_iterations=5)

        experience = [m for m in agent.get_milestones() if "experiences" in m.description]
        assert len(experience) == 1
        assert experience[0].type == MilestoneType.STRATEGY_LEARNED
        assert experience[0].after == 3
        assert experience[0].receipt == "receipt-1"
        assert agent.metrics.milestones_recorded == len(received)

    @pytest.mark.asyncio
    async def test_ledger_failure_is_tolerated(self, plain_text_llm, succeeding_tool):
        agent = make_agent(plain_text_llm, greedy_config(experience_milestone=1))
        agent.register_tool("search", succeeding_tool)
        logs = LogCapture()
        agent.set_log_handler(logs)

        async def ledger(milestone):
            raise ConnectionError("rpc down")

        agent.set_milestone_handler(ledger)

        await agent.run(max_iterations=2)

        assert agent.iteration == 2
        assert agent.metrics.milestones_recorded == 1
        assert agent.get_milestones()[0].receipt is None
        assert logs.messages("Error in loop") == []
        assert any("rpc down" in m for level, m in logs.entries if level == "warning")

    @pytest.mark.asyncio
    async def test_value_table_milestones(self, plain_text_llm, succeeding_tool):
        agent = make_agent(
            plain_text_llm,
            greedy_config(experience_milestone=1000, value_table_step=5, value_table_min_iteration=2),
        )
        agent.register_tool("search", succeeding_tool)

        await agent.run(max_iterations=10)

        grown = [m for m in agent.get_milestones() if "Value table" in m.description]
        assert [m.after for m in grown] == [5, 10]

    @pytest.mark.asyncio
    async def test_skill_milestone(self, scripted_llm, json_reply, succeeding_tool):
        skill = {
            "name": "Search tokens",
            "description": "Search for token data",
            "preconditions": {"goalPatterns": ["research"], "requiredTools": ["search"]},
            "steps": [{"action": "Search", "tool": "search", "paramTemplate": {"query": "{{goal}}"}}],
        }
        llm = scripted_llm(default=json_reply(skill))
        agent = make_agent(llm, greedy_config(experience_milestone=1000))
        agent.register_tool("search", succeeding_tool)

        await agent.run(max_iterations=2)

        skill_milestones = [m for m in agent.get_milestones() if m.type == MilestoneType.NEW_INSIGHT]
        assert [m.after for m in skill_milestones] == [1, 2]
        assert agent.metrics.skills_extracted == 2

    @pytest.mark.asyncio
    async def test_improvement_milestone(self, plain_text_llm):
        calls = []

        async def recovering_tool(params):
            calls.append(params)
            if len(calls) <= 10:
                raise RuntimeError("warming up")
            return "ok"

        agent = make_agent(plain_text_llm, greedy_config(experience_milestone=1000, value_table_step=1000))
        agent.register_tool("search", recovering_tool)

        await agent.run(max_iterations=19)
        assert not [m for m in agent.get_milestones() if m.type == MilestoneType.SUCCESS_RATE_IMPROVED]

        report = await agent.run_iteration()

        improved = [m for m in report.milestones if m.type == MilestoneType.SUCCESS_RATE_IMPROVED]
        assert len(improved) == 1
        assert improved[0].before == pytest.approx(0.0)
        assert improved[0].after == pytest.approx(1.0)


# =============================================================================
# Persistence
# =============================================================================


class TestStateRoundTrip:
    """Tests for export_state / import_state."""

    @pytest.mark.asyncio
    async def test_round_trip(self, plain_text_llm, fast_config, succeeding_tool, failing_tool, rng):
        agent = make_agent(plain_text_llm, fast_config, rng=rng)
        agent.register_tool("search", succeeding_tool)
        agent.register_tool("news", failing_tool)
        await agent.run(max_iterations=6)

        snapshot = json.loads(json.dumps(agent.export_state()))
        restored = make_agent(plain_text_llm, fast_config, goals=[])
        restored.import_state(snapshot)

        assert restored.get_metrics() == agent.get_metrics()
        assert [g.id for g in restored.goals] == ["g1"]
        assert [s.to_dict() for s in restored.get_strategies()] == [s.to_dict() for s in agent.get_strategies()]
        assert restored.experience.get_value_table() == agent.experience.get_value_table()
        assert [m.id for m in restored.get_milestones()] == [m.id for m in agent.get_milestones()]

    @pytest.mark.asyncio
    async def test_restored_agent_continues_counting(self, plain_text_llm, succeeding_tool):
        agent = make_agent(plain_text_llm, greedy_config())
        agent.register_tool("search", succeeding_tool)
        await agent.run(max_iterations=2)

        restored = make_agent(plain_text_llm, greedy_config())
        restored.register_tool("search", succeeding_tool)
        restored.import_state(agent.export_state())
        await restored.run(max_iterations=3)

        assert restored.iteration == 3
        assert restored.metrics.total_actions == 3
