# tests/agent/test_scenarios.py
"""
End-to-end learning scenarios.

A. A tool that always succeeds: every action succeeds, nothing triggers critique.
B. A tool that always fails: every iteration critiques itself, and the
   plain-text model's fallback reflections store no lessons.
C. One success/failure pair on similar goals yields exactly one insight.
D. A gradient applied with learning_rate * magnitude == 1 applies every edit.
"""

import random

import pytest

from ariacore.agent import LearningAgent
from ariacore.learning.contrastive import ContrastiveLearner, TrajectoryRecord
from ariacore.learning.gradients import Modifications, StepModification, TextualGradient, TextualGradientEngine
from ariacore.models import Goal
from ariacore.strategies import Strategy


def make_agent(llm, config, tool_name, tool):
    agent = LearningAgent(
        llm_call=llm,
        config=config,
        goals=[Goal(id="g1", description="research token prices", priority=5)],
    )
    agent.register_tool(tool_name, tool)
    return agent


class TestScenarioA:
    """Always-succeeding tool."""

    @pytest.mark.asyncio
    async def test_all_actions_succeed_and_no_reflection(self, plain_text_llm, fast_config, succeeding_tool):
        agent = make_agent(plain_text_llm, fast_config, "search", succeeding_tool)

        await agent.run(max_iterations=20)

        metrics = agent.get_metrics()
        assert metrics["iteration"] == 20
        assert metrics["total_actions"] >= 20
        assert metrics["successful_actions"] == metrics["total_actions"]
        assert metrics["reflections_triggered"] == 0
        assert metrics["gradients_applied"] == 0
        assert metrics["win_rate"] == 1.0


class TestScenarioB:
    """Always-failing tool."""

    @pytest.mark.asyncio
    async def test_every_iteration_reflects_without_storing_lessons(
        self, plain_text_llm, fast_config, failing_tool
    ):
        agent = make_agent(plain_text_llm, fast_config, "search", failing_tool)

        await agent.run(max_iterations=10)

        metrics = agent.get_metrics()
        assert metrics["iteration"] == 10
        assert metrics["successful_actions"] == 0
        assert metrics["reflections_triggered"] == 10
        assert metrics["total_lessons"] == 0
        assert agent.reflexion.get_total_reflections() == 0
        critique_prompts = [p for p in plain_text_llm.prompts if "analyzing your own performance" in p]
        assert len(critique_prompts) == 10


class TestScenarioC:
    """A single contrasting pair."""

    @pytest.mark.asyncio
    async def test_one_pair_one_insight(self, scripted_llm, json_reply):
        llm = scripted_llm([
            json_reply({
                "differences": {"toolUsage": ["Winner used the symbol"]},
                "insight": "Query by symbol",
                "applicability": ["token"],
                "confidence": 0.8,
            })
        ])
        learner = ContrastiveLearner(llm_call=llm, min_similarity_for_comparison=0.3)
        learner.record(TrajectoryRecord(id="t-win", goal="research token X", success=True, final_score=0.9))
        learner.record(TrajectoryRecord(id="t-lose", goal="research token Y", success=False, final_score=0.1))

        insights = await learner.learn_from_contrasts(1)

        assert len(insights) == 1
        assert insights[0].winning_trajectory == "t-win"
        assert insights[0].losing_trajectory == "t-lose"


class TestScenarioD:
    """Stochastic application at probability one."""

    def test_every_edit_applied_in_every_trial(self, plain_text_llm):
        strategy = Strategy(
            id="s",
            name="S",
            description="",
            steps=["step one", "step two"],
            heuristics=["old heuristic"],
            system_prompt="Prompt",
            success_rate=0.5,
        )
        gradient = TextualGradient(
            strategy_id="s",
            success_rate=0.0,
            modifications=Modifications(
                add_heuristics=["new heuristic"],
                remove_heuristics=["old heuristic"],
                modify_steps=[StepModification(original="step two", modified="step 2")],
                prompt_adjustments=["Be precise"],
            ),
            reasoning="",
            magnitude=1.0,
        )
        engine = TextualGradientEngine(llm_call=plain_text_llm, learning_rate=1.0, rng=random.Random(0))

        trials = 1000
        fully_applied = 0
        for _ in range(trials):
            updated = engine.apply_gradient(strategy, gradient)
            fully_applied += (
                updated.heuristics == ["new heuristic"]
                and updated.steps == ["step one", "step 2"]
                and "Be precise" in updated.system_prompt
            )

        assert fully_applied >= 0.99 * trials
        assert strategy.heuristics == ["old heuristic"]
