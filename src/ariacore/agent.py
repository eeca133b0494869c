# src/ariacore/agent.py
"""
Learning Agent - the perceive / reason / act / learn loop.

Ties the learning components together around a tool registry and a
strategy store.  Each iteration, strictly in order:

    1. Select the highest-priority active goal (no-op iteration if none)
    2. Perceive: build a state signature (goal, iteration, optional tool snapshot)
    3. Gather guidance: lessons, contrastive insights, applicable skills
    4. Reason: pick the best strategy, then an action by epsilon-greedy value lookup
    5. Act: invoke the chosen tool, or run the strategy's first steps
    6. Observe: reward = 2 * success_fraction - 1, store the transition, TD update
    7. Learn: reflexion / textual gradient / skill extraction (independent triggers),
       record the trajectory, periodic contrastive comparisons
    8. Decay exploration, check milestones, pad to the minimum iteration time

Failure policy:
    - Tool failures become failed ``ActionResult``s and only affect reward.
    - Malformed model output degrades inside each learning component.
    - Ledger failures are logged and ignored.
    - Anything else raised by an iteration is logged by :meth:`run`, which
      pauses briefly and carries on with the next iteration.

Example:
    from ariacore import AgentConfig, Goal, LearningAgent
    from ariacore.providers import create_llm_from_env

    agent = LearningAgent(
        llm_call=create_llm_from_env(),
        config=AgentConfig(name="scout", max_iterations=50),
        goals=[Goal(id="g1", description="Research Solana ecosystem news", priority=8)],
    )
    agent.register_tool("search", search_web)
    agent.register_tool("news", fetch_news)
    await agent.run()
    print(agent.get_metrics())
"""

import asyncio
import json
import logging
import random
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from .config import AgentConfig
from .exceptions import ConfigError, ToolNotFoundError
from .learning.contrastive import ContrastiveLearner, TrajectoryAction, TrajectoryRecord
from .learning.experience import ExperienceReplay, Transition, TransitionMetadata
from .learning.gradients import StrategyOutcome, TextualGradientEngine
from .learning.reflexion import Outcome, ReflexionEngine, Trajectory, TrajectoryStep
from .learning.skills import AttemptStep, Skill, SkillLibrary
from .ledger import MilestoneLedger
from .models import Action, ActionResult, Goal, InvokeTool, Milestone, MilestoneType, RunStep
from .providers.base import LLMCall
from .strategies import Strategy, StrategyStore
from .tools import ToolCapability, ToolRegistry

logger = logging.getLogger(__name__)

LogSink = Callable[[str, str], None]

NO_ACTION_REWARD = -0.5
STEP_FALLBACK_LIMIT = 3
STATE_LOG_LENGTH = 50
PERCEPTION_SNAPSHOT_LENGTH = 100

# Narration level -> (prefix, logging level) for the default sink
LOG_LEVELS: Dict[str, tuple] = {
    "system": ("[ARIA]", logging.INFO),
    "info": ("[INFO]", logging.INFO),
    "perceive": ("[PERCEIVE]", logging.DEBUG),
    "reason": ("[REASON]", logging.DEBUG),
    "learn": ("[LEARN]", logging.INFO),
    "success": ("[OK]", logging.INFO),
    "milestone": ("[MILESTONE]", logging.INFO),
    "warning": ("[!]", logging.WARNING),
    "error": ("[ERROR]", logging.ERROR),
}

# Step keyword -> conventional tool name
STEP_TOOL_KEYWORDS = (
    ("search", "search"),
    ("fetch", "fetch"),
    ("price", "prices"),
    ("news", "news"),
    ("wallet", "wallet"),
    ("weather", "weather"),
)


# =============================================================================
# Supporting types
# =============================================================================


class AgentPhase(str, Enum):
    """Where the loop currently is."""

    IDLE = "idle"
    PERCEIVING = "perceiving"
    REASONING = "reasoning"
    ACTING = "acting"
    LEARNING = "learning"


@dataclass
class Guidance:
    """Learned context gathered before acting; handed to the parameter builder."""

    lessons: List[str] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)
    skills: List[Skill] = field(default_factory=list)


ParamBuilder = Callable[[str, Goal, Guidance], Dict[str, Any]]


@dataclass
class AgentMetrics:
    total_actions: int = 0
    successful_actions: int = 0
    reflections_triggered: int = 0
    gradients_applied: int = 0
    skills_extracted: int = 0
    contrastive_insights: int = 0
    milestones_recorded: int = 0


@dataclass
class IterationReport:
    """What happened in one iteration. ``goal_id`` is None for a no-op iteration."""

    iteration: int
    goal_id: Optional[str] = None
    strategy_id: Optional[str] = None
    action: Optional[str] = None
    is_exploration: bool = False
    results: List[ActionResult] = field(default_factory=list)
    reward: float = 0.0
    score: float = 0.0
    milestones: List[Milestone] = field(default_factory=list)


def default_params(tool_name: str, goal: Goal, guidance: Guidance) -> Dict[str, Any]:
    """Parameters for well-known tool names; anything else gets the goal as a query."""
    if tool_name == "search":
        return {"query": goal.description, "count": 5}
    if tool_name == "news":
        return {"topic": " ".join(goal.description.split(" ")[:3]), "count": 5}
    if tool_name == "prices":
        return {"coins": ["bitcoin", "ethereum", "solana"]}
    if tool_name == "weather":
        return {"city": "San Francisco"}
    return {"query": goal.description}


def infer_tool_from_step(step: str, tool_names: List[str]) -> Optional[str]:
    """Map a strategy step to a registered tool by keyword, else the first registered tool."""
    step_lower = step.lower()
    for keyword, tool_name in STEP_TOOL_KEYWORDS:
        if keyword in step_lower and tool_name in tool_names:
            return tool_name
    return tool_names[0] if tool_names else None


def default_log_sink(message: str, level: str) -> None:
    prefix, log_level = LOG_LEVELS.get(level, ("[LOG]", logging.INFO))
    logger.log(log_level, f"{prefix} {message}", extra={"display": True})


# =============================================================================
# Learning Agent
# =============================================================================


class LearningAgent:
    """
    Autonomous agent that improves through experience.

    All learning state is owned by the instance; run one instance per
    independent agent.

    Args:
        llm_call: Async callable mapping a prompt to a response. Required.
        config: Agent configuration (defaults if omitted).
        goals: Initial goals; more can be added with :meth:`add_goal`.
        tools: Pre-populated tool registry (a fresh one if omitted).
        strategies: Strategy store (the default seed set if omitted).
        rng: Random source shared by exploration and gradient application.

    Raises:
        ConfigError: If ``llm_call`` is missing.
    """

    def __init__(
        self,
        llm_call: Optional[LLMCall],
        config: Optional[AgentConfig] = None,
        goals: Optional[List[Goal]] = None,
        tools: Optional[ToolRegistry] = None,
        strategies: Optional[StrategyStore] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if llm_call is None:
            raise ConfigError("LearningAgent requires a language-model collaborator (llm_call).")

        self.config = config or AgentConfig()
        self.goals: List[Goal] = list(goals or [])
        self.tools = tools if tools is not None else ToolRegistry()
        self.strategies = strategies if strategies is not None else StrategyStore()

        learning = self.config.learning
        bounded_llm = self._bound_llm_call(llm_call, self.config.llm_timeout_seconds)
        rng = rng or random.Random()

        self.experience = ExperienceReplay(
            max_size=learning.experience_buffer_size,
            alpha=learning.alpha,
            gamma=learning.gamma,
            epsilon=learning.epsilon,
            rng=rng,
        )
        self.reflexion = ReflexionEngine(
            llm_call=bounded_llm,
            max_lessons=learning.max_lessons,
            min_confidence_to_store=learning.min_lesson_confidence,
        )
        self.skills = SkillLibrary(
            llm_call=bounded_llm,
            min_confidence_to_extract=learning.skill_confidence,
        )
        self.gradients = TextualGradientEngine(
            llm_call=bounded_llm,
            learning_rate=learning.gradient_learning_rate,
            rng=rng,
        )
        self.contrastive = ContrastiveLearner(
            llm_call=bounded_llm,
            min_similarity_for_comparison=learning.min_similarity_for_comparison,
            max_trajectories=learning.max_trajectories,
            max_insights=learning.max_insights,
        )

        self.iteration = 0
        self.phase = AgentPhase.IDLE
        self.metrics = AgentMetrics()
        self.milestones: List[Milestone] = []

        self._running = False
        self._on_milestone: Optional[MilestoneLedger] = None
        self._on_log: Optional[LogSink] = None
        self._param_builder: ParamBuilder = default_params

        # Milestone bookkeeping
        milestones = self.config.milestones
        self._experience_milestone_reached = False
        self._last_value_bucket = 0
        self._last_skill_count = 0
        self._score_history: Deque[float] = deque(
            maxlen=max(milestones.min_score_history, 2 * milestones.score_window)
        )

    @staticmethod
    def _bound_llm_call(llm_call: LLMCall, timeout: Optional[float]) -> LLMCall:
        if timeout is None:
            return llm_call

        async def call(prompt: str) -> str:
            return await asyncio.wait_for(llm_call(prompt), timeout=timeout)

        return call

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def register_tool(self, name: str, capability: ToolCapability) -> None:
        self.tools.register(name, capability)
        self._log(f"Tool registered: {name}", "info")

    def add_goal(self, goal: Goal) -> None:
        self.goals.append(goal)

    def set_milestone_handler(self, handler: Optional[MilestoneLedger]) -> None:
        """Ledger collaborator; its receipt is attached to each milestone."""
        self._on_milestone = handler

    def set_log_handler(self, handler: Optional[LogSink]) -> None:
        """Replace the default logging-backed narration sink."""
        self._on_log = handler

    def set_param_builder(self, builder: ParamBuilder) -> None:
        """Replace :func:`default_params` for building tool parameters."""
        self._param_builder = builder

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self, max_iterations: Optional[int] = None) -> None:
        """
        Run iterations until ``max_iterations`` (or ``config.max_iterations``)
        is reached or :meth:`stop` is called.

        ``max_iterations`` counts total iterations, including any restored by
        :meth:`import_state`.
        """
        limit = max_iterations if max_iterations is not None else self.config.max_iterations
        self._running = True
        self._log(f"Starting agent: {self.config.name}", "system")
        self._log(f"Goals: {', '.join(g.description for g in self.goals)}", "info")

        try:
            while self._running and (limit is None or self.iteration < limit):
                try:
                    await self.run_iteration()
                except Exception as e:
                    logger.debug("Iteration failed", exc_info=True)
                    self._log(f"Error in loop: {e}", "error")
                    await asyncio.sleep(self.config.error_pause_seconds)
                finally:
                    self.phase = AgentPhase.IDLE
        finally:
            self._running = False

        self._log("Agent stopped", "system")

    def stop(self) -> None:
        """Halt before the next iteration; an in-flight iteration completes."""
        self._running = False

    async def run_iteration(self) -> IterationReport:
        """
        Execute one full iteration and return what happened.

        Every iteration, including a no-op one, is padded to
        ``min_iteration_seconds`` and yields to the event loop at least once.
        """
        self.iteration += 1
        started = time.monotonic()
        report = IterationReport(iteration=self.iteration)

        goal = self.select_goal()
        if goal is None:
            self._log("No active goals", "warning")
        else:
            await self._iterate(goal, report)

        elapsed = time.monotonic() - started
        await asyncio.sleep(max(0.0, self.config.min_iteration_seconds - elapsed))
        return report

    async def _iterate(self, goal: Goal, report: IterationReport) -> None:
        report.goal_id = goal.id

        # Perceive
        self.phase = AgentPhase.PERCEIVING
        state = await self._perceive(goal)
        self._log(f"[{self.iteration}] Perceiving... State: {state[:STATE_LOG_LENGTH]}...", "perceive")

        guidance = Guidance(
            lessons=self.reflexion.get_lessons_for_goal(goal.description),
            insights=self.contrastive.generate_guidance(goal.description),
            skills=self.skills.find_skills_for_goal(goal.description, self.tools.names()),
        )

        # Reason
        self.phase = AgentPhase.REASONING
        strategy = self.select_strategy(goal)
        candidates = self.candidate_actions(strategy)
        choice = self.experience.select_action(state, list(candidates.keys()))
        action = candidates[choice.action]
        report.strategy_id = strategy.id
        report.action = choice.action
        report.is_exploration = choice.is_exploration
        self._log(
            f"Strategy: {strategy.name} | Action: {choice.action} | "
            f"Value: {choice.value:.2f} | {'EXPLORE' if choice.is_exploration else 'EXPLOIT'}",
            "reason",
        )

        # Act
        self.phase = AgentPhase.ACTING
        results = await self._act(strategy, action, goal, guidance)
        report.results = results

        # Observe
        self.phase = AgentPhase.LEARNING
        next_state = await self._perceive(goal)
        reward = self.calculate_reward(results)
        score = self.calculate_score(results)
        success = reward > 0
        report.reward, report.score = reward, score

        self.experience.store(
            Transition(
                state=state,
                action=choice.action,
                reward=reward,
                next_state=next_state,
                metadata=TransitionMetadata(goal_id=goal.id, strategy_id=strategy.id),
            )
        )
        stats = self.experience.update(self.config.learning.td_batch_size)
        if stats.avg_td_error > 0.1:
            self._log(f"TD Error: {stats.avg_td_error:.3f}", "learn")

        self._log(f"Score: {score * 100:.0f}%", "success" if score >= 0.7 else "warning")
        self._score_history.append(score)

        # Learn; the three triggers are independent
        learning = self.config.learning
        if score < learning.reflexion_threshold:
            await self._trigger_reflexion(goal, results, score)

        if score < learning.gradient_threshold:
            await self._apply_textual_gradient(strategy, results)

        if success and score >= learning.skill_confidence:
            await self._try_extract_skill(goal, results, score)

        self._record_trajectory(goal, results, success, score)

        if self.iteration % learning.contrastive_interval == 0:
            new_insights = await self.contrastive.learn_from_contrasts(learning.contrastive_batch)
            if new_insights:
                self.metrics.contrastive_insights += len(new_insights)
                self._log(f"Contrastive learning: {len(new_insights)} new insights", "learn")

        self.experience.decay_epsilon(learning.epsilon_min, learning.epsilon_decay)

        report.milestones = await self._check_milestones()

    # -------------------------------------------------------------------------
    # Perceive / reason
    # -------------------------------------------------------------------------

    def select_goal(self) -> Optional[Goal]:
        """Highest-priority active goal; the earliest listed wins ties."""
        active = [g for g in self.goals if g.is_active]
        if not active:
            return None
        return max(active, key=lambda g: g.priority)

    def select_strategy(self, goal: Goal) -> Strategy:
        """Best strategy by success rate; synthesises an exploratory one if the store is empty."""
        best = self.strategies.best()
        if best is None:
            best = self.strategies.exploratory(goal.id, goal.description, self.tools.names())
            self._log(f"Created exploratory strategy: {best.name}", "learn")
        return best

    def candidate_actions(self, strategy: Strategy) -> Dict[str, Action]:
        """
        Value-table key -> action, for every tool and every strategy step.

        Never empty: with no tools and no steps the strategy itself is the
        only candidate, and running it yields no results.
        """
        candidates: Dict[str, Action] = {}
        for name in self.tools.names():
            action = InvokeTool(name)
            candidates[action.key] = action
        for step in strategy.steps:
            action = RunStep(step)
            candidates.setdefault(action.key, action)
        if not candidates:
            action = RunStep(strategy.name)
            candidates[action.key] = action
        return candidates

    async def _perceive(self, goal: Goal) -> str:
        snapshots: List[str] = []
        tool_name = self.config.perception_tool
        if tool_name and tool_name in self.tools:
            try:
                observation = await self.tools.invoke(tool_name, {}, timeout=self.config.tool_timeout_seconds)
                snapshots.append(f"{tool_name}:{json.dumps(observation, default=str)[:PERCEPTION_SNAPSHOT_LENGTH]}")
            except Exception as e:
                logger.debug(f"Perception via '{tool_name}' failed: {e}")

        return f"goal:{goal.id}|iter:{self.iteration}|{'|'.join(snapshots)}"

    # -------------------------------------------------------------------------
    # Act
    # -------------------------------------------------------------------------

    async def _act(self, strategy: Strategy, action: Action, goal: Goal, guidance: Guidance) -> List[ActionResult]:
        results: List[ActionResult] = []

        if isinstance(action, InvokeTool):
            results.append(await self._execute_tool(action.name, goal, guidance))
        else:
            tool_names = self.tools.names()
            for step in strategy.steps[:STEP_FALLBACK_LIMIT]:
                tool_name = infer_tool_from_step(step, tool_names)
                if tool_name is not None:
                    results.append(await self._execute_tool(tool_name, goal, guidance))

        strategy.record_outcome(self.calculate_score(results))
        return results

    async def _execute_tool(self, tool_name: str, goal: Goal, guidance: Guidance) -> ActionResult:
        params = self._param_builder(tool_name, goal, guidance)
        started = time.monotonic()
        self.metrics.total_actions += 1

        try:
            result = await self.tools.invoke(tool_name, params, timeout=self.config.tool_timeout_seconds)
        except ToolNotFoundError:
            raise
        except Exception as e:
            message = str(e) or type(e).__name__
            self._log(f"{tool_name} failed: {message}", "error")
            return ActionResult(
                tool=tool_name,
                params=params,
                success=False,
                result=message,
                duration=time.monotonic() - started,
            )

        self.metrics.successful_actions += 1
        self._log(f"{tool_name} succeeded", "success")
        return ActionResult(
            tool=tool_name,
            params=params,
            success=True,
            result=result,
            duration=time.monotonic() - started,
        )

    @staticmethod
    def calculate_reward(results: List[ActionResult]) -> float:
        """2 * success_fraction - 1, or a fixed penalty when nothing ran."""
        if not results:
            return NO_ACTION_REWARD
        return 2 * LearningAgent.calculate_score(results) - 1

    @staticmethod
    def calculate_score(results: List[ActionResult]) -> float:
        """Fraction of successful actions; 0.0 when nothing ran."""
        if not results:
            return 0.0
        return sum(1 for r in results if r.success) / len(results)

    # -------------------------------------------------------------------------
    # Learn
    # -------------------------------------------------------------------------

    async def _trigger_reflexion(self, goal: Goal, results: List[ActionResult], score: float) -> None:
        self.metrics.reflections_triggered += 1
        self._log("Triggering reflexion...", "learn")

        trajectory = Trajectory(
            goal=goal.description,
            steps=[
                TrajectoryStep(
                    thought=f"Use {r.tool}",
                    action=f"{r.tool}({json.dumps(r.params, default=str)[:50]})",
                    observation="Success" if r.success else f"Failed: {r.result}",
                )
                for r in results
            ],
            outcome=Outcome.PARTIAL if score >= 0.5 else Outcome.FAILURE,
            final_result=f"Score: {score * 100:.0f}%",
        )

        reflection = await self.reflexion.reflect(trajectory)
        if reflection.lessons:
            self._log(f"Learned: {reflection.lessons[0]}", "learn")

    async def _apply_textual_gradient(self, strategy: Strategy, results: List[ActionResult]) -> None:
        self.metrics.gradients_applied += 1
        self._log("Computing textual gradient...", "learn")

        outcomes = [
            StrategyOutcome(success=r.success, context=f"{r.tool}: {'OK' if r.success else r.result}")
            for r in results
        ]
        updated, gradient = await self.gradients.update_strategy(strategy, outcomes)

        strategy.steps = updated.steps
        strategy.heuristics = updated.heuristics
        strategy.system_prompt = updated.system_prompt
        self._log(f"Gradient applied (magnitude: {gradient.magnitude:.2f})", "learn")

    async def _try_extract_skill(self, goal: Goal, results: List[ActionResult], score: float) -> None:
        attempt = [
            AttemptStep(action=f"Use {r.tool}", tool=r.tool, params=r.params, result=r.result)
            for r in results
        ]
        skill = await self.skills.synthesize(goal.description, attempt, score)
        if skill is not None:
            self.metrics.skills_extracted += 1
            self._log(f"Skill extracted: {skill.name}", "learn")

    def _record_trajectory(self, goal: Goal, results: List[ActionResult], success: bool, score: float) -> None:
        self.contrastive.record(
            TrajectoryRecord(
                id=f"traj_{self.iteration}_{int(time.time() * 1000)}",
                goal=goal.description,
                actions=[
                    TrajectoryAction(tool=r.tool, params=r.params, result=r.result, duration=r.duration)
                    for r in results
                ],
                success=success,
                final_score=score,
                context={"iteration": self.iteration},
            )
        )

    # -------------------------------------------------------------------------
    # Milestones
    # -------------------------------------------------------------------------

    async def _check_milestones(self) -> List[Milestone]:
        """Evaluate every milestone condition independently and emit those that hold."""
        settings = self.config.milestones
        emitted: List[Milestone] = []

        buffer_size = self.experience.get_buffer_size()
        if not self._experience_milestone_reached and buffer_size == settings.experience_milestone:
            self._experience_milestone_reached = True
            emitted.append(
                Milestone(
                    type=MilestoneType.STRATEGY_LEARNED,
                    description=f"Collected {buffer_size} experiences in replay buffer",
                    before=0,
                    after=buffer_size,
                )
            )

        value_count = self.experience.get_value_count()
        if self.iteration > settings.value_table_min_iteration:
            bucket = value_count // settings.value_table_step
            if bucket > self._last_value_bucket:
                self._last_value_bucket = bucket
                emitted.append(
                    Milestone(
                        type=MilestoneType.STRATEGY_LEARNED,
                        description=f"Value table grown to {value_count} state-action pairs",
                        before=value_count - settings.value_table_step,
                        after=value_count,
                    )
                )

        skill_count = self.skills.get_total_skills()
        if skill_count - self._last_skill_count == 1:
            emitted.append(
                Milestone(
                    type=MilestoneType.NEW_INSIGHT,
                    description=f"Extracted {skill_count} reusable skills",
                    before=skill_count - 1,
                    after=skill_count,
                )
            )
        self._last_skill_count = skill_count

        window = settings.score_window
        if len(self._score_history) >= max(settings.min_score_history, 2 * window):
            scores = list(self._score_history)
            recent_avg = sum(scores[-window:]) / window
            previous_avg = sum(scores[-2 * window:-window]) / window
            improvement = recent_avg - previous_avg
            if improvement >= settings.improvement_threshold:
                emitted.append(
                    Milestone(
                        type=MilestoneType.SUCCESS_RATE_IMPROVED,
                        description=f"Success rate improved by {improvement * 100:.1f}%",
                        before=previous_avg,
                        after=recent_avg,
                    )
                )

        for milestone in emitted:
            await self._record_milestone(milestone)
        return emitted

    async def _record_milestone(self, milestone: Milestone) -> None:
        self._log(f"MILESTONE: {milestone.description}", "milestone")
        self.metrics.milestones_recorded += 1
        self.milestones.append(milestone)

        if self._on_milestone is None:
            return
        try:
            milestone.receipt = await self._on_milestone(milestone)
        except Exception as e:
            self._log(f"Failed to record milestone {milestone.id}: {e}", "warning")

    # -------------------------------------------------------------------------
    # Narration
    # -------------------------------------------------------------------------

    def _log(self, message: str, level: str) -> None:
        if self._on_log is not None:
            self._on_log(message, level)
        else:
            default_log_sink(message, level)

    # -------------------------------------------------------------------------
    # Public queries and persistence
    # -------------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        return {
            **asdict(self.metrics),
            "iteration": self.iteration,
            "experience_buffer": self.experience.get_buffer_size(),
            "value_table_size": self.experience.get_value_count(),
            "epsilon": self.experience.get_epsilon(),
            "total_lessons": self.reflexion.get_total_lessons(),
            "total_skills": self.skills.get_total_skills(),
            "total_insights": self.contrastive.get_total_insights(),
            "win_rate": self.contrastive.get_win_rate(),
        }

    def get_strategies(self) -> List[Strategy]:
        return self.strategies.all()

    def get_skills(self) -> List[Skill]:
        return self.skills.get_all_skills()

    def get_milestones(self) -> List[Milestone]:
        return list(self.milestones)

    def export_state(self) -> Dict[str, Any]:
        """Structural snapshot of all learning state, JSON-serializable if tool results are."""
        return {
            "metrics": asdict(self.metrics),
            "iteration": self.iteration,
            "goals": [g.to_dict() for g in self.goals],
            "experience": self.experience.export_state(),
            "reflexion": self.reflexion.export_state(),
            "skills": self.skills.export_state(),
            "gradients": self.gradients.export_state(),
            "contrastive": self.contrastive.export_state(),
            "strategies": self.strategies.export_state(),
            "milestones": [m.to_dict() for m in self.milestones],
            "milestone_tracking": {
                "experience_milestone_reached": self._experience_milestone_reached,
                "last_value_bucket": self._last_value_bucket,
                "last_skill_count": self._last_skill_count,
                "score_history": list(self._score_history),
            },
        }

    def import_state(self, state: Dict[str, Any]) -> None:
        """Restore a snapshot produced by :meth:`export_state`."""
        self.metrics = AgentMetrics(**state.get("metrics", {}))
        self.iteration = state.get("iteration", 0)
        if "goals" in state:
            self.goals = [Goal.from_dict(g) for g in state["goals"]]
        self.experience.import_state(state.get("experience", {}))
        self.reflexion.import_state(state.get("reflexion", {}))
        self.skills.import_state(state.get("skills", []))
        self.gradients.import_state(state.get("gradients", []))
        self.contrastive.import_state(state.get("contrastive", {}))
        if "strategies" in state:
            self.strategies.import_state(state["strategies"])
        self.milestones = [Milestone.from_dict(m) for m in state.get("milestones", [])]

        tracking = state.get("milestone_tracking", {})
        self._experience_milestone_reached = tracking.get("experience_milestone_reached", False)
        self._last_value_bucket = tracking.get("last_value_bucket", 0)
        self._last_skill_count = tracking.get("last_skill_count", self.skills.get_total_skills())
        self._score_history.clear()
        self._score_history.extend(tracking.get("score_history", []))
        logger.info(f"Imported agent state at iteration {self.iteration}")
