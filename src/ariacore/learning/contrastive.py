# src/ariacore/learning/contrastive.py
"""
Contrastive Learning - What Separates Success from Failure.

Every completed iteration is recorded as a trajectory.  Periodically the
learner pairs successful trajectories with failed ones on similar goals
and asks the language model what made the difference.  Confident answers
become insights, tagged with applicability keywords, which are later
surfaced as guidance for matching goals.

Pairs are enumerated in trajectory insertion order (winners outer,
losers inner), so the same history always yields the same pairs.
Trajectories and insights are retained up to fixed counts, oldest
dropped first.

Usage:
    learner = ContrastiveLearner(llm_call=my_llm, min_similarity_for_comparison=0.5)
    learner.record(TrajectoryRecord(id="t1", goal="research token X", success=True, final_score=0.9))
    insights = await learner.learn_from_contrasts(max_comparisons=3)
    guidance = learner.generate_guidance("research token Z")
"""

from __future__ import annotations

import json
import logging
import re
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .extraction import clamp_unit, load_json_object, string_list

logger = logging.getLogger(__name__)

LLMCall = Callable[[str], Awaitable[str]]

MIN_INSIGHT_CONFIDENCE = 0.5
DEFAULT_INSIGHT_CONFIDENCE = 0.5
GUIDANCE_LIMIT = 5


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class TrajectoryAction:
    tool: str
    params: Dict[str, Any] = field(default_factory=dict)
    result: Any = None
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"tool": self.tool, "params": self.params, "result": self.result, "duration": self.duration}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrajectoryAction":
        return cls(
            tool=data["tool"],
            params=dict(data.get("params", {})),
            result=data.get("result"),
            duration=data.get("duration", 0.0),
        )


@dataclass
class TrajectoryRecord:
    """A completed attempt, as remembered for later comparison."""

    id: str
    goal: str
    actions: List[TrajectoryAction] = field(default_factory=list)
    success: bool = False
    final_score: float = 0.0
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "goal": self.goal,
            "actions": [a.to_dict() for a in self.actions],
            "success": self.success,
            "final_score": self.final_score,
            "context": dict(self.context),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrajectoryRecord":
        return cls(
            id=data["id"],
            goal=data["goal"],
            actions=[TrajectoryAction.from_dict(a) for a in data.get("actions", [])],
            success=data.get("success", False),
            final_score=data.get("final_score", 0.0),
            context=dict(data.get("context", {})),
            timestamp=data.get("timestamp", time.time()),
        )


@dataclass
class InsightDifferences:
    tool_usage: List[str] = field(default_factory=list)
    parameter_choices: List[str] = field(default_factory=list)
    sequencing: List[str] = field(default_factory=list)
    context_factors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "tool_usage": list(self.tool_usage),
            "parameter_choices": list(self.parameter_choices),
            "sequencing": list(self.sequencing),
            "context_factors": list(self.context_factors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InsightDifferences":
        return cls(
            tool_usage=list(data.get("tool_usage", [])),
            parameter_choices=list(data.get("parameter_choices", [])),
            sequencing=list(data.get("sequencing", [])),
            context_factors=list(data.get("context_factors", [])),
        )


@dataclass
class ContrastiveInsight:
    """What a winning trajectory did that a losing one did not."""

    id: str
    winning_trajectory: str
    losing_trajectory: str
    goal_similarity: float
    differences: InsightDifferences
    insight: str
    applicability: List[str] = field(default_factory=list)
    confidence: float = DEFAULT_INSIGHT_CONFIDENCE
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "winning_trajectory": self.winning_trajectory,
            "losing_trajectory": self.losing_trajectory,
            "goal_similarity": self.goal_similarity,
            "differences": self.differences.to_dict(),
            "insight": self.insight,
            "applicability": list(self.applicability),
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContrastiveInsight":
        return cls(
            id=data["id"],
            winning_trajectory=data["winning_trajectory"],
            losing_trajectory=data["losing_trajectory"],
            goal_similarity=data.get("goal_similarity", 0.0),
            differences=InsightDifferences.from_dict(data.get("differences", {})),
            insight=data.get("insight", ""),
            applicability=list(data.get("applicability", [])),
            confidence=data.get("confidence", DEFAULT_INSIGHT_CONFIDENCE),
            timestamp=data.get("timestamp", time.time()),
        )


# =============================================================================
# Prompt Template
# =============================================================================


COMPARISON_PROMPT = """Compare these two attempts at similar goals to understand what made one succeed and one fail.

SUCCESSFUL ATTEMPT:
Goal: {winner_goal}
Score: {winner_score}
Actions:
{winner_actions}

FAILED ATTEMPT:
Goal: {loser_goal}
Score: {loser_score}
Actions:
{loser_actions}

Analyze the differences and extract a learnable insight.

Output JSON format:
{{
  "differences": {{
    "toolUsage": ["Observation about tool differences"],
    "parameterChoices": ["Observation about parameter differences"],
    "sequencing": ["Observation about order/sequence differences"],
    "contextFactors": ["Other relevant differences"]
  }},
  "insight": "The key learning from this comparison (actionable advice)",
  "applicability": ["Keywords for when this insight applies"],
  "confidence": 0.0-1.0
}}

Focus on ACTIONABLE differences that explain the outcome.
Respond with ONLY the JSON."""


def _format_actions(record: TrajectoryRecord) -> str:
    lines = [
        f"  {i}. Tool: {a.tool}, Params: {json.dumps(a.params, default=str)[:100]}, "
        f"Result: {'OK' if a.result else 'FAIL'}"
        for i, a in enumerate(record.actions, start=1)
    ]
    return "\n".join(lines) or "  (no actions)"


def _goal_words(goal: str) -> set:
    return {w for w in re.split(r"\W+", goal.lower()) if len(w) > 2}


# =============================================================================
# Contrastive Learner
# =============================================================================


class ContrastiveLearner:
    """
    Records trajectories and mines success/failure contrasts.

    Args:
        llm_call: Async callable mapping a prompt to a response.
        min_similarity_for_comparison: Minimum goal Jaccard similarity for a pair.
        max_trajectories: Retention cap for trajectories.
        max_insights: Retention cap for insights.
    """

    def __init__(
        self,
        llm_call: LLMCall,
        min_similarity_for_comparison: float = 0.5,
        max_trajectories: int = 1000,
        max_insights: int = 500,
    ) -> None:
        self._llm_call = llm_call
        self.min_similarity = min_similarity_for_comparison
        self.max_trajectories = max_trajectories
        self.max_insights = max_insights
        self._trajectories: "OrderedDict[str, TrajectoryRecord]" = OrderedDict()
        self._insights: List[ContrastiveInsight] = []

    def record(self, trajectory: TrajectoryRecord) -> None:
        """Store a trajectory, replacing any earlier one with the same id."""
        self._trajectories[trajectory.id] = trajectory
        while len(self._trajectories) > self.max_trajectories:
            self._trajectories.popitem(last=False)

    async def learn_from_contrasts(self, max_comparisons: int = 5) -> List[ContrastiveInsight]:
        """Compare up to ``max_comparisons`` pairs and keep the confident insights."""
        new_insights: List[ContrastiveInsight] = []

        for winner, loser in self.find_contrasting_pairs(max_comparisons):
            insight = await self.compare(winner, loser)
            if insight is not None and insight.confidence > MIN_INSIGHT_CONFIDENCE:
                self._add_insight(insight)
                new_insights.append(insight)

        if new_insights:
            logger.debug(f"Learned {len(new_insights)} contrastive insight(s)")
        return new_insights

    def find_contrasting_pairs(self, max_pairs: int) -> List[Tuple[TrajectoryRecord, TrajectoryRecord]]:
        """(winner, loser) pairs on similar goals, in insertion order."""
        pairs: List[Tuple[TrajectoryRecord, TrajectoryRecord]] = []
        if max_pairs <= 0:
            return pairs

        records = list(self._trajectories.values())
        winners = [t for t in records if t.success]
        losers = [t for t in records if not t.success]

        for winner in winners:
            for loser in losers:
                if self.compute_goal_similarity(winner.goal, loser.goal) >= self.min_similarity:
                    pairs.append((winner, loser))
                    if len(pairs) >= max_pairs:
                        return pairs
        return pairs

    @staticmethod
    def compute_goal_similarity(goal_a: str, goal_b: str) -> float:
        """Jaccard overlap of the words longer than two characters."""
        words_a = _goal_words(goal_a)
        words_b = _goal_words(goal_b)
        union = words_a | words_b
        if not union:
            return 0.0
        return len(words_a & words_b) / len(union)

    async def compare(self, winner: TrajectoryRecord, loser: TrajectoryRecord) -> Optional[ContrastiveInsight]:
        """
        Ask the model to explain the gap between two trajectories.

        Returns None when either trajectory is not in the store or the
        response carries no JSON object.
        """
        if winner.id not in self._trajectories or loser.id not in self._trajectories:
            return None

        response = await self._llm_call(self.build_prompt(winner, loser))
        parsed = load_json_object(response)
        if parsed is None:
            return None

        diffs = parsed.get("differences") if isinstance(parsed.get("differences"), dict) else {}
        return ContrastiveInsight(
            id=f"insight_{uuid.uuid4().hex[:12]}",
            winning_trajectory=winner.id,
            losing_trajectory=loser.id,
            goal_similarity=self.compute_goal_similarity(winner.goal, loser.goal),
            differences=InsightDifferences(
                tool_usage=string_list(diffs.get("toolUsage")),
                parameter_choices=string_list(diffs.get("parameterChoices")),
                sequencing=string_list(diffs.get("sequencing")),
                context_factors=string_list(diffs.get("contextFactors")),
            ),
            insight=str(parsed.get("insight") or "No insight extracted"),
            applicability=string_list(parsed.get("applicability")),
            confidence=clamp_unit(parsed.get("confidence"), DEFAULT_INSIGHT_CONFIDENCE),
        )

    def build_prompt(self, winner: TrajectoryRecord, loser: TrajectoryRecord) -> str:
        return COMPARISON_PROMPT.format(
            winner_goal=winner.goal,
            winner_score=winner.final_score,
            winner_actions=_format_actions(winner),
            loser_goal=loser.goal,
            loser_score=loser.final_score,
            loser_actions=_format_actions(loser),
        )

    def get_insights_for_goal(self, goal: str) -> List[ContrastiveInsight]:
        """
        Insights with an applicability keyword that occurs in the goal, or
        that contains the goal's first token.
        """
        goal_lower = goal.lower()
        first_token = goal_lower.split(" ")[0]

        matching = []
        for insight in self._insights:
            for keyword in insight.applicability:
                keyword_lower = keyword.lower()
                if keyword_lower in goal_lower or first_token in keyword_lower:
                    matching.append(insight)
                    break
        return matching

    def generate_guidance(self, goal: str) -> List[str]:
        """Texts of the top matching insights, ranked by ``confidence + timestamp / now``."""
        relevant = self.get_insights_for_goal(goal)
        if not relevant:
            return []

        now = time.time()
        relevant.sort(key=lambda i: i.confidence + i.timestamp / now, reverse=True)
        return [i.insight for i in relevant[:GUIDANCE_LIMIT]]

    def _add_insight(self, insight: ContrastiveInsight) -> None:
        self._insights.append(insight)
        overflow = len(self._insights) - self.max_insights
        if overflow > 0:
            del self._insights[:overflow]

    # Metrics
    def get_total_trajectories(self) -> int:
        return len(self._trajectories)

    def get_total_insights(self) -> int:
        return len(self._insights)

    def get_insights(self) -> List[ContrastiveInsight]:
        return list(self._insights)

    def get_win_rate(self) -> float:
        if not self._trajectories:
            return 0.0
        wins = sum(1 for t in self._trajectories.values() if t.success)
        return wins / len(self._trajectories)

    # Persistence
    def export_state(self) -> Dict[str, Any]:
        return {
            "trajectories": [t.to_dict() for t in self._trajectories.values()],
            "insights": [i.to_dict() for i in self._insights],
        }

    def import_state(self, data: Dict[str, Any]) -> None:
        """Replace trajectories and insights from a snapshot."""
        self._trajectories = OrderedDict()
        for item in data.get("trajectories", []):
            self.record(TrajectoryRecord.from_dict(item))
        self._insights = [ContrastiveInsight.from_dict(i) for i in data.get("insights", [])]
