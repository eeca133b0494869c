# src/ariacore/learning/gradients.py
"""
Textual Gradients - Language-Model-Computed Strategy Updates.

Instead of a numeric gradient, the language model proposes concrete
edits to a strategy (heuristics to add or remove, steps to rewrite,
prompt adjustments) along with a magnitude.  Each proposed edit is then
applied independently with probability ``learning_rate * magnitude``,
which bounds how fast strategies drift.

Usage:
    from ariacore.learning import StrategyOutcome, TextualGradientEngine

    engine = TextualGradientEngine(llm_call=my_llm, learning_rate=0.3)
    updated, gradient = await engine.update_strategy(
        strategy,
        [StrategyOutcome(success=False, context="search: timeout")],
    )
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..strategies import Strategy
from .extraction import clamp_unit, load_json_object, string_list

logger = logging.getLogger(__name__)

LLMCall = Callable[[str], Awaitable[str]]


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class StrategyOutcome:
    """One recent pass/fail observation fed to the gradient prompt."""

    success: bool
    context: str
    feedback: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "context": self.context, "feedback": self.feedback}


@dataclass
class StepModification:
    original: str
    modified: str


@dataclass
class Modifications:
    """Edits proposed by a gradient."""

    add_heuristics: List[str] = field(default_factory=list)
    remove_heuristics: List[str] = field(default_factory=list)
    modify_steps: List[StepModification] = field(default_factory=list)
    prompt_adjustments: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.add_heuristics
            or self.remove_heuristics
            or self.modify_steps
            or self.prompt_adjustments
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "add_heuristics": list(self.add_heuristics),
            "remove_heuristics": list(self.remove_heuristics),
            "modify_steps": [{"original": m.original, "modified": m.modified} for m in self.modify_steps],
            "prompt_adjustments": list(self.prompt_adjustments),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Modifications":
        return cls(
            add_heuristics=list(data.get("add_heuristics", [])),
            remove_heuristics=list(data.get("remove_heuristics", [])),
            modify_steps=[StepModification(**m) for m in data.get("modify_steps", [])],
            prompt_adjustments=list(data.get("prompt_adjustments", [])),
        )


@dataclass
class TextualGradient:
    """A structured set of proposed strategy edits."""

    strategy_id: str
    success_rate: float
    modifications: Modifications
    reasoning: str
    magnitude: float
    recent_outcomes: List[StrategyOutcome] = field(default_factory=list)
    parse_failed: bool = False
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy_id": self.strategy_id,
            "success_rate": self.success_rate,
            "modifications": self.modifications.to_dict(),
            "reasoning": self.reasoning,
            "magnitude": self.magnitude,
            "recent_outcomes": [o.to_dict() for o in self.recent_outcomes],
            "parse_failed": self.parse_failed,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextualGradient":
        return cls(
            strategy_id=data["strategy_id"],
            success_rate=data.get("success_rate", 0.0),
            modifications=Modifications.from_dict(data.get("modifications", {})),
            reasoning=data.get("reasoning", ""),
            magnitude=data.get("magnitude", 0.0),
            recent_outcomes=[StrategyOutcome(**o) for o in data.get("recent_outcomes", [])],
            parse_failed=data.get("parse_failed", False),
            timestamp=data.get("timestamp", time.time()),
        )


# =============================================================================
# Prompt Template
# =============================================================================


GRADIENT_PROMPT = """You are optimizing an AI agent's strategy through textual gradients.

CURRENT STRATEGY:
Name: {name}
Description: {description}
System Prompt: {system_prompt}
Steps:
{steps}
Heuristics: {heuristics}

RECENT PERFORMANCE ({success_pct:.0f}% success rate):
{outcomes}

Compute a "textual gradient" - specific modifications to improve this strategy.
Consider:
- What patterns appear in failures?
- What's working well that should be reinforced?
- What heuristics are missing or wrong?
- How should the approach change?

Output JSON format:
{{
  "reasoning": "Your analysis of what needs to change",
  "magnitude": 0.0-1.0,
  "modifications": {{
    "addHeuristics": ["New heuristic to add"],
    "removeHeuristics": ["Heuristic to remove"],
    "modifySteps": [{{"original": "old step", "modified": "improved step"}}],
    "promptAdjustments": ["Adjustment to add to system prompt"]
  }}
}}

Be specific and actionable. Magnitude should reflect how much change is needed (low success = high magnitude).
Respond with ONLY the JSON."""


# =============================================================================
# Helpers
# =============================================================================


def bernoulli_trial(probability: float, rng: random.Random) -> bool:
    """True with ``probability``; 0 never fires and 1 always fires."""
    return rng.random() < probability


def observed_success_rate(outcomes: List[StrategyOutcome]) -> float:
    if not outcomes:
        return 0.0
    return sum(1 for o in outcomes if o.success) / len(outcomes)


def integrate_prompt_adjustment(prompt: str, adjustment: str) -> str:
    """Splice an adjustment under a HEURISTICS: header, or append it as extra guidance."""
    if "HEURISTICS:" in prompt:
        return prompt.replace("HEURISTICS:", f"HEURISTICS:\n- {adjustment}", 1)
    return f"{prompt}\n\nADDITIONAL GUIDANCE:\n- {adjustment}"


def _parse_step_modifications(value: Any) -> List[StepModification]:
    if not isinstance(value, list):
        return []
    mods = []
    for item in value:
        if isinstance(item, dict) and "original" in item and "modified" in item:
            mods.append(StepModification(original=str(item["original"]), modified=str(item["modified"])))
    return mods


# =============================================================================
# Textual Gradient Engine
# =============================================================================


class TextualGradientEngine:
    """
    Computes and applies textual gradients.

    Args:
        llm_call: Async callable mapping a prompt to a response.
        learning_rate: Scales the per-edit application probability; clamped to [0, 1].
        rng: Random source for the per-edit trials.
    """

    def __init__(
        self,
        llm_call: LLMCall,
        learning_rate: float = 0.5,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._llm_call = llm_call
        self.learning_rate = max(0.0, min(1.0, learning_rate))
        self._rng = rng or random.Random()
        self._history: List[TextualGradient] = []

    async def compute_gradient(
        self,
        strategy: Strategy,
        recent_outcomes: List[StrategyOutcome],
    ) -> TextualGradient:
        """Ask the model for edits; malformed output yields an empty, undirected gradient."""
        prompt = self.build_prompt(strategy, recent_outcomes)
        response = await self._llm_call(prompt)
        gradient = self._parse_gradient(strategy.id, response, recent_outcomes)
        self._history.append(gradient)
        return gradient

    def apply_gradient(self, strategy: Strategy, gradient: TextualGradient) -> Strategy:
        """
        Return a copy of ``strategy`` with each proposed edit applied
        independently with probability ``learning_rate * magnitude``.

        At most one prompt adjustment (the first) is applied per call.
        """
        updated = strategy.copy()
        probability = self.learning_rate * max(0.0, min(1.0, gradient.magnitude))
        mods = gradient.modifications

        for heuristic in mods.add_heuristics:
            if bernoulli_trial(probability, self._rng) and heuristic not in updated.heuristics:
                updated.heuristics.append(heuristic)

        for heuristic in mods.remove_heuristics:
            if bernoulli_trial(probability, self._rng):
                updated.heuristics = [h for h in updated.heuristics if h != heuristic]

        for mod in mods.modify_steps:
            if bernoulli_trial(probability, self._rng) and mod.original in updated.steps:
                updated.steps[updated.steps.index(mod.original)] = mod.modified

        if mods.prompt_adjustments and bernoulli_trial(probability, self._rng):
            updated.system_prompt = integrate_prompt_adjustment(
                updated.system_prompt, mods.prompt_adjustments[0]
            )

        return updated

    async def update_strategy(
        self,
        strategy: Strategy,
        recent_outcomes: List[StrategyOutcome],
    ) -> Tuple[Strategy, TextualGradient]:
        """Compute a gradient and immediately apply it."""
        gradient = await self.compute_gradient(strategy, recent_outcomes)
        return self.apply_gradient(strategy, gradient), gradient

    def build_prompt(self, strategy: Strategy, outcomes: List[StrategyOutcome]) -> str:
        lines = []
        for i, o in enumerate(outcomes, start=1):
            line = f"{i}. {'SUCCESS' if o.success else 'FAILURE'}: {o.context}"
            if o.feedback:
                line += f"\n   Feedback: {o.feedback}"
            lines.append(line)

        return GRADIENT_PROMPT.format(
            name=strategy.name,
            description=strategy.description,
            system_prompt=strategy.system_prompt,
            steps="\n".join(f"{i}. {s}" for i, s in enumerate(strategy.steps, start=1)),
            heuristics="; ".join(strategy.heuristics),
            success_pct=observed_success_rate(outcomes) * 100,
            outcomes="\n".join(lines) or "(no outcomes recorded)",
        )

    def _parse_gradient(
        self,
        strategy_id: str,
        response: str,
        outcomes: List[StrategyOutcome],
    ) -> TextualGradient:
        success_rate = observed_success_rate(outcomes)
        parsed = load_json_object(response)

        if parsed is None:
            return TextualGradient(
                strategy_id=strategy_id,
                success_rate=success_rate,
                modifications=Modifications(),
                reasoning="Failed to parse gradient",
                magnitude=1.0 - success_rate,
                recent_outcomes=list(outcomes),
                parse_failed=True,
            )

        raw_mods = parsed.get("modifications")
        if not isinstance(raw_mods, dict):
            raw_mods = {}

        return TextualGradient(
            strategy_id=strategy_id,
            success_rate=success_rate,
            modifications=Modifications(
                add_heuristics=string_list(raw_mods.get("addHeuristics")),
                remove_heuristics=string_list(raw_mods.get("removeHeuristics")),
                modify_steps=_parse_step_modifications(raw_mods.get("modifySteps")),
                prompt_adjustments=string_list(raw_mods.get("promptAdjustments")),
            ),
            reasoning=str(parsed.get("reasoning") or "No reasoning provided"),
            magnitude=clamp_unit(parsed.get("magnitude"), 1.0 - success_rate),
            recent_outcomes=list(outcomes),
        )

    # Metrics
    def get_gradient_history(self) -> List[TextualGradient]:
        return list(self._history)

    def get_average_magnitude(self) -> float:
        if not self._history:
            return 0.0
        return sum(g.magnitude for g in self._history) / len(self._history)

    # Persistence
    def export_state(self) -> List[Dict[str, Any]]:
        return [g.to_dict() for g in self._history]

    def import_state(self, data: List[Dict[str, Any]]) -> None:
        self._history = [TextualGradient.from_dict(g) for g in data]
