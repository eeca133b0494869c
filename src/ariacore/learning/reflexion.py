# src/ariacore/learning/reflexion.py
"""
Reflexion - Language-Model Self-Critique.

After a poor iteration the agent asks the language model to diagnose
what went wrong.  Confident reflections leave behind short verbal
"lessons", keyed by a coarse goal signature, which are injected into
later prompts for similar goals.

Key Features:
    - Prompt embeds the step-by-step trajectory and prior lessons
    - Malformed model output degrades to a low-confidence reflection
      (never raises)
    - Lessons deduplicated per goal signature, capped with FIFO eviction

Research Foundation:
    - Shinn et al., "Reflexion: Language Agents with Verbal
      Reinforcement Learning" (2023)

Usage:
    from ariacore.learning import ReflexionEngine, Trajectory, TrajectoryStep

    engine = ReflexionEngine(llm_call=my_llm)
    reflection = await engine.reflect(trajectory)
    lessons = engine.get_lessons_for_goal("research token prices")
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List

from .extraction import clamp_unit, load_json_object, string_list

logger = logging.getLogger(__name__)

LLMCall = Callable[[str], Awaitable[str]]

FALLBACK_CONFIDENCE = 0.3
DEFAULT_CONFIDENCE = 0.5
LESSON_KEY_TOKENS = 3
RECENT_LESSON_LIMIT = 10


# =============================================================================
# Data Models
# =============================================================================


class Outcome(str, Enum):
    """Outcome label of an attempt."""

    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


@dataclass
class TrajectoryStep:
    """One thought/action/observation triple."""

    thought: str
    action: str
    observation: str

    def to_dict(self) -> Dict[str, str]:
        return {"thought": self.thought, "action": self.action, "observation": self.observation}


@dataclass
class Trajectory:
    """A completed attempt at a goal, as presented to the critic."""

    goal: str
    steps: List[TrajectoryStep]
    outcome: Outcome
    final_result: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "goal": self.goal,
            "steps": [s.to_dict() for s in self.steps],
            "outcome": self.outcome.value,
            "final_result": self.final_result,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trajectory":
        return cls(
            goal=data["goal"],
            steps=[TrajectoryStep(**s) for s in data.get("steps", [])],
            outcome=Outcome(data.get("outcome", "failure")),
            final_result=data.get("final_result", ""),
        )


@dataclass
class Reflection:
    """The critic's verdict on a trajectory."""

    trajectory: Trajectory
    diagnosis: str
    lessons: List[str] = field(default_factory=list)
    corrections: List[str] = field(default_factory=list)
    confidence: float = DEFAULT_CONFIDENCE
    parse_failed: bool = False
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trajectory": self.trajectory.to_dict(),
            "diagnosis": self.diagnosis,
            "lessons": list(self.lessons),
            "corrections": list(self.corrections),
            "confidence": self.confidence,
            "parse_failed": self.parse_failed,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reflection":
        return cls(
            trajectory=Trajectory.from_dict(data["trajectory"]),
            diagnosis=data.get("diagnosis", ""),
            lessons=list(data.get("lessons", [])),
            corrections=list(data.get("corrections", [])),
            confidence=data.get("confidence", DEFAULT_CONFIDENCE),
            parse_failed=data.get("parse_failed", False),
            timestamp=data.get("timestamp", time.time()),
        )


# =============================================================================
# Prompt Templates
# =============================================================================


REFLECTION_PROMPT = """You are an AI agent analyzing your own performance to improve.

GOAL: {goal}

TRAJECTORY:
{steps}

OUTCOME: {outcome}
RESULT: {final_result}
{lessons_context}

Analyze this trajectory and provide a reflection in the following JSON format:
{{
  "diagnosis": "What specifically went wrong or could be improved",
  "lessons": ["Lesson 1", "Lesson 2"],
  "corrections": ["What to do differently next time"],
  "confidence": 0.0-1.0
}}

Be specific and actionable. Focus on what YOU can control.
Respond with ONLY the JSON, no other text."""


LESSONS_ADDITION = """

LESSONS FROM PAST EXPERIENCE:
{lessons}

Apply these lessons to avoid repeating mistakes."""


# =============================================================================
# Helpers
# =============================================================================


def goal_signature(goal: str) -> str:
    """Coarse key for a goal: its first three whitespace tokens, lower-cased."""
    return " ".join(goal.lower().split()[:LESSON_KEY_TOKENS])


def is_similar_goal(goal_a: str, goal_b: str) -> bool:
    """Two goals are similar if they share at least two words longer than three characters."""
    words_a = {w for w in re.split(r"\W+", goal_a.lower()) if len(w) > 3}
    words_b = {w for w in re.split(r"\W+", goal_b.lower()) if len(w) > 3}
    return len(words_a & words_b) >= 2


# =============================================================================
# Reflexion Engine
# =============================================================================


class ReflexionEngine:
    """
    Generates reflections and maintains the lesson store.

    Args:
        llm_call: Async callable mapping a prompt to a response.
        max_lessons: Lessons kept per goal signature (oldest evicted).
        min_confidence_to_store: Reflections below this store no lessons.
    """

    def __init__(
        self,
        llm_call: LLMCall,
        max_lessons: int = 50,
        min_confidence_to_store: float = 0.6,
    ) -> None:
        self._llm_call = llm_call
        self.max_lessons = max_lessons
        self.min_confidence = min_confidence_to_store
        self._lessons: Dict[str, List[str]] = {}
        self._reflections: List[Reflection] = []

    async def reflect(self, trajectory: Trajectory) -> Reflection:
        """
        Ask the model to critique ``trajectory``.

        Lessons are stored only if the reflection's confidence reaches the
        storage threshold.  Failures of the model call itself propagate.
        """
        prompt = self.build_prompt(trajectory)
        response = await self._llm_call(prompt)
        reflection = self._parse_reflection(trajectory, response)

        if reflection.parse_failed:
            logger.debug("Reflection response was not valid JSON; using fallback")

        if reflection.confidence >= self.min_confidence:
            self._store_reflection(reflection)

        return reflection

    def get_lessons_for_goal(self, goal_description: str) -> List[str]:
        """Most recent lessons stored under signatures similar to ``goal_description``."""
        lessons: List[str] = []
        for signature, stored in self._lessons.items():
            if is_similar_goal(goal_description, signature):
                lessons.extend(stored)
        return lessons[-RECENT_LESSON_LIMIT:]

    def get_lessons_by_signature(self, signature: str) -> List[str]:
        return list(self._lessons.get(signature, []))

    def enhance_prompt_with_lessons(self, base_prompt: str, goal_description: str) -> str:
        """Append relevant lessons to ``base_prompt``; unchanged if there are none."""
        lessons = self.get_lessons_for_goal(goal_description)
        if not lessons:
            return base_prompt
        return base_prompt + LESSONS_ADDITION.format(lessons="\n".join(f"- {l}" for l in lessons))

    def build_prompt(self, trajectory: Trajectory) -> str:
        steps = "\n\n".join(
            f"Step {i}:\n  Thought: {s.thought}\n  Action: {s.action}\n  Observation: {s.observation}"
            for i, s in enumerate(trajectory.steps, start=1)
        )

        existing = self.get_lessons_for_goal(trajectory.goal)
        lessons_context = ""
        if existing:
            lessons_context = "\nPrevious lessons learned:\n" + "\n".join(f"- {l}" for l in existing)

        return REFLECTION_PROMPT.format(
            goal=trajectory.goal,
            steps=steps or "(no actions taken)",
            outcome=trajectory.outcome.value,
            final_result=trajectory.final_result,
            lessons_context=lessons_context,
        )

    def _parse_reflection(self, trajectory: Trajectory, response: str) -> Reflection:
        parsed = load_json_object(response)
        if parsed is None:
            return Reflection(
                trajectory=trajectory,
                diagnosis="Failed to parse reflection",
                confidence=FALLBACK_CONFIDENCE,
                parse_failed=True,
            )

        return Reflection(
            trajectory=trajectory,
            diagnosis=str(parsed.get("diagnosis") or "Unknown"),
            lessons=string_list(parsed.get("lessons")),
            corrections=string_list(parsed.get("corrections")),
            confidence=clamp_unit(parsed.get("confidence"), DEFAULT_CONFIDENCE),
        )

    def _store_reflection(self, reflection: Reflection) -> None:
        self._reflections.append(reflection)

        signature = goal_signature(reflection.trajectory.goal)
        stored = self._lessons.setdefault(signature, [])
        for lesson in reflection.lessons:
            if lesson not in stored:
                stored.append(lesson)

        overflow = len(stored) - self.max_lessons
        if overflow > 0:
            del stored[:overflow]

    # Metrics
    def get_total_reflections(self) -> int:
        return len(self._reflections)

    def get_total_lessons(self) -> int:
        return sum(len(lessons) for lessons in self._lessons.values())

    def get_recent_reflections(self, n: int = 5) -> List[Reflection]:
        return self._reflections[-n:]

    # Persistence
    def export_state(self) -> Dict[str, Any]:
        return {
            "lessons": {key: list(value) for key, value in self._lessons.items()},
            "reflections": [r.to_dict() for r in self._reflections],
        }

    def import_state(self, data: Dict[str, Any]) -> None:
        self._lessons = {key: list(value) for key, value in data.get("lessons", {}).items()}
        self._reflections = [Reflection.from_dict(r) for r in data.get("reflections", [])]
