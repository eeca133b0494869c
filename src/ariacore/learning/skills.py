# src/ariacore/learning/skills.py
"""
Skill Synthesis - Reusable Templates from Successful Attempts.

When an attempt succeeds with high confidence, the language model is
asked to generalize it into a parameterized skill: preconditions that say
when it applies, and templated tool steps (``{{placeholder}}`` tokens)
that say how to run it.  Stored skills are matched against new goals by
regex/keyword scoring and can be executed against any tool executor.

Match scoring (order matters)::

    +0.4  a goal-pattern regex matches (invalid regex: substring match, +0.3)
    +0.1  per context keyword contained in the goal
    +0.3  if every required tool is available, otherwise the score is halved
    clamp to [0, 1]

Usage:
    library = SkillLibrary(llm_call=my_llm)
    skill = await library.synthesize(goal, steps, confidence=0.9)
    for skill in library.find_skills_for_goal("research market trends", ["search", "news"]):
        result = await library.execute_skill(skill, {"topic": "solana"}, registry.invoke)
"""

from __future__ import annotations

import json
import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .extraction import load_json_object, string_list

logger = logging.getLogger(__name__)

LLMCall = Callable[[str], Awaitable[str]]
ToolExecutor = Callable[[str, Dict[str, Any]], Awaitable[Any]]

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")

PATTERN_MATCH_WEIGHT = 0.4
SUBSTRING_MATCH_WEIGHT = 0.3
KEYWORD_WEIGHT = 0.1
TOOLS_AVAILABLE_WEIGHT = 0.3
MISSING_TOOLS_PENALTY = 0.5


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class SkillStep:
    """One templated tool call."""

    action: str
    tool: str
    param_template: Dict[str, Any] = field(default_factory=dict)
    expected_outcome: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "tool": self.tool,
            "param_template": dict(self.param_template),
            "expected_outcome": self.expected_outcome,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SkillStep":
        return cls(
            action=data.get("action", ""),
            tool=data.get("tool", ""),
            param_template=dict(data.get("param_template", {})),
            expected_outcome=data.get("expected_outcome", ""),
        )


@dataclass
class SkillPreconditions:
    goal_patterns: List[str] = field(default_factory=list)
    required_tools: List[str] = field(default_factory=list)
    context_indicators: List[str] = field(default_factory=list)


@dataclass
class SkillPostconditions:
    success_indicators: List[str] = field(default_factory=list)
    expected_output_format: str = ""


@dataclass
class Skill:
    """
    A generalized, parameterized template extracted from one success.

    ``success_rate`` starts at 1.0 and becomes the running mean of
    execution outcomes.
    """

    id: str
    name: str
    description: str
    preconditions: SkillPreconditions = field(default_factory=SkillPreconditions)
    steps: List[SkillStep] = field(default_factory=list)
    postconditions: SkillPostconditions = field(default_factory=SkillPostconditions)
    source_trajectory: str = ""
    success_rate: float = 1.0
    usage_count: int = 0
    created_at: float = field(default_factory=time.time)
    last_used: float = field(default_factory=time.time)

    def record_execution(self, success: bool) -> None:
        """Fold an execution outcome into the running mean."""
        self.usage_count += 1
        self.last_used = time.time()
        outcome = 1.0 if success else 0.0
        self.success_rate = (
            self.success_rate * (self.usage_count - 1) + outcome
        ) / self.usage_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "preconditions": {
                "goal_patterns": list(self.preconditions.goal_patterns),
                "required_tools": list(self.preconditions.required_tools),
                "context_indicators": list(self.preconditions.context_indicators),
            },
            "steps": [s.to_dict() for s in self.steps],
            "postconditions": {
                "success_indicators": list(self.postconditions.success_indicators),
                "expected_output_format": self.postconditions.expected_output_format,
            },
            "source_trajectory": self.source_trajectory,
            "success_rate": self.success_rate,
            "usage_count": self.usage_count,
            "created_at": self.created_at,
            "last_used": self.last_used,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Skill":
        pre = data.get("preconditions", {})
        post = data.get("postconditions", {})
        return cls(
            id=data["id"],
            name=data.get("name", "Unnamed Skill"),
            description=data.get("description", ""),
            preconditions=SkillPreconditions(
                goal_patterns=list(pre.get("goal_patterns", [])),
                required_tools=list(pre.get("required_tools", [])),
                context_indicators=list(pre.get("context_indicators", [])),
            ),
            steps=[SkillStep.from_dict(s) for s in data.get("steps", [])],
            postconditions=SkillPostconditions(
                success_indicators=list(post.get("success_indicators", [])),
                expected_output_format=post.get("expected_output_format", ""),
            ),
            source_trajectory=data.get("source_trajectory", ""),
            success_rate=data.get("success_rate", 1.0),
            usage_count=data.get("usage_count", 0),
            created_at=data.get("created_at", time.time()),
            last_used=data.get("last_used", time.time()),
        )


@dataclass
class AttemptStep:
    """One step of the successful attempt a skill is extracted from."""

    action: str
    tool: str
    params: Dict[str, Any]
    result: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "tool": self.tool, "params": self.params, "result": self.result}


@dataclass
class SkillExecutionResult:
    """Outcome of :meth:`SkillLibrary.execute_skill`. ``results`` holds completed steps only."""

    success: bool
    results: List[Any] = field(default_factory=list)
    error: Optional[str] = None
    failed_step: Optional[int] = None


# =============================================================================
# Prompt Templates
# =============================================================================


SKILL_SCHEMA = """{
  "name": "Short descriptive name",
  "description": "What this skill accomplishes",
  "preconditions": {
    "goalPatterns": ["regex patterns that match goals this skill handles"],
    "requiredTools": ["tools needed"],
    "contextIndicators": ["keywords suggesting this skill applies"]
  },
  "steps": [
    {
      "action": "What this step does",
      "tool": "tool_name",
      "paramTemplate": {"param": "{{variable}}"},
      "expectedOutcome": "What should happen"
    }
  ],
  "postconditions": {
    "successIndicators": ["how to verify success"],
    "expectedOutputFormat": "description of output"
  }
}"""


SYNTHESIS_PROMPT = """Extract a reusable skill from this successful task execution.

GOAL: {goal}

SUCCESSFUL TRAJECTORY:
{trajectory}

Create a generalized, reusable skill in JSON format:
{schema}

Make the skill GENERALIZABLE - use {{{{variables}}}} in paramTemplates.
Respond with ONLY the JSON."""


COMPOSITION_PROMPT = """You are composing multiple skills into a new combined skill.

GOAL: {goal}

SKILLS TO COMPOSE:
{skills}

Create a new combined skill that chains these together effectively.
Output JSON format:
{schema}

Respond with ONLY the JSON."""


# =============================================================================
# Helpers
# =============================================================================


def fill_template(template: Any, params: Dict[str, Any]) -> Any:
    """
    Substitute ``{{name}}`` placeholders from ``params``.

    A value that is exactly one placeholder is replaced by the raw
    parameter (keeping its type).  Placeholders embedded in longer strings
    are replaced textually.  Unknown placeholders are left as written.
    """
    if isinstance(template, dict):
        return {key: fill_template(value, params) for key, value in template.items()}
    if isinstance(template, list):
        return [fill_template(value, params) for value in template]
    if not isinstance(template, str):
        return template

    whole = PLACEHOLDER_PATTERN.fullmatch(template.strip())
    if whole:
        return params.get(whole.group(1), template)

    def _sub(match: re.Match) -> str:
        name = match.group(1)
        return str(params[name]) if name in params else match.group(0)

    return PLACEHOLDER_PATTERN.sub(_sub, template)


def score_skill_match(skill: Skill, goal: str, available_tools: List[str]) -> float:
    """Score how well ``skill`` fits ``goal`` given the available tools, in [0, 1]."""
    score = 0.0
    goal_lower = goal.lower()

    for pattern in skill.preconditions.goal_patterns:
        try:
            if re.search(pattern, goal, re.IGNORECASE):
                score += PATTERN_MATCH_WEIGHT
                break
        except re.error:
            if pattern.lower() in goal_lower:
                score += SUBSTRING_MATCH_WEIGHT
                break

    for indicator in skill.preconditions.context_indicators:
        if indicator.lower() in goal_lower:
            score += KEYWORD_WEIGHT

    if all(tool in available_tools for tool in skill.preconditions.required_tools):
        score += TOOLS_AVAILABLE_WEIGHT
    else:
        score *= MISSING_TOOLS_PENALTY

    return max(0.0, min(1.0, score))


def _parse_steps(value: Any) -> List[SkillStep]:
    if not isinstance(value, list):
        return []
    steps = []
    for item in value:
        if not isinstance(item, dict) or not item.get("tool"):
            continue
        template = item.get("paramTemplate")
        steps.append(
            SkillStep(
                action=str(item.get("action", "")),
                tool=str(item["tool"]),
                param_template=template if isinstance(template, dict) else {},
                expected_outcome=str(item.get("expectedOutcome", "")),
            )
        )
    return steps


# =============================================================================
# Skill Library
# =============================================================================


class SkillLibrary:
    """
    Extracts, stores, matches and executes skills.

    Args:
        llm_call: Async callable mapping a prompt to a response.
        min_confidence_to_extract: Attempts below this confidence are not generalized.
        min_match_score: Skills scoring at or below this are not returned by
            :meth:`find_skills_for_goal`.
    """

    def __init__(
        self,
        llm_call: LLMCall,
        min_confidence_to_extract: float = 0.75,
        min_match_score: float = 0.3,
    ) -> None:
        self._llm_call = llm_call
        self.min_confidence = min_confidence_to_extract
        self.min_match_score = min_match_score
        self._skills: Dict[str, Skill] = {}

    async def synthesize(
        self,
        goal: str,
        trajectory: List[AttemptStep],
        confidence: float,
    ) -> Optional[Skill]:
        """
        Generalize a successful attempt into a stored skill.

        Returns None without calling the model when ``confidence`` is below
        the extraction threshold, and None when the response is unusable.
        """
        if confidence < self.min_confidence:
            return None

        prompt = self.build_synthesis_prompt(goal, trajectory)
        response = await self._llm_call(prompt)
        skill = self._parse_skill(response, goal, trajectory)

        if skill is None:
            logger.debug(f"No skill extracted for goal '{goal[:50]}'")
            return None

        self.add_skill(skill)
        return skill

    async def compose_skills(self, skills: List[Skill], composition_goal: str) -> Optional[Skill]:
        """Ask the model to chain two or more skills into a new one. The result is not stored."""
        if len(skills) < 2:
            return None

        listing = "\n".join(
            f"Skill {i}: {s.name}\nDescription: {s.description}\n"
            f"Steps: {' -> '.join(step.action for step in s.steps)}\n"
            for i, s in enumerate(skills, start=1)
        )
        prompt = COMPOSITION_PROMPT.format(goal=composition_goal, skills=listing, schema=SKILL_SCHEMA)
        response = await self._llm_call(prompt)
        return self._parse_skill(response, composition_goal, [])

    def find_skills_for_goal(self, goal: str, available_tools: List[str]) -> List[Skill]:
        """Skills matching ``goal``, best first by ``score * success_rate``."""
        matches = []
        for skill in self._skills.values():
            score = score_skill_match(skill, goal, available_tools)
            if score > self.min_match_score:
                matches.append((score * skill.success_rate, skill))

        matches.sort(key=lambda m: m[0], reverse=True)
        return [skill for _, skill in matches]

    async def execute_skill(
        self,
        skill: Skill,
        params: Dict[str, Any],
        tool_executor: ToolExecutor,
    ) -> SkillExecutionResult:
        """
        Run the skill's steps in order, stopping at the first failure.

        Usage statistics are updated whichever step failed.
        """
        results: List[Any] = []

        for index, step in enumerate(skill.steps):
            step_params = fill_template(step.param_template, params)
            try:
                results.append(await tool_executor(step.tool, step_params))
            except Exception as e:
                skill.record_execution(success=False)
                logger.info(f"Skill '{skill.name}' failed at step {index + 1} ({step.tool}): {e}")
                return SkillExecutionResult(
                    success=False, results=results, error=str(e), failed_step=index
                )

        skill.record_execution(success=True)
        return SkillExecutionResult(success=True, results=results)

    def build_synthesis_prompt(self, goal: str, trajectory: List[AttemptStep]) -> str:
        lines = []
        for i, step in enumerate(trajectory, start=1):
            lines.append(
                f"Step {i}: {step.action}\n"
                f"   Tool: {step.tool}\n"
                f"   Params: {json.dumps(step.params, default=str)}\n"
                f"   Result: {json.dumps(step.result, default=str)[:200]}..."
            )
        return SYNTHESIS_PROMPT.format(goal=goal, trajectory="\n\n".join(lines), schema=SKILL_SCHEMA)

    def _parse_skill(self, response: str, goal: str, trajectory: List[AttemptStep]) -> Optional[Skill]:
        parsed = load_json_object(response)
        if parsed is None:
            return None

        pre = parsed.get("preconditions") if isinstance(parsed.get("preconditions"), dict) else {}
        post = parsed.get("postconditions") if isinstance(parsed.get("postconditions"), dict) else {}

        return Skill(
            id=f"skill_{uuid.uuid4().hex[:12]}",
            name=str(parsed.get("name") or "Unnamed Skill"),
            description=str(parsed.get("description") or goal),
            preconditions=SkillPreconditions(
                goal_patterns=string_list(pre.get("goalPatterns")),
                required_tools=string_list(pre.get("requiredTools")),
                context_indicators=string_list(pre.get("contextIndicators")),
            ),
            steps=_parse_steps(parsed.get("steps")),
            postconditions=SkillPostconditions(
                success_indicators=string_list(post.get("successIndicators")),
                expected_output_format=str(post.get("expectedOutputFormat") or ""),
            ),
            source_trajectory=json.dumps([s.to_dict() for s in trajectory], default=str),
        )

    # CRUD
    def add_skill(self, skill: Skill) -> None:
        self._skills[skill.id] = skill

    def get_skill(self, skill_id: str) -> Optional[Skill]:
        return self._skills.get(skill_id)

    def get_all_skills(self) -> List[Skill]:
        return list(self._skills.values())

    def remove_skill(self, skill_id: str) -> bool:
        return self._skills.pop(skill_id, None) is not None

    # Metrics
    def get_total_skills(self) -> int:
        return len(self._skills)

    def get_most_used_skills(self, n: int = 5) -> List[Skill]:
        return sorted(self._skills.values(), key=lambda s: s.usage_count, reverse=True)[:n]

    def get_most_successful_skills(self, n: int = 5) -> List[Skill]:
        """Highest success rate among skills used at least three times."""
        seasoned = [s for s in self._skills.values() if s.usage_count >= 3]
        return sorted(seasoned, key=lambda s: s.success_rate, reverse=True)[:n]

    # Persistence
    def export_state(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self._skills.values()]

    def import_state(self, data: List[Dict[str, Any]]) -> None:
        """Replace the library contents from a snapshot."""
        self._skills = {}
        for item in data:
            skill = Skill.from_dict(item)
            self._skills[skill.id] = skill
