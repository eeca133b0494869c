# src/ariacore/learning/__init__.py
"""
Learning components for ariacore.

Each component owns its own state and exposes ``export_state()`` /
``import_state()`` snapshots:

- ExperienceReplay: replay buffer plus tabular TD value store
- ReflexionEngine: language-model self-critique and the lesson store
- TextualGradientEngine: language-model strategy edits, applied stochastically
- SkillLibrary: reusable templates extracted from successful attempts
- ContrastiveLearner: insights mined from success/failure pairs

Example:
    from ariacore.learning import ExperienceReplay, ReflexionEngine, SkillLibrary

    replay = ExperienceReplay(epsilon=0.2)
    reflexion = ReflexionEngine(llm_call=my_llm)
    skills = SkillLibrary(llm_call=my_llm)
"""

# Contrastive Learning
from .contrastive import (
    ContrastiveInsight,
    ContrastiveLearner,
    InsightDifferences,
    TrajectoryAction,
    TrajectoryRecord,
)

# Experience Replay
from .experience import (
    ActionChoice,
    ExperienceReplay,
    Transition,
    TransitionMetadata,
    UpdateStats,
)
from .extraction import find_json_object, load_json_object

# Textual Gradients
from .gradients import (
    Modifications,
    StepModification,
    StrategyOutcome,
    TextualGradient,
    TextualGradientEngine,
    bernoulli_trial,
)

# Reflexion
from .reflexion import (
    Outcome,
    Reflection,
    ReflexionEngine,
    Trajectory,
    TrajectoryStep,
)

# Skills
from .skills import (
    AttemptStep,
    Skill,
    SkillExecutionResult,
    SkillLibrary,
    SkillPostconditions,
    SkillPreconditions,
    SkillStep,
    fill_template,
    score_skill_match,
)

__all__ = [
    # Contrastive
    "ContrastiveInsight",
    "ContrastiveLearner",
    "InsightDifferences",
    "TrajectoryAction",
    "TrajectoryRecord",
    # Experience
    "ActionChoice",
    "ExperienceReplay",
    "Transition",
    "TransitionMetadata",
    "UpdateStats",
    # Extraction
    "find_json_object",
    "load_json_object",
    # Gradients
    "Modifications",
    "StepModification",
    "StrategyOutcome",
    "TextualGradient",
    "TextualGradientEngine",
    "bernoulli_trial",
    # Reflexion
    "Outcome",
    "Reflection",
    "ReflexionEngine",
    "Trajectory",
    "TrajectoryStep",
    # Skills
    "AttemptStep",
    "Skill",
    "SkillExecutionResult",
    "SkillLibrary",
    "SkillPostconditions",
    "SkillPreconditions",
    "SkillStep",
    "fill_template",
    "score_skill_match",
]
