# src/ariacore/config/agent_config.py
"""
Agent configuration models.

This module defines Pydantic models for every tunable of the learning
agent. These models are used for:
1. Type-safe configuration loading
2. Validation with sensible defaults
3. Documentation of the learning hyperparameters

The configuration hierarchy:
    AgentConfig (root)
    ├── LearningConfig    - Value store, critique, gradient, skill and
    │                       contrastive hyperparameters
    └── MilestoneConfig   - Thresholds for milestone emission
    LLMConfig             - Language-model collaborator settings

Usage:
    >>> from ariacore.config import AgentConfig
    >>> config = AgentConfig()  # All defaults
    >>> config.learning.gamma
    0.95

    >>> config = AgentConfig(
    ...     learning=LearningConfig(epsilon=0.0),
    ...     min_iteration_seconds=0.0,
    ... )
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)


# =============================================================================
# LEARNING CONFIGURATION
# =============================================================================


class LearningConfig(BaseModel):
    """
    Hyperparameters for the learning components.

    Examples:
        >>> config = LearningConfig()
        >>> config.alpha
        0.1
        >>> config.td_batch_size
        32
    """

    # --- Replay buffer + value store ---
    experience_buffer_size: int = Field(
        default=10_000,
        ge=1,
        description="Capacity of the transition ring buffer (oldest evicted)",
    )
    alpha: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Temporal-difference learning rate",
    )
    gamma: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Discount factor applied to the next-state value",
    )
    epsilon: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Initial exploration rate for action selection",
    )
    epsilon_min: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Floor for multiplicative epsilon decay",
    )
    epsilon_decay: float = Field(
        default=0.995,
        ge=0.0,
        le=1.0,
        description="Multiplicative epsilon decay applied once per iteration",
    )
    td_batch_size: int = Field(
        default=32,
        ge=1,
        description="Prioritized batch size for each TD update",
    )

    # --- Trigger thresholds (independent of each other) ---
    reflexion_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Iteration score below this triggers self-critique",
    )
    gradient_threshold: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Iteration score below this triggers a textual strategy update",
    )
    skill_confidence: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Minimum score for a successful iteration to be generalized into a skill",
    )

    # --- Self-critique ---
    max_lessons: int = Field(
        default=50,
        ge=1,
        description="Maximum lessons retained per goal signature (FIFO eviction)",
    )
    min_lesson_confidence: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Reflections below this confidence do not store lessons",
    )

    # --- Textual gradients ---
    gradient_learning_rate: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Scales the per-item probability of applying a proposed strategy edit",
    )

    # --- Contrastive learning ---
    min_similarity_for_comparison: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum Jaccard goal similarity for a success/failure pair",
    )
    contrastive_interval: int = Field(
        default=10,
        ge=1,
        description="Run contrastive comparisons every N iterations",
    )
    contrastive_batch: int = Field(
        default=3,
        ge=1,
        description="Maximum pairs compared per contrastive round",
    )
    max_trajectories: int = Field(
        default=1_000,
        ge=1,
        description="Trajectory records retained for pairing (oldest evicted)",
    )
    max_insights: int = Field(
        default=500,
        ge=1,
        description="Contrastive insights retained (oldest evicted)",
    )


# =============================================================================
# MILESTONE CONFIGURATION
# =============================================================================


class MilestoneConfig(BaseModel):
    """
    Thresholds for the per-iteration milestone checks.

    All checks are independent and evaluated every iteration.
    """

    experience_milestone: int = Field(
        default=100,
        ge=1,
        description="Replay buffer size that emits a one-time milestone",
    )
    value_table_step: int = Field(
        default=50,
        ge=1,
        description="Emit a milestone each time the value-entry count reaches a new multiple of this",
    )
    value_table_min_iteration: int = Field(
        default=10,
        ge=0,
        description="Value-table milestones only fire after this many iterations",
    )
    score_window: int = Field(
        default=10,
        ge=1,
        description="Window size for the rolling score comparison",
    )
    min_score_history: int = Field(
        default=20,
        ge=2,
        description="Scores required before the improvement check can fire",
    )
    improvement_threshold: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Rolling-average improvement needed to emit a milestone",
    )


# =============================================================================
# AGENT CONFIGURATION (ROOT)
# =============================================================================


class AgentConfig(BaseModel):
    """
    Root configuration for a :class:`~ariacore.agent.LearningAgent`.

    Examples:
        >>> config = AgentConfig(name="scout", max_iterations=20)
        >>> config.min_iteration_seconds
        0.5
    """

    name: str = Field(
        default="aria",
        min_length=1,
        description="Agent name used in log narration",
    )
    max_iterations: int | None = Field(
        default=None,
        ge=1,
        description="Stop after this many iterations (None runs until stop())",
    )
    min_iteration_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Pad each iteration to at least this wall-clock duration",
    )
    error_pause_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause after an iteration raised an unhandled exception",
    )
    perception_tool: str | None = Field(
        default=None,
        description="Registered tool whose output is snapshotted into the state signature",
    )
    tool_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Optional per-call timeout for tool invocations (off by default)",
    )
    llm_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Optional per-call timeout for language-model calls (off by default)",
    )

    learning: LearningConfig = Field(default_factory=LearningConfig)
    milestones: MilestoneConfig = Field(default_factory=MilestoneConfig)


# =============================================================================
# LLM CONFIGURATION
# =============================================================================


class LLMConfig(BaseModel):
    """Settings for the Anthropic language-model collaborator."""

    api_key: str | None = Field(
        default=None,
        validate_default=True,
        description="API key; falls back to the ANTHROPIC_API_KEY environment variable",
    )
    model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model identifier",
    )
    max_tokens: int = Field(default=1024, ge=1)
    timeout: float = Field(default=60.0, gt=0.0, description="Request timeout in seconds")
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per prompt before giving up",
    )
    base_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Initial backoff delay in seconds (doubles each attempt)",
    )

    @field_validator("api_key")
    @classmethod
    def resolve_api_key(cls, v: str | None) -> str | None:
        """Fall back to the environment when no key is configured."""
        return v or os.environ.get("ANTHROPIC_API_KEY")


# =============================================================================
# LOADING
# =============================================================================


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_agent_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> AgentConfig:
    """
    Load agent configuration.

    Configuration is merged in order:
        1. Default values
        2. ``[agent]`` table of the TOML file
        3. Runtime overrides

    Args:
        config_path: Optional path to a TOML file. A missing file is not an error.
        overrides: Values merged over the file contents.

    Returns:
        Validated AgentConfig.

    Raises:
        ConfigError: If the file cannot be parsed or validation fails.
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        path = Path(os.path.expanduser(str(config_path)))
        if path.exists():
            try:
                with open(path, "rb") as f:
                    data = tomllib.load(f).get("agent", {})
                logger.debug(f"Loaded agent config from {path}")
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        else:
            logger.debug(f"Config file not found: {path}")

    if overrides:
        data = _deep_merge(data, overrides)

    try:
        return AgentConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid agent configuration: {e}") from e
