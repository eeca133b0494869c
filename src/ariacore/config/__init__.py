# src/ariacore/config/__init__.py
"""
Configuration package for ariacore.

Pydantic models describing the agent's hyperparameters, milestone
thresholds and language-model settings, plus a TOML loader.
"""

from .agent_config import (
    AgentConfig,
    LearningConfig,
    LLMConfig,
    MilestoneConfig,
    load_agent_config,
)

__all__ = [
    "AgentConfig",
    "LearningConfig",
    "LLMConfig",
    "MilestoneConfig",
    "load_agent_config",
]
