# src/ariacore/__init__.py
"""
ariacore - a self-improving autonomous agent core.

An agent pursues goals by invoking tools, and learns from the outcomes
through five cooperating mechanisms: experience replay with tabular TD
learning, language-model self-critique (reflexion), textual-gradient
strategy updates, skill synthesis, and contrastive learning.  Measurable
improvements are emitted as milestones to an optional ledger.
"""

from importlib.metadata import PackageNotFoundError, version

from .agent import AgentMetrics, AgentPhase, Guidance, IterationReport, LearningAgent
from .config import AgentConfig, LearningConfig, LLMConfig, MilestoneConfig, load_agent_config
from .exceptions import (
    AriaCoreError,
    AuthenticationError,
    ConfigError,
    LedgerError,
    PersistenceError,
    ProviderError,
    ToolNotFoundError,
)
from .ledger import MilestoneLedger, MilestoneRecorder
from .models import (
    Action,
    ActionResult,
    Goal,
    GoalStatus,
    InvokeTool,
    Milestone,
    MilestoneType,
    RunStep,
)
from .persistence import StateStore
from .strategies import Strategy, StrategyStore
from .tools import ToolRegistry

try:
    __version__ = version("ariacore")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    # Agent
    "AgentMetrics",
    "AgentPhase",
    "Guidance",
    "IterationReport",
    "LearningAgent",
    # Configuration
    "AgentConfig",
    "LearningConfig",
    "LLMConfig",
    "MilestoneConfig",
    "load_agent_config",
    # Exceptions
    "AriaCoreError",
    "AuthenticationError",
    "ConfigError",
    "LedgerError",
    "PersistenceError",
    "ProviderError",
    "ToolNotFoundError",
    # Models
    "Action",
    "ActionResult",
    "Goal",
    "GoalStatus",
    "InvokeTool",
    "Milestone",
    "MilestoneType",
    "RunStep",
    # Collaborators
    "MilestoneLedger",
    "MilestoneRecorder",
    "StateStore",
    "Strategy",
    "StrategyStore",
    "ToolRegistry",
    "__version__",
]
