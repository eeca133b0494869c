# src/ariacore/models.py
"""
Core data models for ariacore.

Goals the agent pursues, the actions it chooses between, the results of
executing those actions, and the milestones it emits when it measurably
improves. All models serialize to plain dictionaries so that agent state
can be handed to an external persistence layer.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class GoalStatus(str, Enum):
    """Goal lifecycle states."""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    PAUSED = "paused"


@dataclass
class Goal:
    """
    Something the agent works toward.

    Goals are created outside the agent.  Each iteration the agent picks
    the highest-priority ACTIVE goal; ties go to the goal listed first.

    Attributes:
        id: Unique identifier.
        description: Free-text description, also used for lesson and
            insight lookup.
        priority: Higher values are pursued first.
        status: Lifecycle state.
    """

    id: str
    description: str
    priority: int = 5
    status: GoalStatus = GoalStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == GoalStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "priority": self.priority,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Goal":
        return cls(
            id=data["id"],
            description=data["description"],
            priority=data.get("priority", 5),
            status=GoalStatus(data.get("status", "active")),
        )


# =============================================================================
# Actions
# =============================================================================


@dataclass(frozen=True)
class InvokeTool:
    """Invoke a single registered tool."""

    name: str

    @property
    def key(self) -> str:
        """Value-table key for this action."""
        return f"use:{self.name}"


@dataclass(frozen=True)
class RunStep:
    """Run the current strategy's steps as a fallback sequence."""

    text: str

    # Step text is truncated in the value-table key
    KEY_LENGTH = 20

    @property
    def key(self) -> str:
        """Value-table key for this action."""
        return f"step:{self.text[: self.KEY_LENGTH]}"


Action = Union[InvokeTool, RunStep]


@dataclass
class ActionResult:
    """
    Outcome of one tool invocation.

    Tool failures are never raised out of the agent; they are recorded
    here with ``success=False`` and the failure message as the result.
    """

    tool: str
    params: Dict[str, Any]
    success: bool
    result: Any
    duration: float  # seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "params": self.params,
            "success": self.success,
            "result": self.result,
            "duration": self.duration,
        }


# =============================================================================
# Milestones
# =============================================================================


class MilestoneType(str, Enum):
    """Kinds of measurable improvement the agent records."""

    STRATEGY_LEARNED = "strategy_learned"
    GOAL_COMPLETED = "goal_completed"
    SUCCESS_RATE_IMPROVED = "success_rate_improved"
    NEW_INSIGHT = "new_insight"


@dataclass
class Milestone:
    """
    A discrete marker of measurable improvement.

    Handed to the ledger collaborator; the returned receipt is attached
    afterwards in ``receipt``.
    """

    type: MilestoneType
    description: str
    before: float
    after: float
    id: str = field(default_factory=lambda: f"milestone_{uuid.uuid4().hex[:12]}")
    timestamp: float = field(default_factory=time.time)
    receipt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "metrics": {"before": self.before, "after": self.after},
            "timestamp": self.timestamp,
            "receipt": self.receipt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Milestone":
        metrics = data.get("metrics", {})
        return cls(
            id=data["id"],
            type=MilestoneType(data["type"]),
            description=data["description"],
            before=metrics.get("before", 0.0),
            after=metrics.get("after", 0.0),
            timestamp=data.get("timestamp", time.time()),
            receipt=data.get("receipt"),
        )
