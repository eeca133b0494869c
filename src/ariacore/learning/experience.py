# src/ariacore/learning/experience.py
"""
Experience Replay Buffer + Tabular TD Learning.

Stores transitions in a fixed-capacity ring buffer and maintains a sparse
table of (state, action) -> value estimates, revised with the
temporal-difference rule::

    value += alpha * (reward + gamma * max_a value(next_state, a) - value)

Key Features:
    - FIFO ring buffer (oldest transition evicted on overflow)
    - Uniform and prioritized (|TD error|-weighted) sampling
    - Online updates: each transition in a batch sees the values written
      by the transitions processed before it
    - Epsilon-greedy action selection with multiplicative decay

Usage:
    from ariacore.learning import ExperienceReplay, Transition

    replay = ExperienceReplay(alpha=0.1, gamma=0.95, epsilon=0.2)
    replay.store(Transition(state="s0", action="use:search", reward=1.0, next_state="s1"))
    stats = replay.update(batch_size=32)
    choice = replay.select_action("s0", ["use:search", "use:news"])
"""

from __future__ import annotations

import logging
import random
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

# Added to every priority so that zero-error transitions can still be drawn
PRIORITY_EPSILON = 0.01

ValueTable = Dict[str, Dict[str, float]]


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class TransitionMetadata:
    """Where a transition came from."""

    goal_id: str = ""
    strategy_id: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Transition:
    """One (state, action, reward, next state) record."""

    state: str
    action: str
    reward: float
    next_state: str
    metadata: TransitionMetadata = field(default_factory=TransitionMetadata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "action": self.action,
            "reward": self.reward,
            "next_state": self.next_state,
            "metadata": {
                "goal_id": self.metadata.goal_id,
                "strategy_id": self.metadata.strategy_id,
                "timestamp": self.metadata.timestamp,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transition":
        meta = data.get("metadata", {})
        return cls(
            state=data["state"],
            action=data["action"],
            reward=data["reward"],
            next_state=data["next_state"],
            metadata=TransitionMetadata(
                goal_id=meta.get("goal_id", ""),
                strategy_id=meta.get("strategy_id", ""),
                timestamp=meta.get("timestamp", time.time()),
            ),
        )


@dataclass
class ActionChoice:
    """Result of :meth:`ExperienceReplay.select_action`."""

    action: str
    is_exploration: bool
    value: float


@dataclass
class UpdateStats:
    """Result of one TD update pass."""

    avg_td_error: float
    updated_states: int


# =============================================================================
# Experience Replay
# =============================================================================


class ExperienceReplay:
    """
    Ring buffer of transitions plus a tabular value store.

    Never raises: absent keys read as 0.0.

    Args:
        max_size: Ring buffer capacity.
        alpha: TD learning rate.
        gamma: Discount factor.
        epsilon: Initial exploration rate.
        rng: Random source (injectable for deterministic tests).
    """

    def __init__(
        self,
        max_size: int = 10_000,
        alpha: float = 0.1,
        gamma: float = 0.95,
        epsilon: float = 0.2,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.max_size = max_size
        self.alpha = alpha
        self.gamma = gamma
        self.epsilon = epsilon
        self._rng = rng or random.Random()
        self._buffer: Deque[Transition] = deque(maxlen=max_size)
        self._values: ValueTable = {}

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    def store(self, transition: Transition) -> None:
        """Append a transition, evicting the oldest if full, and seed its value entry."""
        self._buffer.append(transition)
        self._values.setdefault(transition.state, {}).setdefault(transition.action, 0.0)

    # -------------------------------------------------------------------------
    # Sampling
    # -------------------------------------------------------------------------

    def sample(self, batch_size: int) -> List[Transition]:
        """Uniform sample without replacement; the whole buffer if it is not larger than the batch."""
        if len(self._buffer) <= batch_size:
            return list(self._buffer)
        return self._rng.sample(list(self._buffer), batch_size)

    def sample_prioritized(self, batch_size: int) -> List[Transition]:
        """
        Sample with replacement, weighting each transition by its |TD error|.

        Returns the whole buffer, unsampled, if it is not larger than the batch.
        """
        if len(self._buffer) <= batch_size:
            return list(self._buffer)

        transitions = list(self._buffer)
        cumulative: List[float] = []
        total = 0.0
        for t in transitions:
            total += abs(self._td_target(t) - self.get_value(t.state, t.action)) + PRIORITY_EPSILON
            cumulative.append(total)

        return self._rng.choices(transitions, cum_weights=cumulative, k=batch_size)

    # -------------------------------------------------------------------------
    # Learning
    # -------------------------------------------------------------------------

    def update(self, batch_size: int = 32) -> UpdateStats:
        """
        Apply the TD rule over a prioritized batch.

        Updates are applied one transition at a time against the live
        table, so repeated transitions in the batch compound.

        Returns:
            Mean absolute TD error and number of distinct states touched.
        """
        batch = self.sample_prioritized(batch_size)
        total_error = 0.0
        touched: set[str] = set()

        for t in batch:
            current = self.get_value(t.state, t.action)
            td_error = self._td_target(t) - current
            total_error += abs(td_error)
            self._set_value(t.state, t.action, current + self.alpha * td_error)
            touched.add(t.state)

        return UpdateStats(
            avg_td_error=total_error / len(batch) if batch else 0.0,
            updated_states=len(touched),
        )

    def select_action(self, state: str, available_actions: List[str]) -> ActionChoice:
        """
        Epsilon-greedy selection.

        With probability epsilon a uniformly random action is returned;
        otherwise the highest-valued action, the first encountered winning
        ties.

        Raises:
            ValueError: If ``available_actions`` is empty.
        """
        if not available_actions:
            raise ValueError("select_action requires at least one available action")

        if self._rng.random() < self.epsilon:
            action = self._rng.choice(available_actions)
            return ActionChoice(action=action, is_exploration=True, value=self.get_value(state, action))

        best_action = available_actions[0]
        best_value = self.get_value(state, best_action)
        for action in available_actions[1:]:
            value = self.get_value(state, action)
            if value > best_value:
                best_action, best_value = action, value

        return ActionChoice(action=best_action, is_exploration=False, value=best_value)

    def decay_epsilon(self, min_epsilon: float = 0.05, decay_rate: float = 0.995) -> None:
        """Multiplicative decay floored at ``min_epsilon``."""
        self.epsilon = max(min_epsilon, self.epsilon * decay_rate)

    # -------------------------------------------------------------------------
    # Value table helpers
    # -------------------------------------------------------------------------

    def get_value(self, state: str, action: str) -> float:
        return self._values.get(state, {}).get(action, 0.0)

    def get_max_value(self, state: str) -> float:
        actions = self._values.get(state)
        if not actions:
            return 0.0
        return max(actions.values())

    def _set_value(self, state: str, action: str, value: float) -> None:
        self._values.setdefault(state, {})[action] = value

    def _td_target(self, t: Transition) -> float:
        return t.reward + self.gamma * self.get_max_value(t.next_state)

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def get_buffer_size(self) -> int:
        return len(self._buffer)

    def get_value_count(self) -> int:
        """Number of (state, action) entries in the value table."""
        return sum(len(actions) for actions in self._values.values())

    def get_state_count(self) -> int:
        return len(self._values)

    def get_epsilon(self) -> float:
        return self.epsilon

    def get_value_table(self) -> ValueTable:
        """Copy of the value table."""
        return {state: dict(actions) for state, actions in self._values.items()}

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        """Snapshot of buffer, value table and epsilon."""
        return {
            "buffer": [t.to_dict() for t in self._buffer],
            "values": self.get_value_table(),
            "epsilon": self.epsilon,
        }

    def import_state(self, data: Dict[str, Any]) -> None:
        """Replace buffer, value table and epsilon from a snapshot."""
        self._buffer = deque(
            (Transition.from_dict(t) for t in data.get("buffer", [])),
            maxlen=self.max_size,
        )
        self._values = {
            state: {action: float(v) for action, v in actions.items()}
            for state, actions in data.get("values", {}).items()
        }
        self.epsilon = data.get("epsilon", self.epsilon)
        logger.debug(
            f"Imported replay state: {len(self._buffer)} transitions, "
            f"{self.get_value_count()} values"
        )
