# src/ariacore/strategies.py
"""
Strategies the agent chooses between.

A strategy is a named recipe: ordered steps, heuristics, and a prompt
preamble, plus a running success-rate estimate.  Strategies are created
from a fixed seed set (or synthesised when none exist), revised in place
by textual gradients, and never deleted.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Strategy:
    """
    A named, evolvable approach to pursuing goals.

    Attributes:
        id: Unique identifier.
        name: Display name.
        description: What the strategy does.
        steps: Ordered step descriptions.
        heuristics: Rules of thumb; treated as a set on insertion.
        system_prompt: Prompt preamble revised by textual gradients.
        success_rate: Running success estimate in [0, 1].
        usage_count: Number of iterations that used this strategy.
    """

    id: str
    name: str
    description: str
    steps: List[str] = field(default_factory=list)
    heuristics: List[str] = field(default_factory=list)
    system_prompt: str = ""
    success_rate: float = 0.5
    usage_count: int = 0

    def record_outcome(self, outcome: float) -> None:
        """Fold an iteration's success fraction into the usage-weighted running mean."""
        self.usage_count += 1
        self.success_rate = (
            self.success_rate * (self.usage_count - 1) + outcome
        ) / self.usage_count

    def copy(self) -> "Strategy":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": list(self.steps),
            "heuristics": list(self.heuristics),
            "system_prompt": self.system_prompt,
            "success_rate": self.success_rate,
            "usage_count": self.usage_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Strategy":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            steps=list(data.get("steps", [])),
            heuristics=list(data.get("heuristics", [])),
            system_prompt=data.get("system_prompt", ""),
            success_rate=data.get("success_rate", 0.5),
            usage_count=data.get("usage_count", 0),
        )


def default_strategies() -> List[Strategy]:
    """The seed set every agent starts with."""
    return [
        Strategy(
            id="research",
            name="Web Research",
            description="Search and gather information from the web",
            system_prompt="You are a research agent gathering information.",
            steps=["Search for relevant information", "Fetch detailed pages", "Synthesize findings"],
            heuristics=["Prefer authoritative sources", "Cross-reference multiple sources"],
        ),
        Strategy(
            id="monitor",
            name="Market Monitor",
            description="Track prices and market news",
            system_prompt="You are a market monitoring agent.",
            steps=["Check current prices", "Get latest news", "Identify significant changes"],
            heuristics=["Focus on large movements", "Consider volume"],
        ),
        Strategy(
            id="analyze",
            name="Data Analyzer",
            description="Analyze data and extract patterns",
            system_prompt="You are a data analysis agent.",
            steps=["Gather data", "Identify patterns", "Generate insights"],
            heuristics=["Look for outliers", "Consider historical context"],
        ),
    ]


class StrategyStore:
    """Insertion-ordered collection of strategies owned by one agent."""

    def __init__(self, strategies: Optional[List[Strategy]] = None) -> None:
        self._strategies: Dict[str, Strategy] = {}
        for strategy in strategies if strategies is not None else default_strategies():
            self.add(strategy)

    def add(self, strategy: Strategy) -> None:
        self._strategies[strategy.id] = strategy

    def get(self, strategy_id: str) -> Optional[Strategy]:
        return self._strategies.get(strategy_id)

    def all(self) -> List[Strategy]:
        return list(self._strategies.values())

    def __len__(self) -> int:
        return len(self._strategies)

    def best(self) -> Optional[Strategy]:
        """Highest success rate; the earliest added wins ties."""
        best: Optional[Strategy] = None
        for strategy in self._strategies.values():
            if best is None or strategy.success_rate > best.success_rate:
                best = strategy
        return best

    def exploratory(self, goal_id: str, goal_description: str, tool_names: List[str]) -> Strategy:
        """Synthesise and store a strategy for a goal when nothing else is available."""
        steps = [f"Use {name} for {goal_description}" for name in tool_names[:3]]
        strategy = Strategy(
            id=f"explore_{goal_id}",
            name=f"Explore: {goal_description[:40]}",
            description=f"Exploratory approach to: {goal_description}",
            steps=steps or [f"Investigate {goal_description}"],
            heuristics=["Try each available tool once"],
            system_prompt="You are an exploratory agent trying new approaches.",
        )
        self.add(strategy)
        logger.info(f"Created exploratory strategy '{strategy.id}'")
        return strategy

    def export_state(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self._strategies.values()]

    def import_state(self, data: List[Dict[str, Any]]) -> None:
        self._strategies = {}
        for item in data:
            self.add(Strategy.from_dict(item))
