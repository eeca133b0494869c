# tests/conftest.py
"""
Shared fixtures for ariacore tests.

Provides scripted language-model collaborators, mock tools, seeded
random sources and a fast agent configuration.
"""

import json
import random
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add source to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class ScriptedLLM:
    """
    Async language-model stand-in.

    Returns queued responses in order, then ``default`` forever.  Every
    prompt is recorded in ``prompts``.
    """

    def __init__(self, responses: List[str] = None, default: str = "I cannot answer in JSON."):
        self.responses = list(responses or [])
        self.default = default
        self.prompts: List[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.responses:
            return self.responses.pop(0)
        return self.default

    @property
    def call_count(self) -> int:
        return len(self.prompts)


def as_json(payload: Dict[str, Any]) -> str:
    """Wrap a payload the way models tend to: prose around a JSON object."""
    return f"Here is my analysis:\n{json.dumps(payload)}\nHope this helps."


@pytest.fixture
def plain_text_llm():
    """Model that never returns JSON."""
    return ScriptedLLM()


@pytest.fixture
def scripted_llm():
    """Factory for a model with queued responses."""
    return ScriptedLLM


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def succeeding_tool():
    calls: List[Dict[str, Any]] = []

    async def tool(params: Dict[str, Any]) -> Dict[str, Any]:
        calls.append(params)
        return {"ok": True, "echo": params}

    tool.calls = calls
    return tool


@pytest.fixture
def failing_tool():
    async def tool(params: Dict[str, Any]) -> Any:
        raise RuntimeError("upstream unavailable")

    return tool


@pytest.fixture
def fast_config():
    """Agent configuration with no iteration padding or error pause."""
    from ariacore.config import AgentConfig

    return AgentConfig(name="test-agent", min_iteration_seconds=0.0, error_pause_seconds=0.0)


@pytest.fixture
def json_reply():
    """Formatter for JSON replies embedded in prose."""
    return as_json
