# tests/core/test_tools.py
"""Tests for the tool registry."""

import asyncio

import pytest

from ariacore.exceptions import ToolNotFoundError
from ariacore.tools import ToolRegistry


class TestToolRegistry:
    """Tests for registration and invocation."""

    def test_register_preserves_order(self, succeeding_tool):
        registry = ToolRegistry()
        registry.register("search", succeeding_tool)
        registry.register("news", succeeding_tool)

        assert registry.names() == ["search", "news"]
        assert "search" in registry
        assert len(registry) == 2

    def test_reregister_replaces(self, succeeding_tool, failing_tool, caplog):
        registry = ToolRegistry()
        registry.register("search", succeeding_tool)
        with caplog.at_level("WARNING"):
            registry.register("search", failing_tool)

        assert registry.get("search") is failing_tool
        assert registry.names() == ["search"]
        assert "already registered" in caplog.text

    def test_unregister(self, succeeding_tool):
        registry = ToolRegistry()
        registry.register("search", succeeding_tool)

        assert registry.unregister("search") is True
        assert registry.unregister("search") is False
        assert registry.get("search") is None

    @pytest.mark.asyncio
    async def test_invoke_passes_params(self, succeeding_tool):
        registry = ToolRegistry()
        registry.register("search", succeeding_tool)

        result = await registry.invoke("search", {"query": "sol"})

        assert result == {"ok": True, "echo": {"query": "sol"}}

    @pytest.mark.asyncio
    async def test_unknown_tool_fails_fast(self):
        with pytest.raises(ToolNotFoundError) as exc_info:
            await ToolRegistry().invoke("missing", {})
        assert exc_info.value.tool_name == "missing"

    @pytest.mark.asyncio
    async def test_tool_failure_propagates_unchanged(self, failing_tool):
        registry = ToolRegistry()
        registry.register("flaky", failing_tool)

        with pytest.raises(RuntimeError, match="upstream unavailable"):
            await registry.invoke("flaky", {})

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow(params):
            await asyncio.sleep(1)

        registry = ToolRegistry()
        registry.register("slow", slow)

        with pytest.raises(asyncio.TimeoutError):
            await registry.invoke("slow", {}, timeout=0.01)
