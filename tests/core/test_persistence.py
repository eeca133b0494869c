# tests/core/test_persistence.py
"""
Tests for the JSON snapshot store.
"""

import pytest

from ariacore.agent import LearningAgent
from ariacore.exceptions import PersistenceError
from ariacore.models import Goal
from ariacore.persistence import StateStore


class TestStateStore:
    """Tests for StateStore save / load / delete."""

    @pytest.mark.asyncio
    async def test_missing_file_loads_none(self, tmp_path):
        store = StateStore(str(tmp_path / "state.json"))
        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_save_creates_directories(self, tmp_path):
        store = StateStore(str(tmp_path / "nested" / "dir" / "state.json"))

        await store.save({"iteration": 3})

        assert store.path.exists()
        assert not store.path.with_suffix(".json.tmp").exists()
        assert await store.load() == {"iteration": 3}

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            await StateStore(str(path)).load()

    @pytest.mark.asyncio
    async def test_non_object_raises(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(PersistenceError):
            await StateStore(str(path)).load()

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        store = StateStore(str(tmp_path / "state.json"))
        await store.save({"a": 1})

        await store.delete()
        await store.delete()

        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_agent_snapshot_round_trip(self, tmp_path, plain_text_llm, fast_config, succeeding_tool):
        agent = LearningAgent(
            llm_call=plain_text_llm,
            config=fast_config,
            goals=[Goal(id="g1", description="research token prices")],
        )
        agent.register_tool("search", succeeding_tool)
        await agent.run(max_iterations=3)
        store = StateStore(str(tmp_path / "agent.json"))

        await store.save(agent.export_state())
        restored = LearningAgent(llm_call=plain_text_llm, config=fast_config)
        restored.import_state(await store.load())

        assert restored.get_metrics() == agent.get_metrics()
        assert restored.goals[0].id == "g1"
