# tests/core/test_ledger.py
"""
Tests for the milestone ledger recorder.

The JSON-RPC transport (``MilestoneRecorder._rpc``) is patched; no network access.
"""

import json
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from ariacore.exceptions import LedgerError
from ariacore.ledger import DEFAULT_RPC_URL, MilestoneRecorder, create_milestone_recorder
from ariacore.models import Milestone, MilestoneType


@pytest.fixture
def milestone():
    return Milestone(
        type=MilestoneType.SUCCESS_RATE_IMPROVED,
        description="Success rate improved by 20.0%",
        before=0.4,
        after=0.6,
    )


BLOCKHASH_REPLY = {"jsonrpc": "2.0", "id": 1, "result": {"value": {"blockhash": "4sGjMW1sUnHzSxGspuhpqLDx6wiyjNtZ"}}}


class TestRecord:
    """Tests for MilestoneRecorder.record."""

    @pytest.mark.asyncio
    async def test_demo_receipt_from_blockhash(self, milestone):
        recorder = MilestoneRecorder()
        with patch.object(MilestoneRecorder, "_rpc", AsyncMock(return_value=BLOCKHASH_REPLY)) as rpc:
            receipt = await recorder(milestone)

        assert receipt.startswith("demo_4sGjMW1sUnHzSxGs_")
        assert rpc.await_args.args[0] == "getLatestBlockhash"

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_simulates(self, milestone):
        recorder = MilestoneRecorder()
        failure = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        with patch.object(MilestoneRecorder, "_rpc", failure):
            receipt = await recorder.record(milestone)

        assert receipt.startswith("sim_")
        assert receipt.endswith(milestone.id)

    @pytest.mark.asyncio
    async def test_missing_blockhash_simulates(self, milestone):
        recorder = MilestoneRecorder()
        with patch.object(MilestoneRecorder, "_rpc", AsyncMock(return_value={"result": None})):
            receipt = await recorder.record(milestone)

        assert receipt.startswith("sim_")

    @pytest.mark.asyncio
    async def test_strict_mode_raises(self, milestone):
        recorder = MilestoneRecorder(simulate_on_failure=False)
        failure = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        with patch.object(MilestoneRecorder, "_rpc", failure):
            with pytest.raises(LedgerError):
                await recorder.record(milestone)

    def test_memo_payload(self, milestone):
        memo = json.loads(MilestoneRecorder(agent_name="scout").build_memo(milestone))

        assert memo["type"] == "success_rate_improved"
        assert memo["metrics"] == {"before": 0.4, "after": 0.6}
        assert memo["agent"] == "scout"


class TestVerify:
    """Tests for MilestoneRecorder.verify."""

    @pytest.mark.asyncio
    async def test_simulated_receipts_valid_without_lookup(self):
        recorder = MilestoneRecorder()
        with patch.object(MilestoneRecorder, "_rpc", AsyncMock()) as rpc:
            assert await recorder.verify("sim_1_milestone_x") is True
            assert await recorder.verify("demo_abc_1") is True
        rpc.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_real_signature_looked_up(self):
        recorder = MilestoneRecorder()
        with patch.object(MilestoneRecorder, "_rpc", AsyncMock(return_value={"result": {"slot": 1}})):
            assert await recorder.verify("5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb") is True
        with patch.object(MilestoneRecorder, "_rpc", AsyncMock(return_value={"result": None})):
            assert await recorder.verify("5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb") is False

    @pytest.mark.asyncio
    async def test_lookup_failure_is_false(self):
        recorder = MilestoneRecorder()
        with patch.object(MilestoneRecorder, "_rpc", AsyncMock(side_effect=aiohttp.ClientError("boom"))):
            assert await recorder.verify("sig") is False


def test_factory_defaults_to_devnet():
    assert create_milestone_recorder().rpc_url == DEFAULT_RPC_URL
    assert create_milestone_recorder("http://localhost:8899").rpc_url == "http://localhost:8899"
