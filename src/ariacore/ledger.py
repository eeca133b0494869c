# src/ariacore/ledger.py
"""
Milestone ledger collaborator.

The agent hands every milestone to a ``MilestoneLedger`` callable and
attaches the returned receipt.  Recording is best-effort: the agent logs
ledger failures and carries on.

:class:`MilestoneRecorder` talks to a Solana JSON-RPC endpoint.  It does
not settle anything on-chain: it confirms the endpoint is reachable by
fetching the latest blockhash and returns a ``demo_`` receipt derived from
it.  When the endpoint is unreachable it returns a ``sim_`` receipt, or
raises :class:`LedgerError` if ``simulate_on_failure`` is off.

Example:
    recorder = MilestoneRecorder()
    agent.set_milestone_handler(recorder)
    ...
    assert await recorder.verify(milestone.receipt)
"""

import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from .exceptions import LedgerError
from .models import Milestone

logger = logging.getLogger(__name__)

MilestoneLedger = Callable[[Milestone], Awaitable[str]]

DEFAULT_RPC_URL = "https://api.devnet.solana.com"
SIMULATED_PREFIXES = ("sim_", "demo_")


def _now_ms() -> int:
    return int(time.time() * 1000)


class MilestoneRecorder:
    """
    Records milestones against a JSON-RPC ledger endpoint.

    Args:
        rpc_url: JSON-RPC endpoint.
        agent_name: Embedded in the memo payload.
        timeout: Per-request timeout in seconds.
        simulate_on_failure: Return a ``sim_`` receipt instead of raising
            when the endpoint cannot be reached.
    """

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        agent_name: str = "aria",
        timeout: float = 10.0,
        simulate_on_failure: bool = True,
    ):
        self.rpc_url = rpc_url
        self.agent_name = agent_name
        self.timeout = timeout
        self.simulate_on_failure = simulate_on_failure

    async def __call__(self, milestone: Milestone) -> str:
        return await self.record(milestone)

    def build_memo(self, milestone: Milestone) -> str:
        """Memo payload describing the milestone."""
        data = milestone.to_dict()
        return json.dumps(
            {
                "type": data["type"],
                "description": data["description"],
                "metrics": data["metrics"],
                "timestamp": data["timestamp"],
                "agent": self.agent_name,
            }
        )

    async def record(self, milestone: Milestone) -> str:
        """
        Record ``milestone`` and return its receipt.

        Raises:
            LedgerError: If the endpoint fails and ``simulate_on_failure`` is off.
        """
        memo = self.build_memo(milestone)
        logger.info(f"Recording milestone: {milestone.description}")
        logger.debug(f"Milestone memo: {memo}")

        try:
            receipt = await self._fetch_demo_receipt()
            logger.info(f"Milestone recorded: {receipt}")
            return receipt
        except (aiohttp.ClientError, TimeoutError, ValueError, LedgerError) as e:
            if not self.simulate_on_failure:
                raise LedgerError(milestone.id, f"Ledger endpoint failed: {e}") from e
            logger.warning(f"Failed to record milestone {milestone.id}, using simulated receipt: {e}")
            return f"sim_{_now_ms()}_{milestone.id}"

    async def verify(self, receipt: str) -> bool:
        """Simulated receipts are always valid; anything else is looked up on the endpoint."""
        if receipt.startswith(SIMULATED_PREFIXES):
            return True

        try:
            result = await self._rpc("getTransaction", [receipt, {"encoding": "json"}])
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.warning(f"Could not verify receipt {receipt}: {e}")
            return False
        return result.get("result") is not None

    async def _fetch_demo_receipt(self) -> str:
        result = await self._rpc("getLatestBlockhash", [{"commitment": "finalized"}])
        blockhash = ((result.get("result") or {}).get("value") or {}).get("blockhash")
        if not blockhash:
            raise LedgerError("Unknown", "Could not get blockhash")
        return f"demo_{blockhash[:16]}_{_now_ms()}"

    async def _rpc(self, method: str, params: list) -> Dict[str, Any]:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        async with aiohttp.ClientSession() as session:
            async with session.post(
                self.rpc_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                resp.raise_for_status()
                return await resp.json()


def create_milestone_recorder(rpc_url: Optional[str] = None) -> MilestoneRecorder:
    """Recorder pointed at ``rpc_url`` or the public devnet endpoint."""
    return MilestoneRecorder(rpc_url=rpc_url or DEFAULT_RPC_URL)
