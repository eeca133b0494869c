# examples/learning_demo.py
"""
Example demonstrating the ariacore learning loop end to end.

This script shows how to:
1. Configure logging so the agent's narration reaches the console.
2. Register mock tools (a flaky search, a reliable price feed, a broken news feed).
3. Run the agent for a few dozen iterations with a language model collaborator.
4. Record milestones with the ledger recorder and persist the learned state.

To run this example:
- Ensure you have ariacore installed (`pip install .` from the project root).
- With `ANTHROPIC_API_KEY` set, reflections, gradients, skills and insights
  come from Claude. Without it an offline stand-in model is used, which
  exercises the loop but never produces parseable lessons.
- Pass `--ledger` to record milestones against Solana devnet
  (falls back to simulated receipts when offline).
"""

import asyncio
import logging
import random
import sys

from ariacore import AgentConfig, ConfigError, Goal, LearningAgent, MilestoneRecorder, StateStore
from ariacore.logging_config import configure_logging
from ariacore.providers import create_llm_from_env

logger = logging.getLogger(__name__)

rng = random.Random(7)


# --- Mock tools ---

async def search(params):
    await asyncio.sleep(0.01)
    if rng.random() < 0.4:
        raise RuntimeError("search backend timed out")
    return {"results": [f"Result for {params.get('query')}"]}


async def prices(params):
    return {coin: round(rng.uniform(1, 100), 2) for coin in params.get("coins", [])}


async def news(params):
    raise ConnectionError("news feed unavailable")


async def offline_llm(prompt: str) -> str:
    """Stand-in model for running without an API key."""
    return "I would need more context to answer that."


async def main():
    """Runs the learning demo."""
    configure_logging(config={"console_enabled": True, "console_level": "INFO"})

    try:
        llm_call = create_llm_from_env()
        logger.info("Using Anthropic model for learning.")
    except ConfigError:
        llm_call = offline_llm
        logger.warning("ANTHROPIC_API_KEY not set; using offline stand-in model.")

    agent = LearningAgent(
        llm_call=llm_call,
        config=AgentConfig(name="demo", min_iteration_seconds=0.0, max_iterations=30),
        goals=[
            Goal(id="prices", description="Monitor Solana token prices", priority=8),
            Goal(id="news", description="Research Solana ecosystem news", priority=5),
        ],
    )
    agent.register_tool("search", search)
    agent.register_tool("prices", prices)
    agent.register_tool("news", news)

    if "--ledger" in sys.argv:
        agent.set_milestone_handler(MilestoneRecorder(agent_name="demo"))

    store = StateStore("~/.local/share/ariacore/demo.json")
    snapshot = await store.load()
    if snapshot:
        agent.import_state(snapshot)
        logger.info(f"Resumed from iteration {agent.iteration}")

    try:
        await agent.run(max_iterations=agent.iteration + 30)
    except KeyboardInterrupt:
        agent.stop()
    finally:
        await store.save(agent.export_state())
        logger.info(f"State saved to {store.path}")

    logger.info("--- Final metrics ---")
    for key, value in agent.get_metrics().items():
        logger.info(f"{key}: {value}")
    for strategy in agent.get_strategies():
        logger.info(f"{strategy.name}: success rate {strategy.success_rate:.2f} over {strategy.usage_count} uses")
    for milestone in agent.get_milestones():
        logger.info(f"Milestone: {milestone.description} (receipt: {milestone.receipt})")


if __name__ == "__main__":
    asyncio.run(main())
