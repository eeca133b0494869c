# src/ariacore/tools.py
"""
Tool registry for ariacore agents.

Maps tool names to asynchronous capabilities.  A capability takes a
parameter dictionary and returns any result, raising a descriptive
exception on failure.  The registry is owned by a single agent instance;
there is no module-level registry.

The registry does not retry.  A tool failure reaches the caller
unchanged and the agent records it as a failed action.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .exceptions import ToolNotFoundError

logger = logging.getLogger(__name__)

ToolCapability = Callable[[Dict[str, Any]], Awaitable[Any]]


class ToolRegistry:
    """
    Holds the tools available to one agent.

    Registration order is preserved; it determines the order of candidate
    actions and the fallback tool for strategy steps.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, ToolCapability] = {}

    def register(self, name: str, capability: ToolCapability) -> None:
        """
        Register a tool. Re-registering a name replaces the previous capability.

        Args:
            name: Tool name used in actions and skill steps.
            capability: Async callable mapping parameters to a result.
        """
        if name in self._tools:
            logger.warning(f"Tool '{name}' already registered; replacing it")
        self._tools[name] = capability
        logger.debug(f"Tool registered: {name}")

    def unregister(self, name: str) -> bool:
        """Remove a tool. Returns False if it was not registered."""
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Optional[ToolCapability]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        """Registered tool names in registration order."""
        return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(
        self,
        name: str,
        params: Dict[str, Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Invoke a registered tool.

        Args:
            name: Tool name.
            params: Parameters passed to the capability.
            timeout: Optional timeout in seconds; ``asyncio.TimeoutError``
                propagates like any other tool failure.

        Returns:
            Whatever the capability returns.

        Raises:
            ToolNotFoundError: If ``name`` is not registered.
            Exception: Any failure raised by the capability, unchanged.
        """
        capability = self._tools.get(name)
        if capability is None:
            raise ToolNotFoundError(name)

        if timeout is not None:
            return await asyncio.wait_for(capability(params), timeout=timeout)
        return await capability(params)
