# src/ariacore/providers/base.py
"""
Abstract base for language-model collaborators.

The learning components only depend on the ``LLMCall`` contract: an async
callable mapping a prompt string to a response string.  Providers
subclass :class:`BaseLLM` and are themselves usable as an ``LLMCall``
(calling the instance goes through the retrying path).
"""

import abc
from typing import Awaitable, Callable

# Contract consumed by every learning component.
LLMCall = Callable[[str], Awaitable[str]]


class BaseLLM(abc.ABC):
    """Abstract base class for language-model collaborators."""

    @abc.abstractmethod
    def get_name(self) -> str:
        """Returns the provider name used in error messages and logs."""
        raise NotImplementedError

    @abc.abstractmethod
    async def call(self, prompt: str) -> str:
        """Sends a single prompt and returns the response text. No retries."""
        raise NotImplementedError

    @abc.abstractmethod
    async def call_with_retry(self, prompt: str) -> str:
        """Like :meth:`call`, but retries transient failures."""
        raise NotImplementedError

    async def __call__(self, prompt: str) -> str:
        return await self.call_with_retry(prompt)
