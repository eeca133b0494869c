# src/ariacore/providers/__init__.py
"""
Language-model collaborators for ariacore.

Any ``async (prompt) -> str`` callable satisfies the ``LLMCall`` contract;
:class:`AnthropicLLM` is the bundled implementation.
"""

from .anthropic_provider import AnthropicLLM, create_llm_from_env
from .base import BaseLLM, LLMCall

__all__ = [
    "AnthropicLLM",
    "BaseLLM",
    "LLMCall",
    "create_llm_from_env",
]
