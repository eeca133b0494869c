# src/ariacore/providers/anthropic_provider.py
"""
Anthropic API language-model collaborator.

Wraps the official 'anthropic' Python SDK. Each call sends a single user
message and returns the first text block of the reply. Retries are done
here (exponential backoff, ``base_delay * 2**attempt``), so the SDK's own
retry loop is disabled.
"""

import asyncio
import logging
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from ..config import LLMConfig
from ..exceptions import AuthenticationError, ConfigError, ProviderError
from .base import BaseLLM, LLMCall

logger = logging.getLogger(__name__)


class AnthropicLLM(BaseLLM):
    """
    Language-model collaborator backed by Claude.

    Authentication and permission failures are raised immediately as
    :class:`AuthenticationError`; every other failure is retried up to
    ``config.max_retries`` attempts and then raised as :class:`ProviderError`.
    """

    def __init__(self, config: Optional[LLMConfig] = None, client: Optional[AsyncAnthropic] = None):
        self.config = config or LLMConfig()

        if client is not None:
            self._client = client
            return

        if not self.config.api_key:
            raise ConfigError(
                "Anthropic API key not found in config or environment variable ANTHROPIC_API_KEY."
            )

        try:
            self._client = AsyncAnthropic(
                api_key=self.config.api_key,
                timeout=self.config.timeout,
                max_retries=0,
            )
            logger.debug("AsyncAnthropic client initialized.")
        except Exception as e:
            logger.error(f"Failed to initialize Anthropic client: {e}", exc_info=True)
            raise ConfigError(f"Anthropic client initialization failed: {e}")

    def get_name(self) -> str:
        return "anthropic"

    async def call(self, prompt: str) -> str:
        try:
            response = await self._client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise AuthenticationError(self.get_name(), f"API rejected credentials: {e}")
        except anthropic.AnthropicError as e:
            raise ProviderError(self.get_name(), f"API error: {e}")

        if response.content and getattr(response.content[0], "type", None) == "text":
            return response.content[0].text

        raise ProviderError(self.get_name(), "Unexpected response format (no text block).")

    async def call_with_retry(self, prompt: str) -> str:
        last_error: Optional[ProviderError] = None

        for attempt in range(self.config.max_retries):
            try:
                return await self.call(prompt)
            except AuthenticationError:
                raise
            except ProviderError as e:
                last_error = e
                if attempt < self.config.max_retries - 1:
                    delay = self.config.base_delay * (2 ** attempt)
                    logger.warning(
                        f"LLM call failed (attempt {attempt + 1}/{self.config.max_retries}): {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    await asyncio.sleep(delay)

        raise last_error or ProviderError(self.get_name(), "Failed after retries.")


def create_llm_from_env(model: Optional[str] = None) -> LLMCall:
    """
    Build a retrying ``LLMCall`` from ``ANTHROPIC_API_KEY``.

    Raises:
        ConfigError: If the environment variable is not set.
    """
    config = LLMConfig(model=model) if model else LLMConfig()
    if not config.api_key:
        raise ConfigError("ANTHROPIC_API_KEY environment variable not set.")
    return AnthropicLLM(config).call_with_retry
