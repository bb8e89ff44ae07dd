"""
Anthropic LLM provider implementation.
"""

from typing import List, Optional

from llama_index.llms.anthropic import Anthropic

from assistant_core.providers import LLMProviderBase, to_llama_messages
from domain.models import ChatMessage
from shared_utils.constants import LLMProvider


# Anthropic requires max_tokens on every request.
_DEFAULT_MAX_TOKENS = 4096


class AnthropicLLMProvider(LLMProviderBase):
    """Anthropic Claude chat provider (claude-*)."""

    provider_name = LLMProvider.ANTHROPIC.value

    def __init__(self, api_key: str):
        super().__init__(name="AnthropicLLM")
        self.api_key = api_key
        self._ready = False

    def initialize(self) -> None:
        if not self.api_key:
            self.logger.error("anthropic_provider_init_failed", error="missing api key")
            raise ValueError("ANTHROPIC_API_KEY not configured")
        self._ready = True
        self.logger.info("anthropic_provider_initialized")

    def is_available(self) -> bool:
        return self._ready

    async def chat(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        if not self.is_available():
            raise RuntimeError("Anthropic LLM provider not initialized")

        options = {
            "model": model,
            "api_key": self.api_key,
            "max_tokens": max_tokens or _DEFAULT_MAX_TOKENS,
        }
        if temperature is not None:
            options["temperature"] = temperature

        llm = Anthropic(**options)
        response = await llm.achat(to_llama_messages(messages))
        return response.message.content or ""
