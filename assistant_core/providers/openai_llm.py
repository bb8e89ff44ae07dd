"""
OpenAI LLM provider implementation.
"""

from typing import List, Optional

from llama_index.llms.openai import OpenAI

from assistant_core.providers import LLMProviderBase, to_llama_messages
from domain.models import ChatMessage
from shared_utils.constants import LLMProvider


class OpenAILLMProvider(LLMProviderBase):
    """OpenAI chat provider (gpt-*, o1*, o3*)."""

    provider_name = LLMProvider.OPENAI.value

    def __init__(self, api_key: str):
        super().__init__(name="OpenAILLM")
        self.api_key = api_key
        self._ready = False

    def initialize(self) -> None:
        """Validate credentials. Clients are built per call with the requested sampling."""
        if not self.api_key:
            self.logger.error("openai_provider_init_failed", error="missing api key")
            raise ValueError("OPENAI_API_KEY not configured")
        self._ready = True
        self.logger.info("openai_provider_initialized")

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
            raise RuntimeError("OpenAI LLM provider not initialized")

        options = {"model": model, "api_key": self.api_key}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["max_tokens"] = max_tokens

        llm = OpenAI(**options)
        response = await llm.achat(to_llama_messages(messages))
        return response.message.content or ""
