"""
Gemini LLM provider implementation.

System messages are passed through llama-index, which maps them to Gemini's
system instruction.
"""

from typing import List, Optional

from llama_index.llms.google_genai import GoogleGenAI

from assistant_core.providers import LLMProviderBase, to_llama_messages
from domain.models import ChatMessage
from shared_utils.constants import LLMProvider


class GeminiLLMProvider(LLMProviderBase):
    """Google Gemini chat provider (gemini-*)."""

    provider_name = LLMProvider.GEMINI.value

    def __init__(self, api_key: str):
        super().__init__(name="GeminiLLM")
        self.api_key = api_key
        self._ready = False

    def initialize(self) -> None:
        if not self.api_key:
            self.logger.error("gemini_provider_init_failed", error="missing api key")
            raise ValueError("GEMINI_API_KEY not configured")
        self._ready = True
        self.logger.info("gemini_provider_initialized")

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
            raise RuntimeError("Gemini LLM provider not initialized")

        options = {"model": model, "api_key": self.api_key}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["max_tokens"] = max_tokens

        llm = GoogleGenAI(**options)
        response = await llm.achat(to_llama_messages(messages))
        return response.message.content or ""
