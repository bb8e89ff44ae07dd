"""
Port interface for LLM text generation.

Services depend on this contract, never on a vendor SDK. The concrete
implementation is ModelRouter (assistant_core/providers/router.py), which
dispatches on the model name to the right provider.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from domain.models import LLMRequest, LLMResponse


@runtime_checkable
class LLMProviderPort(Protocol):
    """Abstract interface for chat-style LLM generation."""

    async def generate_text(self, request: LLMRequest) -> LLMResponse:
        """Run one chat completion.

        Args:
            request: Model name, ordered chat messages and sampling options.

        Returns:
            LLMResponse with the generated text and the provider that served it.

        Raises:
            UnknownModelError: If no provider is registered for the model name.
            ModelError: If the provider keeps failing after retries.
        """
        ...
