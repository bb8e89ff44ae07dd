"""
Abstract base classes for swappable LLM providers.
Enables dependency injection and per-vendor implementations behind one router.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from llama_index.core.llms import ChatMessage as LlamaChatMessage
from llama_index.core.llms import MessageRole

from domain.models import ChatMessage
from shared_utils.constants import LogScope
from shared_utils.logging_utils import ContextualLogger


_ROLES = {
    "system": MessageRole.SYSTEM,
    "user": MessageRole.USER,
    "assistant": MessageRole.ASSISTANT,
}


def to_llama_messages(messages: List[ChatMessage]) -> List[LlamaChatMessage]:
    """Convert domain chat messages to llama-index chat messages."""
    return [
        LlamaChatMessage(role=_ROLES.get(m.role, MessageRole.USER), content=m.content)
        for m in messages
    ]


class BaseProvider(ABC):
    """Base class for all providers."""

    def __init__(self, name: str):
        self.name = name
        self.logger = ContextualLogger(scope=LogScope.PROVIDER)

    @abstractmethod
    def initialize(self) -> None:
        """Initialize provider. Called after instantiation."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is available and credentials are present."""
        pass


class LLMProviderBase(BaseProvider):
    """Abstract base for chat LLM providers."""

    provider_name: str = ""

    @abstractmethod
    async def chat(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Run one chat completion and return the assistant text."""
        pass
