"""
Factory for creating configured provider instances.
Handles provider instantiation and credential checks.
"""

from typing import Optional

from assistant_core.providers import LLMProviderBase
from assistant_core.providers.anthropic_llm import AnthropicLLMProvider
from assistant_core.providers.gemini_llm import GeminiLLMProvider
from assistant_core.providers.openai_llm import OpenAILLMProvider
from shared_utils.config_loader import Settings, get_settings
from shared_utils.constants import LLMProvider, LogScope
from shared_utils.error_handler import ConfigurationError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.CONFIG)


class LLMProviderFactory:
    """Factory for creating LLM providers."""

    @staticmethod
    def create(provider: LLMProvider, settings: Optional[Settings] = None) -> LLMProviderBase:
        """Create and initialize the provider for a vendor.

        Args:
            provider: Vendor to create.
            settings: Optional settings override. If None, uses get_settings().

        Returns:
            Initialized LLM provider.

        Raises:
            ConfigurationError: If the vendor's API key is missing.
        """
        settings = settings or get_settings()
        logger.info("creating_llm_provider", provider=provider.value)

        if provider == LLMProvider.OPENAI:
            instance: LLMProviderBase = OpenAILLMProvider(api_key=settings.openai_api_key or "")
        elif provider == LLMProvider.GEMINI:
            instance = GeminiLLMProvider(api_key=settings.gemini_api_key or "")
        elif provider == LLMProvider.ANTHROPIC:
            instance = AnthropicLLMProvider(api_key=settings.anthropic_api_key or "")
        else:
            raise ConfigurationError(f"Unknown LLM provider: {provider}")

        try:
            instance.initialize()
        except ValueError as e:
            logger.error("llm_provider_create_failed", provider=provider.value, error=str(e))
            raise ConfigurationError(str(e), context={"provider": provider.value}) from e

        return instance
