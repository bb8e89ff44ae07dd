"""
Model-name based routing across LLM vendors.

Every LLM call in the assistant goes through ModelRouter.generate_text. The
vendor is resolved from the model name (registry first, then family prefix)
before any network call, so a typo in a model assignment fails immediately
with UnknownModelError instead of hitting the wrong API.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Optional

from assistant_core.providers import LLMProviderBase
from domain.models import LLMRequest, LLMResponse
from shared_utils.constants import (
    MODEL_PREFIXES,
    MODEL_REGISTRY,
    Defaults,
    LLMProvider,
    LogScope,
)
from shared_utils.error_handler import AppException, ModelError, UnknownModelError
from shared_utils.logging_utils import ContextualLogger
from shared_utils.retry import with_retry


logger = ContextualLogger(scope=LogScope.PROVIDER)

ProviderFactory = Callable[[LLMProvider], LLMProviderBase]


def detect_provider(model: str) -> LLMProvider:
    """Resolve the vendor serving *model*.

    Raises:
        UnknownModelError: If the name is neither registered nor in a known family.
    """
    for provider, models in MODEL_REGISTRY.items():
        if model in models:
            return provider

    for prefix, provider in MODEL_PREFIXES.items():
        if model.startswith(prefix):
            return provider

    raise UnknownModelError(model)


class ModelRouter:
    """LLMProviderPort implementation dispatching on the model name."""

    def __init__(
        self,
        *,
        provider_factory: ProviderFactory,
        max_retries: int = Defaults.MAX_RETRIES,
        backoff_seconds: float = Defaults.BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._provider_factory = provider_factory
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._providers: Dict[LLMProvider, LLMProviderBase] = {}

    def _get_provider(self, provider: LLMProvider) -> LLMProviderBase:
        if provider not in self._providers:
            self._providers[provider] = self._provider_factory(provider)
        return self._providers[provider]

    async def generate_text(self, request: LLMRequest) -> LLMResponse:
        provider_type = detect_provider(request.model)
        provider = self._get_provider(provider_type)

        logger.debug(
            "llm_request_started",
            provider=provider_type.value,
            model=request.model,
            message_count=len(request.messages),
        )

        async def _call() -> str:
            return await provider.chat(
                model=request.model,
                messages=request.messages,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )

        try:
            text = await with_retry(
                _call,
                retries=self._max_retries,
                backoff_seconds=self._backoff_seconds,
                sleep=self._sleep,
            )
        except AppException:
            raise
        except Exception as e:
            logger.error(
                "llm_request_failed",
                provider=provider_type.value,
                model=request.model,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise ModelError(
                f"{provider_type.value} request failed: {e}",
                context={"model": request.model, "provider": provider_type.value},
            ) from e

        logger.info(
            "llm_request_completed",
            provider=provider_type.value,
            model=request.model,
            response_chars=len(text),
        )
        return LLMResponse(text=text, provider=provider_type.value, model=request.model)


def build_model_router(
    settings=None, sleep: Optional[Callable[[float], Awaitable[None]]] = None
) -> ModelRouter:
    """Create a ModelRouter wired to the provider factory and settings."""
    from assistant_core.providers.factory import LLMProviderFactory
    from shared_utils.config_loader import get_settings

    settings = settings or get_settings()
    return ModelRouter(
        provider_factory=lambda provider: LLMProviderFactory.create(provider, settings),
        max_retries=settings.llm_max_retries,
        backoff_seconds=settings.llm_backoff_seconds,
        sleep=sleep or asyncio.sleep,
    )
