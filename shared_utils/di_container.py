"""
Dependency injection container for managing application dependencies.
Centralizes adapter and service creation and their lifecycle.
"""

from typing import Optional
import logging

from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope


logger = logging.getLogger(__name__)


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None

    # adapter singletons
    _llm_provider: Optional[object] = None
    _clock: Optional[object] = None
    _transcript_store: Optional[object] = None
    _company_directory: Optional[object] = None
    _product_knowledge: Optional[object] = None
    _dedupe_store: Optional[object] = None

    # service singletons
    _event_deduplicator: Optional[object] = None
    _interpretation_service: Optional[object] = None
    _intent_service: Optional[object] = None
    _contract_service: Optional[object] = None
    _composer: Optional[object] = None
    _search_service: Optional[object] = None
    _contract_executor: Optional[object] = None
    _assistant_service: Optional[object] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        self._llm_provider = None
        self._clock = None
        self._transcript_store = None
        self._company_directory = None
        self._product_knowledge = None
        self._dedupe_store = None
        self._event_deduplicator = None
        self._interpretation_service = None
        self._intent_service = None
        self._contract_service = None
        self._composer = None
        self._search_service = None
        self._contract_executor = None
        self._assistant_service = None

    # ------------------------------------------------------------------
    # Adapters
    # ------------------------------------------------------------------

    def get_llm_provider(self):
        """Get or create the model router (lazy singleton).

        Raises:
            RuntimeError: If router initialization fails.
        """
        if self._llm_provider is None:
            logger.info(
                "Initializing model router",
                extra={"scope": LogScope.CONFIG}
            )
            try:
                from assistant_core.providers.router import build_model_router
                self._llm_provider = build_model_router(get_settings())
            except Exception as e:
                logger.error(
                    "Failed to initialize model router",
                    extra={"scope": LogScope.CONFIG, "error": str(e)}
                )
                raise RuntimeError(f"Model router initialization failed: {e}") from e

        return self._llm_provider

    def get_clock(self):
        if self._clock is None:
            from adapters.system_clock import SystemClock
            self._clock = SystemClock()
        return self._clock

    def get_transcript_store(self):
        """Get or create the transcript store (lazy singleton).

        Seeds from TRANSCRIPT_DATA_PATH when set, otherwise starts empty.
        """
        if self._transcript_store is None:
            from adapters.in_memory_transcript_store import InMemoryTranscriptStore

            settings = get_settings()
            if settings.transcript_data_path:
                self._transcript_store = InMemoryTranscriptStore.from_json_file(
                    settings.transcript_data_path
                )
            else:
                self._transcript_store = InMemoryTranscriptStore()
            logger.info("Initialized InMemoryTranscriptStore")
        return self._transcript_store

    def get_company_directory(self):
        """Get or create the TTL-cached company directory backed by the transcript store."""
        if self._company_directory is None:
            from adapters.cached_company_directory import CachedCompanyDirectory

            settings = get_settings()
            self._company_directory = CachedCompanyDirectory(
                source=self.get_transcript_store(),
                clock=self.get_clock(),
                ttl_seconds=settings.company_cache_ttl_seconds,
            )
            logger.info("Initialized CachedCompanyDirectory")
        return self._company_directory

    def get_product_knowledge(self):
        if self._product_knowledge is None:
            from adapters.json_product_knowledge import JsonProductKnowledgeAdapter

            self._product_knowledge = JsonProductKnowledgeAdapter(
                path=get_settings().product_knowledge_path
            )
            logger.info("Initialized JsonProductKnowledgeAdapter")
        return self._product_knowledge

    def get_dedupe_store(self):
        """Get or create the DynamoDB dedupe store; None when DEDUPE_TABLE_NAME is empty."""
        if self._dedupe_store is None:
            settings = get_settings()
            if not settings.dedupe_table_name:
                return None
            from adapters.dynamo_dedupe_store import DynamoDedupeStoreAdapter

            self._dedupe_store = DynamoDedupeStoreAdapter(
                table_name=settings.dedupe_table_name,
                region=settings.aws_region,
                endpoint_url=settings.aws_endpoint_url,
            )
            logger.info("Initialized DynamoDedupeStoreAdapter")
        return self._dedupe_store

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def get_event_deduplicator(self):
        if self._event_deduplicator is None:
            from services.event_deduplicator import EventDeduplicator

            self._event_deduplicator = EventDeduplicator(
                clock=self.get_clock(),
                store=self.get_dedupe_store(),
            )
        return self._event_deduplicator

    def get_interpretation_service(self):
        if self._interpretation_service is None:
            from services.interpretation_service import InterpretationService

            self._interpretation_service = InterpretationService(
                llm_provider=self.get_llm_provider(),
            )
        return self._interpretation_service

    def get_intent_service(self):
        if self._intent_service is None:
            from services.intent_service import IntentService

            self._intent_service = IntentService(
                company_directory=self.get_company_directory(),
                interpretation_service=self.get_interpretation_service(),
            )
        return self._intent_service

    def get_contract_service(self):
        if self._contract_service is None:
            from services.contract_service import ContractService

            self._contract_service = ContractService(llm_provider=self.get_llm_provider())
        return self._contract_service

    def get_composer(self):
        if self._composer is None:
            from services.composition_service import EvidenceComposer

            self._composer = EvidenceComposer(llm_provider=self.get_llm_provider())
        return self._composer

    def get_search_service(self):
        if self._search_service is None:
            from services.transcript_search_service import TranscriptSearchService

            self._search_service = TranscriptSearchService(composer=self.get_composer())
        return self._search_service

    def get_contract_executor(self):
        if self._contract_executor is None:
            from services.contract_executor import ContractExecutor

            self._contract_executor = ContractExecutor(
                transcript_store=self.get_transcript_store(),
                product_knowledge=self.get_product_knowledge(),
                composer=self.get_composer(),
                search_service=self.get_search_service(),
                llm_provider=self.get_llm_provider(),
            )
        return self._contract_executor

    def get_assistant_service(self):
        """Get or create the AssistantService (lazy singleton)."""
        if self._assistant_service is None:
            from services.assistant_service import AssistantService

            self._assistant_service = AssistantService(
                intent_service=self.get_intent_service(),
                contract_service=self.get_contract_service(),
                executor=self.get_contract_executor(),
                transcript_store=self.get_transcript_store(),
            )
            logger.info("Initialized AssistantService")
        return self._assistant_service


def get_di_container() -> DIContainer:
    """Get singleton DI container instance."""
    return DIContainer()
