"""
Constants management.
Centralized configuration for all magic values, model IDs, thresholds and defaults.
"""

from enum import Enum
from typing import Dict, Final, FrozenSet


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


# Model IDs
class ModelIDs:
    """Centralized model identifiers, grouped by provider."""
    # OpenAI
    GPT_4O_MINI: Final[str] = "gpt-4o-mini"
    GPT_4O: Final[str] = "gpt-4o"
    GPT_5: Final[str] = "gpt-5"

    # Gemini
    GEMINI_FLASH: Final[str] = "gemini-2.0-flash"
    GEMINI_PRO: Final[str] = "gemini-1.5-pro"

    # Anthropic
    CLAUDE_SONNET: Final[str] = "claude-3-5-sonnet-latest"
    CLAUDE_HAIKU: Final[str] = "claude-3-5-haiku-latest"


# Model-name lookup table used by the router. Prefix families are the fallback.
MODEL_REGISTRY: Final[Dict[LLMProvider, FrozenSet[str]]] = {
    LLMProvider.OPENAI: frozenset({ModelIDs.GPT_4O_MINI, ModelIDs.GPT_4O, ModelIDs.GPT_5}),
    LLMProvider.GEMINI: frozenset({ModelIDs.GEMINI_FLASH, ModelIDs.GEMINI_PRO}),
    LLMProvider.ANTHROPIC: frozenset({ModelIDs.CLAUDE_SONNET, ModelIDs.CLAUDE_HAIKU}),
}

MODEL_PREFIXES: Final[Dict[str, LLMProvider]] = {
    "gpt-": LLMProvider.OPENAI,
    "o1": LLMProvider.OPENAI,
    "o3": LLMProvider.OPENAI,
    "gemini-": LLMProvider.GEMINI,
    "claude-": LLMProvider.ANTHROPIC,
}


class ModelAssignments:
    """Model used for each task type."""
    # Control plane
    INTENT_CLASSIFICATION: Final[str] = ModelIDs.GPT_4O_MINI
    CONTRACT_SELECTION: Final[str] = ModelIDs.GPT_4O_MINI
    LLM_INTERPRETATION: Final[str] = ModelIDs.GPT_4O_MINI

    # Retrieval and composition
    ARTIFACT_SEARCH: Final[str] = ModelIDs.GPT_4O_MINI
    RAG_COMPOSITION: Final[str] = ModelIDs.GPT_4O_MINI
    CUSTOMER_QUESTION_EXTRACTION: Final[str] = ModelIDs.GPT_4O
    ACTION_ITEM_EXTRACTION: Final[str] = ModelIDs.GPT_4O
    TRANSCRIPT_ANALYSIS: Final[str] = ModelIDs.GPT_4O

    # Response generation
    SINGLE_MEETING_RESPONSE: Final[str] = ModelIDs.GPT_4O
    MULTI_MEETING_SYNTHESIS: Final[str] = ModelIDs.GPT_4O
    PRODUCT_KNOWLEDGE_RESPONSE: Final[str] = ModelIDs.GPT_4O
    GENERAL_ASSISTANCE: Final[str] = ModelIDs.GPT_4O


class PromptIds:
    """Identifiers of versioned prompts, used as keys of the audit map."""
    INTENT_VALIDATION_PROMPT: Final[str] = "INTENT_VALIDATION_PROMPT"
    CONTRACT_SELECTION_PROMPT: Final[str] = "CONTRACT_SELECTION_PROMPT"
    AMBIGUOUS_QUERY_INTERPRETATION_PROMPT: Final[str] = "AMBIGUOUS_QUERY_INTERPRETATION_PROMPT"
    SEMANTIC_RANKING_PROMPT: Final[str] = "SEMANTIC_RANKING_PROMPT"
    RAG_MEETING_SUMMARY_SYSTEM_PROMPT: Final[str] = "RAG_MEETING_SUMMARY_SYSTEM_PROMPT"
    RAG_QUOTE_SELECTION_SYSTEM_PROMPT: Final[str] = "RAG_QUOTE_SELECTION_SYSTEM_PROMPT"
    RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT: Final[str] = "RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT"
    RAG_ACTION_ITEMS_SYSTEM_PROMPT: Final[str] = "RAG_ACTION_ITEMS_SYSTEM_PROMPT"
    CUSTOMER_QUESTIONS_EXTRACTION_PROMPT: Final[str] = "CUSTOMER_QUESTIONS_EXTRACTION_PROMPT"
    TRANSCRIPT_ANALYZER_SYSTEM_PROMPT: Final[str] = "TRANSCRIPT_ANALYZER_SYSTEM_PROMPT"
    DRAFTING_PROMPT: Final[str] = "DRAFTING_PROMPT"
    MULTI_MEETING_SYNTHESIS_PROMPT: Final[str] = "MULTI_MEETING_SYNTHESIS_PROMPT"
    PRODUCT_KNOWLEDGE_PROMPT: Final[str] = "PRODUCT_KNOWLEDGE_PROMPT"
    GENERAL_ASSISTANCE_PROMPT: Final[str] = "GENERAL_ASSISTANCE_PROMPT"


# Date-based versions (YYYY-MM-DD-NNN). Bump when the prompt text changes.
PROMPT_VERSIONS: Final[Dict[str, str]] = {
    PromptIds.INTENT_VALIDATION_PROMPT: "2026-02-17-001",
    PromptIds.CONTRACT_SELECTION_PROMPT: "2026-02-17-001",
    PromptIds.AMBIGUOUS_QUERY_INTERPRETATION_PROMPT: "2026-02-17-001",
    PromptIds.SEMANTIC_RANKING_PROMPT: "2026-02-17-001",
    PromptIds.RAG_MEETING_SUMMARY_SYSTEM_PROMPT: "2026-02-17-002",
    PromptIds.RAG_QUOTE_SELECTION_SYSTEM_PROMPT: "2026-02-17-001",
    PromptIds.RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT: "2026-02-17-001",
    PromptIds.RAG_ACTION_ITEMS_SYSTEM_PROMPT: "2026-02-17-001",
    PromptIds.CUSTOMER_QUESTIONS_EXTRACTION_PROMPT: "2026-02-17-001",
    PromptIds.TRANSCRIPT_ANALYZER_SYSTEM_PROMPT: "2026-02-17-001",
    PromptIds.DRAFTING_PROMPT: "2026-02-17-001",
    PromptIds.MULTI_MEETING_SYNTHESIS_PROMPT: "2026-02-17-001",
    PromptIds.PRODUCT_KNOWLEDGE_PROMPT: "2026-02-17-001",
    PromptIds.GENERAL_ASSISTANCE_PROMPT: "2026-02-17-001",
}


class Thresholds:
    """Decision thresholds shared by the control plane and composition engine."""
    REFUSE_CONFIDENCE: Final[float] = 0.95
    PATTERN_CONFIDENCE: Final[float] = 0.9
    MULTI_INTENT_CONFIDENCE: Final[float] = 0.9
    DOCUMENT_SEARCH_CONFIDENCE: Final[float] = 0.9
    GENERAL_HELP_CONFIDENCE: Final[float] = 0.85
    ENTITY_CONFIDENCE: Final[float] = 0.85
    LOW_CONFIDENCE_VALIDATION: Final[float] = 0.88
    VALIDATOR_FAIL_OPEN_CONFIDENCE: Final[float] = 0.5

    ACTION_ITEM_PRIMARY: Final[float] = 0.85
    ACTION_ITEM_SECONDARY: Final[float] = 0.70
    SPEAKER_ATTRIBUTION_RATIO: Final[float] = 0.70

    RELEVANCE_MIN_SCORE: Final[int] = 50
    PARTIAL_ANSWER_MIN_CONFIDENCE: Final[float] = 0.5
    CLARIFY_CONFIDENT: Final[float] = 0.8


# Default values
class Defaults:
    """Defaults for caches, retries and retrieval limits."""
    COMPANY_CACHE_TTL_SECONDS: Final[float] = 300.0
    DEDUPE_CAPACITY: Final[int] = 500
    DEDUPE_TTL_SECONDS: Final[float] = 3600.0
    MAX_RETRIES: Final[int] = 3
    BACKOFF_SECONDS: Final[float] = 0.5
    LOG_LEVEL: Final[str] = "INFO"
    AWS_REGION: Final[str] = "eu-west-2"
    MAX_QUESTION_LENGTH: Final[int] = 2000
    CHUNK_FETCH_LIMIT: Final[int] = 100
    DRAFT_CHUNK_LIMIT: Final[int] = 50
    MAX_QUOTES: Final[int] = 5
    MAX_ALTERNATIVES: Final[int] = 3
    MAX_LISTED_QUESTIONS: Final[int] = 15
    MULTI_MEETING_LIMIT: Final[int] = 10
    LOG_PREVIEW_CHARS: Final[int] = 200


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    PROVIDER = "provider"
    ADAPTER = "adapter"
    CONTROL_PLANE = "control_plane"
    INTERPRETATION = "interpretation"
    COMPOSITION = "composition"
    RETRIEVAL = "retrieval"
    EXECUTION = "execution"
    DEDUPE = "dedupe"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    HEALTH = "/health"
    ASK = "/api/v1/ask"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_CONFIG = "INVALID_CONFIG"
    MODEL_NOT_AVAILABLE = "MODEL_NOT_AVAILABLE"
    UNKNOWN_MODEL = "UNKNOWN_MODEL"
    PARSING_FAILED = "PARSING_FAILED"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    CLASSIFICATION_FAILED = "CLASSIFICATION_FAILED"
    INVALID_CONTRACT_CHAIN = "INVALID_CONTRACT_CHAIN"
    EVIDENCE_UNAVAILABLE = "EVIDENCE_UNAVAILABLE"
    INVALID_INPUT = "INVALID_INPUT"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"


# User-facing texts shared by several handlers
class Messages:
    """Fixed user-facing responses."""
    UNCERTAINTY_RESPONSE: Final[str] = (
        "I don't see this explicitly mentioned in the meeting.\n"
        "If you say \"yes\", I'll share a brief meeting summary."
    )
    NOT_MENTIONED: Final[str] = "This wasn't mentioned in the meeting."
    INSUFFICIENT_EVIDENCE: Final[str] = (
        "I couldn't find enough evidence to answer that reliably. "
        "Could you rephrase the question or point me to a specific meeting?"
    )
    REFUSE_RESPONSE: Final[str] = (
        "I can only help with questions about our meetings, our product, "
        "and related sales work. That request is outside what I can answer."
    )
    FALLBACK_CLARIFY_MESSAGE: Final[str] = (
        "I want to make sure I help with the right thing. Could you tell me a bit "
        "more about what you need? For example, a specific meeting, a product "
        "question, or a draft you want written."
    )
    AUTHORITY_NOT_MET: Final[str] = (
        "I can't provide authoritative product information without verified product "
        "documentation. For accurate details about features, pricing, or integrations, "
        "please check the product knowledge base or contact the product team."
    )
    CHAIN_TOO_LONG: Final[str] = (
        "Your request seems to combine multiple distinct tasks. "
        "Could you break it into separate questions?"
    )
    AUTHORITY_ESCALATION: Final[str] = (
        "Your question combines meeting-specific information with product knowledge. "
        "Please ask these as separate questions."
    )
    SPLIT_REQUEST: Final[str] = (
        "It looks like you're asking for more than one thing. "
        "Which should I start with: the meeting content, or the other request?"
    )
    MEETING_NOT_RESOLVED: Final[str] = (
        "Which meeting are you asking about? Tell me the company or the date and I'll look it up."
    )
    DOCUMENTS_UNAVAILABLE: Final[str] = (
        "I couldn't find a matching document. Document search isn't connected to this assistant yet."
    )
    SCOPE_NOT_AVAILABLE: Final[str] = (
        "I can't look that up for this kind of question. Try asking about a specific meeting "
        "or about the product directly."
    )
    NO_TRANSCRIPT_CONTENT: Final[str] = (
        "I found the meeting, but there's no transcript content I can work from."
    )
    NO_ACTION_ITEMS: Final[str] = "No clear action items were identified in this meeting."
    NO_CUSTOMER_QUESTIONS: Final[str] = "I didn't find any questions from the customer in this meeting."
