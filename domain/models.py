"""
Pure domain models for the sales assistant.

These models carry no storage or vendor types. They represent the control
plane decisions (intent, layers, contracts) and the evidence artifacts that
flow through ports and services.

Models parsed from LLM output accept the camelCase keys of the JSON schemas
the prompts request (``wasFound``, ``qaPairs``, ``posSystem`` ...) and ignore
extra keys, so a slightly off-schema reply degrades to defaults.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from shared_utils.constants import PROMPT_VERSIONS


# ---------------------------------------------------------------------------
# Control plane enums
# ---------------------------------------------------------------------------


class Intent(str, Enum):
    """Coarse purpose of a question, fixed for one request."""

    SINGLE_MEETING = "SINGLE_MEETING"
    MULTI_MEETING = "MULTI_MEETING"
    PRODUCT_KNOWLEDGE = "PRODUCT_KNOWLEDGE"
    EXTERNAL_RESEARCH = "EXTERNAL_RESEARCH"
    DOCUMENT_SEARCH = "DOCUMENT_SEARCH"
    GENERAL_HELP = "GENERAL_HELP"
    REFUSE = "REFUSE"
    CLARIFY = "CLARIFY"


EXECUTABLE_INTENTS = frozenset(
    {
        Intent.SINGLE_MEETING,
        Intent.MULTI_MEETING,
        Intent.PRODUCT_KNOWLEDGE,
        Intent.EXTERNAL_RESEARCH,
        Intent.DOCUMENT_SEARCH,
        Intent.GENERAL_HELP,
    }
)


class SSOTMode(str, Enum):
    """Authority level of a contract."""

    NONE = "none"
    DESCRIPTIVE = "descriptive"
    AUTHORITATIVE = "authoritative"


class ResponseFormat(str, Enum):
    TEXT = "text"
    LIST = "list"
    STRUCTURED = "structured"


class EmptyResultBehavior(str, Enum):
    CLARIFY = "clarify"
    REFUSE = "refuse"
    NOT_FOUND = "not_found"


class TaskPhase(str, Enum):
    """Execution phase used to order contracts inside a chain."""

    EXTRACTION = "extraction"
    ANALYSIS = "analysis"
    DRAFTING = "drafting"


class AnswerContract(str, Enum):
    """Task-shaped response contracts."""

    # Single meeting extraction
    MEETING_SUMMARY = "MEETING_SUMMARY"
    NEXT_STEPS = "NEXT_STEPS"
    ATTENDEES = "ATTENDEES"
    CUSTOMER_QUESTIONS = "CUSTOMER_QUESTIONS"
    EXTRACTIVE_FACT = "EXTRACTIVE_FACT"
    AGGREGATIVE_LIST = "AGGREGATIVE_LIST"

    # Multi meeting analysis
    PATTERN_ANALYSIS = "PATTERN_ANALYSIS"
    COMPARISON = "COMPARISON"
    TREND_SUMMARY = "TREND_SUMMARY"
    CROSS_MEETING_QUESTIONS = "CROSS_MEETING_QUESTIONS"

    # Product knowledge
    PRODUCT_EXPLANATION = "PRODUCT_EXPLANATION"
    FEATURE_VERIFICATION = "FEATURE_VERIFICATION"
    FAQ_ANSWER = "FAQ_ANSWER"
    VALUE_PROPOSITION = "VALUE_PROPOSITION"
    PRODUCT_KNOWLEDGE = "PRODUCT_KNOWLEDGE"
    PRODUCT_INFO = "PRODUCT_INFO"

    # Drafting
    DRAFT_RESPONSE = "DRAFT_RESPONSE"
    DRAFT_EMAIL = "DRAFT_EMAIL"

    # Research
    EXTERNAL_RESEARCH = "EXTERNAL_RESEARCH"
    SALES_DOCS_PREP = "SALES_DOCS_PREP"

    # General and terminal
    GENERAL_RESPONSE = "GENERAL_RESPONSE"
    NOT_FOUND = "NOT_FOUND"
    REFUSE = "REFUSE"
    CLARIFY = "CLARIFY"


class ContractConstraints(BaseModel):
    """Fixed response policy attached to a contract."""

    model_config = ConfigDict(frozen=True)

    ssot_mode: SSOTMode
    requires_evidence: bool
    allows_summary: bool
    requires_citation: bool
    response_format: ResponseFormat
    empty_result_behavior: Optional[EmptyResultBehavior] = None
    min_evidence_threshold: Optional[int] = None


class ContextLayers(BaseModel):
    """Data scopes a request may consult, derived solely from its intent."""

    model_config = ConfigDict(frozen=True)

    product_identity: bool = True
    product_ssot: bool = False
    single_meeting: bool = False
    multi_meeting: bool = False
    document_context: bool = False


class ContextLayerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    layers: ContextLayers
    reason: str
    intent: Intent


class ContractChain(BaseModel):
    """Ordered, non-empty sequence of contracts for one intent and scope."""

    model_config = ConfigDict(frozen=True)

    contracts: List[AnswerContract] = Field(min_length=1)
    primary_contract: AnswerContract
    selection_method: str = "keyword"
    clarify_reason: Optional[str] = None


class ContractSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    contract: AnswerContract
    method: str
    constraints: ContractConstraints


class ChainBuildScope(BaseModel):
    """Resolved scope used while building a chain."""

    type: str = "none"  # single_meeting | multi_meeting | none
    meeting_id: Optional[str] = None
    meeting_ids: List[str] = Field(default_factory=list)
    company_name: Optional[str] = None
    topic: Optional[str] = None


# ---------------------------------------------------------------------------
# Classification results
# ---------------------------------------------------------------------------


class ProposedInterpretation(BaseModel):
    intent: Intent
    contracts: List[AnswerContract]
    summary: str


class InterpretationAlternative(BaseModel):
    intent: Intent
    contract: AnswerContract
    description: str


class ClarifyWithInterpretation(BaseModel):
    """Non-executing proposal produced for ambiguous questions."""

    outcome: Intent = Intent.CLARIFY
    proposed_interpretation: ProposedInterpretation
    alternatives: List[InterpretationAlternative] = Field(default_factory=list)
    message: str
    can_partial_answer: bool = False
    partial_answer: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("outcome")
    @classmethod
    def _always_clarify(cls, v: Intent) -> Intent:
        if v != Intent.CLARIFY:
            raise ValueError("interpretation outcome is always CLARIFY")
        return v


class IntentClassification(BaseModel):
    """Result of classifying one question. Frozen for the lifetime of the request."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    method: str
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str
    decision_metadata: Dict[str, Any] = Field(default_factory=dict)
    needs_split: bool = False
    split_options: List[str] = Field(default_factory=list)
    single_intent_violation: bool = False
    matched_signals: List[str] = Field(default_factory=list)
    rejected_intents: List[Intent] = Field(default_factory=list)
    interpretation: Optional[ClarifyWithInterpretation] = None


class ThreadMessage(BaseModel):
    """Earlier turn of the conversation the question belongs to."""

    model_config = ConfigDict(populate_by_name=True)

    text: str
    is_bot: bool = Field(default=False, alias="isBot")


class LowConfidenceValidation(BaseModel):
    confirmed: bool
    suggested_intent: Optional[Intent] = None
    confidence: float = 0.5
    reason: str = ""


# ---------------------------------------------------------------------------
# Evidence views (read-only, owned by storage)
# ---------------------------------------------------------------------------


class SpeakerRole(str, Enum):
    LEVEREGE = "leverege"
    CUSTOMER = "customer"
    UNKNOWN = "unknown"


class TranscriptChunk(BaseModel):
    """Ordered unit of a transcript; the source of truth for extractive claims."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int
    speaker_role: SpeakerRole = SpeakerRole.UNKNOWN
    speaker_name: Optional[str] = None
    text: str


class TranscriptRecord(BaseModel):
    """Transcript metadata as stored by the retrieval collaborator."""

    id: str
    company_name: str
    meeting_date: Optional[str] = None  # ISO 8601
    content_type: str = "transcript"  # transcript | notes
    leverage_team: Optional[str] = None  # comma separated
    customer_names: Optional[str] = None  # comma separated
    main_takeaways: Optional[str] = None
    next_steps: Optional[str] = None


class QAPair(BaseModel):
    question_text: str
    asked_by_name: Optional[str] = None
    answer_evidence: Optional[str] = None
    status: str = "OPEN"


class SnippetMatch(BaseModel):
    chunk: TranscriptChunk
    match_type: str  # semantic | both | keyword | proper_noun
    score: Optional[float] = None


# ---------------------------------------------------------------------------
# Composition artifacts
# ---------------------------------------------------------------------------


class ActionType(str, Enum):
    COMMITMENT = "commitment"
    REQUEST = "request"
    BLOCKER = "blocker"
    PLAN = "plan"
    SCHEDULING = "scheduling"


class MeetingActionItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: str
    owner: str = "Unassigned"
    type: ActionType = ActionType.COMMITMENT
    deadline: str = "Not specified"
    evidence: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_primary: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> Any:
        if isinstance(v, str) and v.lower() in {t.value for t in ActionType}:
            return v.lower()
        return ActionType.COMMITMENT if v is None or isinstance(v, str) else v

    @field_validator("owner", "deadline", "evidence", mode="before")
    @classmethod
    def _null_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return cls.model_fields[info.field_name].default
        return v


class ActionExtractionResult(BaseModel):
    primary: List[MeetingActionItem] = Field(default_factory=list)
    secondary: List[MeetingActionItem] = Field(default_factory=list)


class SelectedQuote(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    chunk_index: int = Field(alias="chunkIndex")
    speaker_role: SpeakerRole = Field(default=SpeakerRole.CUSTOMER, alias="speakerRole")
    quote: str
    reason: str = ""


class QuoteSelectionResult(BaseModel):
    quotes: List[SelectedQuote] = Field(default_factory=list)
    quote_notice: Optional[str] = None


class MeetingSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = ""
    purpose: str = ""
    focus_areas: List[str] = Field(default_factory=list, alias="focusAreas")
    key_takeaways: List[str] = Field(default_factory=list, alias="keyTakeaways")
    risks_or_open_questions: List[str] = Field(default_factory=list, alias="risksOrOpenQuestions")
    recommended_next_steps: List[str] = Field(default_factory=list, alias="recommendedNextSteps")


class ExtractiveAnswer(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    answer: str = ""
    evidence: Optional[str] = None
    was_found: bool = Field(default=False, alias="wasFound")


class CustomerQuestion(BaseModel):
    """Item of the ``{questions: [...]}`` extraction schema."""

    model_config = ConfigDict(extra="ignore")

    question_text: str
    asked_by_name: str = "Unknown"
    question_turn_index: int = -1
    status: str = "OPEN"  # ANSWERED | OPEN | DEFERRED
    answer_evidence: Optional[str] = None
    answered_by_name: Optional[str] = None
    requires_context: bool = False
    context_before: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, v: Any) -> str:
        value = str(v or "OPEN").upper()
        return value if value in {"ANSWERED", "OPEN", "DEFERRED"} else "OPEN"


class CustomerQuestionsExtraction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    questions: List[CustomerQuestion] = Field(default_factory=list)


class ProductInsight(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    feature: str
    context: str = ""
    quote: str = ""
    category_id: Optional[str] = Field(default=None, alias="categoryId")


class AnalyzedQAPair(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question: str
    answer: str = ""
    asker: str = ""
    category_id: Optional[str] = Field(default=None, alias="categoryId")


class POSSystem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    website_link: Optional[str] = Field(default=None, alias="websiteLink")
    description: Optional[str] = None


class TranscriptAnalysis(BaseModel):
    """``{insights, qaPairs, posSystem}`` schema."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    insights: List[ProductInsight] = Field(default_factory=list)
    qa_pairs: List[AnalyzedQAPair] = Field(default_factory=list, alias="qaPairs")
    pos_system: Optional[POSSystem] = Field(default=None, alias="posSystem")


class RelevanceRanking(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int
    score: float = 0.0
    reason: str = "Matched topic"


class RelevanceRankings(BaseModel):
    """``{rankings: [{index, score, reason}]}`` schema."""

    model_config = ConfigDict(extra="ignore")

    rankings: List[RelevanceRanking] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# LLM transport
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    role: str  # system | user | assistant
    content: str


class LLMRequest(BaseModel):
    model: str
    messages: List[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class LLMResponse(BaseModel):
    text: str
    provider: str
    model: str


# ---------------------------------------------------------------------------
# Audit and presentation
# ---------------------------------------------------------------------------


class PromptUsageRecord(BaseModel):
    """Prompt identifiers and versions consumed while producing one response."""

    versions: Dict[str, str] = Field(default_factory=dict)

    def record(self, prompt_id: str) -> None:
        self.versions[prompt_id] = PROMPT_VERSIONS[prompt_id]

    def merge(self, other: "PromptUsageRecord") -> None:
        self.versions.update(other.versions)

    def as_dict(self) -> Optional[Dict[str, str]]:
        return dict(self.versions) if self.versions else None


class AssistantResponse(BaseModel):
    """Response handed to the presentation layer."""

    model_config = ConfigDict(populate_by_name=True)

    answer: str
    intent: Intent
    data_source: str = Field(alias="dataSource")
    evidence: Optional[str] = None
    confidence: Optional[float] = None
    prompt_versions: Optional[Dict[str, str]] = Field(default=None, alias="promptVersions")
    contract: Optional[AnswerContract] = None
    contracts: List[AnswerContract] = Field(default_factory=list)
