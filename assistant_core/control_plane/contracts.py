"""
Answer contract tables, chain planners and chain validation.

A contract fixes the response shape and authority level of one task. A chain
is the ordered list of contracts executed for one request; every contract in
a chain shares the request's intent and scope. Chains are planned here,
never improvised by the LLM.

Authority rule: a chain may not mix extractive contracts (ssot_mode none)
with authoritative ones. Extractive to descriptive is allowed.
"""

import re
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from domain.models import (
    AnswerContract,
    ChainBuildScope,
    ContractChain,
    ContractConstraints,
    EmptyResultBehavior,
    Intent,
    ResponseFormat,
    SSOTMode,
    TaskPhase,
)
from shared_utils.constants import LogScope, Messages
from shared_utils.error_handler import ContractChainError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.CONTROL_PLANE)

_MAX_CHAIN_LENGTH = 3


def _constraints(
    mode: SSOTMode,
    *,
    evidence: bool,
    summary: bool,
    citation: bool,
    fmt: ResponseFormat = ResponseFormat.TEXT,
    empty: Optional[EmptyResultBehavior] = EmptyResultBehavior.NOT_FOUND,
    min_evidence: Optional[int] = None,
) -> ContractConstraints:
    return ContractConstraints(
        ssot_mode=mode,
        requires_evidence=evidence,
        allows_summary=summary,
        requires_citation=citation,
        response_format=fmt,
        empty_result_behavior=empty,
        min_evidence_threshold=min_evidence,
    )


_NONE = SSOTMode.NONE
_DESC = SSOTMode.DESCRIPTIVE
_AUTH = SSOTMode.AUTHORITATIVE
_LIST = ResponseFormat.LIST
_STRUCT = ResponseFormat.STRUCTURED
_CLARIFY = EmptyResultBehavior.CLARIFY
_REFUSE = EmptyResultBehavior.REFUSE

# ---------------------------------------------------------------------------
# Constraint table
# ---------------------------------------------------------------------------

CONTRACT_CONSTRAINTS: Dict[AnswerContract, ContractConstraints] = {
    # Single meeting, extractive
    AnswerContract.MEETING_SUMMARY: _constraints(_NONE, evidence=False, summary=True, citation=False, empty=_CLARIFY),
    AnswerContract.NEXT_STEPS: _constraints(_NONE, evidence=True, summary=False, citation=True, fmt=_LIST),
    AnswerContract.ATTENDEES: _constraints(_NONE, evidence=False, summary=False, citation=False, fmt=_LIST),
    AnswerContract.CUSTOMER_QUESTIONS: _constraints(_NONE, evidence=True, summary=False, citation=True, fmt=_LIST),
    AnswerContract.EXTRACTIVE_FACT: _constraints(
        _NONE, evidence=True, summary=False, citation=True, empty=_CLARIFY, min_evidence=1
    ),
    AnswerContract.AGGREGATIVE_LIST: _constraints(_NONE, evidence=True, summary=False, citation=False, fmt=_LIST),
    # Multi meeting, extractive
    AnswerContract.PATTERN_ANALYSIS: _constraints(
        _NONE, evidence=True, summary=True, citation=True, empty=_CLARIFY, min_evidence=2
    ),
    AnswerContract.COMPARISON: _constraints(
        _NONE, evidence=True, summary=False, citation=True, fmt=_STRUCT, empty=_CLARIFY, min_evidence=2
    ),
    AnswerContract.TREND_SUMMARY: _constraints(
        _NONE, evidence=True, summary=True, citation=True, empty=_CLARIFY, min_evidence=3
    ),
    AnswerContract.CROSS_MEETING_QUESTIONS: _constraints(_NONE, evidence=True, summary=False, citation=True, fmt=_LIST),
    # Descriptive
    AnswerContract.PRODUCT_EXPLANATION: _constraints(_DESC, evidence=False, summary=True, citation=False),
    AnswerContract.VALUE_PROPOSITION: _constraints(_DESC, evidence=False, summary=True, citation=False),
    AnswerContract.DRAFT_RESPONSE: _constraints(_DESC, evidence=False, summary=True, citation=False),
    AnswerContract.DRAFT_EMAIL: _constraints(_DESC, evidence=False, summary=True, citation=False),
    AnswerContract.PRODUCT_INFO: _constraints(_DESC, evidence=False, summary=True, citation=False),
    AnswerContract.EXTERNAL_RESEARCH: _constraints(_DESC, evidence=False, summary=True, citation=False, empty=_CLARIFY),
    AnswerContract.SALES_DOCS_PREP: _constraints(
        _DESC, evidence=False, summary=True, citation=False, fmt=_STRUCT, empty=_CLARIFY
    ),
    # Authoritative
    AnswerContract.FEATURE_VERIFICATION: _constraints(
        _AUTH, evidence=True, summary=False, citation=True, empty=_REFUSE, min_evidence=1
    ),
    AnswerContract.FAQ_ANSWER: _constraints(_AUTH, evidence=True, summary=False, citation=False, empty=_CLARIFY),
    AnswerContract.PRODUCT_KNOWLEDGE: _constraints(_AUTH, evidence=False, summary=True, citation=True),
    # General and terminal
    AnswerContract.GENERAL_RESPONSE: _constraints(_NONE, evidence=False, summary=True, citation=False),
    AnswerContract.NOT_FOUND: _constraints(_NONE, evidence=False, summary=False, citation=False),
    AnswerContract.REFUSE: _constraints(_NONE, evidence=False, summary=False, citation=False, empty=_REFUSE),
    AnswerContract.CLARIFY: _constraints(_NONE, evidence=False, summary=False, citation=False, empty=_CLARIFY),
}

# ---------------------------------------------------------------------------
# Execution phases
# ---------------------------------------------------------------------------

_EXTRACTION = TaskPhase.EXTRACTION
_ANALYSIS = TaskPhase.ANALYSIS
_DRAFTING = TaskPhase.DRAFTING

CONTRACT_PHASES: Dict[AnswerContract, TaskPhase] = {
    AnswerContract.MEETING_SUMMARY: _EXTRACTION,
    AnswerContract.NEXT_STEPS: _EXTRACTION,
    AnswerContract.ATTENDEES: _EXTRACTION,
    AnswerContract.CUSTOMER_QUESTIONS: _EXTRACTION,
    AnswerContract.EXTRACTIVE_FACT: _EXTRACTION,
    AnswerContract.AGGREGATIVE_LIST: _EXTRACTION,
    AnswerContract.CROSS_MEETING_QUESTIONS: _EXTRACTION,
    AnswerContract.PRODUCT_KNOWLEDGE: _EXTRACTION,
    AnswerContract.PATTERN_ANALYSIS: _ANALYSIS,
    AnswerContract.COMPARISON: _ANALYSIS,
    AnswerContract.TREND_SUMMARY: _ANALYSIS,
    AnswerContract.EXTERNAL_RESEARCH: _ANALYSIS,
    AnswerContract.SALES_DOCS_PREP: _ANALYSIS,
    AnswerContract.PRODUCT_EXPLANATION: _DRAFTING,
    AnswerContract.VALUE_PROPOSITION: _DRAFTING,
    AnswerContract.DRAFT_RESPONSE: _DRAFTING,
    AnswerContract.DRAFT_EMAIL: _DRAFTING,
    AnswerContract.FEATURE_VERIFICATION: _DRAFTING,
    AnswerContract.FAQ_ANSWER: _DRAFTING,
    AnswerContract.PRODUCT_INFO: _DRAFTING,
    AnswerContract.GENERAL_RESPONSE: _DRAFTING,
    AnswerContract.NOT_FOUND: _DRAFTING,
    AnswerContract.REFUSE: _DRAFTING,
    AnswerContract.CLARIFY: _DRAFTING,
}

PHASE_ORDER: Dict[TaskPhase, int] = {
    TaskPhase.EXTRACTION: 1,
    TaskPhase.ANALYSIS: 2,
    TaskPhase.DRAFTING: 3,
}

_unmapped = [c.value for c in AnswerContract if c not in CONTRACT_CONSTRAINTS or c not in CONTRACT_PHASES]
if _unmapped:
    raise RuntimeError(f"Contracts missing constraints or phase: {_unmapped}")


# ---------------------------------------------------------------------------
# Contracts each intent may execute
# ---------------------------------------------------------------------------

ALLOWED_CONTRACTS: Dict[Intent, Tuple[AnswerContract, ...]] = {
    Intent.SINGLE_MEETING: (
        AnswerContract.MEETING_SUMMARY,
        AnswerContract.NEXT_STEPS,
        AnswerContract.ATTENDEES,
        AnswerContract.CUSTOMER_QUESTIONS,
        AnswerContract.EXTRACTIVE_FACT,
        AnswerContract.AGGREGATIVE_LIST,
        AnswerContract.DRAFT_RESPONSE,
        AnswerContract.DRAFT_EMAIL,
        AnswerContract.NOT_FOUND,
    ),
    Intent.MULTI_MEETING: (
        AnswerContract.PATTERN_ANALYSIS,
        AnswerContract.COMPARISON,
        AnswerContract.TREND_SUMMARY,
        AnswerContract.CROSS_MEETING_QUESTIONS,
        AnswerContract.AGGREGATIVE_LIST,
        AnswerContract.DRAFT_RESPONSE,
    ),
    Intent.PRODUCT_KNOWLEDGE: (
        AnswerContract.PRODUCT_EXPLANATION,
        AnswerContract.FEATURE_VERIFICATION,
        AnswerContract.FAQ_ANSWER,
        AnswerContract.VALUE_PROPOSITION,
        AnswerContract.PRODUCT_KNOWLEDGE,
        AnswerContract.PRODUCT_INFO,
        AnswerContract.DRAFT_RESPONSE,
        AnswerContract.DRAFT_EMAIL,
    ),
    Intent.EXTERNAL_RESEARCH: (
        AnswerContract.EXTERNAL_RESEARCH,
        AnswerContract.SALES_DOCS_PREP,
        AnswerContract.VALUE_PROPOSITION,
        AnswerContract.PRODUCT_KNOWLEDGE,
    ),
    Intent.DOCUMENT_SEARCH: (
        AnswerContract.NOT_FOUND,
        AnswerContract.GENERAL_RESPONSE,
    ),
    Intent.GENERAL_HELP: (
        AnswerContract.GENERAL_RESPONSE,
        AnswerContract.DRAFT_EMAIL,
        AnswerContract.DRAFT_RESPONSE,
    ),
    Intent.REFUSE: (AnswerContract.REFUSE,),
    Intent.CLARIFY: (AnswerContract.CLARIFY,),
}


# ---------------------------------------------------------------------------
# Keyword tables (ordered; first hit wins)
# ---------------------------------------------------------------------------

SINGLE_MEETING_CONTRACT_KEYWORDS: List[Tuple[str, AnswerContract]] = [
    # Drafting before the generic "follow up"
    ("follow up email", AnswerContract.DRAFT_EMAIL),
    ("follow-up email", AnswerContract.DRAFT_EMAIL),
    ("prepare a follow up", AnswerContract.DRAFT_EMAIL),
    ("prepare a follow-up", AnswerContract.DRAFT_EMAIL),
    ("draft an email", AnswerContract.DRAFT_EMAIL),
    ("write an email", AnswerContract.DRAFT_EMAIL),
    ("prepare an email", AnswerContract.DRAFT_EMAIL),
    ("thank you email", AnswerContract.DRAFT_EMAIL),
    ("thank-you email", AnswerContract.DRAFT_EMAIL),
    ("thanks email", AnswerContract.DRAFT_EMAIL),
    ("write a thank you", AnswerContract.DRAFT_EMAIL),
    ("write thank you", AnswerContract.DRAFT_EMAIL),
    ("help me answer", AnswerContract.DRAFT_RESPONSE),
    ("draft a response", AnswerContract.DRAFT_RESPONSE),
    ("respond to", AnswerContract.DRAFT_RESPONSE),
    # Summary
    ("summary", AnswerContract.MEETING_SUMMARY),
    ("summarize", AnswerContract.MEETING_SUMMARY),
    ("overview", AnswerContract.MEETING_SUMMARY),
    # Action items
    ("action items", AnswerContract.NEXT_STEPS),
    ("actions items", AnswerContract.NEXT_STEPS),
    ("action item", AnswerContract.NEXT_STEPS),
    ("next steps", AnswerContract.NEXT_STEPS),
    ("next step", AnswerContract.NEXT_STEPS),
    ("commitments", AnswerContract.NEXT_STEPS),
    ("commitment", AnswerContract.NEXT_STEPS),
    ("follow up", AnswerContract.NEXT_STEPS),
    ("follow-up", AnswerContract.NEXT_STEPS),
    ("followup", AnswerContract.NEXT_STEPS),
    ("to-do", AnswerContract.NEXT_STEPS),
    ("todo", AnswerContract.NEXT_STEPS),
    # Attendees
    ("attendees", AnswerContract.ATTENDEES),
    ("who was on", AnswerContract.ATTENDEES),
    ("who attended", AnswerContract.ATTENDEES),
    ("participants", AnswerContract.ATTENDEES),
    # Customer questions
    ("customer questions", AnswerContract.CUSTOMER_QUESTIONS),
    ("what did they ask", AnswerContract.CUSTOMER_QUESTIONS),
    ("questions asked", AnswerContract.CUSTOMER_QUESTIONS),
    ("what questions", AnswerContract.CUSTOMER_QUESTIONS),
]

PRODUCT_KNOWLEDGE_CONTRACT_KEYWORDS: List[Tuple[str, AnswerContract]] = [
    ("how does pitcrew work", AnswerContract.PRODUCT_EXPLANATION),
    ("what is pitcrew", AnswerContract.PRODUCT_EXPLANATION),
    ("explain pitcrew", AnswerContract.PRODUCT_EXPLANATION),
    ("tell me about pitcrew", AnswerContract.PRODUCT_EXPLANATION),
    ("does it support", AnswerContract.FEATURE_VERIFICATION),
    ("does pitcrew support", AnswerContract.FEATURE_VERIFICATION),
    ("can pitcrew", AnswerContract.FEATURE_VERIFICATION),
    ("does pitcrew integrate", AnswerContract.FEATURE_VERIFICATION),
    ("integrate with", AnswerContract.FEATURE_VERIFICATION),
    ("how much", AnswerContract.FAQ_ANSWER),
    ("pricing", AnswerContract.FAQ_ANSWER),
    ("cost", AnswerContract.FAQ_ANSWER),
    ("what tier", AnswerContract.FAQ_ANSWER),
    ("pro tier", AnswerContract.FAQ_ANSWER),
    ("advanced tier", AnswerContract.FAQ_ANSWER),
    ("enterprise tier", AnswerContract.FAQ_ANSWER),
    ("value prop", AnswerContract.VALUE_PROPOSITION),
    ("why pitcrew", AnswerContract.VALUE_PROPOSITION),
    ("benefits of", AnswerContract.VALUE_PROPOSITION),
]

GENERAL_CONTRACT_KEYWORDS: List[Tuple[str, AnswerContract]] = [
    ("draft an email", AnswerContract.DRAFT_EMAIL),
    ("write an email", AnswerContract.DRAFT_EMAIL),
    ("compose an email", AnswerContract.DRAFT_EMAIL),
    ("email template", AnswerContract.DRAFT_EMAIL),
    ("help me write", AnswerContract.DRAFT_EMAIL),
    ("follow up email", AnswerContract.DRAFT_EMAIL),
    ("follow-up email", AnswerContract.DRAFT_EMAIL),
    ("prepare an email", AnswerContract.DRAFT_EMAIL),
    ("prepare a follow up", AnswerContract.DRAFT_EMAIL),
    ("prepare a follow-up", AnswerContract.DRAFT_EMAIL),
    ("thank you email", AnswerContract.DRAFT_EMAIL),
    ("thank-you email", AnswerContract.DRAFT_EMAIL),
    ("thanks email", AnswerContract.DRAFT_EMAIL),
    ("write a thank you", AnswerContract.DRAFT_EMAIL),
    ("write thank you", AnswerContract.DRAFT_EMAIL),
    ("help me answer", AnswerContract.DRAFT_RESPONSE),
    ("draft a response", AnswerContract.DRAFT_RESPONSE),
]

# Task inference inside a fixed intent, not intent classification.
MULTI_MEETING_CONTRACT_KEYWORDS: List[Tuple[str, AnswerContract]] = [
    ("pattern", AnswerContract.PATTERN_ANALYSIS),
    ("patterns", AnswerContract.PATTERN_ANALYSIS),
    ("recurring", AnswerContract.PATTERN_ANALYSIS),
    ("common theme", AnswerContract.PATTERN_ANALYSIS),
    ("frequently", AnswerContract.PATTERN_ANALYSIS),
    ("often", AnswerContract.PATTERN_ANALYSIS),
    ("always come up", AnswerContract.PATTERN_ANALYSIS),
    ("keeps coming up", AnswerContract.PATTERN_ANALYSIS),
    ("compare", AnswerContract.COMPARISON),
    ("difference", AnswerContract.COMPARISON),
    ("differences", AnswerContract.COMPARISON),
    ("differ", AnswerContract.COMPARISON),
    ("contrast", AnswerContract.COMPARISON),
    ("versus", AnswerContract.COMPARISON),
    ("vs", AnswerContract.COMPARISON),
    ("between meetings", AnswerContract.COMPARISON),
    ("trend", AnswerContract.TREND_SUMMARY),
    ("trends", AnswerContract.TREND_SUMMARY),
    ("over time", AnswerContract.TREND_SUMMARY),
    ("changing", AnswerContract.TREND_SUMMARY),
    ("evolving", AnswerContract.TREND_SUMMARY),
    ("growing", AnswerContract.TREND_SUMMARY),
    ("declining", AnswerContract.TREND_SUMMARY),
    ("progression", AnswerContract.TREND_SUMMARY),
    ("questions across", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("common questions", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("what are customers asking", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("frequently asked", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("most asked", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("objections", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("concerns", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("issues", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("problems", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("feedback", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("worries", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("hesitations", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("reservations", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("pain points", AnswerContract.CROSS_MEETING_QUESTIONS),
    ("challenges", AnswerContract.CROSS_MEETING_QUESTIONS),
]

CONTRACT_REFUSE_PATTERNS = [
    re.compile(r"\b(weather|forecast|temperature)\b", re.IGNORECASE),
    re.compile(r"\b(home address|personal address|private address)\b", re.IGNORECASE),
    re.compile(r"\b(stock price|stock market|invest)\b", re.IGNORECASE),
    re.compile(r"\b(revenue|profit|how much money)\s+(will|would|can|could)\b", re.IGNORECASE),
    re.compile(r"\b(what's the time|current time|what time is it)\b", re.IGNORECASE),
]


def _contains(lower: str, keyword: str) -> bool:
    """Phrase match anchored at a word start ("vs" must not hit "devs")."""
    return re.search(r"\b" + re.escape(keyword), lower) is not None


def _first_keyword_hit(
    question: str, table: Sequence[Tuple[str, AnswerContract]]
) -> Optional[AnswerContract]:
    lower = question.lower()
    for keyword, contract in table:
        if _contains(lower, keyword):
            return contract
    return None


def should_refuse(question: str) -> bool:
    return any(p.search(question) for p in CONTRACT_REFUSE_PATTERNS)


def get_contract_constraints(contract: AnswerContract) -> ContractConstraints:
    return CONTRACT_CONSTRAINTS[contract]


def is_allowed_for_intent(contract: AnswerContract, intent: Intent) -> bool:
    return contract in ALLOWED_CONTRACTS.get(intent, ())


def select_contract_by_keyword(
    question: str, intent: Intent
) -> Optional[Tuple[AnswerContract, str]]:
    """Deterministic contract selection.

    Returns:
        (contract, method) with method ``keyword`` or ``default``, or None
        when the intent has no deterministic default and no keyword hit.
    """
    if should_refuse(question):
        return AnswerContract.REFUSE, "keyword"

    if intent == Intent.SINGLE_MEETING:
        hit = _first_keyword_hit(question, SINGLE_MEETING_CONTRACT_KEYWORDS)
        return (hit, "keyword") if hit else (AnswerContract.EXTRACTIVE_FACT, "default")

    if intent == Intent.MULTI_MEETING:
        hit = _first_keyword_hit(question, MULTI_MEETING_CONTRACT_KEYWORDS)
        return (hit, "keyword") if hit else (AnswerContract.PATTERN_ANALYSIS, "default")

    if intent == Intent.PRODUCT_KNOWLEDGE:
        hit = _first_keyword_hit(question, PRODUCT_KNOWLEDGE_CONTRACT_KEYWORDS)
        return (hit, "keyword") if hit else None

    if intent == Intent.EXTERNAL_RESEARCH:
        lower = question.lower()
        if "slide" in lower or "deck" in lower or "pitch" in lower:
            return AnswerContract.SALES_DOCS_PREP, "keyword"
        if "value prop" in lower:
            return AnswerContract.VALUE_PROPOSITION, "keyword"
        return AnswerContract.EXTERNAL_RESEARCH, "default"

    if intent == Intent.GENERAL_HELP:
        hit = _first_keyword_hit(question, GENERAL_CONTRACT_KEYWORDS)
        return (hit, "keyword") if hit else (AnswerContract.GENERAL_RESPONSE, "default")

    if intent == Intent.REFUSE:
        return AnswerContract.REFUSE, "default"

    if intent == Intent.CLARIFY:
        return AnswerContract.CLARIFY, "default"

    return None


# ---------------------------------------------------------------------------
# Chain validation
# ---------------------------------------------------------------------------


class ChainValidationResult(BaseModel):
    valid: bool
    reason: Optional[str] = None
    should_clarify: bool = False


def validate_contract_chain(contracts: Sequence[AnswerContract]) -> ChainValidationResult:
    """Check chain length and the authority rule."""
    if len(contracts) > _MAX_CHAIN_LENGTH:
        logger.warning("contract_chain_too_long", length=len(contracts))
        return ChainValidationResult(valid=False, reason=Messages.CHAIN_TOO_LONG, should_clarify=True)

    modes = {CONTRACT_CONSTRAINTS[c].ssot_mode for c in contracts}
    if SSOTMode.NONE in modes and SSOTMode.AUTHORITATIVE in modes:
        logger.warning(
            "contract_chain_authority_escalation",
            contracts=[c.value for c in contracts],
        )
        return ChainValidationResult(valid=False, reason=Messages.AUTHORITY_ESCALATION, should_clarify=True)

    return ChainValidationResult(valid=True)


def make_contract_chain(
    contracts: Sequence[AnswerContract],
    selection_method: str = "keyword",
    primary_contract: Optional[AnswerContract] = None,
) -> ContractChain:
    """Build a ContractChain, rejecting chains that break the authority rule.

    Raises:
        ContractChainError: If the chain is empty, too long, or mixes
            extractive and authoritative contracts.
    """
    if not contracts:
        raise ContractChainError("A contract chain needs at least one contract")

    validation = validate_contract_chain(contracts)
    if not validation.valid:
        raise ContractChainError(
            validation.reason or "Invalid contract chain",
            context={"contracts": [c.value for c in contracts]},
        )

    return ContractChain(
        contracts=list(contracts),
        primary_contract=primary_contract or contracts[0],
        selection_method=selection_method,
    )


def clarify_chain(reason: str) -> ContractChain:
    return ContractChain(
        contracts=[AnswerContract.CLARIFY],
        primary_contract=AnswerContract.CLARIFY,
        selection_method="validation_failure",
        clarify_reason=reason,
    )


def chain_or_clarify(
    contracts: Sequence[AnswerContract], selection_method: str
) -> ContractChain:
    """Validate *contracts*; an invalid chain becomes a CLARIFY chain with the reason."""
    validation = validate_contract_chain(contracts)
    if not validation.valid:
        return clarify_chain(validation.reason or Messages.FALLBACK_CLARIFY_MESSAGE)
    return make_contract_chain(contracts, selection_method)


# ---------------------------------------------------------------------------
# Explicit chain planners
# ---------------------------------------------------------------------------

_HELP_ANSWER = re.compile(r"help\s+(me\s+)?(answer|respond|reply)", re.IGNORECASE)
_QUESTION_WORDS = re.compile(r"questions?|concerns|objections", re.IGNORECASE)
_QUESTIONS_AND_PATTERNS = re.compile(
    r"questions?\s+(and|with)\s+(pattern|theme|recurring)|pattern.*questions?|recurring.*questions?",
    re.IGNORECASE,
)
_COMPARE_OVER_TIME = re.compile(
    r"compare.*over time|comparison.*trend|differences?\s+and\s+trend|how\s+(have|has|did).*differ.*over time",
    re.IGNORECASE,
)
_TREND_WORDS = re.compile(r"trend|over time|changing|evolving|growing|declining|progression", re.IGNORECASE)
_ASKED_WORDS = re.compile(r"questions?|asked|concerns|objections", re.IGNORECASE)
_COMPARE_WORDS = re.compile(r"compare|difference|differ|contrast|versus|\bvs\b", re.IGNORECASE)


def select_single_meeting_contract_chain(question: str) -> Optional[ContractChain]:
    """Chain for "help me answer their questions"; None when no chain applies."""
    if _HELP_ANSWER.search(question) and _QUESTION_WORDS.search(question):
        return make_contract_chain(
            [AnswerContract.CUSTOMER_QUESTIONS, AnswerContract.DRAFT_RESPONSE]
        )
    return None


def select_multi_meeting_contract_chain(question: str) -> ContractChain:
    """Pick the chain for a cross-meeting question.

    Two-step chains need explicit compound language ("questions and
    patterns", "compare ... over time"). A single keyword never chains.
    """
    if _QUESTIONS_AND_PATTERNS.search(question):
        return make_contract_chain(
            [AnswerContract.CROSS_MEETING_QUESTIONS, AnswerContract.PATTERN_ANALYSIS]
        )

    if _COMPARE_OVER_TIME.search(question):
        return make_contract_chain([AnswerContract.COMPARISON, AnswerContract.TREND_SUMMARY])

    if _TREND_WORDS.search(question):
        return make_contract_chain([AnswerContract.TREND_SUMMARY])

    if _ASKED_WORDS.search(question):
        return make_contract_chain([AnswerContract.CROSS_MEETING_QUESTIONS])

    if _COMPARE_WORDS.search(question):
        return make_contract_chain([AnswerContract.COMPARISON])

    return make_contract_chain([AnswerContract.PATTERN_ANALYSIS])


# ---------------------------------------------------------------------------
# Dynamic chain building from task language
# ---------------------------------------------------------------------------


class _TaskSpec(BaseModel):
    task: str
    pattern: str
    contracts: List[AnswerContract]
    intents: List[Intent]


TASK_KEYWORDS: List[_TaskSpec] = [
    _TaskSpec(
        task="extract_questions",
        pattern=r"questions?|asked|concerns|objections",
        contracts=[AnswerContract.CUSTOMER_QUESTIONS, AnswerContract.CROSS_MEETING_QUESTIONS],
        intents=[Intent.SINGLE_MEETING, Intent.MULTI_MEETING],
    ),
    _TaskSpec(
        task="summarize",
        pattern=r"summarize|summary|overview",
        contracts=[AnswerContract.MEETING_SUMMARY],
        intents=[Intent.SINGLE_MEETING],
    ),
    _TaskSpec(
        task="extract_actions",
        pattern=r"action items?|next steps?|to-?do",
        contracts=[AnswerContract.NEXT_STEPS],
        intents=[Intent.SINGLE_MEETING],
    ),
    _TaskSpec(
        task="extract_attendees",
        pattern=r"who\s+(was|attended|joined)|attendees?|participants?",
        contracts=[AnswerContract.ATTENDEES],
        intents=[Intent.SINGLE_MEETING],
    ),
    _TaskSpec(
        task="analyze_patterns",
        pattern=r"pattern|recurring|theme|common\s+theme",
        contracts=[AnswerContract.PATTERN_ANALYSIS],
        intents=[Intent.MULTI_MEETING],
    ),
    _TaskSpec(
        task="compare",
        pattern=r"compare|difference|differ|contrast|versus|vs\b",
        contracts=[AnswerContract.COMPARISON],
        intents=[Intent.MULTI_MEETING],
    ),
    _TaskSpec(
        task="analyze_trends",
        pattern=r"trend|over time|changing|evolving|progression",
        contracts=[AnswerContract.TREND_SUMMARY],
        intents=[Intent.MULTI_MEETING],
    ),
    _TaskSpec(
        task="draft_response",
        pattern=r"help\s+(me\s+)?(answer|respond|reply)|draft\s+(a\s+)?response",
        contracts=[AnswerContract.DRAFT_RESPONSE],
        intents=[Intent.SINGLE_MEETING, Intent.MULTI_MEETING, Intent.GENERAL_HELP],
    ),
    _TaskSpec(
        task="draft_email",
        pattern=r"draft\s+(an?\s+)?email|write\s+(an?\s+)?email|email\s+template",
        contracts=[AnswerContract.DRAFT_EMAIL],
        intents=[Intent.GENERAL_HELP],
    ),
    _TaskSpec(
        task="external_research",
        pattern=r"research|earnings\s+call|public\s+statement|their\s+priorit",
        contracts=[AnswerContract.EXTERNAL_RESEARCH],
        intents=[Intent.EXTERNAL_RESEARCH],
    ),
    _TaskSpec(
        task="sales_docs_prep",
        pattern=r"slide\s+deck|sales\s+deck|pitch\s+deck|presentation\s+for|draft.*slides?|create.*slides?",
        contracts=[AnswerContract.SALES_DOCS_PREP],
        intents=[Intent.EXTERNAL_RESEARCH],
    ),
    _TaskSpec(
        task="product_connection",
        pattern=(
            r"value\s*prop|pitcrew'?s?\s+value|our\s+value|connect.*pitcrew|align.*offering"
            r"|match.*product|our\s+offer|pitcrew\s+offer|based\s+on\s+pitcrew"
            r"|pitcrew'?s?\s+(?:features?|capabilities?|approach)"
        ),
        contracts=[AnswerContract.PRODUCT_KNOWLEDGE],
        intents=[
            Intent.EXTERNAL_RESEARCH,
            Intent.GENERAL_HELP,
            Intent.SINGLE_MEETING,
            Intent.MULTI_MEETING,
            Intent.PRODUCT_KNOWLEDGE,
        ],
    ),
]

_TASK_PATTERNS = {entry.task: re.compile(entry.pattern, re.IGNORECASE) for entry in TASK_KEYWORDS}


def identify_tasks(question: str, intent: Intent) -> List[str]:
    return [
        entry.task
        for entry in TASK_KEYWORDS
        if intent in entry.intents and _TASK_PATTERNS[entry.task].search(question)
    ]


def contract_for_task(
    task: str, intent: Intent, scope: ChainBuildScope
) -> Optional[AnswerContract]:
    """Map a task to a contract, letting the resolved scope refine the choice."""
    entry = next((s for s in TASK_KEYWORDS if s.task == task and intent in s.intents), None)
    if entry is None:
        return None

    if task == "extract_questions":
        if scope.type == "single_meeting":
            return AnswerContract.CUSTOMER_QUESTIONS
        if scope.type == "multi_meeting":
            return AnswerContract.CROSS_MEETING_QUESTIONS

    if task == "analyze_patterns" and scope.type == "multi_meeting":
        if scope.topic:
            return AnswerContract.AGGREGATIVE_LIST
        if scope.meeting_ids and len(scope.meeting_ids) <= 3:
            return AnswerContract.COMPARISON

    return entry.contracts[0]


def default_contract_for(intent: Intent, scope: ChainBuildScope) -> AnswerContract:
    if intent == Intent.SINGLE_MEETING:
        return AnswerContract.EXTRACTIVE_FACT
    if intent == Intent.MULTI_MEETING:
        return AnswerContract.AGGREGATIVE_LIST if scope.topic else AnswerContract.PATTERN_ANALYSIS
    if intent == Intent.PRODUCT_KNOWLEDGE:
        return AnswerContract.PRODUCT_EXPLANATION
    if intent == Intent.EXTERNAL_RESEARCH:
        return AnswerContract.EXTERNAL_RESEARCH
    return AnswerContract.GENERAL_RESPONSE


def build_contract_chain(question: str, intent: Intent, scope: ChainBuildScope) -> ContractChain:
    """Plan a chain from the tasks named in *question*.

    Tasks are mapped to contracts under the intent and scope, ordered
    extraction, analysis, drafting, then validated. An invalid chain is
    returned as a CLARIFY chain carrying the reason.
    """
    tasks = identify_tasks(question, intent)

    contracts: List[AnswerContract] = []
    for task in tasks:
        contract = contract_for_task(task, intent, scope)
        if contract is not None and contract not in contracts:
            contracts.append(contract)

    if not contracts:
        contracts.append(default_contract_for(intent, scope))

    contracts.sort(key=lambda c: PHASE_ORDER[CONTRACT_PHASES[c]])

    chain = chain_or_clarify(contracts, "keyword")
    logger.info(
        "contract_chain_built",
        intent=intent.value,
        scope_type=scope.type,
        tasks=tasks,
        contracts=[c.value for c in chain.contracts],
        clarify_reason=chain.clarify_reason,
    )
    return chain
