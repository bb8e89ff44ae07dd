"""
InterpretationService — LLM-assisted reading of ambiguous questions.

The LLM may help understand language; it never decides what runs. Every
interpretation comes back as a CLARIFY proposal the user has to confirm.

Two entry points:
    • interpret_ambiguous_query — propose an intent and contracts plus
      alternatives, rendered as a friendly clarification message.
    • validate_low_confidence_intent — semantic re-check of a deterministic
      match that rests on a single weak keyword. Fails open.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from assistant_core.parser.llm_json import parse_llm_model
from assistant_core.prompts import AMBIGUOUS_QUERY_INTERPRETATION_PROMPT, INTENT_VALIDATION_PROMPT
from domain.models import (
    AnswerContract,
    ChatMessage,
    ClarifyWithInterpretation,
    EXECUTABLE_INTENTS,
    Intent,
    InterpretationAlternative,
    LLMRequest,
    LowConfidenceValidation,
    PromptUsageRecord,
    ProposedInterpretation,
    ThreadMessage,
)
from ports.llm_provider import LLMProviderPort
from shared_utils.constants import (
    Defaults,
    LogScope,
    Messages,
    ModelAssignments,
    PromptIds,
    Thresholds,
)
from shared_utils.error_handler import AppException, ClassificationError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.INTERPRETATION)

_DEFAULT_SUMMARY = "you have a question I'd like to help with"

# Contracts the interpreter may propose, first entry is the intent's default.
INTERPRETATION_CONTRACTS: Dict[Intent, List[AnswerContract]] = {
    Intent.SINGLE_MEETING: [
        AnswerContract.MEETING_SUMMARY,
        AnswerContract.NEXT_STEPS,
        AnswerContract.ATTENDEES,
        AnswerContract.CUSTOMER_QUESTIONS,
        AnswerContract.EXTRACTIVE_FACT,
        AnswerContract.AGGREGATIVE_LIST,
    ],
    Intent.MULTI_MEETING: [
        AnswerContract.PATTERN_ANALYSIS,
        AnswerContract.COMPARISON,
        AnswerContract.TREND_SUMMARY,
        AnswerContract.CROSS_MEETING_QUESTIONS,
    ],
    Intent.PRODUCT_KNOWLEDGE: [
        AnswerContract.PRODUCT_EXPLANATION,
        AnswerContract.FEATURE_VERIFICATION,
        AnswerContract.FAQ_ANSWER,
    ],
    Intent.EXTERNAL_RESEARCH: [
        AnswerContract.EXTERNAL_RESEARCH,
        AnswerContract.SALES_DOCS_PREP,
        AnswerContract.VALUE_PROPOSITION,
    ],
    Intent.DOCUMENT_SEARCH: [AnswerContract.GENERAL_RESPONSE],
    Intent.GENERAL_HELP: [
        AnswerContract.GENERAL_RESPONSE,
        AnswerContract.DRAFT_RESPONSE,
        AnswerContract.DRAFT_EMAIL,
        AnswerContract.VALUE_PROPOSITION,
    ],
    Intent.REFUSE: [AnswerContract.REFUSE],
    Intent.CLARIFY: [AnswerContract.CLARIFY],
}

_CONTRACTS_BY_INTENT_TEXT = "\n".join(
    f"- {intent.value}: {', '.join(c.value for c in contracts)}"
    for intent, contracts in INTERPRETATION_CONTRACTS.items()
    if intent not in (Intent.REFUSE, Intent.CLARIFY)
)


# ---------------------------------------------------------------------------
# Raw LLM payloads (lenient; normalised below)
# ---------------------------------------------------------------------------


class _RawAlternative(BaseModel):
    model_config = ConfigDict(extra="ignore")

    intent: Any = None
    contract: Any = None
    contracts: Optional[List[Any]] = None
    description: str = ""


class _RawInterpretation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    proposedIntent: Any = None
    proposedContract: Any = None
    proposedContracts: Optional[List[Any]] = None
    confidence: Optional[float] = None
    interpretation: Optional[str] = None
    questionForm: Optional[str] = None
    canPartialAnswer: Optional[bool] = None
    partialAnswer: Optional[str] = None
    alternatives: List[_RawAlternative] = Field(default_factory=list)


class _RawValidation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    confirmed: Optional[bool] = None
    suggestedIntent: Optional[str] = None
    confidence: Optional[float] = None
    reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def _as_intent(value: Any) -> Optional[Intent]:
    try:
        return Intent(str(value).upper())
    except ValueError:
        return None


def _as_contracts(values: Sequence[Any]) -> List[AnswerContract]:
    contracts: List[AnswerContract] = []
    for value in values:
        try:
            contract = AnswerContract(str(value).upper())
        except ValueError:
            continue
        if contract not in contracts:
            contracts.append(contract)
    return contracts


def default_interpretation_contract(intent: Intent) -> AnswerContract:
    options = INTERPRETATION_CONTRACTS.get(intent)
    return options[0] if options else AnswerContract.GENERAL_RESPONSE


def confidence_band(confidence: float) -> str:
    if confidence >= 0.9:
        return "high"
    if confidence >= 0.7:
        return "medium"
    return "low"


def _default_question_form(summary: str, band: str) -> str:
    if band == "high":
        return f"Just to confirm, {summary}?"
    if band == "medium":
        return f"Are you asking about {summary}?"
    return f"I want to make sure I understand. My best guess is that {summary}. Is that right?"


def generate_smart_clarify_message(
    question_form: str,
    confidence: float,
    alternatives: Sequence[InterpretationAlternative],
    can_partial_answer: bool = False,
    partial_answer: Optional[str] = None,
) -> str:
    """Render a clarification: best guess first, optional partial answer, numbered alternatives."""
    parts = [question_form]

    if can_partial_answer and partial_answer and confidence > Thresholds.PARTIAL_ANSWER_MIN_CONFIDENCE:
        parts.append(f"If so, {partial_answer}")

    if alternatives:
        lines = ["Or did you mean:"]
        lines.extend(f"{i}. {alt.description}" for i, alt in enumerate(alternatives, start=1))
        parts.append("\n".join(lines))
        parts.append("Reply with a number or describe what you need!")
    elif confidence < Thresholds.CLARIFY_CONFIDENT:
        parts.append("Let me know if that's right, or tell me more!")
    else:
        parts.append("Let me know!")

    return "\n\n".join(parts).strip()


def fallback_clarify(failure_reason: str, diagnostic: Optional[str] = None) -> ClarifyWithInterpretation:
    """Fixed clarification used when interpretation itself failed."""
    metadata: Dict[str, Any] = {
        "proposed_intent": Intent.GENERAL_HELP.value,
        "confidence": 0.0,
        "failure_reason": failure_reason,
        "interpretation_source": "fallback",
    }
    if diagnostic:
        metadata["diagnostic"] = diagnostic
    return ClarifyWithInterpretation(
        proposed_interpretation=ProposedInterpretation(
            intent=Intent.GENERAL_HELP,
            contracts=[AnswerContract.GENERAL_RESPONSE],
            summary=_DEFAULT_SUMMARY,
        ),
        message=Messages.FALLBACK_CLARIFY_MESSAGE,
        metadata=metadata,
    )


def _history_messages(thread_context: Optional[Sequence[ThreadMessage]]) -> List[ChatMessage]:
    """Prior thread turns as chat messages; the last entry is the current question."""
    if not thread_context or len(thread_context) < 2:
        return []
    return [
        ChatMessage(role="assistant" if m.is_bot else "user", content=m.text)
        for m in thread_context[:-1]
    ]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class InterpretationService:
    """Proposes readings of ambiguous questions. Never executes anything."""

    def __init__(
        self,
        *,
        llm_provider: LLMProviderPort,
        model: str = ModelAssignments.LLM_INTERPRETATION,
    ) -> None:
        self._llm = llm_provider
        self._model = model

    async def interpret_ambiguous_query(
        self,
        question: str,
        failure_reason: str,
        thread_context: Optional[Sequence[ThreadMessage]] = None,
        usage: Optional[PromptUsageRecord] = None,
    ) -> ClarifyWithInterpretation:
        """Propose an interpretation of *question*; the outcome is always CLARIFY.

        Args:
            question: The user's question.
            failure_reason: Why deterministic routing gave up
                (``no_intent_match`` or ``multi_intent_ambiguity``).
            thread_context: Earlier turns, the last one being *question*.
            usage: Prompt usage record to append to.

        Raises:
            ClassificationError: If the LLM call fails or its output is unusable.
        """
        messages = [
            ChatMessage(
                role="system",
                content=AMBIGUOUS_QUERY_INTERPRETATION_PROMPT.format(
                    contracts_by_intent=_CONTRACTS_BY_INTENT_TEXT
                ),
            )
        ]
        messages.extend(_history_messages(thread_context))
        messages.append(ChatMessage(role="user", content=question))

        if usage is not None:
            usage.record(PromptIds.AMBIGUOUS_QUERY_INTERPRETATION_PROMPT)

        try:
            response = await self._llm.generate_text(
                LLMRequest(model=self._model, messages=messages, temperature=0.3)
            )
            raw = parse_llm_model(response.text, _RawInterpretation, "ambiguous_query_interpretation")
        except AppException as e:
            logger.error(
                "interpretation_failed",
                failure_reason=failure_reason,
                error_code=e.error_code,
                error=e.message,
            )
            raise ClassificationError(
                f"Interpretation failed: {e.message}",
                context={"failure_reason": failure_reason},
            ) from e

        result = self._build_clarify(raw, failure_reason)
        logger.info(
            "interpretation_proposed",
            failure_reason=failure_reason,
            proposed_intent=result.proposed_interpretation.intent.value,
            proposed_contracts=[c.value for c in result.proposed_interpretation.contracts],
            confidence=result.metadata["confidence"],
            alternatives=len(result.alternatives),
        )
        return result

    def _build_clarify(self, raw: _RawInterpretation, failure_reason: str) -> ClarifyWithInterpretation:
        intent = _as_intent(raw.proposedIntent) or Intent.GENERAL_HELP

        raw_contracts = raw.proposedContracts or ([raw.proposedContract] if raw.proposedContract else [])
        contracts = _as_contracts(raw_contracts) or [default_interpretation_contract(intent)]

        confidence = raw.confidence if raw.confidence is not None else 0.5
        confidence = max(0.0, min(1.0, float(confidence)))
        band = confidence_band(confidence)

        summary = raw.interpretation or _DEFAULT_SUMMARY
        question_form = raw.questionForm or _default_question_form(summary, band)

        alternatives: List[InterpretationAlternative] = []
        for alt in raw.alternatives[: Defaults.MAX_ALTERNATIVES]:
            alt_intent = _as_intent(alt.intent) or Intent.GENERAL_HELP
            alt_contracts = _as_contracts(alt.contracts or ([alt.contract] if alt.contract else []))
            alt_contract = alt_contracts[0] if alt_contracts else AnswerContract.GENERAL_RESPONSE
            if alt_intent == intent and alt_contract == contracts[0]:
                continue
            alternatives.append(
                InterpretationAlternative(
                    intent=alt_intent,
                    contract=alt_contract,
                    description=alt.description or alt_contract.value.replace("_", " ").lower(),
                )
            )

        can_partial = bool(raw.canPartialAnswer)
        partial = raw.partialAnswer or None

        message = generate_smart_clarify_message(
            question_form, confidence, alternatives, can_partial, partial
        )

        return ClarifyWithInterpretation(
            proposed_interpretation=ProposedInterpretation(
                intent=intent, contracts=contracts, summary=summary
            ),
            alternatives=alternatives,
            message=message,
            can_partial_answer=can_partial,
            partial_answer=partial,
            metadata={
                "proposed_intent": intent.value,
                "confidence": confidence,
                "confidence_band": band,
                "failure_reason": failure_reason,
                "interpretation_source": "llm_fallback",
            },
        )

    async def validate_low_confidence_intent(
        self,
        question: str,
        intent: Intent,
        reason: str,
        matched_signals: Sequence[str],
        usage: Optional[PromptUsageRecord] = None,
    ) -> LowConfidenceValidation:
        """Ask the LLM whether a weak deterministic match fits the question.

        Fails open: any error returns ``confirmed=True`` with confidence 0.5.
        """
        if usage is not None:
            usage.record(PromptIds.INTENT_VALIDATION_PROMPT)

        system = INTENT_VALIDATION_PROMPT.format(
            intent=intent.value,
            reason=reason,
            signals=", ".join(matched_signals) or "none",
        )
        try:
            response = await self._llm.generate_text(
                LLMRequest(
                    model=self._model,
                    messages=[
                        ChatMessage(role="system", content=system),
                        ChatMessage(role="user", content=f'User question: "{question}"'),
                    ],
                    temperature=0.0,
                )
            )
            raw = parse_llm_model(response.text, _RawValidation, "intent_validation")
        except Exception as e:
            logger.warning("intent_validation_failed_open", intent=intent.value, error=str(e))
            return LowConfidenceValidation(
                confirmed=True,
                confidence=Thresholds.VALIDATOR_FAIL_OPEN_CONFIDENCE,
                reason="Validation unavailable, keeping deterministic intent",
            )

        suggested = _as_intent(raw.suggestedIntent) if raw.suggestedIntent else None
        if raw.confirmed is False and raw.suggestedIntent and suggested is None:
            logger.warning("intent_validation_invalid_suggestion", suggested=raw.suggestedIntent)
            return LowConfidenceValidation(
                confirmed=True,
                confidence=Thresholds.VALIDATOR_FAIL_OPEN_CONFIDENCE,
                reason="Validator suggested an unknown intent",
            )

        result = LowConfidenceValidation(
            confirmed=raw.confirmed if raw.confirmed is not None else True,
            suggested_intent=suggested,
            confidence=max(0.0, min(1.0, raw.confidence if raw.confidence is not None else 0.7)),
            reason=raw.reason or "No reason provided",
        )
        logger.info(
            "intent_validated",
            intent=intent.value,
            confirmed=result.confirmed,
            suggested_intent=suggested.value if suggested else None,
            confidence=result.confidence,
        )
        return result


def is_executable(intent: Optional[Intent]) -> bool:
    return intent is not None and intent in EXECUTABLE_INTENTS
