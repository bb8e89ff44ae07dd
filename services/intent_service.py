"""
IntentService — deterministic-first intent classification.

Precedence (first hit wins):
    1. Refuse patterns                      → REFUSE
    2. Explicit multi-intent patterns       → CLARIFY (needs_split)
    3. Category signals (multi, single, product, research)
         more than one category            → CLARIFY (single-intent violation)
         exactly one                       → that intent
    4. GENERAL_HELP keywords, then DOCUMENT_SEARCH keywords
    5. Entity detection (companies, contacts) → SINGLE_MEETING / MULTI_MEETING
    6. Nothing matched                      → LLM interpretation, still CLARIFY

A weak single-keyword match is re-checked by the LLM validator, which can
only swap in another executable intent and fails open.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from assistant_core.control_plane import signals
from domain.models import (
    Intent,
    IntentClassification,
    PromptUsageRecord,
    ThreadMessage,
)
from ports.company_directory import CompanyDirectoryPort
from services.interpretation_service import (
    InterpretationService,
    fallback_clarify,
    is_executable,
)
from shared_utils.constants import LogScope, Thresholds
from shared_utils.error_handler import ClassificationError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.CONTROL_PLANE)

FAILURE_NO_MATCH = "no_intent_match"
FAILURE_MULTI_INTENT = "multi_intent_ambiguity"


class IntentService:
    """Classifies one question into exactly one intent."""

    def __init__(
        self,
        *,
        company_directory: CompanyDirectoryPort,
        interpretation_service: InterpretationService,
    ) -> None:
        self._companies = company_directory
        self._interpreter = interpretation_service

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def classify(
        self,
        question: str,
        thread_context: Optional[Sequence[ThreadMessage]] = None,
        usage: Optional[PromptUsageRecord] = None,
    ) -> IntentClassification:
        """Classify *question*.

        Never raises for classification problems: an interpretation failure
        becomes a CLARIFY result with confidence 0.
        """
        result = await self._classify_deterministic(question)

        if result is None:
            result = await self._clarify_with_interpretation(question, thread_context, usage)
        elif result.single_intent_violation:
            result = await self.resolve_violation(question, result, thread_context, usage)
        elif self._needs_validation(result):
            result = await self._validate(question, result, usage)

        logger.info(
            "intent_classified",
            intent=result.intent.value,
            method=result.method,
            confidence=result.confidence,
            matched_signals=result.matched_signals,
            single_intent_violation=result.single_intent_violation,
            needs_split=result.needs_split,
        )
        return result

    # ------------------------------------------------------------------
    # Deterministic stages
    # ------------------------------------------------------------------

    async def _classify_deterministic(self, question: str) -> Optional[IntentClassification]:
        if signals.matches_patterns(question, signals.REFUSE_PATTERNS):
            return IntentClassification(
                intent=Intent.REFUSE,
                method="pattern",
                confidence=Thresholds.REFUSE_CONFIDENCE,
                reason="Question is out of scope for this assistant",
            )

        if signals.matches_patterns(question, signals.MULTI_INTENT_PATTERNS):
            return IntentClassification(
                intent=Intent.CLARIFY,
                method="pattern",
                confidence=Thresholds.MULTI_INTENT_CONFIDENCE,
                reason="Request combines several tasks; asking the user to split it",
                needs_split=True,
                split_options=list(signals.SPLIT_OPTIONS),
            )

        category = await self._classify_by_category(question)
        if category is not None:
            return category

        if signals.matches_keywords(question, signals.GENERAL_HELP_KEYWORDS):
            return IntentClassification(
                intent=Intent.GENERAL_HELP,
                method="keyword",
                confidence=Thresholds.GENERAL_HELP_CONFIDENCE,
                reason="Matched general help keyword",
                matched_signals=["general_help_keyword"],
            )

        if signals.matches_keywords(question, signals.DOCUMENT_SEARCH_KEYWORDS):
            return IntentClassification(
                intent=Intent.DOCUMENT_SEARCH,
                method="keyword",
                confidence=Thresholds.DOCUMENT_SEARCH_CONFIDENCE,
                reason="Matched document search keyword",
                matched_signals=["document_search_keyword"],
            )

        return await self._classify_by_entity(question)

    async def _classify_by_category(self, question: str) -> Optional[IntentClassification]:
        matched: List[Intent] = []
        matched_signals: List[str] = []
        any_pattern = False

        for intent, patterns, keywords, prefix in signals.CATEGORY_SIGNALS:
            pattern_hit = signals.matches_patterns(question, patterns)
            keyword_hit = signals.matches_keywords(question, keywords)
            if pattern_hit or keyword_hit:
                matched.append(intent)
                matched_signals.append(f"{prefix}_pattern" if pattern_hit else f"{prefix}_keyword")
                any_pattern = any_pattern or pattern_hit

        if not matched:
            return None

        if len(matched) > 1:
            if set(matched) == {Intent.EXTERNAL_RESEARCH, Intent.PRODUCT_KNOWLEDGE}:
                # Research requests routinely name the product; research chains product knowledge.
                return IntentClassification(
                    intent=Intent.EXTERNAL_RESEARCH,
                    method="pattern",
                    confidence=Thresholds.PATTERN_CONFIDENCE,
                    reason="External research that references the product",
                    matched_signals=matched_signals,
                    rejected_intents=[Intent.PRODUCT_KNOWLEDGE],
                    decision_metadata={"subsumed": [Intent.PRODUCT_KNOWLEDGE.value]},
                )

            logger.warning(
                "single_intent_violation",
                matched_intents=[i.value for i in matched],
                matched_signals=matched_signals,
            )
            return IntentClassification(
                intent=Intent.CLARIFY,
                method="pattern",
                confidence=0.0,
                reason=f"Multiple intents matched ({', '.join(i.value for i in matched)}), clarification needed",
                single_intent_violation=True,
                matched_signals=matched_signals,
                rejected_intents=matched,
                decision_metadata={"matched_intents": [i.value for i in matched]},
            )

        selected = matched[0]
        rejected = [
            intent for intent, _, _, _ in signals.CATEGORY_SIGNALS if intent != selected
        ]
        logger.info(
            "intent_category_matched",
            intent=selected.value,
            matched_signals=matched_signals,
            rejected_intents=[i.value for i in rejected],
        )
        return IntentClassification(
            intent=selected,
            method="pattern" if any_pattern else "keyword",
            confidence=Thresholds.PATTERN_CONFIDENCE,
            reason=f"Matched {selected.value} signals",
            matched_signals=matched_signals,
            rejected_intents=rejected,
        )

    async def _classify_by_entity(self, question: str) -> Optional[IntentClassification]:
        companies = await self._company_names()
        company = signals.find_known_company(question, companies)
        contact = None if company else signals.find_known_contact(question)
        if company is None and contact is None:
            return None

        aggregate = bool(signals.AGGREGATE_QUANTIFIER.search(question))
        intent = Intent.MULTI_MEETING if aggregate else Intent.SINGLE_MEETING
        metadata: Dict[str, Any] = {}
        if company:
            metadata["company"] = company
        if contact:
            metadata["contact"] = contact

        entity = company or contact
        return IntentClassification(
            intent=intent,
            method="entity",
            confidence=Thresholds.ENTITY_CONFIDENCE,
            reason=f"Detected known {'company' if company else 'contact'} '{entity}'",
            matched_signals=["company_entity" if company else "contact_entity"],
            decision_metadata=metadata,
        )

    async def _company_names(self) -> List[str]:
        try:
            return await self._companies.list_company_names()
        except Exception as e:
            logger.warning("company_directory_unavailable", error=str(e))
            return list(signals.FALLBACK_COMPANIES)

    # ------------------------------------------------------------------
    # LLM stages
    # ------------------------------------------------------------------

    @staticmethod
    def _needs_validation(result: IntentClassification) -> bool:
        return (
            result.method == "keyword"
            and len(result.matched_signals) == 1
            and result.confidence < Thresholds.LOW_CONFIDENCE_VALIDATION
        )

    async def _validate(
        self,
        question: str,
        result: IntentClassification,
        usage: Optional[PromptUsageRecord],
    ) -> IntentClassification:
        validation = await self._interpreter.validate_low_confidence_intent(
            question, result.intent, result.reason, result.matched_signals, usage=usage
        )
        suggested = validation.suggested_intent
        if (
            not validation.confirmed
            and is_executable(suggested)
            and suggested != result.intent
            and validation.confidence > result.confidence
        ):
            logger.info(
                "intent_overridden_by_validator",
                original_intent=result.intent.value,
                new_intent=suggested.value,
                confidence=validation.confidence,
            )
            return result.model_copy(
                update={
                    "intent": suggested,
                    "method": "llm_validated",
                    "confidence": validation.confidence,
                    "reason": f"LLM validation: {validation.reason}",
                    "rejected_intents": [result.intent],
                    "decision_metadata": {
                        **result.decision_metadata,
                        "original_intent": result.intent.value,
                    },
                }
            )
        return result

    async def _clarify_with_interpretation(
        self,
        question: str,
        thread_context: Optional[Sequence[ThreadMessage]],
        usage: Optional[PromptUsageRecord],
    ) -> IntentClassification:
        failure_reason = FAILURE_NO_MATCH
        try:
            interpretation = await self._interpreter.interpret_ambiguous_query(
                question, failure_reason, thread_context, usage=usage
            )
        except ClassificationError as e:
            logger.error("classification_failed", failure_reason=failure_reason, error=e.message)
            return IntentClassification(
                intent=Intent.CLARIFY,
                method="llm_interpretation",
                confidence=0.0,
                reason=f"Classification failed: {e.message}",
                interpretation=fallback_clarify(failure_reason, e.message),
            )

        return IntentClassification(
            intent=Intent.CLARIFY,
            method="llm_interpretation",
            confidence=0.0,
            reason=f"Needs clarification ({failure_reason})",
            interpretation=interpretation,
        )

    async def resolve_violation(
        self,
        question: str,
        result: IntentClassification,
        thread_context: Optional[Sequence[ThreadMessage]] = None,
        usage: Optional[PromptUsageRecord] = None,
    ) -> IntentClassification:
        """Attach an interpretation proposal to a single-intent violation. Outcome stays CLARIFY."""
        try:
            interpretation = await self._interpreter.interpret_ambiguous_query(
                question, FAILURE_MULTI_INTENT, thread_context, usage=usage
            )
        except ClassificationError as e:
            logger.error("classification_failed", failure_reason=FAILURE_MULTI_INTENT, error=e.message)
            interpretation = fallback_clarify(FAILURE_MULTI_INTENT, e.message)
        return result.model_copy(update={"interpretation": interpretation})
