"""
Evidence Composition Engine.

Turns already retrieved transcript chunks into structured artifacts. The LLM
only proposes; the deterministic helpers in ``assistant_core.composition``
decide what reaches the user (quote gate, owner normalization, green-room
filter, confidence banding, summary cleanup, question anchoring).
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from assistant_core.composition.action_items import postprocess_action_items
from assistant_core.composition.questions import anchor_questions
from assistant_core.composition.quote_gate import check_quote_gate, keep_customer_quotes
from assistant_core.composition.summary import clean_meeting_summary
from assistant_core.composition.transcript_format import format_transcript
from assistant_core.parser.llm_json import parse_llm_json, parse_llm_model
from assistant_core.prompts import (
    CUSTOMER_QUESTIONS_EXTRACTION_PROMPT,
    RAG_ACTION_ITEMS_SYSTEM_PROMPT,
    RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT,
    RAG_MEETING_SUMMARY_SYSTEM_PROMPT,
    RAG_QUOTE_SELECTION_SYSTEM_PROMPT,
    SEMANTIC_RANKING_PROMPT,
    TRANSCRIPT_ANALYZER_SYSTEM_PROMPT,
)
from domain.models import (
    ActionExtractionResult,
    ChatMessage,
    CustomerQuestion,
    CustomerQuestionsExtraction,
    ExtractiveAnswer,
    LLMRequest,
    MeetingActionItem,
    MeetingSummary,
    PromptUsageRecord,
    QuoteSelectionResult,
    RelevanceRanking,
    RelevanceRankings,
    SelectedQuote,
    TranscriptAnalysis,
    TranscriptChunk,
)
from ports.llm_provider import LLMProviderPort
from shared_utils.constants import Defaults, LogScope, Messages, ModelAssignments, PromptIds, Thresholds
from shared_utils.error_handler import AppException, LLMResponseParseError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.COMPOSITION)


def _record(usage: Optional[PromptUsageRecord], prompt_id: str) -> None:
    if usage is not None:
        usage.record(prompt_id)


def _items_from(data: Any, key: str) -> List[Any]:
    """Accept either a bare JSON array or an object wrapping one under *key*."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    raise LLMResponseParseError(
        f"Expected a JSON array or an object with '{key}'",
        context={"parse_context": key},
    )


class EvidenceComposer:
    """LLM-backed composition over transcript chunks."""

    def __init__(
        self,
        *,
        llm_provider: LLMProviderPort,
        composition_model: str = ModelAssignments.RAG_COMPOSITION,
        action_item_model: str = ModelAssignments.ACTION_ITEM_EXTRACTION,
        question_model: str = ModelAssignments.CUSTOMER_QUESTION_EXTRACTION,
        analysis_model: str = ModelAssignments.TRANSCRIPT_ANALYSIS,
        ranking_model: str = ModelAssignments.ARTIFACT_SEARCH,
    ) -> None:
        self._llm = llm_provider
        self._composition_model = composition_model
        self._action_item_model = action_item_model
        self._question_model = question_model
        self._analysis_model = analysis_model
        self._ranking_model = ranking_model

    async def _complete(
        self,
        model: str,
        system: str,
        user: str,
        temperature: float = 0.0,
    ) -> str:
        response = await self._llm.generate_text(
            LLMRequest(
                model=model,
                messages=[
                    ChatMessage(role="system", content=system),
                    ChatMessage(role="user", content=user),
                ],
                temperature=temperature,
            )
        )
        return response.text

    # ------------------------------------------------------------------
    # Summary and quotes
    # ------------------------------------------------------------------

    async def compose_meeting_summary(
        self,
        chunks: Sequence[TranscriptChunk],
        usage: Optional[PromptUsageRecord] = None,
    ) -> MeetingSummary:
        """Summarize a meeting. Raises LLMResponseParseError on unusable output."""
        _record(usage, PromptIds.RAG_MEETING_SUMMARY_SYSTEM_PROMPT)
        system = RAG_MEETING_SUMMARY_SYSTEM_PROMPT.format(transcript=format_transcript(chunks))
        raw = await self._complete(self._composition_model, system, "Summarize this meeting.")
        summary = clean_meeting_summary(parse_llm_model(raw, MeetingSummary, "meeting_summary"))
        logger.info("meeting_summary_composed", chunk_count=len(chunks), title=summary.title)
        return summary

    async def select_representative_quotes(
        self,
        chunks: Sequence[TranscriptChunk],
        content_type: str = "transcript",
        max_quotes: int = Defaults.MAX_QUOTES,
        usage: Optional[PromptUsageRecord] = None,
    ) -> QuoteSelectionResult:
        """Pick customer quotes, or return none with a notice when attribution is unreliable."""
        gate = check_quote_gate(chunks, content_type)
        if not gate.passed:
            logger.info(
                "quote_gate_failed",
                reason=gate.reason,
                attribution_ratio=round(gate.attribution_ratio, 3),
                chunk_count=len(chunks),
            )
            return QuoteSelectionResult(quotes=[], quote_notice=gate.notice)

        _record(usage, PromptIds.RAG_QUOTE_SELECTION_SYSTEM_PROMPT)
        system = RAG_QUOTE_SELECTION_SYSTEM_PROMPT.format(
            max_quotes=max_quotes,
            transcript=format_transcript(gate.customer_chunks),
        )
        try:
            raw = await self._complete(self._composition_model, system, "Select the quotes.")
            items = _items_from(parse_llm_json(raw, "quote_selection"), "quotes")
        except AppException as e:
            logger.warning("quote_selection_failed", error=e.message)
            return QuoteSelectionResult(quotes=[])

        proposed: List[SelectedQuote] = []
        for item in items:
            try:
                proposed.append(SelectedQuote.model_validate(item))
            except PydanticValidationError:
                logger.debug("quote_item_invalid", item=str(item)[: Defaults.LOG_PREVIEW_CHARS])

        quotes = keep_customer_quotes(proposed, gate.customer_chunks, max_quotes)
        logger.info("quotes_selected", proposed=len(proposed), kept=len(quotes))
        return QuoteSelectionResult(quotes=quotes)

    # ------------------------------------------------------------------
    # Extractive answers
    # ------------------------------------------------------------------

    async def answer_meeting_question(
        self,
        chunks: Sequence[TranscriptChunk],
        question: str,
        usage: Optional[PromptUsageRecord] = None,
    ) -> ExtractiveAnswer:
        """Answer strictly from the transcript; ``was_found=False`` is a valid outcome."""
        _record(usage, PromptIds.RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT)
        system = RAG_EXTRACTIVE_ANSWER_SYSTEM_PROMPT.format(
            not_mentioned=Messages.NOT_MENTIONED,
            question=question,
            transcript=format_transcript(chunks),
        )
        raw = await self._complete(self._composition_model, system, question)
        answer = parse_llm_model(raw, ExtractiveAnswer, "extractive_answer")
        if not answer.was_found or not answer.answer.strip():
            answer = ExtractiveAnswer(answer=Messages.NOT_MENTIONED, evidence=None, was_found=False)
        logger.info("extractive_answer_composed", was_found=answer.was_found)
        return answer

    # ------------------------------------------------------------------
    # Action items
    # ------------------------------------------------------------------

    async def extract_meeting_action_states(
        self,
        chunks: Sequence[TranscriptChunk],
        attendees: Sequence[str] = (),
        usage: Optional[PromptUsageRecord] = None,
    ) -> ActionExtractionResult:
        """Extract, normalize, filter and band the meeting's action items."""
        _record(usage, PromptIds.RAG_ACTION_ITEMS_SYSTEM_PROMPT)
        attendee_hint = (
            f"\nAttendees (use these exact names as owners): {', '.join(attendees)}"
            if attendees
            else ""
        )
        system = RAG_ACTION_ITEMS_SYSTEM_PROMPT.format(
            attendees=attendee_hint,
            transcript=format_transcript(chunks),
        )
        raw = await self._complete(self._action_item_model, system, "List the action items.")
        items = _items_from(parse_llm_json(raw, "action_items"), "actionItems")

        proposed: List[MeetingActionItem] = []
        for item in items:
            try:
                proposed.append(MeetingActionItem.model_validate(item))
            except PydanticValidationError:
                logger.debug("action_item_invalid", item=str(item)[: Defaults.LOG_PREVIEW_CHARS])

        return postprocess_action_items(proposed, attendees)

    # ------------------------------------------------------------------
    # Supplementary schemas
    # ------------------------------------------------------------------

    async def extract_customer_questions(
        self,
        chunks: Sequence[TranscriptChunk],
        usage: Optional[PromptUsageRecord] = None,
    ) -> List[CustomerQuestion]:
        _record(usage, PromptIds.CUSTOMER_QUESTIONS_EXTRACTION_PROMPT)
        system = CUSTOMER_QUESTIONS_EXTRACTION_PROMPT.format(transcript=format_transcript(chunks))
        raw = await self._complete(self._question_model, system, "Extract the customer questions.")
        extraction = parse_llm_model(raw, CustomerQuestionsExtraction, "customer_questions")
        questions = anchor_questions(extraction.questions, chunks)
        logger.info(
            "customer_questions_extracted",
            count=len(questions),
            needing_context=sum(1 for q in questions if q.requires_context),
        )
        return questions

    async def analyze_transcript(
        self,
        chunks: Sequence[TranscriptChunk],
        usage: Optional[PromptUsageRecord] = None,
    ) -> TranscriptAnalysis:
        _record(usage, PromptIds.TRANSCRIPT_ANALYZER_SYSTEM_PROMPT)
        system = TRANSCRIPT_ANALYZER_SYSTEM_PROMPT.format(transcript=format_transcript(chunks))
        raw = await self._complete(self._analysis_model, system, "Analyze the transcript.")
        return parse_llm_model(raw, TranscriptAnalysis, "transcript_analysis")

    async def rank_by_relevance(
        self,
        items: Sequence[str],
        topic: str,
        usage: Optional[PromptUsageRecord] = None,
    ) -> List[RelevanceRanking]:
        """Score *items* against *topic*.

        Rankings pointing outside *items* are ignored, scores below the
        relevance floor are dropped, the rest come back best first.
        """
        if not items:
            return []

        _record(usage, PromptIds.SEMANTIC_RANKING_PROMPT)
        numbered = "\n".join(f"[{i}] {text}" for i, text in enumerate(items))
        system = SEMANTIC_RANKING_PROMPT.format(topic=topic, items=numbered)
        raw = await self._complete(self._ranking_model, system, topic)
        rankings = parse_llm_model(raw, RelevanceRankings, "semantic_ranking").rankings

        kept = [
            r
            for r in rankings
            if 0 <= r.index < len(items) and r.score >= Thresholds.RELEVANCE_MIN_SCORE
        ]
        kept.sort(key=lambda r: r.score, reverse=True)
        logger.debug("relevance_ranked", candidates=len(items), returned=len(rankings), kept=len(kept))
        return kept
