"""
ContractExecutor — runs a contract chain against the evidence ports.

Each contract maps to one handler. Before a handler runs, the executor
enforces the contract's constraints:

- the layer gate (a handler never reads a layer the intent did not enable),
- authoritative contracts need verified product knowledge,
- ``min_evidence_threshold`` against the evidence a handler actually used.

Chained steps see the previous step's output; multi-step answers are merged
with a bold header per step.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from assistant_core.composition.action_items import band_action_items, build_canonical_attendee_list
from assistant_core.composition.keyword_search import candidate_pool, extract_keywords, is_proper_noun_only
from assistant_core.composition.summary import render_meeting_summary
from assistant_core.composition.transcript_format import format_transcript, speaker_label
from assistant_core.control_plane.context_layers import (
    can_access_documents,
    can_access_multi_meeting,
    can_access_product_ssot,
    can_access_single_meeting,
)
from assistant_core.control_plane.contracts import get_contract_constraints, validate_contract_chain
from assistant_core.prompts import (
    DRAFTING_PROMPT,
    GENERAL_ASSISTANCE_PROMPT,
    MULTI_MEETING_SYNTHESIS_PROMPT,
    PRODUCT_KNOWLEDGE_PROMPT,
)
from domain.models import (
    AnswerContract,
    ChainBuildScope,
    ChatMessage,
    ContextLayers,
    ContractChain,
    ContractConstraints,
    EmptyResultBehavior,
    Intent,
    LLMRequest,
    MeetingActionItem,
    PromptUsageRecord,
    QAPair,
    SSOTMode,
    SnippetMatch,
    TranscriptChunk,
    TranscriptRecord,
)
from ports.llm_provider import LLMProviderPort
from ports.product_knowledge import ProductKnowledgePort
from ports.transcript_store import TranscriptStorePort
from services.composition_service import EvidenceComposer
from services.transcript_search_service import TranscriptSearchService
from shared_utils.constants import Defaults, LogScope, Messages, ModelAssignments, PromptIds
from shared_utils.error_handler import AppException, ContractChainError, EvidenceError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.EXECUTION)

# Data sources reported back to the presentation layer
SOURCE_SINGLE_MEETING = "single_meeting"
SOURCE_MULTI_MEETING = "multi_meeting"
SOURCE_PRODUCT_SSOT = "product_ssot"
SOURCE_EXTERNAL = "external_research"
SOURCE_DOCUMENTS = "documents"
SOURCE_GENERAL = "general"
SOURCE_CLARIFICATION = "clarification"
SOURCE_REFUSAL = "refusal"
SOURCE_NONE = "none"

# Results from these sources are held to the contract's min_evidence_threshold
_EVIDENCE_SOURCES = frozenset({SOURCE_SINGLE_MEETING, SOURCE_MULTI_MEETING, SOURCE_PRODUCT_SSOT})

STEP_HEADERS: Dict[AnswerContract, str] = {
    AnswerContract.CROSS_MEETING_QUESTIONS: "Customer Questions Across Meetings",
    AnswerContract.PATTERN_ANALYSIS: "Pattern Analysis",
    AnswerContract.COMPARISON: "Comparison",
    AnswerContract.TREND_SUMMARY: "Trend Summary",
}

_EXCERPTS_PER_MEETING = 8
_FALLBACK_SNIPPETS = 2
_COMPANY_LIST_LIMIT = 5
_SYNTHESIS_TEMPERATURE = 0.3
_SYNTHESIS_MAX_TOKENS = 2000


def step_header(contract: AnswerContract) -> str:
    return STEP_HEADERS.get(contract, contract.value)


# ---------------------------------------------------------------------------
# Execution state
# ---------------------------------------------------------------------------


class ExecutionContext(BaseModel):
    """Request-scoped inputs shared by every step of one chain."""

    question: str
    intent: Intent
    layers: ContextLayers
    scope: ChainBuildScope = Field(default_factory=ChainBuildScope)
    usage: PromptUsageRecord = Field(default_factory=PromptUsageRecord)
    contract: Optional[AnswerContract] = None
    previous_output: Optional[str] = None
    product_knowledge: Optional[str] = None


class ContractResult(BaseModel):
    answer: str
    data_source: str = SOURCE_NONE
    evidence: Optional[str] = None
    evidence_count: int = 0
    contract: Optional[AnswerContract] = None


class _MeetingEvidence(BaseModel):
    record: TranscriptRecord
    chunks: List[TranscriptChunk] = Field(default_factory=list)


class _MeetingExcerpts(BaseModel):
    record: TranscriptRecord
    lines: List[str] = Field(default_factory=list)


Handler = Callable[[ExecutionContext], Awaitable[ContractResult]]


def format_company_list(companies: Sequence[str], limit: int = _COMPANY_LIST_LIMIT) -> str:
    if len(companies) <= limit:
        return ", ".join(companies)
    return f"{', '.join(companies[:limit])} and {len(companies) - limit} more"


def coverage_qualification(total_meetings: int, total_companies: int) -> str:
    """Qualify multi-meeting findings by how much evidence backs them."""
    if total_meetings <= 2 or total_companies <= 1:
        return (
            f"LIMITED COVERAGE: based on {total_meetings} meeting(s) from {total_companies} "
            "company(ies). Treat the findings as anecdotal."
        )
    if total_meetings <= 5 or total_companies <= 2:
        return (
            f"COVERAGE NOTE: based on {total_meetings} meetings from {total_companies} companies. "
            "Patterns may not generalize."
        )
    return f"COVERAGE: {total_meetings} meetings across {total_companies} companies."


def _more_data_message(contract: AnswerContract, found: int, required: int) -> str:
    return (
        f"I need more data to provide a reliable {step_header(contract).lower()}. "
        f"Found {found} meeting(s), but need at least {required} for this type of analysis."
    )


def knowledge_evidence_count(knowledge: str, question: str) -> int:
    """Count the knowledge sections that mention the question's terms.

    With no usable terms every non-empty section counts.
    """
    sections = [s for s in knowledge.split("\n\n") if s.strip()]
    keywords, proper_nouns = extract_keywords(question)
    terms = keywords + proper_nouns
    if not terms:
        return len(sections)
    return sum(1 for s in sections if any(term in s.lower() for term in terms))


def merge_step_results(chain: ContractChain, results: Sequence[ContractResult]) -> ContractResult:
    """Join the outputs of a multi-step chain under one bold header per step."""
    answer = "\n\n".join(
        f"**{step_header(contract)}**\n{result.answer}"
        for contract, result in zip(chain.contracts, results)
    )
    evidence = "\n\n".join(r.evidence for r in results if r.evidence) or None
    return ContractResult(
        answer=answer,
        data_source=results[-1].data_source,
        evidence=evidence,
        evidence_count=max(r.evidence_count for r in results),
        contract=chain.primary_contract,
    )


class ContractExecutor:
    """Dispatches each contract of a chain to its handler."""

    def __init__(
        self,
        *,
        transcript_store: TranscriptStorePort,
        product_knowledge: ProductKnowledgePort,
        composer: EvidenceComposer,
        search_service: TranscriptSearchService,
        llm_provider: LLMProviderPort,
    ) -> None:
        self._store = transcript_store
        self._knowledge = product_knowledge
        self._composer = composer
        self._search = search_service
        self._llm = llm_provider

        self._handlers: Dict[AnswerContract, Handler] = {
            AnswerContract.MEETING_SUMMARY: self._handle_meeting_summary,
            AnswerContract.NEXT_STEPS: self._handle_next_steps,
            AnswerContract.ATTENDEES: self._handle_attendees,
            AnswerContract.CUSTOMER_QUESTIONS: self._handle_customer_questions,
            AnswerContract.EXTRACTIVE_FACT: self._handle_extractive_fact,
            AnswerContract.AGGREGATIVE_LIST: self._handle_aggregative_list,
            AnswerContract.PATTERN_ANALYSIS: self._handle_multi_meeting,
            AnswerContract.COMPARISON: self._handle_multi_meeting,
            AnswerContract.TREND_SUMMARY: self._handle_multi_meeting,
            AnswerContract.CROSS_MEETING_QUESTIONS: self._handle_multi_meeting,
            AnswerContract.PRODUCT_EXPLANATION: self._handle_product,
            AnswerContract.FEATURE_VERIFICATION: self._handle_product,
            AnswerContract.FAQ_ANSWER: self._handle_product,
            AnswerContract.VALUE_PROPOSITION: self._handle_product,
            AnswerContract.PRODUCT_KNOWLEDGE: self._handle_product,
            AnswerContract.PRODUCT_INFO: self._handle_product,
            AnswerContract.DRAFT_RESPONSE: self._handle_draft,
            AnswerContract.DRAFT_EMAIL: self._handle_draft,
            AnswerContract.EXTERNAL_RESEARCH: self._handle_research,
            AnswerContract.SALES_DOCS_PREP: self._handle_research,
            AnswerContract.GENERAL_RESPONSE: self._handle_general,
            AnswerContract.NOT_FOUND: self._handle_not_found,
            AnswerContract.REFUSE: self._handle_refuse,
            AnswerContract.CLARIFY: self._handle_clarify,
        }

    @property
    def handled_contracts(self) -> List[AnswerContract]:
        return list(self._handlers)

    # ------------------------------------------------------------------
    # Chain and contract entry points
    # ------------------------------------------------------------------

    async def execute_chain(self, chain: ContractChain, ctx: ExecutionContext) -> ContractResult:
        if chain.clarify_reason:
            logger.info("contract_chain_clarify", reason=chain.clarify_reason)
            return ContractResult(
                answer=chain.clarify_reason,
                data_source=SOURCE_CLARIFICATION,
                contract=AnswerContract.CLARIFY,
            )

        validation = validate_contract_chain(chain.contracts)
        if not validation.valid:
            raise ContractChainError(
                validation.reason or "Invalid contract chain",
                context={"contracts": [c.value for c in chain.contracts]},
            )

        results: List[ContractResult] = []
        for contract in chain.contracts:
            step_ctx = ctx
            if results:
                step_ctx = ctx.model_copy(update={"previous_output": results[-1].answer})
            results.append(await self.execute_contract(contract, step_ctx))

        logger.info(
            "contract_chain_executed",
            contracts=[c.value for c in chain.contracts],
            data_sources=[r.data_source for r in results],
        )
        if len(results) == 1:
            return results[0]
        return merge_step_results(chain, results)

    async def execute_contract(self, contract: AnswerContract, ctx: ExecutionContext) -> ContractResult:
        handler = self._handlers.get(contract)
        if handler is None:
            logger.error("contract_handler_missing", contract=contract.value)
            return ContractResult(answer=Messages.UNCERTAINTY_RESPONSE, contract=contract)

        constraints = get_contract_constraints(contract)
        if constraints.ssot_mode == SSOTMode.AUTHORITATIVE:
            knowledge = await self._product_knowledge(ctx)
            if not knowledge:
                logger.warning("authority_not_met", contract=contract.value, intent=ctx.intent.value)
                return ContractResult(
                    answer=Messages.AUTHORITY_NOT_MET,
                    data_source=SOURCE_REFUSAL,
                    contract=contract,
                )
            ctx = ctx.model_copy(update={"product_knowledge": knowledge})

        try:
            result = await handler(ctx.model_copy(update={"contract": contract}))
            self._require_min_evidence(contract, constraints, result)
        except EvidenceError as e:
            logger.info("min_evidence_not_met", contract=contract.value, **e.context)
            result = self._insufficient_evidence(constraints, e)
        result.contract = contract
        logger.info(
            "contract_executed",
            contract=contract.value,
            data_source=result.data_source,
            evidence_count=result.evidence_count,
        )
        return result

    # ------------------------------------------------------------------
    # Evidence threshold
    # ------------------------------------------------------------------

    @staticmethod
    def _require_min_evidence(
        contract: AnswerContract, constraints: ContractConstraints, result: ContractResult
    ) -> None:
        """Raise EvidenceError when an evidence-backed answer rests on too little evidence."""
        threshold = constraints.min_evidence_threshold
        if threshold is None or result.data_source not in _EVIDENCE_SOURCES:
            return
        if result.evidence_count >= threshold:
            return

        context = {"found": result.evidence_count, "required": threshold}
        if result.data_source == SOURCE_MULTI_MEETING:
            raise EvidenceError(_more_data_message(contract, result.evidence_count, threshold), context)
        if constraints.empty_result_behavior == EmptyResultBehavior.REFUSE:
            raise EvidenceError(Messages.AUTHORITY_NOT_MET, context)
        if constraints.empty_result_behavior == EmptyResultBehavior.CLARIFY:
            raise EvidenceError(Messages.INSUFFICIENT_EVIDENCE, context)
        raise EvidenceError(Messages.NOT_MENTIONED, context)

    @staticmethod
    def _insufficient_evidence(constraints: ContractConstraints, error: EvidenceError) -> ContractResult:
        behavior = constraints.empty_result_behavior
        if behavior == EmptyResultBehavior.REFUSE:
            source = SOURCE_REFUSAL
        elif behavior == EmptyResultBehavior.CLARIFY:
            source = SOURCE_CLARIFICATION
        else:
            source = SOURCE_NONE
        return ContractResult(
            answer=error.message,
            data_source=source,
            evidence_count=error.context.get("found", 0),
        )

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    async def _product_knowledge(self, ctx: ExecutionContext) -> Optional[str]:
        if ctx.product_knowledge:
            return ctx.product_knowledge
        if not can_access_product_ssot(ctx.layers):
            return None
        try:
            return await self._knowledge.get_product_knowledge()
        except AppException as e:
            logger.warning("product_knowledge_unavailable", error=e.message)
            return None

    async def _generate(
        self,
        model: str,
        system: str,
        user: str,
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
    ) -> str:
        response = await self._llm.generate_text(
            LLMRequest(
                model=model,
                messages=[
                    ChatMessage(role="system", content=system),
                    ChatMessage(role="user", content=user),
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        )
        return response.text

    @staticmethod
    def _task(ctx: ExecutionContext) -> str:
        if ctx.previous_output and ctx.contract:
            return (
                f"Previous analysis:\n{ctx.previous_output}\n\n"
                f"Now applying {ctx.contract.value} analysis:\n{ctx.question}"
            )
        return ctx.question

    @staticmethod
    def _scope_not_available(layer: str, ctx: ExecutionContext) -> ContractResult:
        logger.warning("layer_access_denied", layer=layer, intent=ctx.intent.value)
        return ContractResult(answer=Messages.SCOPE_NOT_AVAILABLE, data_source=SOURCE_NONE)

    async def _load_meeting(self, ctx: ExecutionContext) -> Optional[_MeetingEvidence]:
        meeting_id = ctx.scope.meeting_id
        if not meeting_id:
            return None
        record, chunks = await asyncio.gather(
            self._store.get_transcript_by_id(meeting_id),
            self._store.get_chunks_for_transcript(meeting_id, limit=Defaults.CHUNK_FETCH_LIMIT),
        )
        if record is None:
            logger.warning("meeting_not_found", meeting_id=meeting_id)
            return None
        return _MeetingEvidence(record=record, chunks=chunks)

    def _single_meeting(self, ctx: ExecutionContext) -> Optional[ContractResult]:
        """Gate check shared by single-meeting handlers. Returns a terminal result or None."""
        if not can_access_single_meeting(ctx.layers):
            return self._scope_not_available("single_meeting", ctx)
        if not ctx.scope.meeting_id:
            return ContractResult(answer=Messages.MEETING_NOT_RESOLVED, data_source=SOURCE_CLARIFICATION)
        return None

    # ------------------------------------------------------------------
    # Single meeting handlers
    # ------------------------------------------------------------------

    async def _handle_meeting_summary(self, ctx: ExecutionContext) -> ContractResult:
        denied = self._single_meeting(ctx)
        if denied:
            return denied
        meeting = await self._load_meeting(ctx)
        if meeting is None:
            return ContractResult(answer=Messages.MEETING_NOT_RESOLVED, data_source=SOURCE_CLARIFICATION)
        if not meeting.chunks:
            return ContractResult(answer=Messages.NO_TRANSCRIPT_CONTENT, data_source=SOURCE_SINGLE_MEETING)

        try:
            summary = await self._composer.compose_meeting_summary(meeting.chunks, usage=ctx.usage)
        except AppException as e:
            logger.warning("meeting_summary_failed", meeting_id=meeting.record.id, error=e.message)
            if meeting.record.main_takeaways:
                return ContractResult(
                    answer=meeting.record.main_takeaways,
                    data_source=SOURCE_SINGLE_MEETING,
                    evidence_count=len(meeting.chunks),
                )
            raise

        quotes = await self._composer.select_representative_quotes(
            meeting.chunks, content_type=meeting.record.content_type, usage=ctx.usage
        )
        parts = [render_meeting_summary(summary)]
        if quotes.quotes:
            names = {c.chunk_index: speaker_label(c) for c in meeting.chunks}
            parts.append(
                "**Customer quotes**\n"
                + "\n".join(f"> \"{q.quote}\" ({names.get(q.chunk_index, 'Customer')})" for q in quotes.quotes)
            )
        elif quotes.quote_notice:
            parts.append(f"_{quotes.quote_notice}_")

        return ContractResult(
            answer="\n\n".join(parts),
            data_source=SOURCE_SINGLE_MEETING,
            evidence="\n".join(q.quote for q in quotes.quotes) or None,
            evidence_count=len(meeting.chunks),
        )

    async def _handle_next_steps(self, ctx: ExecutionContext) -> ContractResult:
        denied = self._single_meeting(ctx)
        if denied:
            return denied
        meeting = await self._load_meeting(ctx)
        if meeting is None:
            return ContractResult(answer=Messages.MEETING_NOT_RESOLVED, data_source=SOURCE_CLARIFICATION)

        stored = await self._store.get_meeting_action_items_by_transcript(meeting.record.id)
        if stored:
            result = band_action_items(stored)
        elif meeting.chunks:
            attendees = build_canonical_attendee_list(
                meeting.record.leverage_team, meeting.record.customer_names
            )
            result = await self._composer.extract_meeting_action_states(
                meeting.chunks, attendees, usage=ctx.usage
            )
        else:
            return ContractResult(answer=Messages.NO_TRANSCRIPT_CONTENT, data_source=SOURCE_SINGLE_MEETING)

        if not result.primary and not result.secondary:
            return ContractResult(answer=Messages.NO_ACTION_ITEMS, data_source=SOURCE_SINGLE_MEETING)

        lines = [self._render_action(item) for item in result.primary]
        if result.secondary:
            lines.append("\n**Possible follow-ups**")
            lines.extend(self._render_action(item) for item in result.secondary)
        return ContractResult(
            answer="\n".join(lines),
            data_source=SOURCE_SINGLE_MEETING,
            evidence="\n".join(i.evidence for i in result.primary if i.evidence) or None,
            evidence_count=len(result.primary) + len(result.secondary),
        )

    @staticmethod
    def _render_action(item: MeetingActionItem) -> str:
        return f"- {item.action} (owner: {item.owner}, deadline: {item.deadline})"

    async def _handle_attendees(self, ctx: ExecutionContext) -> ContractResult:
        denied = self._single_meeting(ctx)
        if denied:
            return denied
        meeting = await self._load_meeting(ctx)
        if meeting is None:
            return ContractResult(answer=Messages.MEETING_NOT_RESOLVED, data_source=SOURCE_CLARIFICATION)

        team = build_canonical_attendee_list(meeting.record.leverage_team)
        customers = build_canonical_attendee_list(None, meeting.record.customer_names)
        if not team and not customers:
            seen: List[str] = []
            for chunk in meeting.chunks:
                if chunk.speaker_name and chunk.speaker_name not in seen:
                    seen.append(chunk.speaker_name)
            if not seen:
                return ContractResult(answer=Messages.NO_TRANSCRIPT_CONTENT, data_source=SOURCE_SINGLE_MEETING)
            return ContractResult(
                answer="\n".join(f"- {name}" for name in seen),
                data_source=SOURCE_SINGLE_MEETING,
                evidence_count=len(seen),
            )

        lines = []
        if team:
            lines.append(f"**Leverege:** {', '.join(team)}")
        if customers:
            lines.append(f"**{meeting.record.company_name}:** {', '.join(customers)}")
        return ContractResult(
            answer="\n".join(lines),
            data_source=SOURCE_SINGLE_MEETING,
            evidence_count=len(team) + len(customers),
        )

    async def _handle_customer_questions(self, ctx: ExecutionContext) -> ContractResult:
        denied = self._single_meeting(ctx)
        if denied:
            return denied
        meeting = await self._load_meeting(ctx)
        if meeting is None:
            return ContractResult(answer=Messages.MEETING_NOT_RESOLVED, data_source=SOURCE_CLARIFICATION)

        pairs = await self._store.get_qa_pairs_by_transcript_id(meeting.record.id)
        if pairs:
            lines = [self._render_qa_pair(p) for p in pairs]
        elif meeting.chunks:
            questions = await self._composer.extract_customer_questions(meeting.chunks, usage=ctx.usage)
            lines = [
                f"- {q.question_text} ({q.asked_by_name}, {q.status.lower()})" for q in questions
            ]
        else:
            lines = []

        if not lines:
            return ContractResult(answer=Messages.NO_CUSTOMER_QUESTIONS, data_source=SOURCE_SINGLE_MEETING)
        return ContractResult(
            answer=self._capped_list(lines),
            data_source=SOURCE_SINGLE_MEETING,
            evidence_count=len(lines),
        )

    @staticmethod
    def _render_qa_pair(pair: QAPair) -> str:
        asker = pair.asked_by_name or "Customer"
        line = f"- {pair.question_text} ({asker}, {pair.status.lower()})"
        if pair.answer_evidence:
            line += f"\n  Answer: {pair.answer_evidence}"
        return line

    @staticmethod
    def _capped_list(lines: Sequence[str], limit: int = Defaults.MAX_LISTED_QUESTIONS) -> str:
        shown = "\n".join(lines[:limit])
        if len(lines) > limit:
            shown += f"\n...and {len(lines) - limit} more"
        return shown

    async def _handle_extractive_fact(self, ctx: ExecutionContext) -> ContractResult:
        denied = self._single_meeting(ctx)
        if denied:
            return denied
        meeting = await self._load_meeting(ctx)
        if meeting is None:
            return ContractResult(answer=Messages.MEETING_NOT_RESOLVED, data_source=SOURCE_CLARIFICATION)
        if not meeting.chunks:
            return ContractResult(answer=Messages.NO_TRANSCRIPT_CONTENT, data_source=SOURCE_NONE)

        matches = await self._search.search(meeting.chunks, ctx.question, usage=ctx.usage)
        if is_proper_noun_only(matches):
            logger.info(
                "proper_noun_only_guardrail",
                meeting_id=meeting.record.id,
                matched=len(matches),
            )
            return ContractResult(answer=Messages.UNCERTAINTY_RESPONSE, data_source=SOURCE_NONE)

        context_chunks = [m.chunk for m in matches] or meeting.chunks
        try:
            answer = await self._composer.answer_meeting_question(
                context_chunks, ctx.question, usage=ctx.usage
            )
        except AppException as e:
            logger.warning("extractive_answer_failed", meeting_id=meeting.record.id, error=e.message)
            return self._snippet_fallback(matches)

        return ContractResult(
            answer=answer.answer,
            data_source=SOURCE_SINGLE_MEETING,
            evidence=answer.evidence,
            evidence_count=len(context_chunks) if answer.was_found else 0,
        )

    @staticmethod
    def _snippet_fallback(matches: Sequence[SnippetMatch]) -> ContractResult:
        best = list(matches)[:_FALLBACK_SNIPPETS]
        if not best:
            return ContractResult(answer=Messages.UNCERTAINTY_RESPONSE, data_source=SOURCE_NONE)
        quoted = "\n".join(f"> {speaker_label(m.chunk)}: {m.chunk.text}" for m in best)
        return ContractResult(
            answer=f"Here's what I found in the meeting:\n{quoted}",
            data_source=SOURCE_SINGLE_MEETING,
            evidence=quoted,
            evidence_count=len(best),
        )

    async def _handle_aggregative_list(self, ctx: ExecutionContext) -> ContractResult:
        if can_access_multi_meeting(ctx.layers):
            return await self._handle_multi_meeting(ctx)
        return await self._handle_customer_questions(ctx)

    # ------------------------------------------------------------------
    # Multi meeting
    # ------------------------------------------------------------------

    async def _find_meetings(self, scope: ChainBuildScope) -> List[TranscriptRecord]:
        if scope.meeting_ids:
            records = await asyncio.gather(
                *(self._store.get_transcript_by_id(mid) for mid in scope.meeting_ids)
            )
            return [r for r in records if r is not None]
        return await self._store.find_transcripts(
            company_name=scope.company_name, limit=Defaults.MULTI_MEETING_LIMIT
        )

    async def _excerpts_for(
        self,
        record: TranscriptRecord,
        contract: AnswerContract,
        topic: Optional[str],
        usage: PromptUsageRecord,
    ) -> _MeetingExcerpts:
        if contract == AnswerContract.CROSS_MEETING_QUESTIONS:
            pairs = await self._store.get_qa_pairs_by_transcript_id(record.id)
            if pairs:
                lines = [f"Q ({p.asked_by_name or 'Customer'}): {p.question_text}" for p in pairs]
            else:
                lines = await self._analyzed_questions(record, usage)
            return _MeetingExcerpts(record=record, lines=lines)

        chunks = await self._store.get_chunks_for_transcript(record.id, limit=Defaults.CHUNK_FETCH_LIMIT)
        relevant = candidate_pool(chunks, topic) if topic else chunks
        return _MeetingExcerpts(
            record=record,
            lines=[f"{speaker_label(c)}: {c.text}" for c in relevant[:_EXCERPTS_PER_MEETING]],
        )

    async def _analyzed_questions(self, record: TranscriptRecord, usage: PromptUsageRecord) -> List[str]:
        """Q&A lines from a transcript analysis, for meetings without stored Q&A pairs."""
        chunks = await self._store.get_chunks_for_transcript(record.id, limit=Defaults.CHUNK_FETCH_LIMIT)
        if not chunks:
            return []
        try:
            analysis = await self._composer.analyze_transcript(chunks, usage=usage)
        except AppException as e:
            logger.warning("transcript_analysis_failed", meeting_id=record.id, error=e.message)
            return []
        return [f"Q ({p.asker or 'Customer'}): {p.question}" for p in analysis.qa_pairs]

    async def _handle_multi_meeting(self, ctx: ExecutionContext) -> ContractResult:
        if not can_access_multi_meeting(ctx.layers):
            return self._scope_not_available("multi_meeting", ctx)

        contract = ctx.contract or AnswerContract.PATTERN_ANALYSIS
        constraints = get_contract_constraints(contract)
        header = step_header(contract)
        topic = ctx.scope.topic

        meetings = await self._find_meetings(ctx.scope)
        threshold = constraints.min_evidence_threshold
        if threshold is not None and 0 < len(meetings) < threshold:
            raise EvidenceError(
                _more_data_message(contract, len(meetings), threshold),
                context={"found": len(meetings), "required": threshold},
            )

        excerpts = await asyncio.gather(
            *(self._excerpts_for(m, contract, topic, ctx.usage) for m in meetings)
        )
        with_evidence = [e for e in excerpts if e.lines]
        companies = sorted({m.company_name for m in meetings})

        if not with_evidence:
            return self._empty_multi_result(constraints.empty_result_behavior, len(meetings), companies, topic)

        evidence_companies = sorted({e.record.company_name for e in with_evidence})
        coverage = coverage_qualification(len(with_evidence), len(evidence_companies))
        evidence_text = "\n\n".join(
            f"### {e.record.company_name} ({e.record.meeting_date or 'date unknown'})\n"
            + "\n".join(f"- {line}" for line in e.lines)
            for e in with_evidence
        )

        ctx.usage.record(PromptIds.MULTI_MEETING_SYNTHESIS_PROMPT)
        system = MULTI_MEETING_SYNTHESIS_PROMPT.format(
            task=f"{header}: {self._task(ctx)}",
            coverage=coverage,
            evidence=evidence_text,
        )
        try:
            answer = await self._generate(
                ModelAssignments.MULTI_MEETING_SYNTHESIS,
                system,
                ctx.question,
                temperature=_SYNTHESIS_TEMPERATURE,
                max_tokens=_SYNTHESIS_MAX_TOKENS,
            )
        except AppException as e:
            logger.warning("multi_meeting_synthesis_failed", contract=contract.value, error=e.message)
            answer = f"{coverage}\n\n{evidence_text}"

        logger.info(
            "multi_meeting_synthesized",
            contract=contract.value,
            meetings=len(with_evidence),
            companies=format_company_list(evidence_companies),
        )
        return ContractResult(
            answer=answer,
            data_source=SOURCE_MULTI_MEETING,
            evidence=coverage,
            evidence_count=len(with_evidence),
        )

    @staticmethod
    def _empty_multi_result(
        behavior: Optional[EmptyResultBehavior],
        searched: int,
        companies: Sequence[str],
        topic: Optional[str],
    ) -> ContractResult:
        about = f" about {topic}" if topic else ""
        company_text = f"{format_company_list(companies)} " if companies else ""
        if behavior == EmptyResultBehavior.CLARIFY:
            answer = (
                f"I searched {searched} {company_text}meeting(s) but couldn't find any discussion{about}. "
                "Would you like me to search for something else, or can you provide more details?"
            )
        else:
            answer = (
                f"I couldn't find any discussion{about} in the {searched} {company_text}meeting(s) "
                "I searched. It may not have been discussed, or you might want to try different search terms."
            )
        return ContractResult(answer=answer, data_source=SOURCE_NONE)

    # ------------------------------------------------------------------
    # Product, drafting, research, general
    # ------------------------------------------------------------------

    async def _handle_product(self, ctx: ExecutionContext) -> ContractResult:
        knowledge = await self._product_knowledge(ctx)
        if knowledge:
            evidence_count = knowledge_evidence_count(knowledge, ctx.question)
            if ctx.contract is not None:
                self._require_min_evidence(
                    ctx.contract,
                    get_contract_constraints(ctx.contract),
                    ContractResult(answer="", data_source=SOURCE_PRODUCT_SSOT, evidence_count=evidence_count),
                )
            ctx.usage.record(PromptIds.PRODUCT_KNOWLEDGE_PROMPT)
            system = PRODUCT_KNOWLEDGE_PROMPT.format(task=self._task(ctx), knowledge=knowledge)
            answer = await self._generate(ModelAssignments.PRODUCT_KNOWLEDGE_RESPONSE, system, ctx.question)
            return ContractResult(
                answer=answer,
                data_source=SOURCE_PRODUCT_SSOT,
                evidence_count=evidence_count,
            )

        # Descriptive contracts only; authoritative ones were stopped before the handler.
        return await self._handle_general(ctx)

    async def _handle_draft(self, ctx: ExecutionContext) -> ContractResult:
        meeting_id = ctx.scope.meeting_id if can_access_single_meeting(ctx.layers) else None

        async def _none() -> None:
            return None

        chunks, pairs, actions, knowledge = await asyncio.gather(
            self._store.get_chunks_for_transcript(meeting_id, limit=Defaults.DRAFT_CHUNK_LIMIT)
            if meeting_id else _none(),
            self._store.get_qa_pairs_by_transcript_id(meeting_id) if meeting_id else _none(),
            self._store.get_meeting_action_items_by_transcript(meeting_id) if meeting_id else _none(),
            self._product_knowledge(ctx),
        )

        sections = []
        if ctx.previous_output:
            sections.append(f"## Previous step\n{ctx.previous_output}")
        if chunks:
            sections.append(f"## Meeting transcript\n{format_transcript(chunks)}")
        if pairs:
            sections.append("## Customer questions\n" + "\n".join(self._render_qa_pair(p) for p in pairs))
        if actions:
            sections.append("## Action items\n" + "\n".join(self._render_action(a) for a in actions))
        if knowledge:
            sections.append(f"## Product knowledge\n{knowledge}")

        ctx.usage.record(PromptIds.DRAFTING_PROMPT)
        system = DRAFTING_PROMPT.format(
            task=ctx.question,
            material="\n\n".join(sections) or "No meeting material is available for this draft.",
        )
        answer = await self._generate(ModelAssignments.SINGLE_MEETING_RESPONSE, system, ctx.question)
        return ContractResult(
            answer=answer,
            data_source=SOURCE_SINGLE_MEETING if chunks else SOURCE_GENERAL,
            evidence_count=len(chunks or []),
        )

    async def _handle_research(self, ctx: ExecutionContext) -> ContractResult:
        knowledge = await self._product_knowledge(ctx)
        task = self._task(ctx)
        if knowledge:
            task = f"{task}\n\nRelate the research to our product using this verified knowledge:\n{knowledge}"
        ctx.usage.record(PromptIds.GENERAL_ASSISTANCE_PROMPT)
        system = GENERAL_ASSISTANCE_PROMPT.format(task=task)
        answer = await self._generate(ModelAssignments.GENERAL_ASSISTANCE, system, ctx.question)
        return ContractResult(answer=answer, data_source=SOURCE_EXTERNAL)

    async def _handle_general(self, ctx: ExecutionContext) -> ContractResult:
        ctx.usage.record(PromptIds.GENERAL_ASSISTANCE_PROMPT)
        system = GENERAL_ASSISTANCE_PROMPT.format(task=self._task(ctx))
        answer = await self._generate(ModelAssignments.GENERAL_ASSISTANCE, system, ctx.question)
        return ContractResult(answer=answer, data_source=SOURCE_GENERAL)

    # ------------------------------------------------------------------
    # Terminal contracts
    # ------------------------------------------------------------------

    async def _handle_not_found(self, ctx: ExecutionContext) -> ContractResult:
        if can_access_documents(ctx.layers):
            return ContractResult(answer=Messages.DOCUMENTS_UNAVAILABLE, data_source=SOURCE_DOCUMENTS)
        return ContractResult(answer=Messages.NOT_MENTIONED, data_source=SOURCE_NONE)

    async def _handle_refuse(self, ctx: ExecutionContext) -> ContractResult:
        return ContractResult(answer=Messages.REFUSE_RESPONSE, data_source=SOURCE_REFUSAL)

    async def _handle_clarify(self, ctx: ExecutionContext) -> ContractResult:
        return ContractResult(answer=Messages.FALLBACK_CLARIFY_MESSAGE, data_source=SOURCE_CLARIFICATION)
