"""
AssistantService — the request pipeline.

classify → context layers → contract chain → meeting scope → execute.
REFUSE and CLARIFY classifications never reach contract selection.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from assistant_core.control_plane.context_layers import enabled_layer_names, resolve_context_layers
from domain.models import (
    AnswerContract,
    AssistantResponse,
    ChainBuildScope,
    Intent,
    IntentClassification,
    PromptUsageRecord,
    ThreadMessage,
)
from ports.transcript_store import TranscriptStorePort
from services.contract_executor import (
    SOURCE_CLARIFICATION,
    SOURCE_REFUSAL,
    ContractExecutor,
    ExecutionContext,
)
from services.contract_service import ContractService
from services.intent_service import IntentService
from shared_utils.constants import LogScope, Messages
from shared_utils.logging_utils import ContextualLogger, log_execution
from shared_utils.validation import InputValidator


logger = ContextualLogger(scope=LogScope.EXECUTION)

_TOPIC = re.compile(
    r"\b(?:about|mention(?:s|ed)?|regarding|discuss(?:es|ed)?|around)\s+(?P<topic>.+?)[\s?.!]*$",
    re.IGNORECASE,
)


def extract_topic(question: str) -> Optional[str]:
    """Trailing subject of "... about X" / "... mention X" style questions."""
    match = _TOPIC.search(question)
    if not match:
        return None
    topic = match.group("topic").strip()
    return topic or None


class AssistantService:
    """Answers one question end to end."""

    def __init__(
        self,
        *,
        intent_service: IntentService,
        contract_service: ContractService,
        executor: ContractExecutor,
        transcript_store: TranscriptStorePort,
    ) -> None:
        self._intents = intent_service
        self._contracts = contract_service
        self._executor = executor
        self._store = transcript_store

    @log_execution(scope=LogScope.EXECUTION)
    async def answer(
        self,
        question: str,
        meeting_id: Optional[str] = None,
        meeting_ids: Optional[Sequence[str]] = None,
        thread_context: Optional[Sequence[ThreadMessage]] = None,
        proposed_contracts: Optional[Sequence[AnswerContract]] = None,
    ) -> AssistantResponse:
        """Answer *question*.

        Raises:
            ValidationError: If the question or an identifier is malformed.
        """
        question = InputValidator.validate_question(question)
        meeting_id = InputValidator.validate_optional_identifier(meeting_id, "meeting_id")
        ids = [InputValidator.validate_identifier(m, "meeting_ids") for m in meeting_ids or []]

        usage = PromptUsageRecord()
        classification = await self._intents.classify(question, thread_context, usage=usage)

        if classification.intent == Intent.REFUSE:
            return AssistantResponse(
                answer=Messages.REFUSE_RESPONSE,
                intent=Intent.REFUSE,
                data_source=SOURCE_REFUSAL,
                confidence=classification.confidence,
                prompt_versions=usage.as_dict(),
                contract=AnswerContract.REFUSE,
                contracts=[AnswerContract.REFUSE],
            )

        if classification.intent == Intent.CLARIFY:
            return AssistantResponse(
                answer=self._clarify_message(classification),
                intent=Intent.CLARIFY,
                data_source=SOURCE_CLARIFICATION,
                confidence=classification.confidence,
                prompt_versions=usage.as_dict(),
                contract=AnswerContract.CLARIFY,
                contracts=[AnswerContract.CLARIFY],
            )

        layer_result = resolve_context_layers(classification.intent)
        logger.info(
            "context_layers_resolved",
            intent=classification.intent.value,
            layers=enabled_layer_names(layer_result.layers),
        )

        scope = await self._resolve_scope(question, classification, meeting_id, ids)
        chain = await self._contracts.select_contract_chain(
            question,
            classification.intent,
            layer_result.layers,
            scope,
            proposed_contracts=proposed_contracts,
            usage=usage,
        )

        result = await self._executor.execute_chain(
            chain,
            ExecutionContext(
                question=question,
                intent=classification.intent,
                layers=layer_result.layers,
                scope=scope,
                usage=usage,
            ),
        )

        return AssistantResponse(
            answer=result.answer,
            intent=classification.intent,
            data_source=result.data_source,
            evidence=result.evidence,
            confidence=classification.confidence,
            prompt_versions=usage.as_dict(),
            contract=chain.primary_contract,
            contracts=list(chain.contracts),
        )

    @staticmethod
    def _clarify_message(classification: IntentClassification) -> str:
        if classification.needs_split:
            return Messages.SPLIT_REQUEST
        if classification.interpretation is not None:
            return classification.interpretation.message
        return Messages.FALLBACK_CLARIFY_MESSAGE

    async def _resolve_scope(
        self,
        question: str,
        classification: IntentClassification,
        meeting_id: Optional[str],
        meeting_ids: List[str],
    ) -> ChainBuildScope:
        company = classification.decision_metadata.get("company")

        if classification.intent == Intent.SINGLE_MEETING:
            if meeting_id is None and company:
                latest = await self._store.find_transcripts(company_name=company, limit=1)
                if latest:
                    meeting_id = latest[0].id
                    logger.info("meeting_resolved_by_company", company=company, meeting_id=meeting_id)
                else:
                    logger.info("meeting_not_resolved", company=company)
            return ChainBuildScope(type="single_meeting", meeting_id=meeting_id, company_name=company)

        if classification.intent == Intent.MULTI_MEETING:
            return ChainBuildScope(
                type="multi_meeting",
                meeting_ids=meeting_ids,
                company_name=company,
                topic=extract_topic(question),
            )

        return ChainBuildScope(meeting_id=meeting_id, company_name=company)
