"""
Tests for services.intent_service.

Covers the precedence of the deterministic stages, single-intent
violations, entity detection with a failing company directory, LLM
validation of weak keyword matches and interpretation when nothing matches.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from domain.models import Intent, LowConfidenceValidation
from services.intent_service import FAILURE_MULTI_INTENT, FAILURE_NO_MATCH, IntentService
from services.interpretation_service import fallback_clarify
from shared_utils.error_handler import ClassificationError, ExternalServiceError


@pytest.fixture()
def company_directory() -> MagicMock:
    directory = MagicMock()
    directory.list_company_names = AsyncMock(return_value=["Les Schwab", "Walmart"])
    return directory


@pytest.fixture()
def interpreter() -> MagicMock:
    interpreter = MagicMock()
    interpreter.interpret_ambiguous_query = AsyncMock(
        return_value=fallback_clarify("no_intent_match")
    )
    interpreter.validate_low_confidence_intent = AsyncMock(
        return_value=LowConfidenceValidation(confirmed=True, confidence=0.9, reason="fits")
    )
    return interpreter


@pytest.fixture()
def service(company_directory, interpreter) -> IntentService:
    return IntentService(company_directory=company_directory, interpretation_service=interpreter)


# ---------------------------------------------------------------------------
# Deterministic stages
# ---------------------------------------------------------------------------


class TestDeterministicClassification:
    @pytest.mark.asyncio
    async def test_refuse_wins_first(self, service) -> None:
        result = await service.classify("What's the weather in Paris?")
        assert result.intent == Intent.REFUSE
        assert result.confidence == 0.95

    @pytest.mark.asyncio
    async def test_multi_intent_asks_for_split(self, service, interpreter) -> None:
        result = await service.classify("Summarize the meeting and email it")

        assert result.intent == Intent.CLARIFY
        assert result.needs_split is True
        assert result.split_options == ["meeting content", "other request"]
        interpreter.interpret_ambiguous_query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_multi_meeting_pattern(self, service) -> None:
        result = await service.classify("Find all meetings that mention Walmart")

        assert result.intent == Intent.MULTI_MEETING
        assert result.method == "pattern"
        assert result.confidence == 0.9
        assert result.matched_signals == ["multi_meeting_pattern"]

    @pytest.mark.asyncio
    async def test_named_company_detected_as_single_meeting(self, service, interpreter) -> None:
        result = await service.classify("What did Les Schwab say about pricing?")

        assert result.intent == Intent.SINGLE_MEETING
        assert result.method == "entity"
        assert result.confidence == 0.85
        assert result.decision_metadata == {"company": "les schwab"}
        interpreter.validate_low_confidence_intent.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_company_with_quantifier_is_multi_meeting(self, service) -> None:
        result = await service.classify("Which Walmart conversations covered cameras?")
        assert result.intent == Intent.MULTI_MEETING
        assert result.method == "entity"

    @pytest.mark.asyncio
    async def test_known_contact(self, service) -> None:
        result = await service.classify("What did Randy want?")
        assert result.intent == Intent.SINGLE_MEETING
        assert result.decision_metadata == {"contact": "randy"}

    @pytest.mark.asyncio
    async def test_directory_failure_uses_fallback_companies(self, service, company_directory) -> None:
        company_directory.list_company_names.side_effect = ExternalServiceError("transcripts", "down")

        result = await service.classify("What did Jiffy Lube want?")

        assert result.intent == Intent.SINGLE_MEETING
        assert result.decision_metadata == {"company": "jiffy lube"}

    @pytest.mark.asyncio
    async def test_research_referencing_product_is_research(self, service) -> None:
        result = await service.classify("Research their priorities and connect them to PitCrew's value")

        assert result.intent == Intent.EXTERNAL_RESEARCH
        assert result.rejected_intents == [Intent.PRODUCT_KNOWLEDGE]
        assert result.single_intent_violation is False


# ---------------------------------------------------------------------------
# Violations and interpretation
# ---------------------------------------------------------------------------


class TestClarification:
    @pytest.mark.asyncio
    async def test_single_intent_violation_attaches_interpretation(self, service, interpreter) -> None:
        result = await service.classify("What were the next steps across all meetings?")

        assert result.intent == Intent.CLARIFY
        assert result.single_intent_violation is True
        assert set(result.rejected_intents) == {Intent.MULTI_MEETING, Intent.SINGLE_MEETING}
        assert result.interpretation is not None
        assert interpreter.interpret_ambiguous_query.await_args.args[1] == FAILURE_MULTI_INTENT

    @pytest.mark.asyncio
    async def test_violation_with_failed_interpretation_uses_fallback(self, service, interpreter) -> None:
        interpreter.interpret_ambiguous_query.side_effect = ClassificationError("bad json")

        result = await service.classify("What were the next steps across all meetings?")

        assert result.intent == Intent.CLARIFY
        assert result.interpretation.metadata["interpretation_source"] == "fallback"
        assert result.interpretation.metadata["failure_reason"] == FAILURE_MULTI_INTENT

    @pytest.mark.asyncio
    async def test_no_match_goes_to_interpretation(self, service, interpreter) -> None:
        result = await service.classify("Hmm, what about the blue one?")

        assert result.intent == Intent.CLARIFY
        assert result.method == "llm_interpretation"
        assert result.confidence == 0.0
        assert interpreter.interpret_ambiguous_query.await_args.args[1] == FAILURE_NO_MATCH

    @pytest.mark.asyncio
    async def test_no_match_with_failed_interpretation(self, service, interpreter) -> None:
        interpreter.interpret_ambiguous_query.side_effect = ClassificationError("timeout")

        result = await service.classify("Hmm, what about the blue one?")

        assert result.intent == Intent.CLARIFY
        assert result.reason == "Classification failed: timeout"
        assert result.interpretation.metadata["diagnostic"] == "timeout"


# ---------------------------------------------------------------------------
# Low-confidence validation
# ---------------------------------------------------------------------------


class TestLowConfidenceValidation:
    @pytest.mark.asyncio
    async def test_weak_keyword_match_is_validated(self, service, interpreter) -> None:
        result = await service.classify("thanks for the help")

        assert result.intent == Intent.GENERAL_HELP
        assert result.method == "keyword"
        interpreter.validate_low_confidence_intent.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_validator_override(self, service, interpreter) -> None:
        interpreter.validate_low_confidence_intent.return_value = LowConfidenceValidation(
            confirmed=False,
            suggested_intent=Intent.PRODUCT_KNOWLEDGE,
            confidence=0.95,
            reason="asks about product",
        )

        result = await service.classify("thanks for the help")

        assert result.intent == Intent.PRODUCT_KNOWLEDGE
        assert result.method == "llm_validated"
        assert result.decision_metadata["original_intent"] == "GENERAL_HELP"

    @pytest.mark.asyncio
    async def test_validator_cannot_route_to_clarify(self, service, interpreter) -> None:
        interpreter.validate_low_confidence_intent.return_value = LowConfidenceValidation(
            confirmed=False, suggested_intent=Intent.CLARIFY, confidence=0.99, reason="unclear"
        )

        result = await service.classify("thanks for the help")

        assert result.intent == Intent.GENERAL_HELP

    @pytest.mark.asyncio
    async def test_validator_needs_higher_confidence(self, service, interpreter) -> None:
        interpreter.validate_low_confidence_intent.return_value = LowConfidenceValidation(
            confirmed=False, suggested_intent=Intent.PRODUCT_KNOWLEDGE, confidence=0.6, reason="maybe"
        )

        result = await service.classify("thanks for the help")

        assert result.intent == Intent.GENERAL_HELP
