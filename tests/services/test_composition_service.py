"""
Tests for services.composition_service.EvidenceComposer.

The LLM is mocked; these tests check that deterministic post-processing,
not the model, decides what reaches the user.
"""

import json

import pytest

from conftest import llm_response, make_chunk
from domain.models import PromptUsageRecord, SpeakerRole
from services.composition_service import EvidenceComposer
from shared_utils.constants import Messages, PromptIds
from shared_utils.error_handler import LLMResponseParseError, ModelError


ATTENDEES = ["Tyler Wiggins", "Eric Conn", "Randy Hentschke"]


@pytest.fixture()
def composer(mock_llm) -> EvidenceComposer:
    return EvidenceComposer(llm_provider=mock_llm)


def _reply(mock_llm, payload) -> None:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    mock_llm.generate_text.return_value = llm_response(text)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


class TestComposeMeetingSummary:
    @pytest.mark.asyncio
    async def test_summary_cleaned(self, composer, mock_llm, sample_chunks) -> None:
        _reply(
            mock_llm,
            "```json\n"
            + json.dumps(
                {
                    "title": "Les Schwab demo",
                    "purpose": "Walk through bay tracking",
                    "focusAreas": ["Pricing", "DEBUG: chunk 2"],
                    "keyTakeaways": ["Pricing"],
                    "risksOrOpenQuestions": ["POS integration"],
                    "recommendedNextSteps": [],
                }
            )
            + "\n```",
        )
        usage = PromptUsageRecord()

        summary = await composer.compose_meeting_summary(sample_chunks, usage=usage)

        assert summary.focus_areas == ["Pricing"]
        assert summary.key_takeaways == ["None detected"]
        assert summary.recommended_next_steps == ["None detected"]
        assert PromptIds.RAG_MEETING_SUMMARY_SYSTEM_PROMPT in usage.versions

    @pytest.mark.asyncio
    async def test_transcript_lines_sent_to_model(self, composer, mock_llm, sample_chunks) -> None:
        _reply(mock_llm, {"title": "t"})

        await composer.compose_meeting_summary(sample_chunks)

        system = mock_llm.generate_text.await_args.args[0].messages[0].content
        assert "[2] Randy Hentschke: How does the pricing work for fifty stores?" in system

    @pytest.mark.asyncio
    async def test_unparseable_summary_raises(self, composer, mock_llm, sample_chunks) -> None:
        _reply(mock_llm, "Here is your summary!")
        with pytest.raises(LLMResponseParseError):
            await composer.compose_meeting_summary(sample_chunks)


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------


class TestSelectRepresentativeQuotes:
    @pytest.mark.asyncio
    async def test_low_attribution_skips_llm(self, composer, mock_llm) -> None:
        chunks = [make_chunk(i, "text", "Randy", SpeakerRole.CUSTOMER) for i in range(3)]
        chunks += [make_chunk(i, "text") for i in range(3, 10)]

        result = await composer.select_representative_quotes(chunks)

        assert result.quotes == []
        assert "doesn't consistently label speakers" in result.quote_notice
        mock_llm.generate_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notes_never_quoted(self, composer, mock_llm, sample_chunks) -> None:
        result = await composer.select_representative_quotes(sample_chunks, content_type="notes")
        assert result.quotes == []
        assert "meeting notes" in result.quote_notice
        mock_llm.generate_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_customer_quotes_dropped(self, composer, mock_llm, sample_chunks) -> None:
        _reply(
            mock_llm,
            [
                {"chunkIndex": 4, "quote": "Our biggest worry is the POS integration", "reason": "concern"},
                {"chunkIndex": 3, "quote": "Pricing is per store", "reason": "not customer"},
                {"quote": "missing index"},
            ],
        )

        result = await composer.select_representative_quotes(sample_chunks)

        assert [q.chunk_index for q in result.quotes] == [4]
        assert result.quote_notice is None

    @pytest.mark.asyncio
    async def test_llm_failure_returns_no_quotes(self, composer, mock_llm, sample_chunks) -> None:
        mock_llm.generate_text.side_effect = ModelError("down")
        result = await composer.select_representative_quotes(sample_chunks)
        assert result.quotes == []


# ---------------------------------------------------------------------------
# Extractive answers
# ---------------------------------------------------------------------------


class TestAnswerMeetingQuestion:
    @pytest.mark.asyncio
    async def test_found(self, composer, mock_llm, sample_chunks) -> None:
        _reply(mock_llm, {"answer": "Per store per month.", "evidence": "[3]", "wasFound": True})

        answer = await composer.answer_meeting_question(sample_chunks, "How is it priced?")

        assert answer.was_found is True
        assert answer.answer == "Per store per month."

    @pytest.mark.asyncio
    async def test_not_found_uses_fixed_text(self, composer, mock_llm, sample_chunks) -> None:
        _reply(mock_llm, {"answer": "They may have discussed it.", "wasFound": False})

        answer = await composer.answer_meeting_question(sample_chunks, "Did they mention drones?")

        assert answer.was_found is False
        assert answer.answer == Messages.NOT_MENTIONED
        assert answer.evidence is None


# ---------------------------------------------------------------------------
# Action items
# ---------------------------------------------------------------------------


class TestExtractMeetingActionStates:
    @pytest.mark.asyncio
    async def test_items_normalised_filtered_and_banded(self, composer, mock_llm, sample_chunks) -> None:
        _reply(
            mock_llm,
            {
                "actionItems": [
                    {"action": "Send pricing sheet", "owner": "Tyler", "confidence": 0.95,
                     "evidence": "I'll send the sheet after the call."},
                    {"action": "Check POS vendor list", "owner": "eric conn", "deadline": "",
                     "confidence": 0.75},
                    {"action": "Share my screen to show the dashboard", "owner": "Tyler", "confidence": 0.9},
                    {"action": "Maybe revisit later", "confidence": 0.4},
                    {"owner": "nobody"},
                ]
            },
        )

        result = await composer.extract_meeting_action_states(sample_chunks, ATTENDEES)

        assert [i.action for i in result.primary] == ["Send pricing sheet"]
        assert result.primary[0].owner == "Tyler Wiggins"
        assert [i.action for i in result.secondary] == ["Check POS vendor list"]
        assert result.secondary[0].owner == "Eric Conn"
        assert result.secondary[0].deadline == "Not specified"

    @pytest.mark.asyncio
    async def test_null_fields_take_defaults(self, composer, mock_llm, sample_chunks) -> None:
        _reply(
            mock_llm,
            {
                "actionItems": [
                    {
                        "action": "Send pricing sheet",
                        "owner": "Tyler Wiggins",
                        "deadline": None,
                        "evidence": "I'll send the pricing sheet after the call",
                        "confidence": 0.9,
                        "type": "commitment",
                    },
                    {
                        "action": "Share the rollout plan",
                        "owner": None,
                        "deadline": "next week",
                        "evidence": None,
                        "confidence": 0.88,
                        "type": None,
                    },
                ]
            },
        )

        result = await composer.extract_meeting_action_states(sample_chunks, ATTENDEES)

        assert [i.action for i in result.primary] == ["Send pricing sheet", "Share the rollout plan"]
        assert result.primary[0].deadline == "Not specified"
        assert result.primary[1].owner == "Unassigned"
        assert result.primary[1].evidence == ""

    @pytest.mark.asyncio
    async def test_attendees_passed_to_prompt(self, composer, mock_llm, sample_chunks) -> None:
        _reply(mock_llm, [])

        result = await composer.extract_meeting_action_states(sample_chunks, ATTENDEES)

        system = mock_llm.generate_text.await_args.args[0].messages[0].content
        assert "Tyler Wiggins, Eric Conn, Randy Hentschke" in system
        assert result.primary == [] and result.secondary == []

    @pytest.mark.asyncio
    async def test_wrong_shape_raises(self, composer, mock_llm, sample_chunks) -> None:
        _reply(mock_llm, {"items": "none"})
        with pytest.raises(LLMResponseParseError):
            await composer.extract_meeting_action_states(sample_chunks)


# ---------------------------------------------------------------------------
# Supplementary schemas
# ---------------------------------------------------------------------------


class TestSupplementarySchemas:
    @pytest.mark.asyncio
    async def test_customer_questions_anchored(self, composer, mock_llm, sample_chunks) -> None:
        _reply(
            mock_llm,
            {
                "questions": [
                    {
                        "question_text": "How does the pricing work for fifty stores?",
                        "question_turn_index": 2,
                        "status": "ANSWERED",
                    }
                ]
            },
        )

        [question] = await composer.extract_customer_questions(sample_chunks)

        assert question.asked_by_name == "Randy Hentschke"
        assert question.answered_by_name == "Tyler Wiggins"

    @pytest.mark.asyncio
    async def test_transcript_analysis(self, composer, mock_llm, sample_chunks) -> None:
        _reply(
            mock_llm,
            {
                "insights": [{"feature": "Live TV dashboard", "context": "demo"}],
                "qaPairs": [{"question": "How is it priced?", "answer": "Per store"}],
                "posSystem": None,
            },
        )

        analysis = await composer.analyze_transcript(sample_chunks)

        assert analysis.insights[0].feature == "Live TV dashboard"
        assert analysis.qa_pairs[0].answer == "Per store"
        assert analysis.pos_system is None

    @pytest.mark.asyncio
    async def test_rank_by_relevance(self, composer, mock_llm) -> None:
        _reply(
            mock_llm,
            {
                "rankings": [
                    {"index": 0, "score": 60, "reason": "mentions pricing"},
                    {"index": 1, "score": 49, "reason": "weak"},
                    {"index": 2, "score": 90, "reason": "about pricing"},
                    {"index": 7, "score": 99, "reason": "out of range"},
                ]
            },
        )

        rankings = await composer.rank_by_relevance(["a", "b", "c"], "pricing")

        assert [r.index for r in rankings] == [2, 0]

    @pytest.mark.asyncio
    async def test_rank_nothing(self, composer, mock_llm) -> None:
        assert await composer.rank_by_relevance([], "pricing") == []
        mock_llm.generate_text.assert_not_awaited()
