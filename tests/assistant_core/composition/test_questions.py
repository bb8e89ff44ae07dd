"""
Tests for assistant_core.composition.questions.
"""

from assistant_core.composition.questions import (
    anchor_questions,
    build_context_before,
    requires_context,
)
from domain.models import CustomerQuestion


class TestRequiresContext:
    def test_demonstratives_trigger_context(self) -> None:
        assert requires_context("Does that include the TV dashboard?")
        assert requires_context("Can it run offline?")

    def test_self_contained_question(self) -> None:
        assert not requires_context("How does the pricing work for fifty stores?")

    def test_word_boundary(self) -> None:
        # "item" and "thistle" contain trigger letters but not trigger words
        assert not requires_context("Which item costs more than thistle seed?")


class TestBuildContextBefore:
    def test_two_prior_turns_only(self, sample_chunks) -> None:
        context = build_context_before(sample_chunks, 4)
        assert context == (
            "[Randy Hentschke]: How does the pricing work for fifty stores?\n"
            "[Tyler Wiggins]: Pricing is per store per month, I'll send the sheet after the call."
        )

    def test_first_turn_has_no_context(self, sample_chunks) -> None:
        assert build_context_before(sample_chunks, 0) is None


class TestAnchorQuestions:
    def test_fills_asker_and_answerer(self, sample_chunks) -> None:
        question = CustomerQuestion(
            question_text="How does the pricing work for fifty stores?",
            question_turn_index=2,
            status="answered",
        )

        [anchored] = anchor_questions([question], sample_chunks)

        assert anchored.status == "ANSWERED"
        assert anchored.asked_by_name == "Randy Hentschke"
        assert anchored.answered_by_name == "Tyler Wiggins"
        assert anchored.requires_context is False
        assert anchored.context_before is None

    def test_context_attached_when_needed(self, sample_chunks) -> None:
        question = CustomerQuestion(question_text="Does that include the TV dashboard?", question_turn_index=4)

        [anchored] = anchor_questions([question], sample_chunks)

        assert anchored.requires_context is True
        assert anchored.context_before.startswith("[Randy Hentschke]:")
        assert anchored.answered_by_name is None

    def test_unknown_turn_index_left_alone(self, sample_chunks) -> None:
        question = CustomerQuestion(question_text="Is it secure?", question_turn_index=99)

        [anchored] = anchor_questions([question], sample_chunks)

        assert anchored.asked_by_name == "Unknown"
        assert anchored.requires_context is True
        assert anchored.context_before is None
