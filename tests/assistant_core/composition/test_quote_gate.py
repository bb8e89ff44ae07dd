"""
Tests for assistant_core.composition.quote_gate.

Covers the three gates in order (content type, attribution ratio, customer
presence) and the post-filter on LLM-proposed quotes.
"""

from assistant_core.composition.quote_gate import (
    LOW_ATTRIBUTION_NOTICE,
    NO_CUSTOMER_NOTICE,
    NOTES_NOTICE,
    check_quote_gate,
    keep_customer_quotes,
    speaker_attribution_ratio,
)
from domain.models import SelectedQuote, SpeakerRole, TranscriptChunk


def _chunk(index: int, name=None, role=SpeakerRole.UNKNOWN) -> TranscriptChunk:
    return TranscriptChunk(chunk_index=index, speaker_name=name, speaker_role=role, text=f"line {index}")


class TestAttributionRatio:
    def test_empty(self) -> None:
        assert speaker_attribution_ratio([]) == 0.0

    def test_role_or_name_counts(self) -> None:
        chunks = [_chunk(0, "Randy"), _chunk(1, role=SpeakerRole.CUSTOMER), _chunk(2), _chunk(3)]
        assert speaker_attribution_ratio(chunks) == 0.5


class TestCheckQuoteGate:
    def test_notes_never_quoted(self, sample_chunks) -> None:
        result = check_quote_gate(sample_chunks, "notes")
        assert not result.passed
        assert result.notice == NOTES_NOTICE

    def test_low_attribution_returns_notice(self) -> None:
        chunks = [_chunk(i, "Randy", SpeakerRole.CUSTOMER) for i in range(3)]
        chunks += [_chunk(i) for i in range(3, 10)]

        result = check_quote_gate(chunks, "transcript")

        assert not result.passed
        assert result.notice == LOW_ATTRIBUTION_NOTICE
        assert round(result.attribution_ratio, 2) == 0.3

    def test_no_customer_chunks(self) -> None:
        chunks = [_chunk(i, "Tyler", SpeakerRole.LEVEREGE) for i in range(4)]
        result = check_quote_gate(chunks, "transcript")
        assert not result.passed
        assert result.notice == NO_CUSTOMER_NOTICE

    def test_passes_with_customer_chunks(self, sample_chunks) -> None:
        result = check_quote_gate(sample_chunks, "transcript")
        assert result.passed
        assert [c.chunk_index for c in result.customer_chunks] == [2, 4]


class TestKeepCustomerQuotes:
    def test_drops_non_customer_indexes_and_caps(self, sample_chunks) -> None:
        customers = [c for c in sample_chunks if c.speaker_role == SpeakerRole.CUSTOMER]
        quotes = [
            SelectedQuote(chunk_index=2, quote="How does the pricing work"),
            SelectedQuote(chunk_index=3, quote="Pricing is per store"),
            SelectedQuote(chunk_index=4, quote="Our biggest worry"),
        ]

        kept = keep_customer_quotes(quotes, customers, max_quotes=1)

        assert [q.chunk_index for q in kept] == [2]
        assert kept[0].speaker_role == SpeakerRole.CUSTOMER
