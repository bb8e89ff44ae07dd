"""
Tests for assistant_core.composition.keyword_search.

Covers keyword and proper-noun extraction, the match tiers, the candidate
pool and the proper-noun-only predicate.
"""

from assistant_core.composition.keyword_search import (
    MATCH_BOTH,
    MATCH_KEYWORD,
    MATCH_PROPER_NOUN,
    candidate_pool,
    extract_keywords,
    is_proper_noun_only,
    match_snippets,
)
from domain.models import TranscriptChunk


def _chunks(*texts: str):
    return [TranscriptChunk(chunk_index=i, text=t) for i, t in enumerate(texts)]


class TestExtractKeywords:
    def test_stop_words_and_short_words_dropped(self) -> None:
        keywords, proper = extract_keywords("What did Randy say about pricing?")
        assert keywords == ["pricing"]
        assert proper == ["randy"]

    def test_first_word_is_not_a_proper_noun(self) -> None:
        _, proper = extract_keywords("Pricing for Walmart")
        assert proper == ["walmart"]


class TestMatchSnippets:
    def test_both_tier_preferred(self) -> None:
        chunks = _chunks("pricing is simple", "Walmart asked about pricing", "Walmart called")
        matches = match_snippets(chunks, "What did Walmart say about pricing")
        assert [m.chunk.chunk_index for m in matches] == [1]
        assert matches[0].match_type == MATCH_BOTH

    def test_keyword_tier(self, sample_chunks) -> None:
        matches = match_snippets(sample_chunks, "What did Randy say about pricing")
        assert [m.chunk.chunk_index for m in matches] == [2, 3]
        assert all(m.match_type == MATCH_KEYWORD for m in matches)

    def test_proper_noun_tier(self) -> None:
        chunks = _chunks("nothing here", "Walmart joined late")
        matches = match_snippets(chunks, "What about Walmart")
        assert [m.match_type for m in matches] == [MATCH_PROPER_NOUN]
        assert is_proper_noun_only(matches)

    def test_limit(self) -> None:
        chunks = _chunks(*["pricing again"] * 5)
        assert len(match_snippets(chunks, "pricing", limit=2)) == 2

    def test_no_match(self, sample_chunks) -> None:
        assert match_snippets(sample_chunks, "What about blockchain") == []


class TestCandidatePool:
    def test_filters_by_terms(self, sample_chunks) -> None:
        pool = candidate_pool(sample_chunks, "integration worries")
        assert [c.chunk_index for c in pool] == [4]

    def test_no_terms_returns_all(self, sample_chunks) -> None:
        assert candidate_pool(sample_chunks, "what is it") == sample_chunks


class TestIsProperNounOnly:
    def test_empty_is_false(self) -> None:
        assert not is_proper_noun_only([])
