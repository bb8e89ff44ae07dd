"""
Deterministic snippet matching over transcript chunks.

Used as the candidate pool for semantic re-ranking and as the fallback when
re-ranking is unavailable. Matches are tiered: chunks containing both a
proper noun and a keyword, then keyword-only, then proper-noun-only.
"""

import re
from typing import List, Sequence, Tuple

from domain.models import SnippetMatch, TranscriptChunk


STOP_WORDS = frozenset(
    {
        "what", "when", "where", "which", "that", "this", "from", "with", "about",
        "were", "have", "been", "does", "will", "would", "could", "should", "there",
        "their", "they", "your", "just", "some", "into", "more", "also", "than",
        "only", "other", "then", "after", "before", "being", "very", "like", "over",
        "friday", "monday", "tuesday", "wednesday", "thursday", "saturday", "sunday",
        "issue", "issues", "problem", "problems", "experienced", "happening",
        "last", "latest", "recent", "previous", "yesterday", "today", "earlier",
        "call", "calls", "meeting", "meetings", "sync", "syncs", "demo", "demos",
    }
)

_PROPER_NOUN = re.compile(r"^[A-Z][a-z]+$")
_NON_ALPHA = re.compile(r"[^a-z]")

MATCH_BOTH = "both"
MATCH_KEYWORD = "keyword"
MATCH_PROPER_NOUN = "proper_noun"


def extract_keywords(query: str) -> Tuple[List[str], List[str]]:
    """Split a query into (keywords, proper_nouns), both lowercased.

    Proper nouns are capitalised words after the first token. Keywords are
    alphabetic words longer than three characters that are neither stop
    words nor proper nouns.
    """
    words = query.split()
    proper_nouns = [w.lower() for i, w in enumerate(words) if i > 0 and _PROPER_NOUN.match(w)]
    proper_set = set(proper_nouns)

    keywords = []
    for word in query.lower().split():
        cleaned = _NON_ALPHA.sub("", word)
        if len(cleaned) > 3 and cleaned not in STOP_WORDS and cleaned not in proper_set:
            keywords.append(cleaned)
    return keywords, proper_nouns


def _contains_any(text: str, terms: Sequence[str]) -> bool:
    return any(term in text for term in terms)


def match_snippets(
    chunks: Sequence[TranscriptChunk], query: str, limit: int = 3
) -> List[SnippetMatch]:
    """Return the best deterministic tier of matching chunks, capped at *limit*."""
    keywords, proper_nouns = extract_keywords(query)

    if proper_nouns and keywords:
        both = [
            c for c in chunks
            if _contains_any(c.text.lower(), proper_nouns) and _contains_any(c.text.lower(), keywords)
        ]
        if both:
            return [SnippetMatch(chunk=c, match_type=MATCH_BOTH) for c in both[:limit]]

    if keywords:
        keyword_hits = [c for c in chunks if _contains_any(c.text.lower(), keywords)]
        if keyword_hits:
            return [SnippetMatch(chunk=c, match_type=MATCH_KEYWORD) for c in keyword_hits[:limit]]

    if proper_nouns:
        noun_hits = [c for c in chunks if _contains_any(c.text.lower(), proper_nouns)]
        if noun_hits:
            return [SnippetMatch(chunk=c, match_type=MATCH_PROPER_NOUN) for c in noun_hits[:limit]]

    return []


def candidate_pool(chunks: Sequence[TranscriptChunk], query: str) -> List[TranscriptChunk]:
    """Chunks mentioning any query term; all chunks when the query has no usable terms."""
    keywords, proper_nouns = extract_keywords(query)
    terms = keywords + proper_nouns
    if not terms:
        return list(chunks)
    return [c for c in chunks if _contains_any(c.text.lower(), terms)]


def is_proper_noun_only(matches: Sequence[SnippetMatch]) -> bool:
    return bool(matches) and all(m.match_type == MATCH_PROPER_NOUN for m in matches)
