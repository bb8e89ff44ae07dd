"""
Transcript search for extractive questions.

Semantic re-ranking over a keyword-prefiltered candidate pool first; when the
re-ranker fails or finds nothing relevant, the deterministic snippet tiers
are used (both, keyword, proper noun).
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from assistant_core.composition.keyword_search import candidate_pool, match_snippets
from domain.models import PromptUsageRecord, SnippetMatch, TranscriptChunk
from services.composition_service import EvidenceComposer
from shared_utils.constants import LogScope
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.RETRIEVAL)

MATCH_SEMANTIC = "semantic"


class TranscriptSearchService:
    def __init__(self, *, composer: EvidenceComposer, limit: int = 3) -> None:
        self._composer = composer
        self._limit = limit

    async def search(
        self,
        chunks: Sequence[TranscriptChunk],
        query: str,
        usage: Optional[PromptUsageRecord] = None,
    ) -> List[SnippetMatch]:
        """Return up to ``limit`` chunks relevant to *query*, best first."""
        pool = candidate_pool(chunks, query)
        if pool:
            try:
                rankings = await self._composer.rank_by_relevance(
                    [c.text for c in pool], query, usage=usage
                )
            except Exception as e:
                logger.warning("semantic_rerank_failed", error=str(e), candidates=len(pool))
            else:
                if rankings:
                    matches = [
                        SnippetMatch(chunk=pool[r.index], match_type=MATCH_SEMANTIC, score=r.score)
                        for r in rankings[: self._limit]
                    ]
                    logger.info("transcript_search_semantic", candidates=len(pool), matched=len(matches))
                    return matches

        matches = match_snippets(chunks, query, limit=self._limit)
        logger.info(
            "transcript_search_fallback",
            candidates=len(pool),
            matched=len(matches),
            match_type=matches[0].match_type if matches else None,
        )
        return matches
