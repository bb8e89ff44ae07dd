"""
Port interface for transcript retrieval.

Implementations: InMemoryTranscriptStore (adapters/)

The assistant only reads through this port; evidence is never written back.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from domain.models import MeetingActionItem, QAPair, TranscriptChunk, TranscriptRecord


@runtime_checkable
class TranscriptStorePort(Protocol):
    """Abstract interface for the retrieval primitives used by contract handlers."""

    async def get_chunks_for_transcript(
        self, transcript_id: str, limit: int = 100
    ) -> List[TranscriptChunk]:
        """Return the chunks of a transcript ordered by chunk_index.

        Args:
            transcript_id: Transcript identifier.
            limit: Maximum number of chunks to return.

        Returns:
            Ordered chunks; empty list for an unknown transcript.
        """
        ...

    async def get_qa_pairs_by_transcript_id(self, transcript_id: str) -> List[QAPair]:
        """Return extracted customer Q&A pairs for a transcript."""
        ...

    async def get_meeting_action_items_by_transcript(
        self, transcript_id: str
    ) -> List[MeetingActionItem]:
        """Return action items already materialised for a transcript."""
        ...

    async def get_transcript_by_id(self, transcript_id: str) -> Optional[TranscriptRecord]:
        """Return transcript metadata, or None if not found."""
        ...

    async def find_transcripts(
        self, company_name: Optional[str] = None, limit: int = 10
    ) -> List[TranscriptRecord]:
        """Return transcripts newest first, optionally filtered by company.

        Args:
            company_name: Case-insensitive company filter. None returns all.
            limit: Maximum number of records.
        """
        ...
