"""
In-memory transcript store adapter.

Implements TranscriptStorePort over plain dicts, optionally seeded from a
JSON file. Used for local development and tests; production retrieval lives
behind the same port.

Seed file shape::

    {"transcripts": [{"id": ..., "company_name": ..., "meeting_date": ...,
                      "chunks": [...], "qa_pairs": [...], "action_items": [...]}]}
"""

from __future__ import annotations

import json
from typing import Dict, List, Optional

from domain.models import MeetingActionItem, QAPair, TranscriptChunk, TranscriptRecord
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import ConfigurationError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class InMemoryTranscriptStore:
    """Dict-backed implementation of TranscriptStorePort."""

    def __init__(self) -> None:
        self._records: Dict[str, TranscriptRecord] = {}
        self._chunks: Dict[str, List[TranscriptChunk]] = {}
        self._qa_pairs: Dict[str, List[QAPair]] = {}
        self._action_items: Dict[str, List[MeetingActionItem]] = {}

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryTranscriptStore":
        store = cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(
                f"Cannot load transcript seed file {path}: {exc}",
                context={"path": path},
            ) from exc

        for item in data.get("transcripts", []):
            store.add_transcript(
                TranscriptRecord.model_validate(item),
                chunks=[TranscriptChunk.model_validate(c) for c in item.get("chunks", [])],
                qa_pairs=[QAPair.model_validate(q) for q in item.get("qa_pairs", [])],
                action_items=[MeetingActionItem.model_validate(a) for a in item.get("action_items", [])],
            )
        logger.info("transcript_store_seeded", path=path, transcripts=len(store._records))
        return store

    def add_transcript(
        self,
        record: TranscriptRecord,
        chunks: Optional[List[TranscriptChunk]] = None,
        qa_pairs: Optional[List[QAPair]] = None,
        action_items: Optional[List[MeetingActionItem]] = None,
    ) -> None:
        self._records[record.id] = record
        self._chunks[record.id] = sorted(chunks or [], key=lambda c: c.chunk_index)
        self._qa_pairs[record.id] = list(qa_pairs or [])
        self._action_items[record.id] = list(action_items or [])

    # ------------------------------------------------------------------
    # TranscriptStorePort implementation
    # ------------------------------------------------------------------

    async def get_chunks_for_transcript(
        self, transcript_id: str, limit: int = Defaults.CHUNK_FETCH_LIMIT
    ) -> List[TranscriptChunk]:
        return list(self._chunks.get(transcript_id, []))[:limit]

    async def get_qa_pairs_by_transcript_id(self, transcript_id: str) -> List[QAPair]:
        return list(self._qa_pairs.get(transcript_id, []))

    async def get_meeting_action_items_by_transcript(
        self, transcript_id: str
    ) -> List[MeetingActionItem]:
        return list(self._action_items.get(transcript_id, []))

    async def get_transcript_by_id(self, transcript_id: str) -> Optional[TranscriptRecord]:
        return self._records.get(transcript_id)

    async def find_transcripts(
        self, company_name: Optional[str] = None, limit: int = Defaults.MULTI_MEETING_LIMIT
    ) -> List[TranscriptRecord]:
        records = list(self._records.values())
        if company_name:
            wanted = company_name.lower()
            records = [r for r in records if r.company_name.lower() == wanted]
        # ISO dates sort lexically; undated records go last.
        records.sort(key=lambda r: r.meeting_date or "", reverse=True)
        return records[:limit]

    async def list_company_names(self) -> List[str]:
        """Distinct company names, so the store can back the company directory."""
        return sorted({r.company_name for r in self._records.values()})
