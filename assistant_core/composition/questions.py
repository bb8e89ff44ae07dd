"""
Context anchoring for extracted customer questions.

Whether a question needs its preceding turns is decided structurally from
pronouns and demonstratives, never by the LLM.
"""

import re
from typing import Dict, List, Optional, Sequence

from domain.models import CustomerQuestion, TranscriptChunk


CONTEXT_TRIGGERS = [
    re.compile(r"\bthis\b", re.IGNORECASE),
    re.compile(r"\bthat\b", re.IGNORECASE),
    re.compile(r"\bthose\b", re.IGNORECASE),
    re.compile(r"\bthese\b", re.IGNORECASE),
    re.compile(r"\bit\b", re.IGNORECASE),
    re.compile(r"\bthe same\b", re.IGNORECASE),
]

_CONTEXT_TURNS = 2
_ANSWERER_LOOKAHEAD = 3


def requires_context(question_text: str) -> bool:
    return any(p.search(question_text) for p in CONTEXT_TRIGGERS)


def build_context_before(chunks: Sequence[TranscriptChunk], position: int) -> Optional[str]:
    """Up to two turns immediately before *position*, oldest first. Never later turns."""
    preceding = chunks[max(0, position - _CONTEXT_TURNS):position]
    if not preceding:
        return None
    return "\n".join(f"[{c.speaker_name or 'Unknown'}]: {c.text}" for c in preceding)


def anchor_questions(
    questions: Sequence[CustomerQuestion], chunks: Sequence[TranscriptChunk]
) -> List[CustomerQuestion]:
    """Attach context, and fill unknown askers and answerers from the chunk speakers."""
    position_by_index: Dict[int, int] = {c.chunk_index: i for i, c in enumerate(chunks)}
    anchored: List[CustomerQuestion] = []

    for question in questions:
        needs_context = requires_context(question.question_text)
        asker = question.asked_by_name
        answerer = question.answered_by_name
        context_before = None

        position = position_by_index.get(question.question_turn_index)
        if position is not None:
            chunk = chunks[position]
            if (not asker or asker == "Unknown") and chunk.speaker_name:
                asker = chunk.speaker_name

            if question.status == "ANSWERED" and (not answerer or answerer == "Unknown"):
                for nxt in chunks[position + 1:position + 1 + _ANSWERER_LOOKAHEAD]:
                    if nxt.speaker_name and nxt.speaker_name != asker:
                        answerer = nxt.speaker_name
                        break

            if needs_context:
                context_before = build_context_before(chunks, position)

        anchored.append(
            question.model_copy(
                update={
                    "asked_by_name": asker or "Unknown",
                    "answered_by_name": answerer,
                    "requires_context": needs_context,
                    "context_before": context_before,
                }
            )
        )
    return anchored
