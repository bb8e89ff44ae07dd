"""
Transcript formatting for LLM prompts.

Every prompt that quotes a transcript uses ``[chunk_index] Speaker: text``
lines so the model can cite chunk indexes back to us.
"""

from typing import Iterable, List, Sequence

from domain.models import SpeakerRole, TranscriptChunk
from shared_utils.constants import LogScope
from shared_utils.error_handler import ProcessingError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.COMPOSITION)

_ROLE_LABELS = {
    SpeakerRole.CUSTOMER: "Customer",
    SpeakerRole.LEVEREGE: "Leverege",
    SpeakerRole.UNKNOWN: "Unknown",
}


def speaker_label(chunk: TranscriptChunk) -> str:
    if chunk.speaker_name and chunk.speaker_name != "Unknown":
        return chunk.speaker_name
    return _ROLE_LABELS[chunk.speaker_role]


def assert_speaker_names_preserved(chunks: Iterable[TranscriptChunk], formatted: str) -> None:
    """Raise if a named speaker is missing from *formatted*.

    Raises:
        ProcessingError: When a speaker name present on a chunk was dropped.
    """
    for chunk in chunks:
        if chunk.speaker_name and chunk.speaker_name != "Unknown" and chunk.speaker_name not in formatted:
            logger.error(
                "speaker_name_dropped",
                chunk_index=chunk.chunk_index,
                speaker_name=chunk.speaker_name,
            )
            raise ProcessingError(
                f"Speaker name '{chunk.speaker_name}' of chunk {chunk.chunk_index} "
                "was not preserved in the formatted transcript",
                context={"chunk_index": chunk.chunk_index},
            )


def format_transcript(chunks: Sequence[TranscriptChunk]) -> str:
    """Render chunks as ``[idx] Speaker: text`` lines."""
    formatted = "\n".join(
        f"[{chunk.chunk_index}] {speaker_label(chunk)}: {chunk.text}" for chunk in chunks
    )
    assert_speaker_names_preserved(chunks, formatted)
    return formatted


def customer_chunks(chunks: Sequence[TranscriptChunk]) -> List[TranscriptChunk]:
    return [c for c in chunks if c.speaker_role == SpeakerRole.CUSTOMER]
