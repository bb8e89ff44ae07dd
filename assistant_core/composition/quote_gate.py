"""
Speaker attribution gate for quote selection.

Quotes are only produced when the speaker of each line can be trusted.
A chunk counts as attributed when it has a speaker name or a known role.
"""

from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from assistant_core.composition.transcript_format import customer_chunks
from domain.models import SelectedQuote, SpeakerRole, TranscriptChunk
from shared_utils.constants import Thresholds


NOTES_NOTICE = (
    "I didn't include direct quotes because this was meeting notes rather than a transcript, "
    "which makes speaker attribution unreliable."
)
LOW_ATTRIBUTION_NOTICE = (
    "I didn't include direct quotes from this meeting because the transcript doesn't consistently "
    "label speakers, which makes quotes hard to interpret out of context."
)
NO_CUSTOMER_NOTICE = (
    "I didn't include direct quotes because no customer statements were clearly attributed "
    "in this transcript."
)


class QuoteGateResult(BaseModel):
    passed: bool
    notice: Optional[str] = None
    reason: Optional[str] = None
    attribution_ratio: float = 0.0
    customer_chunks: List[TranscriptChunk] = Field(default_factory=list)


def speaker_attribution_ratio(chunks: Sequence[TranscriptChunk]) -> float:
    if not chunks:
        return 0.0
    attributed = sum(
        1 for c in chunks if c.speaker_name is not None or c.speaker_role != SpeakerRole.UNKNOWN
    )
    return attributed / len(chunks)


def check_quote_gate(chunks: Sequence[TranscriptChunk], content_type: str) -> QuoteGateResult:
    """Apply the three gates in order: content type, attribution ratio, customer presence."""
    if content_type != "transcript":
        return QuoteGateResult(passed=False, notice=NOTES_NOTICE, reason="notes_content")

    ratio = speaker_attribution_ratio(chunks)
    if ratio < Thresholds.SPEAKER_ATTRIBUTION_RATIO:
        return QuoteGateResult(
            passed=False,
            notice=LOW_ATTRIBUTION_NOTICE,
            reason="low_speaker_attribution",
            attribution_ratio=ratio,
        )

    customers = customer_chunks(chunks)
    if not customers:
        return QuoteGateResult(
            passed=False,
            notice=NO_CUSTOMER_NOTICE,
            reason="no_customer_chunks",
            attribution_ratio=ratio,
        )

    return QuoteGateResult(passed=True, attribution_ratio=ratio, customer_chunks=customers)


def keep_customer_quotes(
    quotes: Sequence[SelectedQuote],
    customers: Sequence[TranscriptChunk],
    max_quotes: int,
) -> List[SelectedQuote]:
    """Drop quotes that do not point at a customer chunk and cap the count."""
    allowed = {c.chunk_index for c in customers}
    kept = [q for q in quotes if q.chunk_index in allowed]
    for quote in kept:
        quote.speaker_role = SpeakerRole.CUSTOMER
    return kept[:max_quotes]
