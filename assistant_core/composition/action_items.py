"""
Deterministic post-processing of LLM-proposed action items.

The model proposes raw items; everything below decides what survives:
owner normalization against the meeting's attendee list, deadline
normalization, the green-room filter for in-meeting narration, and
confidence banding into primary and secondary items.
"""

import re
from typing import Iterable, List, Optional, Sequence

from domain.models import ActionExtractionResult, MeetingActionItem
from shared_utils.constants import LogScope, Thresholds
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.COMPOSITION)

UNASSIGNED = "Unassigned"
NOT_SPECIFIED = "Not specified"

_MULTI_OWNER_SPLIT = re.compile(r",\s*|\s+and\s+", re.IGNORECASE)

# ---------------------------------------------------------------------------
# Owners
# ---------------------------------------------------------------------------


def build_canonical_attendee_list(
    leverage_team: Optional[str] = None, customer_names: Optional[str] = None
) -> List[str]:
    """Attendee names from the comma separated transcript metadata fields."""
    names: List[str] = []
    for field in (leverage_team, customer_names):
        if field:
            names.extend(n.strip() for n in field.split(",") if n.strip())
    return names


def normalize_owner_name(raw_owner: Optional[str], canonical_names: Sequence[str]) -> str:
    """Map an owner string onto canonical attendee spellings.

    Exact case-insensitive match wins, then a first name that identifies
    exactly one attendee. Anything else (team or company names) is kept as
    typed. Multi-owner strings are normalized part by part.
    """
    if raw_owner is None or not raw_owner.strip() or raw_owner.strip() == UNASSIGNED:
        return UNASSIGNED

    trimmed = raw_owner.strip()

    if " and " in trimmed.lower() or ("," in trimmed and not trimmed.startswith(",")):
        parts = [p.strip() for p in _MULTI_OWNER_SPLIT.split(trimmed) if p.strip()]
        if len(parts) > 1:
            normalized = [normalize_owner_name(p, canonical_names) for p in parts]
            kept = [n for n in normalized if n and n != UNASSIGNED]
            return ", ".join(kept) if kept else UNASSIGNED

    lower = trimmed.lower()
    for name in canonical_names:
        if name.lower() == lower:
            return name

    first_name_hits = [n for n in canonical_names if n.split(" ")[0].lower() == lower]
    if len(first_name_hits) == 1:
        return first_name_hits[0]

    return trimmed


def normalize_deadline(deadline: Optional[str]) -> str:
    if deadline is None or not deadline.strip():
        return NOT_SPECIFIED
    return deadline.strip()


# ---------------------------------------------------------------------------
# Green-room filter
# ---------------------------------------------------------------------------

IN_MEETING_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in [
        r"\bwalk (?:you|everyone|y'all) through\b",
        r"\b(?:share|sharing) (?:my|the) screen\b",
        r"\bcan (?:you|everyone|everybody) see my screen\b",
        r"\bcan (?:you|everyone|everybody) hear me\b",
        r"\b(?:let me|i'll|i will|i'm going to) introduce\b",
        r"^\s*introduce\b",
        r"\b(?:i'll|i will|let me) hand (?:it|things) (?:off|over)\b",
        r"\bhand (?:it|things) off to\b",
        r"\b(?:let me|i'll) (?:pull up|bring up|click through|reshare)\b",
        r"\b(?:let me|i'll) admit (?:them|him|her)\b",
        r"\bwaiting for (?:\w+ )?to join\b",
    ]
]

FUTURE_MARKERS = [
    re.compile(p, re.IGNORECASE)
    for p in [
        r"\bafter (?:the|this|today's) (?:call|meeting)\b",
        r"\bfollow[ -]?up\b",
        r"\bnext steps?\b",
        r"\btomorrow\b",
        r"\bnext (?:week|month|time|call|meeting)\b",
        r"\bwill send\b",
        r"\b(?:i'll|we'll) send\b",
        r"\bsend (?:it |that |them )?over\b",
        r"\bby (?:end of|eod|eow|monday|tuesday|wednesday|thursday|friday)\b",
        r"\blater (?:today|this week)\b",
        r"\boffline\b",
    ]
]


def _matches_any(patterns: Iterable[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def is_green_room_chatter(action: str, evidence: str = "") -> bool:
    """True when the item narrates something done inside the call itself.

    In-meeting narration survives only when the same text also points past
    the end of the meeting.
    """
    texts = [t for t in (action, evidence) if t]
    if not any(_matches_any(IN_MEETING_PATTERNS, t) for t in texts):
        return False
    return not any(_matches_any(FUTURE_MARKERS, t) for t in texts)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def band_action_items(items: Iterable[MeetingActionItem]) -> ActionExtractionResult:
    primary: List[MeetingActionItem] = []
    secondary: List[MeetingActionItem] = []
    for item in items:
        if item.confidence >= Thresholds.ACTION_ITEM_PRIMARY:
            primary.append(item.model_copy(update={"is_primary": True}))
        elif item.confidence >= Thresholds.ACTION_ITEM_SECONDARY:
            secondary.append(item.model_copy(update={"is_primary": False}))
    return ActionExtractionResult(primary=primary, secondary=secondary)


def postprocess_action_items(
    raw_items: Iterable[MeetingActionItem], canonical_names: Sequence[str]
) -> ActionExtractionResult:
    """Normalize, filter and band raw items."""
    kept: List[MeetingActionItem] = []
    dropped = 0
    for item in raw_items:
        if is_green_room_chatter(item.action, item.evidence):
            dropped += 1
            logger.debug("action_item_green_room_dropped", action=item.action)
            continue
        kept.append(
            item.model_copy(
                update={
                    "owner": normalize_owner_name(item.owner, canonical_names),
                    "deadline": normalize_deadline(item.deadline),
                }
            )
        )

    result = band_action_items(kept)
    logger.info(
        "action_items_postprocessed",
        primary=len(result.primary),
        secondary=len(result.secondary),
        green_room_dropped=dropped,
        below_threshold=len(kept) - len(result.primary) - len(result.secondary),
    )
    return result
