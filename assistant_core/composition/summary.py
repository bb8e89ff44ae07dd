"""Cleanup applied to LLM meeting summaries before they reach a user."""

import re
from typing import List, Set

from domain.models import MeetingSummary


NONE_DETECTED = "None detected"

_DEBUG_LINE = re.compile(r"\[debug\]|\bDEBUG:|\bchunk_index\b|\bTODO:", re.IGNORECASE)

_LIST_SECTIONS = (
    "focus_areas",
    "key_takeaways",
    "risks_or_open_questions",
    "recommended_next_steps",
)


def _normalize(item: str) -> str:
    return " ".join(item.lower().split()).rstrip(".")


def clean_meeting_summary(summary: MeetingSummary) -> MeetingSummary:
    """Drop debug lines and duplicates across sections; empty sections read "None detected".

    Sections are processed in display order, so the first occurrence of a
    repeated item is the one kept.
    """
    seen: Set[str] = set()
    update = {}
    for section in _LIST_SECTIONS:
        kept: List[str] = []
        for item in getattr(summary, section):
            text = item.strip()
            if not text or _DEBUG_LINE.search(text):
                continue
            key = _normalize(text)
            if key in seen:
                continue
            seen.add(key)
            kept.append(text)
        update[section] = kept or [NONE_DETECTED]

    title = summary.title.strip()
    purpose = summary.purpose.strip()
    update["title"] = "" if _DEBUG_LINE.search(title) else title
    update["purpose"] = "" if _DEBUG_LINE.search(purpose) else purpose
    return summary.model_copy(update=update)


def render_meeting_summary(summary: MeetingSummary) -> str:
    lines: List[str] = []
    if summary.title:
        lines.append(f"**{summary.title}**")
    if summary.purpose:
        lines.append(f"_Purpose:_ {summary.purpose}")

    for heading, items in (
        ("Focus areas", summary.focus_areas),
        ("Key takeaways", summary.key_takeaways),
        ("Risks or open questions", summary.risks_or_open_questions),
        ("Recommended next steps", summary.recommended_next_steps),
    ):
        lines.append("")
        lines.append(f"*{heading}*")
        lines.extend(f"- {item}" for item in items)
    return "\n".join(lines).strip()
