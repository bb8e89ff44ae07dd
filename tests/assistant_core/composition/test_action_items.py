"""
Tests for assistant_core.composition.action_items.

Covers owner normalization against the attendee list, deadline defaults,
the green-room filter and confidence banding at the exact thresholds.
"""

import pytest

from assistant_core.composition.action_items import (
    NOT_SPECIFIED,
    UNASSIGNED,
    band_action_items,
    build_canonical_attendee_list,
    is_green_room_chatter,
    normalize_deadline,
    normalize_owner_name,
    postprocess_action_items,
)
from domain.models import MeetingActionItem


ATTENDEES = ["Tyler Wiggins", "Eric Conn", "Randy Hentschke"]


def _item(action: str, confidence: float, **kwargs) -> MeetingActionItem:
    return MeetingActionItem(action=action, confidence=confidence, **kwargs)


# ---------------------------------------------------------------------------
# Owners and deadlines
# ---------------------------------------------------------------------------


class TestCanonicalAttendees:
    def test_merges_team_and_customers(self) -> None:
        assert build_canonical_attendee_list("Tyler Wiggins, Eric Conn", " Randy Hentschke ") == ATTENDEES

    def test_empty_fields(self) -> None:
        assert build_canonical_attendee_list(None, "") == []


class TestNormalizeOwnerName:
    def test_exact_match_case_insensitive(self) -> None:
        assert normalize_owner_name("eric conn", ATTENDEES) == "Eric Conn"

    def test_unique_first_name(self) -> None:
        assert normalize_owner_name("Tyler", ATTENDEES) == "Tyler Wiggins"

    def test_ambiguous_first_name_kept_as_typed(self) -> None:
        names = ["Tyler Wiggins", "Tyler Smith"]
        assert normalize_owner_name("Tyler", names) == "Tyler"

    def test_team_name_kept_as_typed(self) -> None:
        assert normalize_owner_name("Leverege team", ATTENDEES) == "Leverege team"

    def test_multi_owner(self) -> None:
        assert normalize_owner_name("Tyler and Eric", ATTENDEES) == "Tyler Wiggins, Eric Conn"

    @pytest.mark.parametrize("raw", [None, "", "   ", "Unassigned"])
    def test_missing_owner(self, raw) -> None:
        assert normalize_owner_name(raw, ATTENDEES) == UNASSIGNED


class TestNormalizeDeadline:
    def test_blank_is_not_specified(self) -> None:
        assert normalize_deadline("  ") == NOT_SPECIFIED
        assert normalize_deadline(None) == NOT_SPECIFIED

    def test_value_is_trimmed(self) -> None:
        assert normalize_deadline(" Friday ") == "Friday"


# ---------------------------------------------------------------------------
# Green room
# ---------------------------------------------------------------------------


class TestGreenRoomFilter:
    def test_introduction_is_chatter(self) -> None:
        assert is_green_room_chatter("Introduce Ryan to the group", "Let me introduce Ryan")

    def test_screen_share_is_chatter(self) -> None:
        assert is_green_room_chatter("Share my screen to show the dashboard")

    def test_future_marker_keeps_item(self) -> None:
        assert not is_green_room_chatter("Share my screen recording after the call")

    def test_real_commitment_is_not_chatter(self) -> None:
        assert not is_green_room_chatter("Send the pricing sheet", "I'll send the sheet tomorrow")


# ---------------------------------------------------------------------------
# Banding and pipeline
# ---------------------------------------------------------------------------


class TestBandActionItems:
    def test_primary_threshold_inclusive(self) -> None:
        result = band_action_items([_item("a", 0.85), _item("b", 0.84999)])
        assert [i.action for i in result.primary] == ["a"]
        assert [i.action for i in result.secondary] == ["b"]
        assert result.primary[0].is_primary is True
        assert result.secondary[0].is_primary is False

    def test_below_secondary_dropped(self) -> None:
        result = band_action_items([_item("a", 0.70), _item("b", 0.69)])
        assert [i.action for i in result.secondary] == ["a"]
        assert result.primary == []


class TestPostprocessActionItems:
    def test_green_room_item_dropped_despite_high_confidence(self) -> None:
        items = [
            _item("Introduce Ryan to the Les Schwab team", 0.9, evidence="Let me introduce Ryan"),
            _item("Send pricing sheet", 0.9, owner="tyler", deadline=""),
        ]
        result = postprocess_action_items(items, ATTENDEES)

        assert [i.action for i in result.primary] == ["Send pricing sheet"]
        assert result.primary[0].owner == "Tyler Wiggins"
        assert result.primary[0].deadline == NOT_SPECIFIED
