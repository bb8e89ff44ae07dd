"""
Tests for assistant_core.control_plane.context_layers.

Covers the per-intent layer table, the always-on product identity layer,
the readable reason, and the access predicates.
"""

import pytest

from assistant_core.control_plane.context_layers import (
    can_access_documents,
    can_access_multi_meeting,
    can_access_product_ssot,
    can_access_single_meeting,
    compute_context_layers,
    enabled_layer_names,
    resolve_context_layers,
)
from domain.models import Intent


class TestComputeContextLayers:
    @pytest.mark.parametrize("intent", list(Intent))
    def test_product_identity_always_enabled(self, intent: Intent) -> None:
        assert compute_context_layers(intent).product_identity is True

    @pytest.mark.parametrize("intent", list(Intent))
    def test_only_known_layers_reported(self, intent: Intent) -> None:
        names = set(enabled_layer_names(compute_context_layers(intent)))
        assert names <= {
            "product_identity",
            "product_ssot",
            "single_meeting",
            "multi_meeting",
            "document_context",
        }

    @pytest.mark.parametrize(
        "intent, expected",
        [
            (Intent.SINGLE_MEETING, ["product_identity", "single_meeting"]),
            (Intent.MULTI_MEETING, ["product_identity", "multi_meeting"]),
            (Intent.PRODUCT_KNOWLEDGE, ["product_identity", "product_ssot"]),
            (Intent.EXTERNAL_RESEARCH, ["product_identity", "product_ssot"]),
            (Intent.DOCUMENT_SEARCH, ["product_identity", "document_context"]),
            (Intent.GENERAL_HELP, ["product_identity"]),
            (Intent.REFUSE, ["product_identity"]),
            (Intent.CLARIFY, ["product_identity"]),
        ],
    )
    def test_layers_per_intent(self, intent: Intent, expected) -> None:
        assert enabled_layer_names(compute_context_layers(intent)) == expected


class TestResolveContextLayers:
    def test_reason_names_extra_layers(self) -> None:
        result = resolve_context_layers(Intent.SINGLE_MEETING)
        assert result.intent == Intent.SINGLE_MEETING
        assert "single_meeting enabled for SINGLE_MEETING" in result.reason

    def test_reason_without_extra_layers(self) -> None:
        result = resolve_context_layers(Intent.GENERAL_HELP)
        assert "No additional layers" in result.reason


class TestAccessPredicates:
    def test_single_meeting_gate(self) -> None:
        layers = compute_context_layers(Intent.SINGLE_MEETING)
        assert can_access_single_meeting(layers)
        assert not can_access_multi_meeting(layers)
        assert not can_access_product_ssot(layers)
        assert not can_access_documents(layers)

    def test_research_can_read_product_ssot(self) -> None:
        assert can_access_product_ssot(compute_context_layers(Intent.EXTERNAL_RESEARCH))

    def test_documents_gate(self) -> None:
        assert can_access_documents(compute_context_layers(Intent.DOCUMENT_SEARCH))
        assert not can_access_documents(compute_context_layers(Intent.GENERAL_HELP))
