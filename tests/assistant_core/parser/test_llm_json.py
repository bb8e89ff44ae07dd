"""
Tests for assistant_core.parser.llm_json.
"""

import pytest

from assistant_core.parser.llm_json import parse_llm_json, parse_llm_model, strip_code_fences
from domain.models import RelevanceRankings
from shared_utils.error_handler import LLMResponseParseError


class TestStripCodeFences:
    def test_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self) -> None:
        assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"

    def test_plain_text_untouched(self) -> None:
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestParseLlmJson:
    def test_fenced_payload(self) -> None:
        assert parse_llm_json('```json\n{"intent": "SINGLE_MEETING"}\n```', "intent") == {
            "intent": "SINGLE_MEETING"
        }

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_raises(self, raw) -> None:
        with pytest.raises(LLMResponseParseError) as exc_info:
            parse_llm_json(raw, "intent")
        assert exc_info.value.context["parse_context"] == "intent"

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(LLMResponseParseError):
            parse_llm_json("Sure! Here is the answer: SINGLE_MEETING", "intent")


class TestParseLlmModel:
    def test_valid_model(self) -> None:
        result = parse_llm_model(
            '{"rankings": [{"index": 2, "score": 80, "reason": "pricing"}]}',
            RelevanceRankings,
            "rerank",
        )
        assert result.rankings[0].index == 2

    def test_schema_mismatch_raises(self) -> None:
        with pytest.raises(LLMResponseParseError, match="RelevanceRankings"):
            parse_llm_model('{"rankings": "none"}', RelevanceRankings, "rerank")
