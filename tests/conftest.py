"""
Root conftest.py — shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • Async tests use pytest-asyncio (@pytest.mark.asyncio).
    • Markers: integration.
"""

from typing import Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from adapters.in_memory_transcript_store import InMemoryTranscriptStore
from domain.models import (
    LLMResponse,
    SpeakerRole,
    TranscriptChunk,
    TranscriptRecord,
)


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


# ---------------------------------------------------------------------------
# Minimal settings kwargs for Settings(**BASE_SETTINGS_KWARGS)
# ---------------------------------------------------------------------------

BASE_SETTINGS_KWARGS: Dict[str, str] = {
    "default_llm_provider": "openai",
    "openai_api_key": "sk-test",
    "environment": "development",
}


@pytest.fixture()
def base_settings_kwargs() -> Dict[str, str]:
    """Provide the minimal kwargs needed to instantiate ``Settings``."""
    return {**BASE_SETTINGS_KWARGS}


# ---------------------------------------------------------------------------
# Sample transcript fixtures
# ---------------------------------------------------------------------------

def make_chunk(
    index: int,
    text: str,
    speaker_name: str = None,
    role: SpeakerRole = SpeakerRole.UNKNOWN,
) -> TranscriptChunk:
    return TranscriptChunk(chunk_index=index, speaker_name=speaker_name, speaker_role=role, text=text)


SAMPLE_CHUNKS: List[TranscriptChunk] = [
    make_chunk(0, "Thanks for joining, let me share my screen.", "Tyler Wiggins", SpeakerRole.LEVEREGE),
    make_chunk(1, "We track every bay with cameras and the live TV dashboard.", "Tyler Wiggins", SpeakerRole.LEVEREGE),
    make_chunk(2, "How does the pricing work for fifty stores?", "Randy Hentschke", SpeakerRole.CUSTOMER),
    make_chunk(3, "Pricing is per store per month, I'll send the sheet after the call.", "Tyler Wiggins", SpeakerRole.LEVEREGE),
    make_chunk(4, "Our biggest worry is the POS integration with our current system.", "Randy Hentschke", SpeakerRole.CUSTOMER),
    make_chunk(5, "We integrate with most POS vendors through an API.", "Eric Conn", SpeakerRole.LEVEREGE),
]


@pytest.fixture()
def sample_chunks() -> List[TranscriptChunk]:
    """Attributed transcript chunks with both customer and Leverege speakers."""
    return list(SAMPLE_CHUNKS)


@pytest.fixture()
def sample_record() -> TranscriptRecord:
    """A Les Schwab transcript record useful for executor and store tests."""
    return TranscriptRecord(
        id="t-les-1",
        company_name="Les Schwab",
        meeting_date="2026-01-15",
        content_type="transcript",
        leverage_team="Tyler Wiggins, Eric Conn",
        customer_names="Randy Hentschke",
        main_takeaways="Customer is evaluating PitCrew for fifty stores.",
    )


@pytest.fixture()
def transcript_store(sample_record, sample_chunks) -> InMemoryTranscriptStore:
    """In-memory store seeded with one Les Schwab meeting."""
    store = InMemoryTranscriptStore()
    store.add_transcript(sample_record, chunks=sample_chunks)
    return store


# ---------------------------------------------------------------------------
# Mock adapter factories
# ---------------------------------------------------------------------------

def llm_response(text: str, model: str = "gpt-4o") -> LLMResponse:
    return LLMResponse(text=text, provider="openai", model=model)


@pytest.fixture()
def mock_llm() -> MagicMock:
    """LLM port mock; set ``generate_text.return_value`` or ``side_effect`` per test."""
    mock = MagicMock()
    mock.generate_text = AsyncMock(return_value=llm_response("{}"))
    return mock


class FakeClock:
    """Manually advanced clock implementing ClockPort."""

    def __init__(self, start: float = 1000.0) -> None:
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()
