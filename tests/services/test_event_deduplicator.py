"""
Tests for services.event_deduplicator.EventDeduplicator.
"""

from unittest.mock import MagicMock

import pytest

from services.event_deduplicator import EventDeduplicator
from shared_utils.error_handler import ExternalServiceError


class TestInMemoryWindow:
    def test_second_delivery_is_duplicate(self, fake_clock) -> None:
        dedupe = EventDeduplicator(clock=fake_clock)

        assert dedupe.is_duplicate("Ev01") is False
        assert dedupe.is_duplicate("Ev01") is True
        assert dedupe.is_duplicate("Ev02") is False

    def test_entries_expire_after_ttl(self, fake_clock) -> None:
        dedupe = EventDeduplicator(clock=fake_clock, ttl_seconds=10)
        dedupe.is_duplicate("Ev01")

        fake_clock.advance(10)

        assert dedupe.is_duplicate("Ev01") is False

    def test_oldest_evicted_at_capacity(self, fake_clock) -> None:
        dedupe = EventDeduplicator(clock=fake_clock, capacity=2)
        for event_id in ("Ev01", "Ev02", "Ev03"):
            dedupe.is_duplicate(event_id)

        assert len(dedupe) == 2
        assert dedupe.is_duplicate("Ev03") is True
        assert dedupe.is_duplicate("Ev01") is False


class TestPersistentStore:
    @pytest.fixture()
    def store(self) -> MagicMock:
        store = MagicMock()
        store.try_insert.return_value = True
        return store

    def test_store_decides(self, fake_clock, store: MagicMock) -> None:
        dedupe = EventDeduplicator(clock=fake_clock, store=store)

        assert dedupe.is_duplicate("Ev01") is False
        store.try_insert.return_value = False
        assert dedupe.is_duplicate("Ev01") is True
        assert len(dedupe) == 0

    def test_store_failure_falls_back_to_memory(self, fake_clock, store: MagicMock) -> None:
        store.try_insert.side_effect = ExternalServiceError("DynamoDB", "throttled")
        dedupe = EventDeduplicator(clock=fake_clock, store=store)

        assert dedupe.is_duplicate("Ev01") is False
        assert dedupe.is_duplicate("Ev01") is True
        assert store.try_insert.call_count == 2
