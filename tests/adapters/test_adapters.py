"""
Unit tests for adapter implementations.

Uses a mocked boto3 resource for DynamoDB — no live AWS calls.
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from botocore.exceptions import ClientError

from adapters.cached_company_directory import CachedCompanyDirectory
from adapters.dynamo_dedupe_store import DynamoDedupeStoreAdapter
from adapters.in_memory_transcript_store import InMemoryTranscriptStore
from adapters.json_product_knowledge import JsonProductKnowledgeAdapter
from assistant_core.control_plane.signals import FALLBACK_COMPANIES
from domain.models import TranscriptRecord
from shared_utils.error_handler import ConfigurationError, ExternalServiceError


# ======================================================================
# InMemoryTranscriptStore
# ======================================================================

class TestInMemoryTranscriptStore:
    @pytest.mark.asyncio
    async def test_lookup_by_id(self, transcript_store: InMemoryTranscriptStore) -> None:
        record = await transcript_store.get_transcript_by_id("t-les-1")
        chunks = await transcript_store.get_chunks_for_transcript("t-les-1", limit=2)

        assert record.company_name == "Les Schwab"
        assert [c.chunk_index for c in chunks] == [0, 1]
        assert await transcript_store.get_transcript_by_id("missing") is None
        assert await transcript_store.get_chunks_for_transcript("missing") == []

    @pytest.mark.asyncio
    async def test_find_transcripts_newest_first(self, transcript_store: InMemoryTranscriptStore) -> None:
        transcript_store.add_transcript(
            TranscriptRecord(id="t-les-2", company_name="Les Schwab", meeting_date="2026-03-01")
        )
        transcript_store.add_transcript(TranscriptRecord(id="t-wal-1", company_name="Walmart"))

        les = await transcript_store.find_transcripts(company_name="les schwab")
        everything = await transcript_store.find_transcripts()

        assert [r.id for r in les] == ["t-les-2", "t-les-1"]
        assert everything[-1].id == "t-wal-1"
        assert await transcript_store.list_company_names() == ["Les Schwab", "Walmart"]

    @pytest.mark.asyncio
    async def test_from_json_file(self, tmp_path) -> None:
        seed = tmp_path / "transcripts.json"
        seed.write_text(
            json.dumps(
                {
                    "transcripts": [
                        {
                            "id": "t-1",
                            "company_name": "Valvoline",
                            "meeting_date": "2026-01-02",
                            "chunks": [
                                {"chunk_index": 1, "text": "second", "speaker_role": "customer"},
                                {"chunk_index": 0, "text": "first"},
                            ],
                            "qa_pairs": [{"question_text": "Does it scale?"}],
                            "action_items": [{"action": "Send deck", "confidence": 0.9}],
                        }
                    ]
                }
            )
        )

        store = InMemoryTranscriptStore.from_json_file(str(seed))

        chunks = await store.get_chunks_for_transcript("t-1")
        assert [c.text for c in chunks] == ["first", "second"]
        assert (await store.get_qa_pairs_by_transcript_id("t-1"))[0].question_text == "Does it scale?"
        assert (await store.get_meeting_action_items_by_transcript("t-1"))[0].action == "Send deck"

    def test_bad_seed_file(self, tmp_path) -> None:
        seed = tmp_path / "broken.json"
        seed.write_text("{not json")

        with pytest.raises(ConfigurationError) as exc_info:
            InMemoryTranscriptStore.from_json_file(str(seed))
        assert exc_info.value.context == {"path": str(seed)}

    def test_missing_seed_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError):
            InMemoryTranscriptStore.from_json_file(str(tmp_path / "nope.json"))


# ======================================================================
# CachedCompanyDirectory
# ======================================================================

class TestCachedCompanyDirectory:
    @pytest.fixture()
    def source(self) -> MagicMock:
        source = MagicMock()
        source.list_company_names = AsyncMock(return_value=["Les Schwab", "", "Walmart"])
        return source

    @pytest.mark.asyncio
    async def test_cached_within_ttl(self, source: MagicMock, fake_clock) -> None:
        directory = CachedCompanyDirectory(source=source, clock=fake_clock, ttl_seconds=60)

        first = await directory.list_company_names()
        fake_clock.advance(30)
        second = await directory.list_company_names()

        assert first == second == ["Les Schwab", "Walmart"]
        assert source.list_company_names.await_count == 1

    @pytest.mark.asyncio
    async def test_refreshes_after_ttl(self, source: MagicMock, fake_clock) -> None:
        directory = CachedCompanyDirectory(source=source, clock=fake_clock, ttl_seconds=60)

        await directory.list_company_names()
        fake_clock.advance(61)
        source.list_company_names.return_value = ["Valvoline"]

        assert await directory.list_company_names() == ["Valvoline"]

    @pytest.mark.asyncio
    async def test_failure_serves_last_good(self, source: MagicMock, fake_clock) -> None:
        directory = CachedCompanyDirectory(source=source, clock=fake_clock, ttl_seconds=60)
        await directory.list_company_names()
        fake_clock.advance(120)
        source.list_company_names.side_effect = ExternalServiceError("transcripts", "down")

        assert await directory.list_company_names() == ["Les Schwab", "Walmart"]

        # Timestamp was not advanced, so the next call retries the source.
        source.list_company_names.side_effect = None
        source.list_company_names.return_value = ["Ace Hardware"]
        assert await directory.list_company_names() == ["Ace Hardware"]

    @pytest.mark.asyncio
    async def test_failure_before_first_load_uses_fallback(self, source: MagicMock, fake_clock) -> None:
        source.list_company_names.side_effect = ExternalServiceError("transcripts", "down")
        directory = CachedCompanyDirectory(source=source, clock=fake_clock)

        assert await directory.list_company_names() == list(FALLBACK_COMPANIES)

    @pytest.mark.asyncio
    async def test_invalidate(self, source: MagicMock, fake_clock) -> None:
        directory = CachedCompanyDirectory(source=source, clock=fake_clock, ttl_seconds=60)
        await directory.list_company_names()

        directory.invalidate()
        await directory.list_company_names()

        assert source.list_company_names.await_count == 2


# ======================================================================
# DynamoDedupeStoreAdapter
# ======================================================================

class TestDynamoDedupeStoreAdapter:
    @pytest.fixture()
    def mock_table(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture()
    def adapter(self, mock_table: MagicMock) -> DynamoDedupeStoreAdapter:
        resource = MagicMock()
        resource.Table.return_value = mock_table
        return DynamoDedupeStoreAdapter(table_name="events", ttl_seconds=600, dynamodb_resource=resource)

    def test_first_insert(self, adapter: DynamoDedupeStoreAdapter, mock_table: MagicMock) -> None:
        assert adapter.try_insert("Ev01") is True
        call_kwargs = mock_table.put_item.call_args[1]
        assert call_kwargs["Item"]["event_id"] == "Ev01"
        assert call_kwargs["Item"]["expires_at"] - call_kwargs["Item"]["seen_at"] == 600
        assert call_kwargs["ConditionExpression"] == "attribute_not_exists(event_id)"

    def test_existing_event(self, adapter: DynamoDedupeStoreAdapter, mock_table: MagicMock) -> None:
        mock_table.put_item.side_effect = ClientError(
            {"Error": {"Code": "ConditionalCheckFailedException", "Message": "exists"}}, "PutItem"
        )
        assert adapter.try_insert("Ev01") is False

    def test_client_error(self, adapter: DynamoDedupeStoreAdapter, mock_table: MagicMock) -> None:
        mock_table.put_item.side_effect = ClientError(
            {"Error": {"Code": "500", "Message": "fail"}}, "PutItem"
        )
        with pytest.raises(ExternalServiceError, match="DynamoDB"):
            adapter.try_insert("Ev01")


# ======================================================================
# JsonProductKnowledgeAdapter
# ======================================================================

class TestJsonProductKnowledgeAdapter:
    def test_render(self) -> None:
        text = JsonProductKnowledgeAdapter.render(
            {
                "product": "PitCrew",
                "sections": [
                    {"title": "Integrations", "content": "POS via API."},
                    {"title": "Empty", "content": ""},
                ],
                "faqs": [{"question": "Offline?", "answer": "Yes."}],
            }
        )
        assert text == "# PitCrew\n\n## Integrations\nPOS via API.\n\n## FAQ\nQ: Offline?\nA: Yes."

    @pytest.mark.asyncio
    async def test_missing_path_means_no_knowledge(self, tmp_path) -> None:
        assert await JsonProductKnowledgeAdapter("").get_product_knowledge() is None
        assert await JsonProductKnowledgeAdapter(str(tmp_path / "none.json")).get_product_knowledge() is None

    @pytest.mark.asyncio
    async def test_loaded_once(self, tmp_path) -> None:
        path = tmp_path / "product.json"
        path.write_text(json.dumps({"product": "PitCrew"}))
        adapter = JsonProductKnowledgeAdapter(str(path))

        assert await adapter.get_product_knowledge() == "# PitCrew"
        path.write_text(json.dumps({"product": "Changed"}))
        assert await adapter.get_product_knowledge() == "# PitCrew"

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "product.json"
        path.write_text("[broken")

        with pytest.raises(ExternalServiceError, match="ProductKnowledge"):
            await JsonProductKnowledgeAdapter(str(path)).get_product_knowledge()
