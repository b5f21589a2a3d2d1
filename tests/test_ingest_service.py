"""Tests for the rate-limited ingestion pipeline."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from services.document_ingest.Chunker import chunk_document
from services.document_ingest.IngestService import IngestService
from shared.errors import IngestFailedError, InvalidEmbeddingError, UpstreamRequestError

DIM = 4


def _chunks(count: int, source_name: str = "manual.txt"):
    text = "".join(str(i) * 32000 for i in range(count))
    return chunk_document(source_name, "freeform", text=text, file_type="txt")


def _embed_client(side_effect):
    client = MagicMock()
    client.do_embed_once = AsyncMock(side_effect=side_effect)
    return client


def _failing_for(texts_to_fail: set[str], error: Exception):
    async def embed(text: str) -> list[float]:
        if text in texts_to_fail:
            raise error
        return [0.5] * DIM
    return embed


@pytest.fixture
def make_service(helper_config, rag_store, no_sleep):
    def factory(embed_client) -> IngestService:
        return IngestService(helper_config, rag_client=rag_store, embed_client=embed_client, sleep=no_sleep)
    return factory


class TestIngestDocument:
    @pytest.mark.asyncio
    async def test_failing_middle_chunk_is_skipped(self, make_service, rag_store, no_sleep):
        # Arrange: chunk 1 (the second chunk) always fails embedding
        chunks = _chunks(3)
        embed_client = _embed_client(_failing_for({chunks[1].text}, InvalidEmbeddingError("bad vector")))
        service = make_service(embed_client)

        # Act
        result = await service.do_ingest_document("manual.txt", chunks, uploaded_by="admin-1")

        # Assert
        assert result.successful_chunks == 2
        assert result.total_chunks == 3
        assert result.failed_chunks == [1]
        assert sorted(rag_store.records) == ["manual.txt-0", "manual.txt-2"]
        assert result.get_message() == 'Document "manual.txt" processed: 2/3 chunks successfully embedded'

    @pytest.mark.asyncio
    async def test_pause_between_chunks_regardless_of_outcome(self, make_service, no_sleep):
        chunks = _chunks(3)
        service = make_service(_embed_client(_failing_for({chunks[0].text}, ValueError("nope"))))

        await service.do_ingest_document("manual.txt", chunks, uploaded_by="admin-1")

        # two pauses of 20s: after chunk 0 (failed) and chunk 1, none after the last
        assert no_sleep.delays == [20, 20]

    @pytest.mark.asyncio
    async def test_chunks_are_processed_in_order(self, make_service):
        chunks = _chunks(3)
        embed_client = _embed_client(_failing_for(set(), ValueError()))
        service = make_service(embed_client)

        await service.do_ingest_document("manual.txt", chunks, uploaded_by="admin-1")

        assert [call.args[0] for call in embed_client.do_embed_once.await_args_list] == [c.text for c in chunks]

    @pytest.mark.asyncio
    async def test_stored_metadata_carries_provenance(self, make_service, rag_store):
        chunks = chunk_document("parts.csv", "tabular", records=[{"Part Number": "AL1", "Qty": "2"}])
        service = make_service(_embed_client(_failing_for(set(), ValueError())))

        await service.do_ingest_document("parts.csv", chunks, uploaded_by="admin-7")

        metadata = rag_store.records["parts.csv-0"]["metadata"]
        assert metadata["uploadedBy"] == "admin-7"
        assert metadata["content"] == "AL1 2"
        assert metadata["fileType"] == "spreadsheet"
        assert metadata["totalRows"] == 1
        assert "uploadedAt" in metadata

    @pytest.mark.asyncio
    async def test_rate_limited_embedding_is_retried(self, make_service, rag_store, no_sleep):
        chunks = _chunks(1)
        rate_limited = UpstreamRequestError(status_code=429, url="https://api.voyageai.com/v1/embeddings")
        embed_client = _embed_client([rate_limited, rate_limited, [0.5] * DIM])
        service = make_service(embed_client)

        result = await service.do_ingest_document("manual.txt", chunks, uploaded_by="admin-1")

        assert result.successful_chunks == 1
        assert embed_client.do_embed_once.await_count == 3
        assert 2.0 <= no_sleep.delays[0] <= 3.0
        assert 4.0 <= no_sleep.delays[1] <= 5.0

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, make_service):
        chunks = _chunks(2)
        bad_request = UpstreamRequestError(status_code=400, url="https://api.voyageai.com/v1/embeddings")
        embed_client = _embed_client([bad_request, [0.5] * DIM])
        service = make_service(embed_client)

        result = await service.do_ingest_document("manual.txt", chunks, uploaded_by="admin-1")

        assert result.failed_chunks == [0]
        assert embed_client.do_embed_once.await_count == 2

    @pytest.mark.asyncio
    async def test_all_chunks_failing_raises(self, make_service):
        chunks = _chunks(2)
        service = make_service(_embed_client(ValueError("down")))

        with pytest.raises(IngestFailedError) as exc_info:
            await service.do_ingest_document("manual.txt", chunks, uploaded_by="admin-1")

        assert exc_info.value.result.successful_chunks == 0
        assert exc_info.value.result.total_chunks == 2

    @pytest.mark.asyncio
    async def test_empty_document_succeeds_trivially(self, make_service, no_sleep):
        result = await make_service(_embed_client(ValueError())).do_ingest_document("empty.txt", [], uploaded_by="a")

        assert result.total_chunks == 0
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_progress_is_reported_after_each_chunk(self, make_service):
        progress = []
        service = make_service(_embed_client(_failing_for(set(), ValueError())))

        await service.do_ingest_document(
            "manual.txt", _chunks(3), uploaded_by="admin-1", on_progress=lambda r: progress.append(r.processed_chunks)
        )

        assert progress == [1, 2, 3]


class TestIngestDocuments:
    @pytest.mark.asyncio
    async def test_failed_file_does_not_stop_the_next(self, make_service, rag_store, no_sleep):
        broken = chunk_document("broken.txt", "freeform", text="garbled", file_type="txt")
        good = chunk_document("good.txt", "freeform", text="fine", file_type="txt")
        service = make_service(_embed_client(_failing_for({"garbled"}, ValueError("nope"))))

        results = await service.do_ingest_documents([("broken.txt", broken), ("good.txt", good)], uploaded_by="a")

        assert [r.successful_chunks for r in results] == [0, 1]
        assert list(rag_store.records) == ["good.txt-0"]
        assert no_sleep.delays == [20]
