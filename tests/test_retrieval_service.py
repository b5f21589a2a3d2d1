"""Tests for query retrieval: model filter, score filtering, fallback and context formatting."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from services.chat.RetrievalService import RetrievalService, extract_model_filter, format_context, format_hit
from shared.clients.rag.models.SearchHit import SearchHit
from shared.errors import UpstreamRequestError

DIM = 384


def _embed_client(vector):
    client = MagicMock()
    client.embed_dimension = DIM
    client.do_embed = AsyncMock(return_value=vector)
    return client


def _part_hit(record_id: str, score: float, **part) -> dict:
    return {"id": record_id, "score": score, "metadata": {"model": "450K", "original_data": part}}


class TestExtractModelFilter:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("model: 450K what is the pump part number?", "450K"),
            ("Model:5075e oil capacity", "5075E"),
            ("MODEL:   x330, blade size", "X330"),
            ("what is the oil capacity?", None),
            ("the model is 450K", None),
        ],
    )
    def test_extraction(self, text, expected):
        assert extract_model_filter(text) == expected


class TestFormatHit:
    def test_missing_part_number_renders_placeholder(self):
        hit = SearchHit.from_raw(_part_hit("c-1", 0.95, Description="Hydraulic pump", Quantity=1))

        block = format_hit(hit)

        assert "Part Number: Not specified" in block.splitlines()
        assert "Quantity: 1" in block.splitlines()

    def test_complete_part_block(self):
        hit = SearchHit.from_raw(_part_hit(
            "c-1", 0.9512,
            Breadcrumb="Engine > Fuel System", Description="Filter", **{"Part Number": "RE12345"},
            Quantity="2", Remarks="Use OEM only",
        ))

        assert format_hit(hit) == "\n".join([
            "Source: 450K (similarity: 0.95)",
            "Model: 450K",
            "Description: Filter",
            "Part Number: RE12345",
            "Quantity: 2",
            "Remarks: Use OEM only",
            "Details: Engine > Fuel System",
            "Excerpt: Not available",
        ])

    def test_uploaded_chunk_uses_placeholders_and_content(self):
        hit = SearchHit.from_raw({"id": "notes.txt-0", "score": 0.8, "metadata": {
            "fileName": "notes.txt", "fileType": "txt", "content": "Grease every 10 hours.",
        }})

        lines = format_hit(hit).splitlines()

        assert lines[0] == "Source: Unknown (similarity: 0.80)"
        assert "Description: Not specified" in lines
        assert "Remarks: None" in lines
        assert "Details: Not available" in lines
        assert lines[-1] == "Excerpt: Grease every 10 hours."

    def test_hit_without_metadata(self):
        assert format_hit(SearchHit.from_raw({"id": "x", "score": 0.7})) == (
            "Source: Unknown (similarity: 0.70)\nNo content available"
        )

    def test_hit_without_score_has_no_similarity(self):
        assert format_hit(SearchHit.from_raw({"id": "x"})) == "Source: Unknown\nNo content available"

    def test_blocks_are_separated(self):
        hits = [SearchHit.from_raw({"id": "a"}), SearchHit.from_raw({"id": "b"})]

        assert format_context(hits) == "Source: Unknown\nNo content available\n\n---\n\nSource: Unknown\nNo content available"

    def test_no_hits_yield_empty_context(self):
        assert format_context([]) == ""


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_scores_are_filtered_and_sorted(self, helper_config, rag_store):
        # Arrange
        rag_store.vector_hits = [_part_hit(f"c-{score}", score) for score in (0.9, 0.6, 0.4, 0.95)]
        service = RetrievalService(helper_config, rag_client=rag_store, embed_client=_embed_client([1.0] * DIM))

        # Act
        result = await service.do_retrieve("pump part number")

        # Assert
        assert [hit.score for hit in result.hits] == [0.95, 0.9, 0.6]
        assert result.used_fallback is False
        assert rag_store.vector_queries[0]["top_k"] == 50
        assert rag_store.vector_queries[0]["filter"] is None
        assert result.context.count("\n\n---\n\n") == 2

    @pytest.mark.asyncio
    async def test_at_most_twenty_hits_are_kept(self, helper_config, rag_store):
        rag_store.vector_hits = [_part_hit(f"c-{i}", 0.5 + i / 100) for i in range(40)]
        service = RetrievalService(helper_config, rag_client=rag_store, embed_client=_embed_client([1.0] * DIM))

        result = await service.do_retrieve("anything")

        assert len(result.hits) == 20
        assert result.hits[0].score == pytest.approx(0.89)

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(self, helper_config, rag_store):
        rag_store.vector_hits = [_part_hit("edge", 0.5), _part_hit("below", 0.4999)]
        service = RetrievalService(helper_config, rag_client=rag_store, embed_client=_embed_client([1.0] * DIM))

        result = await service.do_retrieve("anything")

        assert [hit.id for hit in result.hits] == ["edge"]

    @pytest.mark.asyncio
    async def test_query_vector_is_normalised(self, helper_config, rag_store):
        service = RetrievalService(helper_config, rag_client=rag_store, embed_client=_embed_client([2.0] * DIM))

        await service.do_retrieve("anything")

        vector = rag_store.vector_queries[0]["vector"]
        assert sum(v * v for v in vector) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_model_token_becomes_filter(self, helper_config, rag_store):
        service = RetrievalService(helper_config, rag_client=rag_store, embed_client=_embed_client([1.0] * DIM))

        result = await service.do_retrieve("model: 450k hydraulic pump")

        assert rag_store.vector_queries[0]["filter"] == 'model = "450K"'
        assert result.model_filter == "450K"

    @pytest.mark.asyncio
    async def test_unavailable_embedding_falls_back_to_keywords(self, helper_config, rag_store):
        # Arrange: the lexical search returns low-scored hits which must be kept
        rag_store.data_hits = [_part_hit(f"k-{i}", 0.1) for i in range(8)]
        service = RetrievalService(helper_config, rag_client=rag_store, embed_client=_embed_client(None))

        # Act
        result = await service.do_retrieve("model: 450K pump")

        # Assert
        assert result.used_fallback is True
        assert rag_store.vector_queries == []
        assert rag_store.data_queries == [{"data": "model: 450K pump", "top_k": 5, "filter": None}]
        assert len(result.hits) == 5
        assert all(hit.score == 0.1 for hit in result.hits)

    @pytest.mark.asyncio
    async def test_wrong_dimension_falls_back_to_keywords(self, helper_config, rag_store):
        rag_store.data_hits = []
        service = RetrievalService(helper_config, rag_client=rag_store, embed_client=_embed_client([1.0] * 10))

        result = await service.do_retrieve("pump")

        assert result.used_fallback is True
        assert result.context == ""

    @pytest.mark.asyncio
    async def test_search_errors_propagate(self, helper_config):
        rag_client = MagicMock()
        rag_client.build_equality_filter = MagicMock(return_value=None)
        rag_client.do_query_vector = AsyncMock(side_effect=UpstreamRequestError(500, "https://vector.test/query"))
        service = RetrievalService(helper_config, rag_client=rag_client, embed_client=_embed_client([1.0] * DIM))

        with pytest.raises(UpstreamRequestError):
            await service.do_retrieve("pump")
