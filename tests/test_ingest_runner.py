"""Tests for the batch ingestion runner's startup checks."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from services.document_ingest.ingest_runner import check_connections


def _client(status_code: int | None = None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.do_healthcheck = AsyncMock(side_effect=error)
    else:
        client.do_healthcheck = AsyncMock(return_value=httpx.Response(status_code))
    return client


class TestCheckConnections:
    @pytest.mark.asyncio
    async def test_all_reachable(self, helper_config):
        assert await check_connections(_client(200), _client(200), helper_config.get_logger())

    @pytest.mark.asyncio
    async def test_failing_embed_healthcheck_only_warns(self, helper_config):
        # Arrange
        embed_client = _client(404)
        rag_client = _client(200)

        # Act
        reachable = await check_connections(embed_client, rag_client, helper_config.get_logger())

        # Assert
        assert reachable
        rag_client.do_healthcheck.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unreachable_embed_backend_only_warns(self, helper_config):
        embed_client = _client(error=httpx.ConnectError("connection refused"))

        assert await check_connections(embed_client, _client(200), helper_config.get_logger())

    @pytest.mark.asyncio
    async def test_failing_vector_store_stops_the_run(self, helper_config):
        assert not await check_connections(_client(200), _client(503), helper_config.get_logger())

    @pytest.mark.asyncio
    async def test_unreachable_vector_store_stops_the_run(self, helper_config):
        rag_client = _client(error=httpx.ConnectError("connection refused"))

        assert not await check_connections(_client(200), rag_client, helper_config.get_logger())
