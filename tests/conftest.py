"""
Shared test fixtures and configuration for the entire test suite.

Provides: environment defaults, a HelperConfig with a real ColorLogger,
a recording no-op sleep, and an in-memory stand-in for the vector store.
"""

import logging
from typing import Any

import pytest

from shared.clients.rag.models.SearchHit import SearchHit
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger

UNSET_ENV = (
    "EMBED_QUERY_ENGINE",
    "EMBED_INGEST_ENGINE",
    "EMBED_DIMENSION",
    "EMBED_MAX_ATTEMPTS",
    "EMBED_RETRY_BASE_DELAY",
    "EMBED_HUGGINGFACE_MODEL",
    "EMBED_VOYAGE_MODEL",
    "EMBED_QUERY_MODEL",
    "EMBED_INGEST_MODEL",
    "RAG_ENGINE",
    "LLM_ENGINE",
    "CHAT_BRAND_NAME",
    "CHAT_MAX_MESSAGES_PER_DAY",
    "INGEST_CHUNK_DELAY",
    "INGEST_FILE_DELAY",
    "INGEST_RETRY_BASE_DELAY",
    "INGEST_JOB_RETENTION",
)

TEST_ENV = {
    "API_SERVER_API_KEY": "test-api-key",
    "EMBED_HUGGINGFACE_API_KEY": "hf-test-key",
    "EMBED_VOYAGE_API_KEY": "voyage-test-key",
    "RAG_UPSTASH_BASE_URL": "https://vector.test",
    "RAG_UPSTASH_API_KEY": "upstash-test-key",
    "LLM_ANTHROPIC_API_KEY": "anthropic-test-key",
}


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Set the required environment for every test."""
    for key, val in TEST_ENV.items():
        monkeypatch.setenv(key, val)
    for key in UNSET_ENV:
        monkeypatch.delenv(key, raising=False)
    return TEST_ENV


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("support_ai_bridge.tests")))


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


class InMemoryRAGClient:
    """
    Minimal vector store with the RAGClientInterface request surface.

    Records are kept as {"id", "vector", "data", "metadata"} dicts. Query
    results are configured per test through vector_hits and data_hits.
    """

    def __init__(self) -> None:
        self.records: dict[str, dict] = {}
        self.vector_hits: list[dict] = []
        self.data_hits: list[dict] | None = None
        self.vector_queries: list[dict] = []
        self.data_queries: list[dict] = []

    def build_equality_filter(self, field: str, value: str) -> str:
        return f'{field} = "{value}"'

    async def do_upsert_vector(self, record_id: str, vector: list[float], metadata: dict) -> None:
        self.records[record_id] = {"id": record_id, "vector": vector, "metadata": metadata}

    async def do_upsert_data(self, record_id: str, data: str, metadata: dict) -> None:
        self.records[record_id] = {"id": record_id, "data": data, "metadata": metadata}

    async def do_query_vector(self, vector: list[float], top_k: int, filter: Any | None = None) -> list[SearchHit]:
        self.vector_queries.append({"vector": vector, "top_k": top_k, "filter": filter})
        return [SearchHit.from_raw(hit) for hit in self.vector_hits[:top_k]]

    async def do_query_data(self, data: str, top_k: int, filter: Any | None = None) -> list[SearchHit]:
        self.data_queries.append({"data": data, "top_k": top_k, "filter": filter})
        if self.data_hits is not None:
            return [SearchHit.from_raw(hit) for hit in self.data_hits[:top_k]]
        # exact-id match first, mimicking a lexical lookup for a ledger key
        ranked = sorted(self.records.values(), key=lambda record: record["id"] != data)
        return [
            SearchHit.from_raw({"id": record["id"], "score": 1.0, "metadata": record["metadata"]})
            for record in ranked[:top_k]
        ]


@pytest.fixture
def rag_store() -> InMemoryRAGClient:
    return InMemoryRAGClient()
