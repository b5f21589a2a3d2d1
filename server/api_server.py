"""FastAPI application entry point for support_ai_bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from services.chat.ChatService import ChatService
from services.chat.CompletionService import CompletionService
from services.chat.QuotaLedgerRAG import QuotaLedgerRAG
from services.chat.RetrievalService import RetrievalService
from services.document_ingest.IngestJobRegistry import IngestJobRegistry
from services.document_ingest.IngestService import IngestService
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)
    helper_config = app.state.helper_config

    query_embed_client = EmbedClientManager(helper_config=helper_config, role="query").get_client()
    ingest_embed_client = EmbedClientManager(helper_config=helper_config, role="ingest").get_client()
    rag_client = RAGClientManager(helper_config=helper_config).get_client()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()
    clients: list[ClientInterface] = [query_embed_client, ingest_embed_client, rag_client, llm_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")

    app.state.rag_client = rag_client
    app.state.llm_client = llm_client

    app.state.chat_service = ChatService(
        helper_config=helper_config,
        quota_ledger=QuotaLedgerRAG(helper_config=helper_config, rag_client=rag_client),
        retrieval_service=RetrievalService(
            helper_config=helper_config,
            rag_client=rag_client,
            embed_client=query_embed_client,
        ),
        completion_service=CompletionService(helper_config=helper_config, llm_client=llm_client),
    )
    app.state.ingest_jobs = IngestJobRegistry(
        helper_config=helper_config,
        ingest_service=IngestService(
            helper_config=helper_config,
            rag_client=rag_client,
            embed_client=ingest_embed_client,
        ),
    )

    await check_connections(query_embed_client, ingest_embed_client, rag_client, llm_client)

    # while the app is running...
    yield

    # when the app shuts down, stop running ingestions and close all client connections
    logging.info("Shutting down, cancelling ingestion jobs and closing all clients...")
    await app.state.ingest_jobs.close()
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="support_ai_bridge",
    description=(
        "Retrieval-augmented support chat backend for an internal employee dashboard. "
        "Admins upload catalogs and manuals via POST /documents; they are chunked, embedded "
        "and indexed in a hosted vector store. POST /chat answers support questions "
        "grounded in that knowledge base, with a daily message quota per user."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)
app.include_router(document_router)


@app.get("/health", tags=["health"])
async def health() -> dict:
    return {"status": "ok", "version": app_version}


async def check_connections(
    query_embed_client: ClientInterface,
    ingest_embed_client: ClientInterface,
    rag_client: ClientInterface,
    llm_client: ClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    Embedding failures are non-fatal: chat falls back to keyword search and
    uploads fail per chunk, but the server stays up. RAG and LLM failures
    are fatal, chat cannot be served without them.

    Raises:
        Exception: If a critical service (RAG or LLM) is not reachable.
    """
    for client in (query_embed_client, ingest_embed_client):
        try:
            result: httpx.Response = await client.do_healthcheck()
        except httpx.HTTPError as e:
            logging.warning("Embed client '%s' is not reachable: %s", client.__class__.__name__, e)
            continue
        if not result.is_success:
            logging.warning(
                "Embed client '%s' is not reachable (status %d). Embedding may fail.",
                client.__class__.__name__,
                result.status_code,
            )

    result = await rag_client.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"RAG client '{rag_client.__class__.__name__}' is not reachable "
            f"(status {result.status_code}). Cannot serve queries."
        )

    result = await llm_client.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"LLM client is not reachable (status {result.status_code}). "
            "Chat will not work."
        )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting support_ai_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
