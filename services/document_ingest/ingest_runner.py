"""Batch ingestion entry point.

Extracts, chunks, embeds and upserts local files into the vector store,
one file after another with the configured pause between files. Useful for
seeding the index without going through the HTTP upload.

Usage:
    python -m services.document_ingest.ingest_runner --uploaded-by <admin-id> FILE [FILE ...]
"""

import argparse
import asyncio
from pathlib import Path

import httpx

from services.document_ingest.Chunker import chunk_extracted
from services.document_ingest.IngestService import IngestService
from services.document_ingest.TextExtractor import extract_document
from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.errors import SupportBridgeError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest documents into the support chat knowledge base.")
    parser.add_argument("files", nargs="+", type=Path, help="Files to ingest (.xlsx, .xls, .csv, .docx, .txt)")
    parser.add_argument("--uploaded-by", required=True, help="Id of the admin recorded as uploader")
    return parser.parse_args()


async def check_connections(embed_client: ClientInterface, rag_client: ClientInterface, logger) -> bool:
    """Check the backends before ingesting.

    An unreachable embedding backend only warns, since chunks fail and are
    reported individually. An unreachable vector store stops the run.

    Returns:
        bool: True if the vector store answered.
    """
    try:
        result: httpx.Response = await embed_client.do_healthcheck()
        if not result.is_success:
            logger.warning(
                "Embed client '%s' healthcheck returned status %d. Embedding may fail.",
                embed_client.__class__.__name__,
                result.status_code,
            )
    except httpx.HTTPError as e:
        logger.warning("Embed client '%s' is not reachable: %s", embed_client.__class__.__name__, e)

    try:
        result = await rag_client.do_healthcheck()
    except httpx.HTTPError as e:
        logger.error("RAG client '%s' is not reachable: %s", rag_client.__class__.__name__, e)
        return False
    if not result.is_success:
        logger.error("RAG client '%s' healthcheck returned status %d.", rag_client.__class__.__name__, result.status_code)
        return False
    return True


async def main() -> None:
    """Run batch ingestion for the files given on the command line."""
    args = _parse_args()
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    embed_client = EmbedClientManager(helper_config=config, role="ingest").get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()

    try:
        await embed_client.boot()
        await rag_client.boot()
        if not await check_connections(embed_client, rag_client, logger):
            logger.error("Vector store is not reachable. Aborting.")
            return

        # extract and chunk everything up front so parse errors show before any slow embedding
        documents = []
        for path in args.files:
            try:
                extracted = extract_document(path.name, path.read_bytes())
            except (OSError, SupportBridgeError) as e:
                logger.error(f"Skipping '{path}': {e}")
                continue
            chunks = chunk_extracted(extracted)
            logger.info("Prepared '%s': %d chunk(s).", extracted.source_name, len(chunks))
            documents.append((extracted.source_name, chunks))

        if not documents:
            logger.error("No ingestible files. Aborting.")
            return

        ingest_service = IngestService(helper_config=config, rag_client=rag_client, embed_client=embed_client)
        results = await ingest_service.do_ingest_documents(documents, uploaded_by=args.uploaded_by)
        for ingest_result in results:
            logger.info(ingest_result.get_message(), color="green" if ingest_result.successful_chunks else "red")
    finally:
        await embed_client.close()
        await rag_client.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
