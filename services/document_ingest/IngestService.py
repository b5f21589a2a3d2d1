"""Ingestion service.

Embeds the chunks of a document one at a time via the ingestion EmbedClient
and upserts each resulting vector into the RAG backend. The embedding
provider enforces a very low requests-per-minute ceiling, so chunks are
processed strictly in order with a fixed pause between them, and a failing
chunk is recorded and skipped instead of aborting the document.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.errors import IngestFailedError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperRetry import HelperRetry, RequestRetryPolicy
from shared.models.chunk import Chunk
from shared.models.ingest import IngestResult

ProgressCallback = Callable[[IngestResult], None]


class IngestService:
    """Orchestrates the paced chunk → embed → upsert pipeline."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        self._sleep = sleep

        # pacing between chunks (20s = 3 requests per minute) and between files
        self._chunk_delay = helper_config.get_number_val("INGEST_CHUNK_DELAY", default=20)
        self._file_delay = helper_config.get_number_val("INGEST_FILE_DELAY", default=20)

        self._retry = HelperRetry(
            policy=RequestRetryPolicy(
                max_attempts=int(helper_config.get_number_val("INGEST_MAX_ATTEMPTS", default=5)),
                base_delay=float(helper_config.get_number_val("INGEST_RETRY_BASE_DELAY", default=2.0)),
            ),
            logger=self.logging,
            label="Ingestion request",
            sleep=sleep,
        )

    ##########################################
    ############## CORE INGEST ###############
    ##########################################

    async def do_ingest_document(
        self,
        source_name: str,
        chunks: list[Chunk],
        uploaded_by: str,
        on_progress: ProgressCallback | None = None,
    ) -> IngestResult:
        """Embed and store every chunk of one document, in index order.

        Args:
            source_name (str): The document's name, used for logging and the result.
            chunks (list[Chunk]): The document's chunks from the chunker.
            uploaded_by (str): Id of the uploading admin, stored as provenance.
            on_progress (ProgressCallback | None): Called with the running result after each chunk.

        Returns:
            IngestResult: Counts of stored and failed chunks.

        Raises:
            IngestFailedError: If the document had chunks but none could be stored.
        """
        result = IngestResult(source_name=source_name, total_chunks=len(chunks))
        self.logging.info("Ingesting document '%s': %d chunk(s).", source_name, len(chunks))

        for position, chunk in enumerate(chunks):
            self.logging.info(
                "Processing chunk %d/%d of '%s', length: %d",
                position + 1, len(chunks), source_name, len(chunk.text),
            )
            try:
                await self._store_chunk(chunk, uploaded_by)
            except Exception as exc:
                result.failed_chunks.append(chunk.chunk_index)
                self.logging.error("Error processing chunk %d of '%s': %s", chunk.chunk_index, source_name, exc)
            else:
                result.successful_chunks += 1
                self.logging.info(
                    "Successfully processed chunk %d/%d of '%s'", position + 1, len(chunks), source_name, color="green"
                )

            if on_progress is not None:
                on_progress(result)

            # pause after every chunk but the last, whatever its outcome
            if position < len(chunks) - 1:
                self.logging.debug("Waiting %ss before processing the next chunk...", self._chunk_delay)
                await self._sleep(self._chunk_delay)

        self.logging.info(
            "Completed processing %d/%d chunks of '%s'", result.successful_chunks, result.total_chunks, source_name
        )
        if result.total_chunks > 0 and result.successful_chunks == 0:
            raise IngestFailedError(result)
        return result

    async def do_ingest_documents(
        self,
        documents: list[tuple[str, list[Chunk]]],
        uploaded_by: str,
    ) -> list[IngestResult]:
        """Ingest several documents one after another, pausing between files.

        A document whose chunks all fail is reported in the results and does
        not stop the remaining documents.

        Args:
            documents (list[tuple[str, list[Chunk]]]): (source_name, chunks) pairs.
            uploaded_by (str): Id of the uploading admin.

        Returns:
            list[IngestResult]: One result per document, in input order.
        """
        results: list[IngestResult] = []
        for position, (source_name, chunks) in enumerate(documents):
            try:
                results.append(await self.do_ingest_document(source_name, chunks, uploaded_by))
            except IngestFailedError as exc:
                self.logging.error("%s", exc)
                results.append(exc.result)
            if position < len(documents) - 1:
                self.logging.info("Waiting %ss before processing the next file...", self._file_delay)
                await self._sleep(self._file_delay)
        return results

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _store_chunk(self, chunk: Chunk, uploaded_by: str) -> None:
        """Embed one chunk and upsert it, each call under the request retry policy.

        Raises:
            Exception: Whatever the embedding or upsert finally failed with.
        """
        vector = await self._retry.run(self._embed_client.do_embed_once, chunk.text)
        metadata = chunk.build_metadata(
            uploaded_by=uploaded_by,
            uploaded_at=datetime.now(timezone.utc).isoformat(),
        )
        await self._retry.run(self._rag_client.do_upsert_vector, chunk.record_id, vector, metadata.to_payload())
