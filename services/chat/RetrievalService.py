"""Retrieval service.

Turns the latest user utterance into a context block for the completion
model: optional model filter, query embedding, similarity search with score
filtering, or a lexical search when no usable embedding is available.
"""

import re

from pydantic import BaseModel

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.RecordMetadata import StructuredPartMetadata
from shared.clients.rag.models.SearchHit import SearchHit
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperVector import normalize_vector

MODEL_FILTER_PATTERN = re.compile(r"model:\s*([^\s,]+)", re.IGNORECASE)

VECTOR_TOP_K = 50       # candidates fetched from the similarity search
MIN_SCORE = 0.5         # similarity threshold, inclusive
MAX_RESULTS = 20        # hits kept after filtering
FALLBACK_TOP_K = 5      # lexical fallback, no score filter
CONTEXT_SEPARATOR = "\n\n---\n\n"


class RetrievalResult(BaseModel):
    """Outcome of one retrieval.

    Attributes:
        context:        Formatted context block, "" when nothing matched.
        hits:           The hits the context was built from, in order.
        used_fallback:  True if the lexical search was used.
        model_filter:   The extracted model token, if any.
    """

    context: str
    hits: list[SearchHit]
    used_fallback: bool = False
    model_filter: str | None = None


def extract_model_filter(text: str) -> str | None:
    """Return the uppercased token following "model:" in text, if present.

    Args:
        text (str): The user utterance, e.g. "model: 450k hydraulic pump".

    Returns:
        str | None: The model token, e.g. "450K".
    """
    match = MODEL_FILTER_PATTERN.search(text)
    return match.group(1).upper() if match else None


def _score_suffix(score: float | None) -> str:
    return f" (similarity: {score:.2f})" if score is not None else ""


def format_hit(hit: SearchHit) -> str:
    """Render one search hit as a context block.

    Every field is always present; missing values get a fixed placeholder.
    """
    suffix = _score_suffix(hit.score)
    if hit.metadata is None:
        return f"Source: Unknown{suffix}\nNo content available"

    model = None
    description = None
    part = None
    if isinstance(hit.metadata, StructuredPartMetadata):
        model = hit.metadata.model
        part = hit.metadata.original_data
        description = (part.description if part else None) or hit.metadata.description
    content = getattr(hit.metadata, "content", None)

    return "\n".join([
        f"Source: {model or 'Unknown'}{suffix}",
        f"Model: {model or 'Unknown'}",
        f"Description: {description or 'Not specified'}",
        f"Part Number: {(part.part_number if part else None) or 'Not specified'}",
        f"Quantity: {(part.quantity if part else None) or 'Not specified'}",
        f"Remarks: {(part.remarks if part else None) or 'None'}",
        f"Details: {(part.breadcrumb if part else None) or 'Not available'}",
        f"Excerpt: {content or 'Not available'}",
    ])


def format_context(hits: list[SearchHit]) -> str:
    return CONTEXT_SEPARATOR.join(format_hit(hit) for hit in hits)


def select_hits(hits: list[SearchHit]) -> list[SearchHit]:
    """Keep hits scoring at least MIN_SCORE, best first, at most MAX_RESULTS."""
    kept = [hit for hit in hits if hit.score is not None and hit.score >= MIN_SCORE]
    kept.sort(key=lambda hit: hit.score, reverse=True)
    return kept[:MAX_RESULTS]


class RetrievalService:
    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client

    ##########################################
    ############### RETRIEVAL ################
    ##########################################

    async def do_retrieve(self, utterance: str) -> RetrievalResult:
        """Search the knowledge base for an utterance and format the context.

        Args:
            utterance (str): The latest user message.

        Returns:
            RetrievalResult: The context block and the hits behind it.

        Raises:
            UpstreamRequestError: If the vector store query fails.
        """
        model = extract_model_filter(utterance)
        search_filter = self._rag_client.build_equality_filter("model", model) if model else None
        if model:
            self.logging.info("Filtering search by model '%s'.", model)

        vector = await self._embed_client.do_embed(utterance)
        if vector is not None and len(vector) == self._embed_client.embed_dimension:
            candidates = await self._rag_client.do_query_vector(
                normalize_vector(vector), top_k=VECTOR_TOP_K, filter=search_filter
            )
            hits = select_hits(candidates)
            self.logging.info(
                "Similarity search returned %d candidate(s), %d above threshold.", len(candidates), len(hits)
            )
            return RetrievalResult(context=format_context(hits), hits=hits, model_filter=model)

        self.logging.warning("No usable query embedding. Using keyword search.", color="yellow")
        hits = await self._rag_client.do_query_data(utterance, top_k=FALLBACK_TOP_K)
        self.logging.info("Keyword search returned %d hit(s).", len(hits))
        return RetrievalResult(context=format_context(hits), hits=hits, used_fallback=True, model_filter=model)
