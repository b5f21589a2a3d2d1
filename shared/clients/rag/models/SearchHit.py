from pydantic import BaseModel

from shared.clients.rag.models.RecordMetadata import RecordMetadata, parse_record_metadata


class SearchHit(BaseModel):
    """One ranked result of a similarity or lexical query.

    Attributes:
        id:        Record id in the vector store.
        score:     Similarity in the store's native scale, None if not reported.
        metadata:  Typed record metadata, None if the record carries none.
        raw_metadata: The metadata exactly as returned by the store.
    """

    id: str
    score: float | None = None
    metadata: RecordMetadata | None = None
    raw_metadata: dict | None = None

    @classmethod
    def from_raw(cls, raw: dict) -> "SearchHit":
        raw_metadata = raw.get("metadata") or None
        return cls(
            id=str(raw.get("id", "")),
            score=raw.get("score"),
            metadata=parse_record_metadata(raw_metadata),
            raw_metadata=raw_metadata,
        )
