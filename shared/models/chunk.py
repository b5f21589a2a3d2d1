"""Pydantic models for extracted documents and their chunks.

Hierarchy:
  ExtractedDocument: text or row records produced by a file parser.
  Chunk            : one bounded, independently embedded unit of a document.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from shared.clients.rag.models.RecordMetadata import FreeformMetadata, TabularRecordMetadata


class SourceType(str, Enum):
    TABULAR = "tabular"
    FREEFORM = "freeform"


class ExtractedDocument(BaseModel):
    """Parser output handed to the chunker.

    Tabular sources fill records (ordered column → value mappings),
    freeform sources fill text.
    """

    source_name: str
    source_type: SourceType
    file_type: str
    text: str = ""
    records: list[dict[str, str | None]] = []


class Chunk(BaseModel):
    """An immutable unit of document text identified by (source_name, chunk_index).

    Attributes:
        source_name:  Name of the source document, e.g. "parts.csv".
        chunk_index:  Zero-based position within the document.
        text:         The chunk text sent to the embedding model.
        source_type:  Whether the chunk holds row batches or a text slice.
        file_type:    "spreadsheet" for tabular chunks, else the file extension.
        batch_start:  1-based first row of a tabular batch.
        batch_end:    1-based last row of a tabular batch.
        total_rows:   Row count of the whole tabular source.
    """

    model_config = ConfigDict(frozen=True)

    source_name: str
    chunk_index: int
    text: str
    source_type: SourceType
    file_type: str
    batch_start: int | None = None
    batch_end: int | None = None
    total_rows: int | None = None

    @property
    def record_id(self) -> str:
        # re-ingesting the same source overwrites records with the same id
        return f"{self.source_name}-{self.chunk_index}"

    def build_metadata(self, uploaded_by: str, uploaded_at: str) -> TabularRecordMetadata | FreeformMetadata:
        """Build the typed metadata stored with this chunk's vector."""
        provenance = {
            "file_name": self.source_name,
            "chunk_index": self.chunk_index,
            "content": self.text,
            "uploaded_by": uploaded_by,
            "uploaded_at": uploaded_at,
        }
        if self.source_type == SourceType.TABULAR:
            return TabularRecordMetadata(
                **provenance,
                batch_start=self.batch_start or 0,
                batch_end=self.batch_end or 0,
                total_rows=self.total_rows or 0,
            )
        return FreeformMetadata(**provenance, file_type=self.file_type)
