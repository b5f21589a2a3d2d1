"""Splits extracted documents into bounded chunks for independent embedding.

Tabular sources are grouped into fixed row batches, free text into fixed
character slices. Both policies are deterministic: the same input always
yields the same chunks in the same order.
"""

from shared.errors import UnsupportedFormatError
from shared.models.chunk import Chunk, ExtractedDocument, SourceType

FREEFORM_CHUNK_CHARS = 32000  # characters per free-text chunk, no overlap
TABULAR_BATCH_ROWS = 100      # rows per tabular chunk


def _flatten_record(record: dict[str, str | None]) -> str:
    """Join a row's values with single spaces, keeping column order."""
    return " ".join("" if val is None else str(val) for val in record.values())


def _split_text(text: str, size: int = FREEFORM_CHUNK_CHARS) -> list[str]:
    """Split text into consecutive slices of at most size characters."""
    return [text[start:start + size] for start in range(0, len(text), size)]


def _resolve_source_type(source_type: SourceType | str) -> SourceType:
    try:
        return SourceType(source_type)
    except ValueError:
        raise UnsupportedFormatError(f"Unsupported source type '{source_type}'.")


def chunk_document(
    source_name: str,
    source_type: SourceType | str,
    text: str = "",
    records: list[dict[str, str | None]] | None = None,
    file_type: str | None = None,
) -> list[Chunk]:
    """Convert extracted document content into an ordered list of chunks.

    Args:
        source_name (str): Name of the document; part of every chunk id.
        source_type (SourceType | str): "tabular" or "freeform".
        text (str): Free text, used for freeform sources.
        records (list[dict] | None): Parsed rows, used for tabular sources.
        file_type (str | None): File type tag for freeform chunks (e.g. "txt").

    Returns:
        list[Chunk]: Chunks with indices 0..N-1; empty input yields [].

    Raises:
        UnsupportedFormatError: If source_type is not supported.
    """
    resolved = _resolve_source_type(source_type)

    if resolved == SourceType.TABULAR:
        rows = records or []
        total_rows = len(rows)
        chunks: list[Chunk] = []
        for index, start in enumerate(range(0, total_rows, TABULAR_BATCH_ROWS)):
            batch = rows[start:start + TABULAR_BATCH_ROWS]
            chunks.append(
                Chunk(
                    source_name=source_name,
                    chunk_index=index,
                    text=" ".join(_flatten_record(record) for record in batch),
                    source_type=resolved,
                    file_type="spreadsheet",
                    batch_start=start + 1,
                    batch_end=start + len(batch),
                    total_rows=total_rows,
                )
            )
        return chunks

    return [
        Chunk(
            source_name=source_name,
            chunk_index=index,
            text=piece,
            source_type=resolved,
            file_type=file_type or "unknown",
        )
        for index, piece in enumerate(_split_text(text or ""))
    ]


def chunk_extracted(document: ExtractedDocument) -> list[Chunk]:
    """Chunk the output of the text extractor."""
    return chunk_document(
        source_name=document.source_name,
        source_type=document.source_type,
        text=document.text,
        records=document.records,
        file_type=document.file_type,
    )
