"""Tests for the document chunker."""

import pytest

from services.document_ingest.Chunker import FREEFORM_CHUNK_CHARS, chunk_document, chunk_extracted
from shared.errors import UnsupportedFormatError
from shared.models.chunk import ExtractedDocument, SourceType


class TestFreeformChunking:
    """Free text is cut into fixed, non-overlapping character slices."""

    def test_short_text_is_single_chunk(self):
        text = "Hydraulic pump service interval: 500 hours."

        chunks = chunk_document("manual.txt", "freeform", text=text, file_type="txt")

        assert len(chunks) == 1
        assert chunks[0].text == text
        assert chunks[0].chunk_index == 0
        assert chunks[0].record_id == "manual.txt-0"

    def test_text_at_exact_bound_is_single_chunk(self):
        text = "a" * FREEFORM_CHUNK_CHARS

        chunks = chunk_document("manual.txt", SourceType.FREEFORM, text=text)

        assert len(chunks) == 1
        assert chunks[0].text == text

    @pytest.mark.parametrize("length, expected", [(32001, 2), (64000, 2), (70000, 3)])
    def test_long_text_concatenates_back_to_input(self, length, expected):
        # vary characters so a misplaced slice would be detected
        text = "".join(chr(ord("a") + i % 26) for i in range(length))

        chunks = chunk_document("manual.txt", "freeform", text=text)

        assert len(chunks) == expected
        assert "".join(chunk.text for chunk in chunks) == text
        assert [chunk.chunk_index for chunk in chunks] == list(range(expected))
        assert all(len(chunk.text) <= FREEFORM_CHUNK_CHARS for chunk in chunks)

    def test_empty_text_yields_no_chunks(self):
        assert chunk_document("empty.txt", "freeform", text="") == []

    def test_file_type_is_carried(self):
        chunks = chunk_document("guide.docx", "freeform", text="x", file_type="docx")

        assert chunks[0].file_type == "docx"


class TestTabularChunking:
    """Rows are grouped into batches of 100 in source order."""

    def _records(self, count: int) -> list[dict]:
        return [{"Part Number": f"P{i}", "Description": f"part {i}"} for i in range(count)]

    def test_250_rows_make_three_batches(self):
        chunks = chunk_document("parts.csv", "tabular", records=self._records(250))

        assert len(chunks) == 3
        assert [(c.batch_start, c.batch_end) for c in chunks] == [(1, 100), (101, 200), (201, 250)]
        assert all(c.total_rows == 250 for c in chunks)
        assert chunks[0].text.startswith("P0 part 0 P1 part 1")
        assert chunks[2].text.endswith("P249 part 249")

    def test_row_values_are_joined_by_single_spaces(self):
        records = [{"a": "x", "b": None, "c": "z"}, {"a": "1", "b": "2", "c": "3"}]

        chunks = chunk_document("parts.csv", "tabular", records=records)

        assert chunks[0].text == "x  z 1 2 3"
        assert chunks[0].file_type == "spreadsheet"

    def test_no_rows_yields_no_chunks(self):
        assert chunk_document("parts.csv", "tabular", records=[]) == []

    def test_chunking_is_deterministic(self):
        records = self._records(120)

        assert chunk_document("parts.csv", "tabular", records=records) == chunk_document(
            "parts.csv", "tabular", records=records
        )


class TestChunkerErrors:
    def test_unknown_source_type_raises(self):
        with pytest.raises(UnsupportedFormatError):
            chunk_document("scan.pdf", "pdf", text="anything")


class TestChunkExtracted:
    def test_uses_extracted_fields(self):
        document = ExtractedDocument(
            source_name="parts.xlsx",
            source_type=SourceType.TABULAR,
            file_type="spreadsheet",
            records=[{"Part Number": "AL1"}],
        )

        chunks = chunk_extracted(document)

        assert len(chunks) == 1
        assert chunks[0].source_name == "parts.xlsx"
        assert chunks[0].text == "AL1"


class TestChunkMetadata:
    def test_tabular_metadata_payload_uses_wire_names(self):
        chunk = chunk_document("parts.csv", "tabular", records=[{"a": "1"}])[0]

        payload = chunk.build_metadata(uploaded_by="admin-1", uploaded_at="2024-05-01T10:00:00+00:00").to_payload()

        assert payload["fileName"] == "parts.csv"
        assert payload["chunkIndex"] == 0
        assert payload["content"] == "1"
        assert payload["uploadedBy"] == "admin-1"
        assert payload["fileType"] == "spreadsheet"
        assert payload["batchStart"] == 1
        assert payload["batchEnd"] == 1
        assert payload["totalRows"] == 1
        assert payload["recordKind"] == "tabular"

    def test_freeform_metadata_payload_uses_extension(self):
        chunk = chunk_document("notes.txt", "freeform", text="hello", file_type="txt")[0]

        payload = chunk.build_metadata(uploaded_by="admin-1", uploaded_at="now").to_payload()

        assert payload["fileType"] == "txt"
        assert payload["recordKind"] == "freeform"
        assert "batchStart" not in payload
