"""Turns uploaded files into plain text or row records for the chunker.

Spreadsheets and CSV files become tabular records, Word and text files
become free text. Parsing is delegated to pandas (openpyxl for .xlsx, xlrd for legacy .xls),
python-docx and the csv module; nothing here interprets the content.
"""

import csv
import io
import zipfile

import docx
from docx.opc.exceptions import PackageNotFoundError
import pandas as pd
from xlrd import XLRDError
from xlrd.compdoc import CompDocError

from shared.errors import DocumentParseError, MissingFileError, UnsupportedFormatError
from shared.models.chunk import ExtractedDocument, SourceType

TABULAR_EXTENSIONS = ("xlsx", "xls", "csv")
FREEFORM_EXTENSIONS = ("docx", "txt")


def get_extension(file_name: str) -> str:
    return file_name.lower().rsplit(".", 1)[-1] if "." in file_name else ""


def is_supported(file_name: str) -> bool:
    return get_extension(file_name) in TABULAR_EXTENSIONS + FREEFORM_EXTENSIONS


def _read_csv(data: bytes) -> list[dict[str, str | None]]:
    reader = csv.DictReader(io.StringIO(data.decode("utf-8-sig")))
    return [dict(row) for row in reader]


def _read_spreadsheet(data: bytes) -> list[dict[str, str | None]]:
    # first sheet only, every cell as text
    frame = pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=str).fillna("")
    return frame.to_dict(orient="records")


def _read_docx(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    return "\n\n".join(paragraph.text for paragraph in document.paragraphs)


def extract_document(file_name: str | None, data: bytes) -> ExtractedDocument:
    """Extract text or records from an uploaded file.

    Args:
        file_name (str): Original file name; its extension selects the parser.
        data (bytes): Raw file content.

    Returns:
        ExtractedDocument: Named after the lower-cased file name.

    Raises:
        MissingFileError: If no file name was given.
        UnsupportedFormatError: If the extension is not supported.
        DocumentParseError: If the file cannot be parsed.
    """
    if not file_name:
        raise MissingFileError("No file provided.")
    source_name = file_name.lower()
    extension = get_extension(source_name)
    if not is_supported(source_name):
        raise UnsupportedFormatError(f"Unsupported file type '{extension or file_name}'.")

    try:
        if extension == "csv":
            return ExtractedDocument(
                source_name=source_name, source_type=SourceType.TABULAR, file_type="spreadsheet", records=_read_csv(data)
            )
        if extension in ("xlsx", "xls"):
            return ExtractedDocument(
                source_name=source_name, source_type=SourceType.TABULAR, file_type="spreadsheet", records=_read_spreadsheet(data)
            )
        if extension == "docx":
            return ExtractedDocument(
                source_name=source_name, source_type=SourceType.FREEFORM, file_type=extension, text=_read_docx(data)
            )
        return ExtractedDocument(
            source_name=source_name, source_type=SourceType.FREEFORM, file_type=extension, text=data.decode("utf-8")
        )
    except (
        ValueError,
        KeyError,
        OSError,
        ImportError,
        csv.Error,
        zipfile.BadZipFile,
        PackageNotFoundError,
        XLRDError,
        CompDocError,
    ) as exc:
        raise DocumentParseError(f"Failed to parse '{file_name}': {exc}") from exc
