"""Metadata stored alongside each vector record in the RAG backend.

Three shapes share the index and are told apart once, when a record is
written or read back:

  TabularRecordMetadata  : a batch of spreadsheet/CSV rows uploaded by an admin.
  FreeformMetadata       : a slice of free text (txt, docx) uploaded by an admin.
  StructuredPartMetadata : a parts-catalog row carrying an equipment model tag
                            and the original catalog record, written by the
                            catalog loader and used verbatim in answers.

Wire names are camelCase (plus the catalog's own column names), Python
attributes are snake_case.
"""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProvenanceMetadata(BaseModel):
    """Fields describing where an uploaded chunk came from.

    Attributes:
        file_name:    Lower-cased name of the uploaded file.
        chunk_index:  Zero-based position of the chunk within the file.
        content:      Raw chunk text.
        uploaded_by:  Id of the admin who uploaded the file.
        uploaded_at:  ISO-8601 UTC upload timestamp.
        file_type:    "spreadsheet" for tabular sources, else the file extension.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    file_name: str = Field(default="", alias="fileName")
    chunk_index: int = Field(default=0, alias="chunkIndex")
    content: str | None = None
    uploaded_by: str | None = Field(default=None, alias="uploadedBy")
    uploaded_at: str | None = Field(default=None, alias="uploadedAt")
    file_type: str = Field(default="unknown", alias="fileType")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class TabularRecordMetadata(ProvenanceMetadata):
    """A batch of rows; batch_start/batch_end are 1-based row numbers."""

    record_kind: Literal["tabular"] = Field(default="tabular", alias="recordKind")
    file_type: str = Field(default="spreadsheet", alias="fileType")
    batch_start: int = Field(default=0, alias="batchStart")
    batch_end: int = Field(default=0, alias="batchEnd")
    total_rows: int = Field(default=0, alias="totalRows")


class FreeformMetadata(ProvenanceMetadata):
    record_kind: Literal["freeform"] = Field(default="freeform", alias="recordKind")


class PartRecord(BaseModel):
    """One row of the parts catalog, keyed by the catalog's column names."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    breadcrumb: str | None = Field(default=None, alias="Breadcrumb")
    description: str | None = Field(default=None, alias="Description")
    part_number: str | None = Field(default=None, alias="Part Number")
    quantity: str | None = Field(default=None, alias="Quantity")
    remarks: str | None = Field(default=None, alias="Remarks")

    @field_validator("*", mode="before")
    @classmethod
    def _stringify(cls, val: Any) -> Any:
        # catalog exports store quantities and part numbers as numbers at times
        if isinstance(val, (int, float)) and not isinstance(val, bool):
            return str(val)
        return val


class StructuredPartMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    record_kind: Literal["part"] = Field(default="part", alias="recordKind")
    model: str | None = None
    description: str | None = None
    original_data: PartRecord | None = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


RecordMetadata = Union[TabularRecordMetadata, FreeformMetadata, StructuredPartMetadata]


def parse_record_metadata(raw: dict | None) -> RecordMetadata | None:
    """Resolve a raw metadata dict into one of the record shapes.

    Records written by this service carry an explicit recordKind. Records
    from the catalog loader are recognised by their model/original_data keys,
    and older uploads by their fileType.

    Args:
        raw (dict | None): The metadata as returned by the vector store.

    Returns:
        RecordMetadata | None: The typed metadata, or None when there is none.
    """
    if not raw:
        return None
    kind = raw.get("recordKind")
    if kind == "part" or (kind is None and ("model" in raw or "original_data" in raw)):
        return StructuredPartMetadata.model_validate(raw)
    if kind == "tabular" or (kind is None and raw.get("fileType") == "spreadsheet"):
        return TabularRecordMetadata.model_validate(raw)
    return FreeformMetadata.model_validate(raw)
