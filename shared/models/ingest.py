"""Pydantic models for ingestion outcomes and ingestion jobs."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class IngestResult(BaseModel):
    """Outcome of ingesting one document.

    Attributes:
        source_name:        The ingested document.
        total_chunks:       Number of chunks attempted.
        successful_chunks:  Number of chunks embedded and stored.
        failed_chunks:      Indices of chunks that could not be stored.
    """

    source_name: str
    total_chunks: int
    successful_chunks: int = 0
    failed_chunks: list[int] = []

    @property
    def processed_chunks(self) -> int:
        return self.successful_chunks + len(self.failed_chunks)

    def get_message(self) -> str:
        return (
            f'Document "{self.source_name}" processed: '
            f"{self.successful_chunks}/{self.total_chunks} chunks successfully embedded"
        )


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class IngestJob(BaseModel):
    """Progress of a background ingestion, queryable by job id."""

    job_id: str
    source_name: str
    uploaded_by: str
    status: JobStatus = JobStatus.PENDING
    total_chunks: int = 0
    successful_chunks: int = 0
    failed_chunks: list[int] = []
    error: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def apply_result(self, result: IngestResult) -> None:
        self.total_chunks = result.total_chunks
        self.successful_chunks = result.successful_chunks
        self.failed_chunks = list(result.failed_chunks)

    def get_message(self) -> str:
        return (
            f'Document "{self.source_name}" processed: '
            f"{self.successful_chunks}/{self.total_chunks} chunks successfully embedded"
        )
