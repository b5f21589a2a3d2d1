from pydantic import BaseModel

from shared.models.ingest import IngestJob, JobStatus


class ChatContent(BaseModel):
    text: str


class ChatResponse(BaseModel):
    content: list[ChatContent]


class JobSubmittedResponse(BaseModel):
    job_id: str
    status: JobStatus
    source_name: str
    total_chunks: int


class JobStatusResponse(BaseModel):
    job_id: str
    status: JobStatus
    source_name: str
    total_chunks: int
    successful_chunks: int
    failed_chunks: list[int]
    error: str | None
    message: str

    @classmethod
    def from_job(cls, job: IngestJob) -> "JobStatusResponse":
        return cls(
            job_id=job.job_id,
            status=job.status,
            source_name=job.source_name,
            total_chunks=job.total_chunks,
            successful_chunks=job.successful_chunks,
            failed_chunks=job.failed_chunks,
            error=job.error,
            message=job.get_message(),
        )
