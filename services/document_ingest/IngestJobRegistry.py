"""Background ingestion jobs.

Submitting a document returns a job id immediately; the paced chunk loop
runs in an asyncio task and records its progress on the job, which callers
poll by id. A source with a pending or running job cannot be submitted
again until that job finishes.
"""

import asyncio
import uuid
from datetime import datetime, timezone

from services.document_ingest.IngestService import IngestService
from shared.errors import IngestFailedError, JobNotFoundError, SourceBusyError
from shared.helper.HelperConfig import HelperConfig
from shared.models.chunk import Chunk
from shared.models.ingest import IngestJob, IngestResult, JobStatus


class IngestJobRegistry:
    """Keeps ingestion jobs and their tasks in process memory."""

    def __init__(self, helper_config: HelperConfig, ingest_service: IngestService) -> None:
        self.logging = helper_config.get_logger()
        self._ingest_service = ingest_service
        self._jobs: dict[str, IngestJob] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._active_sources: dict[str, str] = {}
        # finished jobs beyond this count are dropped, oldest first
        self._max_finished_jobs = max(int(helper_config.get_number_val("INGEST_JOB_RETENTION", default=100)), 1)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_job(self, job_id: str) -> IngestJob:
        """Return a snapshot of a job.

        Raises:
            JobNotFoundError: If no job has this id.
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Ingestion job '{job_id}' not found.")
        return job.model_copy(deep=True)

    def get_active_job_id(self, source_name: str) -> str | None:
        return self._active_sources.get(source_name)

    ##########################################
    ################# JOBS ###################
    ##########################################

    async def do_submit(self, source_name: str, chunks: list[Chunk], uploaded_by: str) -> IngestJob:
        """Register a job and start ingesting in the background.

        Args:
            source_name (str): The document name; also the lock key.
            chunks (list[Chunk]): Chunks to ingest.
            uploaded_by (str): Id of the uploading admin.

        Returns:
            IngestJob: A snapshot of the new job in "pending" state.

        Raises:
            SourceBusyError: If the same source is still being ingested.
        """
        active_job_id = self._active_sources.get(source_name)
        if active_job_id is not None:
            raise SourceBusyError(source_name, active_job_id)

        job = IngestJob(
            job_id=uuid.uuid4().hex,
            source_name=source_name,
            uploaded_by=uploaded_by,
            total_chunks=len(chunks),
            created_at=datetime.now(timezone.utc),
        )
        self._jobs[job.job_id] = job
        self._active_sources[source_name] = job.job_id
        self._tasks[job.job_id] = asyncio.create_task(self._run_job(job, chunks))
        self.logging.info("Submitted ingestion job %s for '%s' (%d chunks).", job.job_id, source_name, len(chunks))
        return job.model_copy(deep=True)

    async def do_wait(self, job_id: str) -> IngestJob:
        """Wait for a job's task to finish and return its final snapshot."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.get_job(job_id)

    async def close(self) -> None:
        """Cancel all unfinished jobs."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_job(self, job: IngestJob, chunks: list[Chunk]) -> None:
        job.status = JobStatus.RUNNING
        job.started_at = datetime.now(timezone.utc)

        def on_progress(result: IngestResult) -> None:
            job.apply_result(result)

        try:
            result = await self._ingest_service.do_ingest_document(
                job.source_name, chunks, job.uploaded_by, on_progress=on_progress
            )
        except IngestFailedError as exc:
            job.apply_result(exc.result)
            job.status = JobStatus.FAILED
            job.error = str(exc)
        except asyncio.CancelledError:
            job.status = JobStatus.FAILED
            job.error = "Ingestion cancelled before completion."
            raise
        except Exception as exc:
            self.logging.exception("Ingestion job %s failed unexpectedly: %s", job.job_id, exc)
            job.status = JobStatus.FAILED
            job.error = str(exc)
        else:
            job.apply_result(result)
            job.status = JobStatus.COMPLETED
        finally:
            job.finished_at = datetime.now(timezone.utc)
            self._active_sources.pop(job.source_name, None)
            self._tasks.pop(job.job_id, None)
            self._evict_finished_jobs()
            self.logging.info("Ingestion job %s finished with status '%s'.", job.job_id, job.status.value)

    def _evict_finished_jobs(self) -> None:
        finished = [job_id for job_id, job in self._jobs.items() if job.finished_at is not None]
        for job_id in finished[: max(len(finished) - self._max_finished_jobs, 0)]:
            del self._jobs[job_id]
            self.logging.debug("Evicted finished ingestion job %s.", job_id)
