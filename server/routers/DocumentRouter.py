from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from server.dependencies.auth import get_caller, require_admin
from server.models.responses import JobStatusResponse, JobSubmittedResponse
from services.document_ingest.Chunker import chunk_extracted
from services.document_ingest.TextExtractor import extract_document
from shared.errors import (
    DocumentParseError,
    JobNotFoundError,
    MissingFileError,
    SourceBusyError,
    UnsupportedFormatError,
)
from shared.models.caller import Caller

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", status_code=202)
async def upload_document(
    request: Request,
    file: UploadFile | None = File(default=None),
    caller: Caller = Depends(require_admin),
) -> JobSubmittedResponse:
    """Accept a document upload and start ingesting it in the background.

    Args:
        request (Request): FastAPI request (provides app.state.ingest_jobs).
        file (UploadFile | None): The multipart "file" field.
        caller (Caller): The uploading admin.

    Returns:
        JobSubmittedResponse: The new job, to be polled via GET /documents/jobs/{job_id}.

    Raises:
        HTTPException: 400 no file or unsupported type, 409 source busy, 500 parse failure.
    """
    logging = request.app.state.logging
    file_name = file.filename if file is not None else None
    data = await file.read() if file is not None else b""
    try:
        # pandas and python-docx parse synchronously, keep them off the event loop
        extracted = await run_in_threadpool(extract_document, file_name, data)
    except MissingFileError:
        raise HTTPException(status_code=400, detail="No file provided")
    except UnsupportedFormatError:
        raise HTTPException(status_code=400, detail="Unsupported file type")
    except DocumentParseError as exc:
        logging.error("Upload of '%s' by '%s' could not be parsed: %s", file_name, caller.user_id, exc)
        raise HTTPException(status_code=500, detail="Failed to parse file content")

    chunks = chunk_extracted(extracted)
    logging.info("Upload '%s' by '%s' split into %d chunk(s).", extracted.source_name, caller.user_id, len(chunks))

    try:
        job = await request.app.state.ingest_jobs.do_submit(extracted.source_name, chunks, caller.user_id)
    except SourceBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    return JobSubmittedResponse(
        job_id=job.job_id,
        status=job.status,
        source_name=job.source_name,
        total_chunks=job.total_chunks,
    )


@router.get("/jobs/{job_id}")
async def get_job_status(
    request: Request,
    job_id: str,
    _: Caller = Depends(get_caller),
) -> JobStatusResponse:
    """Return the progress of an ingestion job.

    Raises:
        HTTPException: 404 if the job id is unknown.
    """
    try:
        job = request.app.state.ingest_jobs.get_job(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return JobStatusResponse.from_job(job)
