"""FastAPI routes for Framecast API."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import Field

from framecast.api.deps import get_orchestrator, get_retrieval_service
from framecast.models.media import CamelModel
from framecast.services.orchestrator import JobOrchestrator
from framecast.services.retrieval import ResultRetrievalService
from framecast.utils.errors import AdmissionError, FramecastError

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


# ==================== Exception Handlers ====================


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle malformed request bodies and parameters."""
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "details": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
                for err in exc.errors()
            ],
        },
    )


async def framecast_exception_handler(request: Request, exc: FramecastError) -> JSONResponse:
    """Handle application-specific errors."""
    status_code = 400 if isinstance(exc, AdmissionError) else 500
    if status_code == 500:
        logger.error(f"Request failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": str(exc), "error_type": type(exc).__name__},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "error_type": "InternalError"},
    )


# ==================== Request/Response Models ====================


class ProcessVideoRequest(CamelModel):
    """Request model for the processing endpoints."""

    video_url: Optional[str] = Field(default=None, description="Direct download URL of the video")
    drive_file_id: Optional[str] = Field(default=None, description="Caller correlation id")
    sensitivity: Optional[float] = Field(default=None, description="Scene-change threshold in (0, 1]")

    def require_source(self) -> tuple[str, str]:
        """Return (video_url, drive_file_id) or raise AdmissionError."""
        if not self.video_url or not self.drive_file_id:
            raise AdmissionError("videoUrl and driveFileId are required")
        return self.video_url, self.drive_file_id


class AdmissionResponse(CamelModel):
    """Response model for an accepted processing request."""

    success: bool = True
    job_id: str


# ==================== Endpoints ====================


@router.post("/process-video", status_code=202, response_model=AdmissionResponse)
async def process_video(
    request: ProcessVideoRequest,
    background_tasks: BackgroundTasks,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> AdmissionResponse:
    """
    Accept a video for asynchronous processing.

    Returns the job id immediately; the pipeline runs after the response
    is sent. Poll ``/process-video-result`` for the outcome.
    """
    video_url, drive_file_id = request.require_source()
    job = orchestrator.admit(video_url, drive_file_id, request.sensitivity)

    background_tasks.add_task(orchestrator.run, job)

    return AdmissionResponse(job_id=job.job_id)


@router.get("/process-video-result")
async def process_video_result(
    job_id: Optional[str] = Query(default=None, alias="jobId"),
    retrieval: ResultRetrievalService = Depends(get_retrieval_service),
) -> JSONResponse:
    """
    Get the state of a job.

    200 with the result when done, 500 when failed, 202 while queued or
    processing and 404 for unknown ids.
    """
    if not job_id:
        raise AdmissionError("jobId is required")

    view = await retrieval.get_status(job_id)
    return JSONResponse(status_code=view.status_code, content=view.payload)


@router.post("/process-video-sync")
async def process_video_sync(
    request: ProcessVideoRequest,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """
    Process a video inside the request and return the result directly.

    Nothing is written to the status store.
    """
    video_url, drive_file_id = request.require_source()
    job = await orchestrator.process_inline(video_url, drive_file_id, request.sensitivity)

    view = ResultRetrievalService.render(job)
    return JSONResponse(status_code=view.status_code, content=view.payload)
