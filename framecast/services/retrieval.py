"""Result retrieval: maps stored job records to poll responses."""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, Field

from framecast.models.job import Job, parse_job_timestamp, utcnow
from framecast.services.store import JobStore

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = timedelta(minutes=10)

ViewKind = Literal["done", "error", "progress", "not_found"]


def is_within_freshness_window(
    job_id: str,
    now: Optional[datetime] = None,
    window: timedelta = DEFAULT_FRESHNESS_WINDOW,
) -> bool:
    """
    Decide whether a job id is young enough to be treated as queued.

    The creation time embedded in the id must be within ``window`` of
    ``now`` in either direction; ids without a parseable time never are.
    """
    created = parse_job_timestamp(job_id)
    if created is None:
        return False
    age = (now or utcnow()) - created
    return abs(age) <= window


class JobView(BaseModel):
    """Poll response: the payload plus the HTTP status that carries it."""

    kind: ViewKind
    status_code: int
    payload: dict[str, Any] = Field(default_factory=dict)


def _progress_payload(
    job_id: str,
    status: str,
    stage: Optional[str] = None,
    updated_at: Optional[datetime] = None,
    meta: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return {
        "success": False,
        "status": status,
        "stage": stage,
        "updatedAt": updated_at.isoformat() if updated_at else None,
        "meta": meta or {},
        "jobId": job_id,
    }


class ResultRetrievalService:
    """Answers "what is the state of job X" from the status store."""

    def __init__(
        self,
        store: JobStore,
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.freshness_window = freshness_window
        self.clock = clock

    async def get_status(self, job_id: str) -> JobView:
        """
        Look up a job.

        A missing record for an id created within the freshness window is
        reported as queued, since the store may not have converged yet.

        Args:
            job_id: Encoded job id

        Returns:
            JobView for a done, error, progress or not-found outcome
        """
        job = await self.store.load_job(job_id)
        if job is None:
            if is_within_freshness_window(job_id, self.clock(), self.freshness_window):
                logger.debug(f"No record yet for fresh job {job_id}; reporting queued")
                return JobView(
                    kind="progress",
                    status_code=202,
                    payload=_progress_payload(job_id, "queued"),
                )
            return JobView(kind="not_found", status_code=404, payload={"error": "Job not found"})

        return self.render(job)

    @staticmethod
    def render(job: Job) -> JobView:
        """Map a stored job to its poll response."""
        if job.status == "done" and job.result is not None:
            return JobView(kind="done", status_code=200, payload=job.result.to_wire())

        if job.status == "error":
            details = job.error.message if job.error else "Unknown error"
            return JobView(
                kind="error",
                status_code=500,
                payload={"error": "Video processing failed", "details": details},
            )

        return JobView(
            kind="progress",
            status_code=202,
            payload=_progress_payload(
                job.job_id, job.status, job.stage, job.updated_at, job.meta
            ),
        )


def create_retrieval_service(store: JobStore) -> ResultRetrievalService:
    """Create a ResultRetrievalService using application settings."""
    from framecast.config import get_settings

    settings = get_settings()
    return ResultRetrievalService(
        store=store,
        freshness_window=timedelta(seconds=settings.freshness_window_seconds),
    )
