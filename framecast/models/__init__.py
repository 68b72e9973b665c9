"""Pydantic data models for Framecast."""

from framecast.models.job import (
    Job,
    JobErrorDetail,
    JobState,
    SourceReference,
    build_job_id,
    parse_job_timestamp,
)
from framecast.models.media import (
    JobResult,
    Keyframe,
    Screenshot,
    Transcript,
    TranscriptSegment,
)

__all__ = [
    "Job",
    "JobErrorDetail",
    "JobState",
    "SourceReference",
    "build_job_id",
    "parse_job_timestamp",
    "JobResult",
    "Keyframe",
    "Screenshot",
    "Transcript",
    "TranscriptSegment",
]
