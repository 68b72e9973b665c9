"""Utility modules for Framecast."""

from framecast.utils.errors import (
    AdmissionError,
    DownloadError,
    FramecastError,
    InvalidTransitionError,
    PipelineError,
    StorePersistError,
    TranscodeError,
    TranscriptionSoftFailure,
)
from framecast.utils.retry import with_retry

__all__ = [
    "FramecastError",
    "AdmissionError",
    "PipelineError",
    "DownloadError",
    "TranscodeError",
    "TranscriptionSoftFailure",
    "StorePersistError",
    "InvalidTransitionError",
    "with_retry",
]
