"""Custom exception classes for Framecast."""

from typing import Optional


class FramecastError(Exception):
    """Base exception for all application errors."""

    pass


class AdmissionError(FramecastError):
    """A processing request was malformed; no job was created."""

    pass


class PipelineError(FramecastError):
    """A pipeline stage failed and the job must end in the error state."""

    def __init__(self, message: str, diagnostic: str = "") -> None:
        self.diagnostic = diagnostic
        super().__init__(message)


class DownloadError(PipelineError):
    """Source video could not be fetched or is not media."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        content_type: str = "",
        diagnostic: str = "",
    ) -> None:
        self.status_code = status_code
        self.content_type = content_type
        super().__init__(message, diagnostic)


class TranscodeError(PipelineError):
    """The transcoder process exited abnormally."""

    def __init__(self, stage: str, returncode: Optional[int], stderr: str = "") -> None:
        self.stage = stage
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"ffmpeg {stage} failed (rc={returncode})",
            diagnostic=stderr[-500:],
        )


class TranscriptionSoftFailure(FramecastError):
    """Speech backend call failed; absorbed into a degraded transcript."""

    pass


class StorePersistError(FramecastError):
    """Writing a job record to the status store failed."""

    pass


class InvalidTransitionError(FramecastError):
    """Attempted a status change the job lifecycle does not allow."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid job transition: {current} -> {target}")
