"""Job record, lifecycle transitions and job-id encoding."""

from datetime import datetime, timezone
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import Field, field_validator, model_validator

from framecast.models.media import CamelModel, JobResult
from framecast.utils.errors import InvalidTransitionError

JobState = Literal["queued", "processing", "done", "error"]

TERMINAL_STATES: frozenset[str] = frozenset({"done", "error"})

# queued -> processing -> {done | error}; nothing leaves a terminal state
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "queued": frozenset({"processing", "error"}),
    "processing": frozenset({"done", "error"}),
    "done": frozenset(),
    "error": frozenset(),
}


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def build_job_id(
    correlation_id: str,
    created_at: Optional[datetime] = None,
    suffix: Optional[str] = None,
) -> str:
    """
    Encode a job id as ``<correlationId>-<creationEpochMillis>-<hexSuffix>``.

    The random suffix keeps ids unique for identical requests admitted in
    the same millisecond.

    Args:
        correlation_id: Caller-supplied correlation id
        created_at: Creation time (defaults to now)
        suffix: Hex suffix (defaults to 12 random hex characters)

    Returns:
        The encoded job id
    """
    created = created_at or utcnow()
    millis = int(created.timestamp() * 1000)
    return f"{correlation_id}-{millis}-{suffix or uuid4().hex[:12]}"


def parse_job_timestamp(job_id: str) -> Optional[datetime]:
    """
    Recover the creation time embedded in a job id.

    Looks for the epoch-millis token in front of the hex suffix, then
    falls back to a trailing numeric token (ids without a suffix).

    Returns:
        The embedded creation time, or None if no numeric token parses
    """
    if not job_id:
        return None

    parts = job_id.rsplit("-", 2)
    candidates = []
    if len(parts) == 3:
        candidates.append(parts[1])
    candidates.append(parts[-1])

    for token in candidates:
        if not token.isascii() or not token.isdigit():
            continue
        try:
            return datetime.fromtimestamp(int(token) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            continue
    return None


class SourceReference(CamelModel):
    """External video locator and the caller's correlation id."""

    source_url: str = Field(min_length=1)
    correlation_id: str = Field(min_length=1)

    @field_validator("source_url", "correlation_id")
    @classmethod
    def not_whitespace(cls, v: str) -> str:
        """Validate that field is not only whitespace."""
        if not v.strip():
            raise ValueError("field cannot be only whitespace")
        return v


class JobErrorDetail(CamelModel):
    """Failure description stored on an errored job."""

    message: str
    diagnostic: str = ""


class Job(CamelModel):
    """One admitted request to process a single video end-to-end."""

    job_id: str = Field(min_length=1)
    status: JobState = "queued"
    stage: Optional[str] = None
    source: SourceReference
    sensitivity: float = Field(default=0.15, gt=0, le=1)
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    result: Optional[JobResult] = None
    error: Optional[JobErrorDetail] = None

    @model_validator(mode="after")
    def outcome_matches_status(self) -> "Job":
        """Validate that result and error only appear with their terminal status."""
        if self.result is not None and self.status != "done":
            raise ValueError("result is only allowed when status is 'done'")
        if self.error is not None and self.status != "error":
            raise ValueError("error is only allowed when status is 'error'")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def _transition(self, target: str) -> datetime:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status, target)
        now = utcnow()
        self.status = target  # type: ignore[assignment]
        self.updated_at = now
        return now

    def mark_processing(self) -> None:
        self._transition("processing")

    def set_stage(self, stage: str) -> None:
        """Record the active pipeline step (advisory only)."""
        if self.is_terminal:
            raise InvalidTransitionError(self.status, self.status)
        self.stage = stage
        self.updated_at = utcnow()

    def complete(self, result: JobResult) -> None:
        self.completed_at = self._transition("done")
        self.stage = None
        self.result = result

    def retract_completion(self) -> None:
        """Return a completed job to processing when its done record was never stored."""
        if self.status != "done":
            raise InvalidTransitionError(self.status, "processing")
        self.status = "processing"
        self.result = None
        self.completed_at = None
        self.updated_at = utcnow()

    def fail(self, message: str, diagnostic: str = "") -> None:
        self.failed_at = self._transition("error")
        self.error = JobErrorDetail(message=message, diagnostic=diagnostic)

    def to_document(self) -> dict[str, Any]:
        """Serialize for the status store."""
        return self.to_wire()

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Job":
        return cls.model_validate(document)
