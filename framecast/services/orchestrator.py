"""Job orchestrator: admission, the staged pipeline and status persistence."""

import hashlib
import logging
import shutil
import traceback
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from framecast.models.job import Job, SourceReference, build_job_id
from framecast.models.media import JobResult
from framecast.services.media import MediaPipelineRunner
from framecast.services.store import JobStore
from framecast.services.transcription import TranscriptionAdapter
from framecast.utils.errors import AdmissionError, PipelineError

logger = logging.getLogger(__name__)

STAGE_DOWNLOADING = "downloading"
STAGE_KEYFRAMES = "extracting-keyframes"
STAGE_AUDIO = "extracting-audio"
STAGE_TRANSCRIBING = "transcribing"
STAGE_ENCODING = "encoding-results"


def cleanup_paths(paths: Iterable[Path]) -> list[Path]:
    """
    Delete files and directories, logging instead of raising.

    Returns:
        Paths that could not be removed
    """
    failed: list[Path] = []
    for path in paths:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            elif path.exists() or path.is_symlink():
                path.unlink()
            else:
                continue
            logger.debug(f"Deleted: {path}")
        except OSError as e:
            logger.warning(f"Cleanup failed for {path}: {e}")
            failed.append(path)
    return failed


class ScratchSpace:
    """Scratch paths owned by a single job, namespaced by a digest of its job id."""

    def __init__(self, root: Path, job_id: str) -> None:
        # Job ids embed the caller's correlation id, which is not path-safe
        digest = hashlib.sha256(job_id.encode("utf-8")).hexdigest()[:24]
        self.directory = root / f"framecast-{digest}"
        self.video_path = self.directory / "source.mp4"
        self.audio_path = self.directory / "audio.wav"
        self.keyframes_dir = self.directory / "keyframes"

    def acquire(self) -> "ScratchSpace":
        self.keyframes_dir.mkdir(parents=True, exist_ok=True)
        return self

    def cleanup(self) -> list[Path]:
        return cleanup_paths(
            [self.video_path, self.audio_path, self.keyframes_dir, self.directory]
        )


class JobOrchestrator:
    """Owns the job lifecycle and drives the pipeline stages in order."""

    def __init__(
        self,
        store: JobStore,
        media: MediaPipelineRunner,
        transcriber: TranscriptionAdapter,
        default_sensitivity: float = 0.15,
    ) -> None:
        """
        Initialize the JobOrchestrator.

        Args:
            store: Job status store (sole writer per job id is this instance)
            media: Runner for download and transcoding
            transcriber: Speech transcription adapter
            default_sensitivity: Scene-change threshold when the caller omits one
        """
        self.store = store
        self.media = media
        self.transcriber = transcriber
        self.default_sensitivity = default_sensitivity

    # ==================== Admission ====================

    def admit(
        self,
        source_url: str,
        correlation_id: str,
        sensitivity: Optional[float] = None,
    ) -> Job:
        """
        Validate a request and allocate its job.

        Nothing is written to the store here; the first durable write
        happens when the pipeline starts.

        Raises:
            AdmissionError: If the request is malformed
        """
        threshold = self.default_sensitivity if sensitivity is None else sensitivity
        try:
            source = SourceReference(source_url=source_url, correlation_id=correlation_id)
            job = Job(
                job_id=build_job_id(source.correlation_id),
                source=source,
                sensitivity=threshold,
                meta={"sensitivity": threshold},
            )
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][-1]) for err in e.errors() if err.get("loc"))
            raise AdmissionError(f"Invalid processing request: {fields or e}") from e

        logger.info(f"Admitted job {job.job_id} for {source.correlation_id}")
        return job

    # ==================== Execution ====================

    async def run(self, job: Job, persist: bool = True) -> Job:
        """
        Execute all stages of a job; never raises for pipeline failures.

        Args:
            job: Admitted job in the queued state
            persist: Write status transitions to the store

        Returns:
            The job in its final in-memory state
        """
        scratch = ScratchSpace(self.media.config.scratch_root, job.job_id)
        try:
            job.mark_processing()
            if persist:
                await self.store.save_job(job)
            logger.info(f"Background job started: {job.job_id}")

            scratch.acquire()
            result = await self._execute(job, scratch, persist)

            job.complete(result)
            if persist:
                await self.store.save_job(job)
            logger.info(
                f"Background job finished: {job.job_id} "
                f"({result.total_screenshots} keyframes)"
            )
        except Exception as e:
            await self._record_failure(job, e, persist)
        finally:
            scratch.cleanup()
        return job

    async def _enter_stage(self, job: Job, stage: str, persist: bool) -> None:
        job.set_stage(stage)
        logger.info(f"Job {job.job_id}: {stage}")
        if not persist:
            return
        try:
            await self.store.save_job(job)
        except Exception as e:
            logger.warning(f"Could not record stage {stage} for job {job.job_id}: {e}")

    async def _execute(self, job: Job, scratch: ScratchSpace, persist: bool) -> JobResult:
        await self._enter_stage(job, STAGE_DOWNLOADING, persist)
        await self.media.fetch_to_local(job.source.source_url, scratch.video_path)

        await self._enter_stage(job, STAGE_KEYFRAMES, persist)
        frames = await self.media.extract_keyframes(
            scratch.video_path, scratch.keyframes_dir, job.sensitivity
        )

        await self._enter_stage(job, STAGE_AUDIO, persist)
        await self.media.extract_audio_track(scratch.video_path, scratch.audio_path)

        await self._enter_stage(job, STAGE_TRANSCRIBING, persist)
        transcript = await self.transcriber.transcribe(scratch.audio_path)

        # Images are encoded only once every stage has succeeded
        await self._enter_stage(job, STAGE_ENCODING, persist)
        keyframes = self.media.read_keyframes(frames)
        return JobResult.assemble(keyframes, transcript, job.source.correlation_id)

    async def _record_failure(self, job: Job, exc: Exception, persist: bool) -> None:
        message = str(exc) or type(exc).__name__
        logger.error(f"Background job failed: {job.job_id}: {message}")

        if job.status == "done":
            # The done record never reached the store; report the job as failed
            logger.error(f"Job {job.job_id} finished but its result could not be stored")
            job.retract_completion()
            message = f"Failed to store job result: {message}"

        diagnostic = exc.diagnostic if isinstance(exc, PipelineError) else ""
        if not diagnostic:
            diagnostic = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        job.fail(message, diagnostic)

        if not persist:
            return
        try:
            await self.store.save_job(job)
        except Exception as store_error:
            logger.error(
                f"Failed writing error status for job {job.job_id}: {store_error}"
            )

    async def process_inline(
        self,
        source_url: str,
        correlation_id: str,
        sensitivity: Optional[float] = None,
    ) -> Job:
        """
        Admit and run a job in the caller's task without using the store.

        Raises:
            AdmissionError: If the request is malformed
        """
        job = self.admit(source_url, correlation_id, sensitivity)
        return await self.run(job, persist=False)


def create_orchestrator(store: JobStore) -> JobOrchestrator:
    """Create a JobOrchestrator using application settings."""
    from framecast.config import get_settings
    from framecast.services.media import create_media_runner
    from framecast.services.transcription import create_transcription_adapter

    settings = get_settings()
    return JobOrchestrator(
        store=store,
        media=create_media_runner(),
        transcriber=create_transcription_adapter(),
        default_sensitivity=settings.default_sensitivity,
    )
