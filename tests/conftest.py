"""Pytest fixtures for Framecast tests."""

from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Optional

import httpx
import pytest

from framecast.services.media import MediaConfig, MediaPipelineRunner
from framecast.services.orchestrator import JobOrchestrator
from framecast.services.store import InMemoryJobStore
from framecast.services.transcription import TranscriptionAdapter
from framecast.utils.errors import StorePersistError, TranscodeError

PNG_HEADER = b"\x89PNG\r\n\x1a\n"
VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 4096


def video_handler(request: httpx.Request) -> httpx.Response:
    """Serve a plausible MP4 payload."""
    return httpx.Response(200, headers={"content-type": "video/mp4"}, content=VIDEO_BYTES)


def html_handler(request: httpx.Request) -> httpx.Response:
    """Serve a confirmation page instead of media."""
    return httpx.Response(
        200,
        headers={"content-type": "text/html; charset=utf-8"},
        content=b"<html><body>Virus scan warning: confirm download</body></html>" * 40,
    )


class StubMediaRunner(MediaPipelineRunner):
    """MediaPipelineRunner whose ffmpeg calls write fake outputs."""

    def __init__(
        self,
        config: MediaConfig,
        scene_count: int = 2,
        fail_stage: Optional[str] = None,
        handler: Any = video_handler,
    ) -> None:
        super().__init__(config, transport=httpx.MockTransport(handler))
        self.scene_count = scene_count
        self.fail_stage = fail_stage
        self.calls: list[str] = []

    async def _run_ffmpeg(self, stage: str, args: list[str]) -> None:
        self.calls.append(stage)
        if stage == self.fail_stage:
            raise TranscodeError(stage, 1, "Invalid data found when processing input")
        output = Path(args[-1])
        if stage == "keyframe extraction":
            # Written in reverse to make sure callers sort by ordinal
            for ordinal in range(self.scene_count, 0, -1):
                frame = output.parent / f"frame_{ordinal:04d}.png"
                frame.write_bytes(PNG_HEADER + ordinal.to_bytes(2, "big"))
        else:
            output.write_bytes(b"RIFF" + b"\x00" * 2048)


class FakeSpeechClient:
    """Stand-in for google.cloud.speech.SpeechClient."""

    def __init__(self, utterances: Optional[list[tuple[float, str]]] = None, error: Optional[Exception] = None) -> None:
        self.utterances = utterances if utterances is not None else [(0.4, "Hallo zusammen."), (65.9, "Zweite Szene.")]
        self.error = error
        self.requests: list[Any] = []

    def recognize(self, config: Any, audio: Any) -> Any:
        self.requests.append((config, audio))
        if self.error is not None:
            raise self.error
        results = [
            SimpleNamespace(
                alternatives=[
                    SimpleNamespace(
                        transcript=text,
                        words=[SimpleNamespace(start_time=timedelta(seconds=start))],
                    )
                ]
            )
            for start, text in self.utterances
        ]
        return SimpleNamespace(results=results)


class FailingJobStore(InMemoryJobStore):
    """In-memory store that refuses writes of the given statuses."""

    def __init__(self, fail_statuses: set[str]) -> None:
        super().__init__()
        self.fail_statuses = fail_statuses
        self.attempted: list[dict[str, Any]] = []

    async def put(self, key: str, document: dict[str, Any]) -> None:
        self.attempted.append(document)
        if document.get("status") in self.fail_statuses:
            raise StorePersistError("status store unreachable")
        await super().put(key, document)


class RecordingJobStore(InMemoryJobStore):
    """In-memory store that keeps every written document."""

    def __init__(self) -> None:
        super().__init__()
        self.history: list[dict[str, Any]] = []

    async def put(self, key: str, document: dict[str, Any]) -> None:
        self.history.append(document)
        await super().put(key, document)


@pytest.fixture
def media_config(tmp_path: Path) -> MediaConfig:
    """MediaConfig rooted in a temporary scratch directory."""
    return MediaConfig(ffmpeg_binary="ffmpeg", scratch_root=tmp_path)


@pytest.fixture
def store() -> RecordingJobStore:
    return RecordingJobStore()


@pytest.fixture
def speech_client() -> FakeSpeechClient:
    return FakeSpeechClient()


@pytest.fixture
def orchestrator(
    media_config: MediaConfig, store: RecordingJobStore, speech_client: FakeSpeechClient
) -> JobOrchestrator:
    """Orchestrator with stubbed ffmpeg, stubbed download and a fake speech client."""
    return JobOrchestrator(
        store=store,
        media=StubMediaRunner(media_config),
        transcriber=TranscriptionAdapter(client=speech_client),
    )


@pytest.fixture
def sample_request() -> dict:
    """Sample processing request."""
    return {
        "videoUrl": "https://host/video.mp4",
        "driveFileId": "abc123",
    }
