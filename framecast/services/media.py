"""Media pipeline runner: download, scene-cut keyframes and audio via ffmpeg."""

import asyncio
import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Optional

import httpx
from pydantic import BaseModel, Field

from framecast.models.media import Keyframe
from framecast.utils.errors import DownloadError, TranscodeError

logger = logging.getLogger(__name__)

# Output pattern for scene-change images; the ordinal is strictly increasing
KEYFRAME_PATTERN = "frame_%04d.png"
KEYFRAME_ORDINAL_RE = re.compile(r"frame_(\d+)")

# Fixed input contract of the speech backend
AUDIO_SAMPLE_RATE = 16000
AUDIO_CHANNELS = 1
AUDIO_CODEC = "pcm_s16le"

HTML_PREVIEW_CHARS = 400


class MediaConfig(BaseModel):
    """Transcoder and download settings for one MediaPipelineRunner."""

    ffmpeg_binary: str = "ffmpeg"
    scratch_root: Path
    min_download_bytes: int = Field(default=1024, ge=0)
    download_timeout_seconds: float = Field(default=300.0, gt=0)
    user_agent: str = "video-processor/1.0"
    transcode_timeout_seconds: Optional[float] = None


def resolve_ffmpeg_binary(configured: str = "") -> str:
    """
    Pick the ffmpeg executable: an explicit path wins, else ``ffmpeg`` on PATH.

    A missing binary is only logged; the transcode stages fail later.
    """
    if configured:
        if not Path(configured).exists():
            logger.error(f"FFmpeg binary not found at configured path: {configured}")
        else:
            logger.info(f"Using ffmpeg binary at: {configured}")
        return configured

    found = shutil.which("ffmpeg")
    if found:
        logger.info(f"Using ffmpeg binary at: {found}")
        return found
    logger.warning("FFmpeg binary not found on PATH; transcoding will fail")
    return "ffmpeg"


def keyframe_ordinal(filename: str) -> int:
    """Extract the numeric ordinal from a keyframe filename (0 if absent)."""
    match = KEYFRAME_ORDINAL_RE.search(filename)
    return int(match.group(1)) if match else 0


class MediaPipelineRunner:
    """Wraps the download and the ffmpeg transcoding capabilities."""

    def __init__(
        self,
        config: MediaConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the MediaPipelineRunner.

        Args:
            config: Transcoder and download settings
            transport: Optional httpx transport (used to stub downloads)
        """
        self.config = config
        self._transport = transport

    # ==================== Download ====================

    async def fetch_to_local(self, source_url: str, destination: Path) -> Path:
        """
        Stream a remote video into scratch storage.

        Args:
            source_url: Remote video locator
            destination: Local file to write

        Returns:
            The destination path

        Raises:
            DownloadError: On a non-success response, an HTML response or an
                implausibly small file
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        content_type = ""

        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.config.download_timeout_seconds,
                headers={"user-agent": self.config.user_agent},
                transport=self._transport,
            ) as client:
                async with client.stream("GET", source_url) as response:
                    if not response.is_success:
                        raise DownloadError(
                            f"Video download failed: HTTP {response.status_code}",
                            status_code=response.status_code,
                        )

                    content_type = response.headers.get("content-type", "").lower()
                    if "text/html" in content_type:
                        body = await response.aread()
                        preview = body.decode("utf-8", errors="replace")[:HTML_PREVIEW_CHARS]
                        raise DownloadError(
                            "Downloaded content is HTML, not a video file. "
                            "The link is probably not a direct download "
                            "(redirect or confirmation page).",
                            status_code=response.status_code,
                            content_type=content_type,
                            diagnostic=f"Content-Type={content_type}. Preview={preview!r}",
                        )

                    with destination.open("wb") as fh:
                        async for chunk in response.aiter_bytes():
                            fh.write(chunk)
        except httpx.HTTPError as e:
            raise DownloadError(f"Video download failed: {e}") from e

        size = destination.stat().st_size if destination.exists() else 0
        if size < max(1, self.config.min_download_bytes):
            raise DownloadError(
                f"Downloaded video file too small ({size} bytes). contentType={content_type}",
                content_type=content_type,
            )

        logger.info(f"Downloaded {size} bytes to {destination}")
        return destination

    # ==================== Transcoding ====================

    async def _run_ffmpeg(self, stage: str, args: list[str]) -> None:
        cmd = [self.config.ffmpeg_binary, "-hide_banner", "-y", *args]
        logger.debug(f"Running {stage}: {' '.join(cmd)}")
        try:
            res = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self.config.transcode_timeout_seconds,
            )
        except FileNotFoundError as e:
            raise TranscodeError(stage, None, f"ffmpeg binary not found: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise TranscodeError(stage, None, f"ffmpeg timed out after {e.timeout}s") from e

        if res.returncode != 0:
            raise TranscodeError(stage, res.returncode, (res.stderr or res.stdout or "").strip())

    async def extract_keyframes(
        self, video_path: Path, output_dir: Path, sensitivity: float
    ) -> list[Path]:
        """
        Write one image per detected scene change.

        Args:
            video_path: Local video file
            output_dir: Job-scoped directory for the images
            sensitivity: Scene-change threshold in (0, 1]; lower yields more frames

        Returns:
            Image paths sorted by their numeric ordinal

        Raises:
            TranscodeError: If ffmpeg exits abnormally
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        await self._run_ffmpeg(
            "keyframe extraction",
            [
                "-i", str(video_path),
                "-vf", f"select='gt(scene,{sensitivity})',showinfo",
                "-vsync", "vfr",
                str(output_dir / KEYFRAME_PATTERN),
            ],
        )

        frames = sorted(
            (p for p in output_dir.iterdir() if p.suffix == ".png"),
            key=lambda p: keyframe_ordinal(p.name),
        )
        logger.info(f"Extracted {len(frames)} keyframes from {video_path.name}")
        return frames

    async def extract_audio_track(self, video_path: Path, audio_path: Path) -> Path:
        """
        Extract mono 16 kHz 16-bit PCM audio.

        Raises:
            TranscodeError: If ffmpeg exits abnormally or writes nothing
        """
        audio_path.parent.mkdir(parents=True, exist_ok=True)
        await self._run_ffmpeg(
            "audio extraction",
            [
                "-i", str(video_path),
                "-vn",
                "-acodec", AUDIO_CODEC,
                "-ar", str(AUDIO_SAMPLE_RATE),
                "-ac", str(AUDIO_CHANNELS),
                str(audio_path),
            ],
        )
        if not audio_path.exists():
            raise TranscodeError("audio extraction", 0, "Audio file not created")
        return audio_path

    @staticmethod
    def read_keyframes(frames: list[Path]) -> list[Keyframe]:
        """Load keyframe images in emission order."""
        return [
            Keyframe(
                sequence_index=idx,
                filename=frame.name,
                approximate_offset_seconds=keyframe_ordinal(frame.name),
                image_bytes=frame.read_bytes(),
            )
            for idx, frame in enumerate(frames)
        ]


def create_media_runner() -> MediaPipelineRunner:
    """Create a MediaPipelineRunner using application settings."""
    from framecast.config import get_settings

    settings = get_settings()
    config = MediaConfig(
        ffmpeg_binary=resolve_ffmpeg_binary(settings.ffmpeg_path),
        scratch_root=Path(settings.scratch_dir),
        min_download_bytes=settings.min_download_bytes,
        download_timeout_seconds=settings.download_timeout_seconds,
        user_agent=settings.download_user_agent,
    )
    return MediaPipelineRunner(config)
