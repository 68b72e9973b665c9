"""Transcription adapter for Google Cloud Speech-to-Text."""

import asyncio
import json
import logging
import math
from pathlib import Path
from typing import Any, Optional

from framecast.models.media import Transcript, TranscriptSegment
from framecast.services.media import AUDIO_SAMPLE_RATE
from framecast.utils.errors import TranscriptionSoftFailure

logger = logging.getLogger(__name__)

UNAVAILABLE_TEXT = "Transcription unavailable (speech credentials missing)"
FAILED_TEXT = "Transcription failed"


def format_timestamp(seconds: float) -> str:
    """
    Format an offset as ``MM:SS`` with floored minutes and seconds.

    There is no hour component; offsets past 99 minutes simply grow the
    minute field.
    """
    mins, secs = divmod(math.floor(max(0.0, float(seconds))), 60)
    return f"{mins:02d}:{secs:02d}"


def _offset_seconds(value: Any) -> float:
    """Convert a word offset (timedelta, protobuf Duration or number) to seconds."""
    if value is None:
        return 0.0
    if hasattr(value, "total_seconds"):
        return value.total_seconds()
    if hasattr(value, "seconds"):
        return float(value.seconds) + getattr(value, "nanos", 0) / 1e9
    return float(value)


class TranscriptionAdapter:
    """Turns 16 kHz mono PCM audio into a transcript, degrading instead of failing."""

    def __init__(
        self,
        credentials_json: str = "",
        language_code: str = "de-DE",
        client: Optional[Any] = None,
    ) -> None:
        """
        Initialize the TranscriptionAdapter.

        Args:
            credentials_json: Service-account JSON; empty disables transcription
            language_code: BCP-47 language of the speech
            client: Pre-built SpeechClient (optional)
        """
        self.credentials_json = credentials_json
        self.language_code = language_code
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.credentials_json) or self._client is not None

    def _get_client(self) -> Any:
        """Get or create the Speech client."""
        if self._client is None:
            from google.cloud import speech

            info = json.loads(self.credentials_json)
            self._client = speech.SpeechClient.from_service_account_info(info)
        return self._client

    def _recognize(self, audio_path: Path) -> Any:
        from google.cloud import speech

        client = self._get_client()
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=AUDIO_SAMPLE_RATE,
            language_code=self.language_code,
            enable_automatic_punctuation=True,
            enable_word_time_offsets=True,
        )
        audio = speech.RecognitionAudio(content=audio_path.read_bytes())
        return client.recognize(config=config, audio=audio)

    @staticmethod
    def build_transcript(response: Any) -> Transcript:
        """
        Map a recognize response to a Transcript.

        Each result's top alternative becomes one segment stamped with its
        first word's start offset (0 when there are no word offsets).
        """
        segments: list[TranscriptSegment] = []
        for result in response.results:
            if not result.alternatives:
                continue
            alternative = result.alternatives[0]
            start = _offset_seconds(alternative.words[0].start_time) if alternative.words else 0.0
            segments.append(
                TranscriptSegment(timestamp=format_timestamp(start), text=alternative.transcript)
            )

        return Transcript(
            full_text="\n".join(segment.text for segment in segments),
            segments=segments,
        )

    async def _transcribe_with_backend(self, audio_path: Path) -> Transcript:
        try:
            response = await asyncio.to_thread(self._recognize, audio_path)
            return self.build_transcript(response)
        except Exception as e:
            raise TranscriptionSoftFailure(f"{type(e).__name__}: {e}") from e

    async def transcribe(self, audio_path: Path) -> Transcript:
        """
        Transcribe an audio file.

        Never raises for backend problems: missing credentials yield the
        "unavailable" sentinel and backend failures the "failed" sentinel
        with a diagnostic in ``error``.

        Args:
            audio_path: Mono 16 kHz LINEAR16 audio

        Returns:
            Transcript (possibly degraded)
        """
        if not self.configured:
            logger.warning("Speech credentials missing; skipping transcription")
            return Transcript(full_text=UNAVAILABLE_TEXT)

        try:
            transcript = await self._transcribe_with_backend(audio_path)
        except TranscriptionSoftFailure as e:
            logger.error(f"Transcription failed: {e}")
            return Transcript(full_text=FAILED_TEXT, error=str(e))

        logger.info(f"Transcribed {len(transcript.segments)} segments from {audio_path.name}")
        return transcript


def create_transcription_adapter() -> TranscriptionAdapter:
    """Create a TranscriptionAdapter using application settings."""
    from framecast.config import get_settings

    settings = get_settings()
    return TranscriptionAdapter(
        credentials_json=settings.google_application_credentials_json,
        language_code=settings.speech_language_code,
    )
