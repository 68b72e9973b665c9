"""Tests for the transcription adapter.

Feature: framecast
Property 6: Transcription never fails the job
Property 7: MM:SS timestamp formatting
"""

from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest
from hypothesis import given, settings, strategies as st

from framecast.services.transcription import (
    FAILED_TEXT,
    UNAVAILABLE_TEXT,
    TranscriptionAdapter,
    format_timestamp,
)
from tests.conftest import FakeSpeechClient


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    path = tmp_path / "audio.wav"
    path.write_bytes(b"RIFF" + b"\x00" * 64)
    return path


class TestProperty6SoftFailure:
    """Property 6: Transcription never fails the job.

    *For any* missing configuration or backend failure, transcribe SHALL
    return a sentinel transcript with no segments instead of raising.
    """

    @pytest.mark.asyncio
    async def test_unconfigured_returns_unavailable(self, audio_file: Path) -> None:
        adapter = TranscriptionAdapter(credentials_json="")

        transcript = await adapter.transcribe(audio_file)

        assert transcript.full_text == UNAVAILABLE_TEXT
        assert transcript.segments == []
        assert transcript.error is None

    @settings(max_examples=25)
    @given(
        error=st.sampled_from(
            [
                RuntimeError("429 Quota exceeded"),
                ConnectionError("network unreachable"),
                ValueError("Invalid audio encoding"),
            ]
        )
    )
    @pytest.mark.asyncio
    async def test_backend_failure_returns_failed(self, error: Exception) -> None:
        adapter = TranscriptionAdapter(client=FakeSpeechClient(error=error))
        audio = Path(__file__)

        transcript = await adapter.transcribe(audio)

        assert transcript.full_text == FAILED_TEXT
        assert transcript.segments == []
        assert str(error) in transcript.error

    @pytest.mark.asyncio
    async def test_malformed_credentials_degrade(self, audio_file: Path) -> None:
        adapter = TranscriptionAdapter(credentials_json="{not json")

        transcript = await adapter.transcribe(audio_file)

        assert transcript.full_text == FAILED_TEXT
        assert "JSONDecodeError" in transcript.error

    @pytest.mark.asyncio
    async def test_successful_transcription(self, audio_file: Path) -> None:
        client = FakeSpeechClient([(0.4, "Hallo zusammen."), (65.9, "Zweite Szene.")])
        adapter = TranscriptionAdapter(client=client, language_code="de-DE")

        transcript = await adapter.transcribe(audio_file)

        assert transcript.full_text == "Hallo zusammen.\nZweite Szene."
        assert [(s.timestamp, s.text) for s in transcript.segments] == [
            ("00:00", "Hallo zusammen."),
            ("01:05", "Zweite Szene."),
        ]
        config, audio = client.requests[0]
        assert config.sample_rate_hertz == 16000
        assert config.language_code == "de-DE"
        assert config.enable_word_time_offsets is True
        assert audio.content == audio_file.read_bytes()

    def test_missing_word_offsets_default_to_zero(self) -> None:
        response = SimpleNamespace(
            results=[
                SimpleNamespace(alternatives=[SimpleNamespace(transcript="Ohne Wörter", words=[])]),
                SimpleNamespace(alternatives=[]),
            ]
        )

        transcript = TranscriptionAdapter.build_transcript(response)

        assert [(s.timestamp, s.text) for s in transcript.segments] == [("00:00", "Ohne Wörter")]

    def test_wire_format(self) -> None:
        transcript = TranscriptionAdapter.build_transcript(
            SimpleNamespace(
                results=[
                    SimpleNamespace(
                        alternatives=[
                            SimpleNamespace(
                                transcript="Eins.",
                                words=[SimpleNamespace(start_time=timedelta(seconds=3))],
                            )
                        ]
                    )
                ]
            )
        )

        assert transcript.to_wire() == {
            "fullText": "Eins.",
            "timestamped": [{"timestamp": "00:03", "text": "Eins."}],
        }


class TestProperty7TimestampFormat:
    """Property 7: MM:SS timestamp formatting uses floored minutes and seconds."""

    @settings(max_examples=200)
    @given(seconds=st.floats(min_value=0, max_value=99 * 60 + 59.999, allow_nan=False))
    def test_format_round_trips_floor(self, seconds: float) -> None:
        formatted = format_timestamp(seconds)
        mins, secs = formatted.split(":")

        assert len(mins) == 2 and len(secs) == 2
        assert int(mins) * 60 + int(secs) == int(seconds)

    @pytest.mark.parametrize(
        "seconds, expected",
        [(0, "00:00"), (59.99, "00:59"), (60, "01:00"), (125.5, "02:05"), (6000, "100:00"), (-3, "00:00")],
    )
    def test_examples(self, seconds: float, expected: str) -> None:
        assert format_timestamp(seconds) == expected
