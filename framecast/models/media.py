"""Keyframe, transcript and result models."""

import base64
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump as a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Keyframe(BaseModel):
    """An image captured at a detected scene change."""

    sequence_index: int = Field(ge=0)
    filename: str = Field(min_length=1)
    # Ordinal from the transcoder's output filename, not a real offset
    approximate_offset_seconds: int = Field(ge=0)
    image_bytes: bytes

    def to_screenshot(self) -> "Screenshot":
        """Encode for transport."""
        return Screenshot(
            filename=self.filename,
            timestamp=self.approximate_offset_seconds,
            base64=base64.b64encode(self.image_bytes).decode("ascii"),
        )


class Screenshot(CamelModel):
    """Transport form of a keyframe."""

    filename: str
    timestamp: int
    base64: str


class TranscriptSegment(CamelModel):
    """One recognized utterance with its MM:SS start offset."""

    timestamp: str
    text: str


class Transcript(CamelModel):
    """Speech transcript; degraded transcripts carry a sentinel full_text."""

    full_text: str
    segments: list[TranscriptSegment] = Field(default_factory=list, alias="timestamped")
    error: Optional[str] = None


class JobResult(CamelModel):
    """Payload of a successfully completed job."""

    success: bool = True
    screenshots: list[Screenshot] = Field(default_factory=list)
    transcript: Transcript
    total_screenshots: int = Field(ge=0)
    video_id: str

    @model_validator(mode="after")
    def count_matches_screenshots(self) -> "JobResult":
        """Validate that total_screenshots equals the number of screenshots."""
        if self.total_screenshots != len(self.screenshots):
            raise ValueError("total_screenshots must equal len(screenshots)")
        return self

    @classmethod
    def assemble(
        cls, keyframes: list[Keyframe], transcript: Transcript, video_id: str
    ) -> "JobResult":
        """Build a result from keyframes ordered by sequence index."""
        ordered = sorted(keyframes, key=lambda k: k.sequence_index)
        screenshots = [k.to_screenshot() for k in ordered]
        return cls(
            screenshots=screenshots,
            transcript=transcript,
            total_screenshots=len(screenshots),
            video_id=video_id,
        )
