"""Application settings from environment variables."""

import tempfile
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    # Supabase (job status store)
    supabase_url: str = ""
    supabase_key: str = ""
    jobs_table: str = "video_processor_jobs"

    # Google Cloud Speech-to-Text
    google_application_credentials_json: str = ""
    speech_language_code: str = "de-DE"

    # Transcoder
    ffmpeg_path: str = ""
    scratch_dir: str = Field(default_factory=tempfile.gettempdir)

    # Download
    min_download_bytes: int = 1024
    download_timeout_seconds: float = 300.0
    download_user_agent: str = "video-processor/1.0"

    # Jobs
    default_sensitivity: float = 0.15
    freshness_window_seconds: int = 600

    # Configuration
    log_level: str = "INFO"
    max_retry_attempts: int = 3
    base_delay_seconds: float = 1.0

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
