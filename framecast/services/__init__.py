"""Service layer for Framecast."""

from framecast.services.media import MediaConfig, MediaPipelineRunner, create_media_runner
from framecast.services.orchestrator import JobOrchestrator, ScratchSpace, create_orchestrator
from framecast.services.retrieval import (
    JobView,
    ResultRetrievalService,
    create_retrieval_service,
    is_within_freshness_window,
)
from framecast.services.store import (
    InMemoryJobStore,
    JobStore,
    SupabaseJobStore,
    create_job_store,
)
from framecast.services.transcription import TranscriptionAdapter, create_transcription_adapter

__all__ = [
    "MediaConfig",
    "MediaPipelineRunner",
    "create_media_runner",
    "JobOrchestrator",
    "ScratchSpace",
    "create_orchestrator",
    "JobView",
    "ResultRetrievalService",
    "create_retrieval_service",
    "is_within_freshness_window",
    "InMemoryJobStore",
    "JobStore",
    "SupabaseJobStore",
    "create_job_store",
    "TranscriptionAdapter",
    "create_transcription_adapter",
]
